import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.logging import setup_logging
from .core.rate_limit import api_limiter
from .db.session import init_db
from .api.v1 import auth, contacts, health, tasks
from .services.nlp_parse import ExtractionFailed

logger = logging.getLogger(__name__)

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title=settings.APP_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

limited = [Depends(api_limiter)]
app.include_router(health.router,   prefix=settings.API_V1_PREFIX)
app.include_router(auth.router,     prefix=settings.API_V1_PREFIX, dependencies=limited)
app.include_router(contacts.router, prefix=settings.API_V1_PREFIX, dependencies=limited)
app.include_router(tasks.router,    prefix=settings.API_V1_PREFIX, dependencies=limited)

@app.on_event("startup")
def on_startup():
    init_db()

@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in e["loc"] if p != "body"), "message": e["msg"]}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )

@app.exception_handler(ExtractionFailed)
async def extraction_failed(request: Request, exc: ExtractionFailed):
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)})

@app.exception_handler(Exception)
async def unhandled(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Server Error"})
