from sqlmodel.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session
from ..core.config import settings

def make_engine(url: str):
    if url.startswith("sqlite"):
        # request handlers run on the threadpool
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_pre_ping=True)

engine = make_engine(settings.DATABASE_URL)

def init_db(bind=None) -> None:
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)

def get_session():
    with Session(engine) as session:
        yield session
