import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ...core.rate_limit import login_limiter, register_limiter
from ...core.security import create_access_token, get_current_user, hash_password, verify_password
from ...db import crud
from ...db.models import User
from ...db.session import get_session
from ...schemas.auth import AuthOut, LoginIn, RegisterIn, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(register_limiter)])
def register(body: RegisterIn, session: Session = Depends(get_session)):
    if crud.get_user_by_email(session, body.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered. Please use a different email or try logging in.",
        )
    user = crud.create_user(session, User(name=body.name, email=body.email, password_hash=hash_password(body.password)))
    if body.contacts:
        crud.add_contacts(session, user.id, body.contacts)
    logger.info("registered user %s", user.id)
    return AuthOut(token=create_access_token(user.id), user=UserOut.model_validate(user))

@router.post("/login", response_model=AuthOut, dependencies=[Depends(login_limiter)])
def login(body: LoginIn, session: Session = Depends(get_session)):
    user = crud.get_user_by_email(session, body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return AuthOut(token=create_access_token(user.id), user=UserOut.model_validate(user))

@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user
