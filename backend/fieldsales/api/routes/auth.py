import logging

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldsales.api.deps import CurrentUser
from fieldsales.db.session import get_db
from fieldsales.models.user import User
from fieldsales.schemas.auth import (
    AuthResponse,
    AuthTokens,
    MessageResponse,
    RefreshTokenRequest,
    UserLogin,
    UserPublic,
)
from fieldsales.services.auth import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_tokens(user: User) -> AuthTokens:
    return AuthTokens(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
    )


@router.post("/login", response_model=AuthResponse)
def login_user(payload: UserLogin, db: Session = Depends(get_db)) -> AuthResponse:
    user = db.scalar(select(User).where(User.email == payload.email))
    if not user or not verify_password(payload.password, user.password_hash):
        logger.info("Failed login for %s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Pogrešan email ili lozinka.",
        )

    return AuthResponse(user=UserPublic.model_validate(user), tokens=_issue_tokens(user))


@router.post("/refresh", response_model=AuthTokens)
def refresh_tokens(
    payload: RefreshTokenRequest,
    db: Session = Depends(get_db),
) -> AuthTokens:
    try:
        decoded = decode_token(payload.refresh_token, REFRESH_TOKEN)
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Neispravan ili istekao refresh token.",
        ) from None

    user = db.scalar(select(User).where(User.email == decoded.get("sub")))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Korisnik nije pronađen.",
        )

    return _issue_tokens(user)


@router.get("/me", response_model=UserPublic)
def current_user(user: CurrentUser) -> UserPublic:
    return UserPublic.model_validate(user)


@router.post("/logout", response_model=MessageResponse)
def logout_user() -> MessageResponse:
    return MessageResponse(message="Odjavljeni ste.")
