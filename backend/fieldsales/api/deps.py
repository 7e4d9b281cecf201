from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldsales.core.config import get_settings
from fieldsales.db.session import SessionLocal, get_db
from fieldsales.models.user import User, UserRole
from fieldsales.services.auth import decode_token
from fieldsales.services.periods import ReportPeriod, resolve_period
from fieldsales.services.records import (
    RecordFetchError,
    RecordSource,
    ReportTimeoutError,
    SqlRecordSource,
)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Potreban je pristupni token.",
        )

    token = auth_header.removeprefix("Bearer ").strip()
    try:
        payload = decode_token(token)
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Neispravan ili istekao token.",
        ) from None

    email = payload.get("sub")
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token ne sadrži korisnika.",
        )

    user = db.scalar(select(User).where(User.email == email))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Korisnik nije pronađen.",
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_roles(*roles: UserRole) -> Callable[[User], User]:
    allowed = set(roles)

    def checker(user: CurrentUser) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Nemate pristup ovom izvještaju.",
            )
        return user

    return checker


def get_record_source() -> RecordSource:
    settings = get_settings()
    return SqlRecordSource(SessionLocal, settings.report_timezone)


Source = Annotated[RecordSource, Depends(get_record_source)]


def get_report_period(
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None),
    commercial_id: int | None = Query(default=None, ge=1),
) -> ReportPeriod:
    today = date.today()
    if month is None:
        month = today.month
    return resolve_period(year or today.year, month, commercial_id)


Period = Annotated[ReportPeriod, Depends(get_report_period)]


@contextmanager
def report_errors() -> Iterator[None]:
    try:
        yield
    except ReportTimeoutError:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Izvještaj nije izračunat u dozvoljenom vremenu.",
        ) from None
    except RecordFetchError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Podaci za izvještaj trenutno nisu dostupni.",
        ) from None
