from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fieldsales.api.deps import Period, Source, report_errors, require_roles
from fieldsales.models.user import User, UserRole
from fieldsales.schemas.records import CommercialSnapshot
from fieldsales.schemas.reports import CommercialReport, DirectorReport, ManagerReport
from fieldsales.services import reports
from fieldsales.services.periods import resolve_period

router = APIRouter(prefix="/analytics", tags=["analytics"])

TEAM_ROLES = (UserRole.MANAGER, UserRole.DIRECTOR, UserRole.ADMIN)


@router.get("/manager", response_model=ManagerReport)
def manager_report(
    period: Period,
    source: Source,
    _user: User = Depends(require_roles(UserRole.MANAGER, UserRole.ADMIN)),
) -> ManagerReport:
    with report_errors():
        payload = reports.build_manager_report(source, period)
    return ManagerReport.model_validate(payload)


@router.get("/director", response_model=DirectorReport)
def director_report(
    period: Period,
    source: Source,
    _user: User = Depends(require_roles(UserRole.DIRECTOR, UserRole.ADMIN)),
) -> DirectorReport:
    with report_errors():
        payload = reports.build_director_report(source, period)
    return DirectorReport.model_validate(payload)


@router.get("/commercial", response_model=CommercialReport)
def own_commercial_report(
    source: Source,
    user: User = Depends(require_roles(UserRole.COMMERCIAL)),
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None),
) -> CommercialReport:
    today = date.today()
    if month is None:
        month = today.month
    period = resolve_period(year or today.year, month, user.id)
    commercial = CommercialSnapshot.model_validate(user)
    with report_errors():
        payload = reports.build_commercial_report(source, period, commercial)
    return CommercialReport.model_validate(payload)


@router.get("/commercials/{commercial_id}", response_model=CommercialReport)
def commercial_report(
    commercial_id: int,
    source: Source,
    _user: User = Depends(require_roles(*TEAM_ROLES)),
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None),
) -> CommercialReport:
    with report_errors():
        commercial = source.fetch_commercial(commercial_id)
    if commercial is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Komercijalista nije pronađen.",
        )

    today = date.today()
    if month is None:
        month = today.month
    period = resolve_period(year or today.year, month, commercial.id)
    with report_errors():
        payload = reports.build_commercial_report(source, period, commercial)
    return CommercialReport.model_validate(payload)
