from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fieldsales.api.deps import CurrentUser, Source, report_errors, require_roles
from fieldsales.models.user import User, UserRole
from fieldsales.schemas.reports import PlanAchievementReport, SinglePlanReport
from fieldsales.services import reports

router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("/achievement", response_model=PlanAchievementReport)
def plans_achievement(
    source: Source,
    _user: User = Depends(
        require_roles(UserRole.MANAGER, UserRole.DIRECTOR, UserRole.ADMIN)
    ),
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None),
) -> PlanAchievementReport:
    today = date.today()
    if month is None:
        month = today.month
    with report_errors():
        payload = reports.build_plan_achievement_report(
            source, year or today.year, month
        )
    return PlanAchievementReport.model_validate(payload)


@router.get("/{plan_id}/achievement", response_model=SinglePlanReport)
def plan_achievement(plan_id: int, source: Source, _user: CurrentUser) -> SinglePlanReport:
    with report_errors():
        plan = source.fetch_plan(plan_id)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan ne postoji.",
        )

    with report_errors():
        payload = reports.build_single_plan_report(source, plan)
    return SinglePlanReport.model_validate(payload)
