from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fieldsales.db.session import get_db
from fieldsales.schemas.health import HealthResponse
from fieldsales.services import health as health_service

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["system"])
def health(db: Session = Depends(get_db)) -> HealthResponse:
    database_ok = health_service.check_database(db)
    redis_ok = health_service.check_redis()
    status = "ok" if database_ok and redis_ok else "degraded"
    return HealthResponse(status=status, database=database_ok, redis=redis_ok)
