from fastapi import APIRouter

from fieldsales.api.routes.analytics import router as analytics_router
from fieldsales.api.routes.auth import router as auth_router
from fieldsales.api.routes.plans import router as plans_router

api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(analytics_router)
api_router.include_router(plans_router)
