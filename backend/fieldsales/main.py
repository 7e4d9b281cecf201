import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fieldsales.api.router import api_router
from fieldsales.api.routes.health import router as health_router
from fieldsales.core.config import get_settings
from fieldsales.core.logging import configure_logging

settings = get_settings()

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_prefix)
app.include_router(health_router)

logger.info(
    "%s ready, reports in %s with %s fetch worker(s)",
    settings.app_name,
    settings.report_timezone,
    settings.report_fetch_workers,
)
