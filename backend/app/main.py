import logging

from fastapi import FastAPI

from backend.app.api.v1.router import router as v1_router
from backend.app.core.config import get_settings
from backend.app.core.logging import RequestContextMiddleware, configure_logging

settings = get_settings()

configure_logging(settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.version)
app.add_middleware(RequestContextMiddleware)
app.include_router(v1_router, prefix="/v1")

logger.info("application configured", extra={"extra": settings.dict_for_logging()})
