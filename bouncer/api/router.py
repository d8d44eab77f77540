from fastapi import APIRouter

from bouncer.api.routes import health, pleas
from bouncer.core.config import get_settings


def get_api_router() -> APIRouter:
    settings = get_settings()
    router = APIRouter(prefix=settings.api_prefix)
    router.include_router(health.router)
    router.include_router(pleas.router)
    return router
