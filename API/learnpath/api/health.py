from fastapi import APIRouter, Request

from learnpath.core.resilience import get_breakers_status
from learnpath.core.settings import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    service = request.app.state.journey_service
    return {
        "status": "ok",
        "service": "learnpath-api",
        "llm_provider": service.provider.provider_name,
        "app_env": settings.app_env,
        "journeys": len(service.store),
        "breakers": get_breakers_status(),
    }
