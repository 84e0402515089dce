from fastapi import APIRouter, Depends

from storyweave.api.deps import get_services
from storyweave.bootstrap import Services
from storyweave.schemas import HealthCheckResponse
from storyweave.utils.dates import utcnow

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(services: Services = Depends(get_services)):
    """Health check endpoint"""
    # Check database
    try:
        db_status = "healthy" if await services.store.check_health() else "error"
    except Exception:
        db_status = "error"

    # Check Ollama
    ollama_status = "healthy" if await services.ollama.check_health() else "unavailable"

    overall_status = "healthy" if db_status == "healthy" and ollama_status == "healthy" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        timestamp=utcnow().isoformat(),
        database=db_status,
        ollama=ollama_status,
        database_only_mode=services.settings.DATABASE_ONLY_MODE
    )
