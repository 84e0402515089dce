from fastapi import APIRouter, Depends

from storyweave.api.deps import get_services
from storyweave.bootstrap import Services
from storyweave.schemas import SchedulerStatusResponse

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


@router.get("/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(services: Services = Depends(get_services)):
    """Recheck scheduler state, backoff and analysis cache statistics"""
    return SchedulerStatusResponse(
        **services.rechecker.status(),
        cache=services.analyzer.cache_stats()
    )


@router.post("/trigger")
async def trigger_recheck(services: Services = Depends(get_services)):
    """Run a recheck of the active stories now"""
    summary = await services.rechecker.trigger_now()
    return {"message": "Recheck finished", "summary": summary}
