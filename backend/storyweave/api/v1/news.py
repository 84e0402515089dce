from fastapi import APIRouter, Depends, Query
from loguru import logger

from storyweave.agents import IngestResult
from storyweave.api.deps import get_services
from storyweave.bootstrap import Services
from storyweave.schemas import IngestRequest, IngestResponse, IngestResultResponse
from storyweave.sources import get_enabled_outlet_ids

router = APIRouter(prefix="/news", tags=["news"])


def _to_response(result: IngestResult) -> IngestResultResponse:
    return IngestResultResponse(
        url=result.url,
        status=result.status,
        stage=result.stage,
        story_id=result.story_id,
        is_new_story=result.is_new_story,
        errors=result.errors,
    )


def _summarize(results) -> str:
    created = sum(1 for r in results if r.is_new_story)
    skipped = sum(1 for r in results if r.status == 'skipped')
    failed = sum(1 for r in results if r.status == 'error')
    return f"{len(results)} articles: {created} new stories, {skipped} skipped, {failed} failed"


@router.post("/fetch", response_model=IngestResponse)
async def fetch_news(
    page_size: int = Query(100, ge=1, le=100),
    services: Services = Depends(get_services)
):
    """
    Fetch top headlines from the enabled outlets and ingest them

    Rate limiting is reported in the response status. In database-only
    mode nothing is fetched.
    """
    if services.settings.DATABASE_ONLY_MODE:
        return IngestResponse(status="database_only", message="Database-only mode: fetching is disabled")

    result = await services.news_client.fetch_top_headlines(get_enabled_outlet_ids(), page_size)

    if result.status == 'rate_limited':
        return IngestResponse(status="rate_limited", message=result.error or "Rate limited by NewsAPI")
    if result.status == 'error':
        return IngestResponse(status="error", message=result.error or "Fetching news failed")

    results = await services.manager.ingest_many(result.articles)
    logger.info(f"Manual fetch: {_summarize(results)}")

    return IngestResponse(
        status="success",
        message=_summarize(results),
        results=[_to_response(r) for r in results]
    )


@router.post("/ingest", response_model=IngestResponse)
async def ingest_articles(request: IngestRequest, services: Services = Depends(get_services)):
    """Ingest articles posted in NewsAPI format"""
    results = await services.manager.ingest_many(request.articles)

    return IngestResponse(
        status="success",
        message=_summarize(results),
        results=[_to_response(r) for r in results]
    )
