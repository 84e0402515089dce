from fastapi import APIRouter, Depends, Query

from storyweave.api.deps import get_services
from storyweave.bootstrap import Services
from storyweave.schemas import Story, StoryArticlesResponse, StoryLinksResponse, StoryListResponse

router = APIRouter(prefix="/stories", tags=["stories"])


@router.get("", response_model=StoryListResponse)
async def list_stories(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    services: Services = Depends(get_services)
):
    """List stories, most recently updated first"""
    stories = await services.store.get_stories(page=page, page_size=page_size)
    total = await services.store.count_stories()

    return StoryListResponse(stories=stories, page=page, page_size=page_size, total=total)


@router.get("/{story_id}", response_model=Story)
async def get_story(story_id: str, services: Services = Depends(get_services)):
    """Get a single story with its analysis"""
    return await services.store.get_story(story_id)


@router.get("/{story_id}/articles", response_model=StoryArticlesResponse)
async def get_story_articles(story_id: str, services: Services = Depends(get_services)):
    """Raw articles clustered into a story"""
    await services.store.get_story(story_id)
    articles = await services.store.get_raw_articles_by_story_id(story_id)
    return StoryArticlesResponse(story_id=story_id, articles=articles)


@router.get("/{story_id}/links", response_model=StoryLinksResponse)
async def get_story_links(story_id: str, services: Services = Depends(get_services)):
    """How each article contributed to a story"""
    await services.store.get_story(story_id)
    links = await services.store.get_story_links(story_id)
    return StoryLinksResponse(story_id=story_id, links=links)


@router.post("/{story_id}/refresh", response_model=Story)
async def refresh_story(story_id: str, services: Services = Depends(get_services)):
    """Regenerate a story's analysis, bypassing the analysis cache"""
    return await services.manager.refresh_story_analysis(story_id)
