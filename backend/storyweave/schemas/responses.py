from typing import List, Optional

from pydantic import BaseModel

from storyweave.schemas.article import NewsAPIArticle, RawArticle
from storyweave.schemas.link import StoryArticleLink
from storyweave.schemas.story import Story


class StoryListResponse(BaseModel):
    """Schema for a page of stories"""
    stories: List[Story]
    page: int
    page_size: int
    total: int


class StoryArticlesResponse(BaseModel):
    story_id: str
    articles: List[RawArticle]


class StoryLinksResponse(BaseModel):
    story_id: str
    links: List[StoryArticleLink]


class IngestRequest(BaseModel):
    """Articles posted for ingestion"""
    articles: List[NewsAPIArticle]


class IngestResultResponse(BaseModel):
    url: str
    status: str
    stage: str
    story_id: Optional[str] = None
    is_new_story: bool = False
    errors: List[str] = []


class IngestResponse(BaseModel):
    status: str
    message: str
    results: List[IngestResultResponse] = []


class HealthCheckResponse(BaseModel):
    """Schema for health check response"""
    status: str
    timestamp: str
    database: str
    ollama: str
    database_only_mode: bool


class SchedulerStatusResponse(BaseModel):
    is_running: bool
    state: str
    consecutive_rate_limits: int
    backoff_remaining_seconds: float
    last_run_at: Optional[str] = None
    next_run_time: Optional[str] = None
    database_only_mode: bool
    cache: dict
