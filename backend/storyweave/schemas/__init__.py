from storyweave.schemas.article import NewsAPIArticle, NewsAPISource, RawArticle
from storyweave.schemas.link import ContributionType, Impact, StoryArticleLink
from storyweave.schemas.oracle import SimilarityAnalysis
from storyweave.schemas.story import (
    Implications,
    KeyPoint,
    NotableQuote,
    Perspective,
    Source,
    Story,
    StoryAnalysis,
    StoryMetadata,
    TimelineEvent,
)
from storyweave.schemas.responses import (
    HealthCheckResponse,
    IngestRequest,
    IngestResponse,
    IngestResultResponse,
    SchedulerStatusResponse,
    StoryArticlesResponse,
    StoryLinksResponse,
    StoryListResponse,
)

__all__ = [
    # Article
    "NewsAPIArticle",
    "NewsAPISource",
    "RawArticle",
    # Link
    "ContributionType",
    "Impact",
    "StoryArticleLink",
    # Oracle
    "SimilarityAnalysis",
    # Story
    "Implications",
    "KeyPoint",
    "NotableQuote",
    "Perspective",
    "Source",
    "Story",
    "StoryAnalysis",
    "StoryMetadata",
    "TimelineEvent",
    # API
    "HealthCheckResponse",
    "IngestRequest",
    "IngestResponse",
    "IngestResultResponse",
    "SchedulerStatusResponse",
    "StoryArticlesResponse",
    "StoryLinksResponse",
    "StoryListResponse",
]
