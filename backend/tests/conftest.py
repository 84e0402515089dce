from datetime import datetime, timedelta
from typing import List, Optional

import pytest

from storyweave.agents import StoryClusterManager
from storyweave.clustering import AnalysisCache, SimilarityMatcher, StoryAnalyzer
from storyweave.schemas import NewsAPIArticle, NewsAPISource, SimilarityAnalysis, Source, Story, StoryMetadata
from storyweave.services.news_api import FetchResult
from storyweave.services.storage import StoryStore
from storyweave.utils.dates import utcnow


class FakeOracle:
    """Scripted oracle that records every call"""

    def __init__(self, similarity_result=None, analysis=None, update=None):
        self.similarity_result: Optional[SimilarityAnalysis] = similarity_result
        self.analysis = analysis
        self.update = update
        self.similarity_calls = []
        self.analyze_calls = []
        self.update_calls = []

    async def similarity(self, first, second, entities):
        self.similarity_calls.append((first, second, entities))
        return self.similarity_result

    async def analyze(self, stories, complexity='standard'):
        self.analyze_calls.append((stories, complexity))
        return self.analysis

    async def update_analysis(self, story, new_story):
        self.update_calls.append((story, new_story))
        return self.update


class FakeNewsClient:
    """Article source returning a fixed result for every query"""

    def __init__(self, result: Optional[FetchResult] = None):
        self.result = result or FetchResult(status='ok')
        self.calls = []

    async def fetch(self, query, from_date=None, page_size=100):
        self.calls.append((query, from_date, page_size))
        return self.result

    async def fetch_top_headlines(self, sources, page_size=100):
        self.calls.append((sources, None, page_size))
        return self.result


class MutableClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def make_article(
    title: str,
    url: str,
    description: Optional[str] = None,
    source_id: Optional[str] = 'reuters',
    source_name: str = 'Reuters',
    published_at: Optional[datetime] = None,
    content: Optional[str] = None,
) -> NewsAPIArticle:
    return NewsAPIArticle(
        title=title,
        url=url,
        description=description,
        content=content,
        published_at=published_at or utcnow() - timedelta(minutes=30),
        source=NewsAPISource(id=source_id, name=source_name),
    )


def make_story(
    story_id: str,
    title: str,
    summary: str = "",
    source_urls: Optional[List[str]] = None,
    first_published: Optional[datetime] = None,
    last_updated: Optional[datetime] = None,
) -> Story:
    now = utcnow()
    urls = source_urls if source_urls is not None else [f"https://example.com/{story_id}"]
    sources = [
        Source(id=f"outlet-{i}", name=f"Outlet {i}", url=url, perspective=summary or None)
        for i, url in enumerate(urls, start=1)
    ]
    return Story(
        id=story_id,
        title=title,
        summary=summary,
        sources=sources,
        metadata=StoryMetadata(
            first_published=first_published or now - timedelta(hours=2),
            last_updated=last_updated or now - timedelta(hours=1),
            total_sources=len(sources),
        ),
    )


@pytest.fixture
async def store():
    store = StoryStore("sqlite://")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def cache():
    return AnalysisCache()


@pytest.fixture
def matcher(store, oracle):
    return SimilarityMatcher(store, oracle)


@pytest.fixture
def analyzer(oracle, cache):
    return StoryAnalyzer(oracle, cache)


@pytest.fixture
def manager(store, matcher, analyzer):
    return StoryClusterManager(store, matcher, analyzer, max_sources_per_story=5)
