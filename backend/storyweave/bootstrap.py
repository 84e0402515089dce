"""
Construction of every service from Settings.

Nothing in the package reads configuration on its own; values are passed
down from here through constructor arguments.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import httpx

from storyweave.agents import StoryClusterManager
from storyweave.clustering import AnalysisCache, SimilarityMatcher, StoryAnalyzer
from storyweave.config import Settings
from storyweave.scheduler import RateLimitBackoff, RecheckScheduler
from storyweave.services import AnalysisOracle, NewsAPIClient, OllamaService, StoryStore


@dataclass
class Services:
    settings: Settings
    store: StoryStore
    ollama: OllamaService
    oracle: AnalysisOracle
    news_client: NewsAPIClient
    cache: AnalysisCache
    matcher: SimilarityMatcher
    analyzer: StoryAnalyzer
    manager: StoryClusterManager
    backoff: RateLimitBackoff
    rechecker: RecheckScheduler


def build_services(
    settings: Settings,
    ollama_transport: Optional[httpx.AsyncBaseTransport] = None,
    news_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Services:
    store = StoryStore(settings.DATABASE_URL, echo=settings.DEBUG)

    ollama = OllamaService(
        host=settings.OLLAMA_HOST,
        timeout=settings.OLLAMA_TIMEOUT,
        transport=ollama_transport,
    )
    oracle = AnalysisOracle(
        ollama,
        analysis_model=settings.OLLAMA_MODEL_ANALYSIS,
        similarity_model=settings.OLLAMA_MODEL_SIMILARITY,
    )
    news_client = NewsAPIClient(
        api_key=settings.NEWS_API_KEY,
        base_url=settings.NEWS_API_BASE_URL,
        timeout=settings.NEWS_API_TIMEOUT,
        transport=news_transport,
    )

    cache = AnalysisCache(
        ttl_seconds=settings.ANALYSIS_CACHE_TTL_HOURS * 3600,
        max_size=settings.ANALYSIS_CACHE_MAX_SIZE,
    )
    matcher = SimilarityMatcher(
        store,
        oracle,
        match_window=timedelta(hours=settings.MATCH_WINDOW_HOURS),
        match_threshold=settings.MATCH_THRESHOLD,
        borderline_lower=settings.BORDERLINE_LOWER,
        borderline_upper=settings.BORDERLINE_UPPER,
        confidence_threshold=settings.ORACLE_CONFIDENCE_THRESHOLD,
        tiebreak_candidates=settings.ORACLE_TIEBREAK_CANDIDATES,
    )
    analyzer = StoryAnalyzer(
        oracle,
        cache,
        significant_update_after=timedelta(hours=settings.SIGNIFICANT_UPDATE_HOURS),
        novelty_threshold=settings.NOVELTY_THRESHOLD,
    )
    manager = StoryClusterManager(
        store,
        matcher,
        analyzer,
        max_sources_per_story=settings.MAX_SOURCES_PER_STORY,
        major_impact_max_sources=settings.MAJOR_IMPACT_MAX_SOURCES,
        major_impact_stale_after=timedelta(hours=settings.MAJOR_IMPACT_STALE_HOURS),
        max_concurrent_ingests=settings.MAX_CONCURRENT_INGESTS,
        story_retention=timedelta(days=settings.STORY_RETENTION_DAYS),
    )

    backoff = RateLimitBackoff(
        base_delay=timedelta(minutes=settings.BACKOFF_BASE_MINUTES),
        max_delay=timedelta(minutes=settings.BACKOFF_MAX_MINUTES),
    )
    rechecker = RecheckScheduler(
        store,
        manager,
        news_client,
        backoff,
        interval_minutes=settings.RECHECK_INTERVAL_MINUTES,
        initial_delay_seconds=settings.RECHECK_INITIAL_DELAY_SECONDS,
        active_window=timedelta(hours=settings.ACTIVE_STORY_WINDOW_HOURS),
        batch_size=settings.RECHECK_BATCH_SIZE,
        batch_pause_seconds=settings.RECHECK_BATCH_PAUSE_SECONDS,
        max_lookback=timedelta(days=settings.RECHECK_MAX_LOOKBACK_DAYS),
        query_max_terms=settings.RECHECK_QUERY_MAX_TERMS,
        page_size=settings.NEWS_API_PAGE_SIZE,
        database_only_mode=settings.DATABASE_ONLY_MODE,
    )

    return Services(
        settings=settings,
        store=store,
        ollama=ollama,
        oracle=oracle,
        news_client=news_client,
        cache=cache,
        matcher=matcher,
        analyzer=analyzer,
        manager=manager,
        backoff=backoff,
        rechecker=rechecker,
    )
