from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from storyweave.schemas import NewsAPIArticle
from storyweave.utils.retry import retry_async

FetchStatus = Literal['ok', 'rate_limited', 'error']

REMOVED_MARKER = "[Removed]"
MAX_PAGE_SIZE = 100


@dataclass
class FetchResult:
    status: FetchStatus
    articles: List[NewsAPIArticle] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def rate_limited(self) -> bool:
        return self.status == 'rate_limited'


def parse_articles(payload: Dict[str, Any]) -> List[NewsAPIArticle]:
    """Valid articles of a NewsAPI response; removed and malformed items are skipped"""
    articles = []
    for item in payload.get('articles') or []:
        if not isinstance(item, dict):
            continue
        if not item.get('url') or not item.get('title') or item.get('title') == REMOVED_MARKER:
            continue
        try:
            articles.append(NewsAPIArticle.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping malformed article {item.get('url')}: {e}")
    return articles


class NewsAPIClient:
    """
    Client for the NewsAPI v2 endpoints

    Rate limiting (HTTP 429) is reported as a status, never raised.
    Transport failures are retried with exponential backoff.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://newsapi.org/v2",
        timeout: float = 30,
        language: str = "en",
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.language = language
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.transport = transport

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> FetchResult:
        params = {**params, 'apiKey': self.api_key}

        async def send() -> httpx.Response:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                return await client.get(f"{self.base_url}/{endpoint}", params=params)

        try:
            response = await retry_async(
                send,
                max_attempts=self.max_attempts,
                delay=self.retry_delay,
                exceptions=(httpx.TransportError,),
            )
        except httpx.TransportError as e:
            return FetchResult(status='error', error=f"Transport error: {e}")

        if response.status_code == 429:
            logger.warning(f"NewsAPI rate limit hit on /{endpoint}")
            return FetchResult(status='rate_limited', error="Rate limited (HTTP 429)")

        if response.status_code != 200:
            logger.error(f"NewsAPI error on /{endpoint}: {response.status_code} - {response.text[:300]}")
            return FetchResult(status='error', error=f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"NewsAPI returned invalid JSON on /{endpoint}: {e}")
            return FetchResult(status='error', error="Invalid JSON response")

        if not isinstance(payload, dict):
            logger.error(f"NewsAPI returned an unexpected payload on /{endpoint}: {type(payload).__name__}")
            return FetchResult(status='error', error="Unexpected response shape")

        if payload.get('status') == 'error':
            # NewsAPI reports some rate limits in the body with a 200
            if payload.get('code') == 'rateLimited':
                logger.warning(f"NewsAPI rate limit reported on /{endpoint}")
                return FetchResult(status='rate_limited', error=payload.get('message'))
            logger.error(f"NewsAPI error on /{endpoint}: {payload.get('message')}")
            return FetchResult(status='error', error=payload.get('message') or "Unknown error")

        articles = parse_articles(payload)
        logger.info(f"NewsAPI /{endpoint} returned {len(articles)} articles")
        return FetchResult(status='ok', articles=articles)

    async def fetch(
        self,
        query: str,
        from_date: Optional[datetime] = None,
        page_size: int = MAX_PAGE_SIZE,
    ) -> FetchResult:
        """
        Search /everything for articles matching `query`

        Args:
            query: Search terms
            from_date: Oldest publication date of interest (naive UTC)
            page_size: Results per page, at most 100
        """
        params = {
            'q': query,
            'sortBy': 'publishedAt',
            'language': self.language,
            'pageSize': min(page_size, MAX_PAGE_SIZE),
        }
        if from_date is not None:
            params['from'] = from_date.strftime('%Y-%m-%dT%H:%M:%S')
        return await self._get('everything', params)

    async def fetch_top_headlines(self, sources: List[str], page_size: int = MAX_PAGE_SIZE) -> FetchResult:
        """Current top headlines from the given outlet ids"""
        params = {
            'sources': ','.join(sources),
            'pageSize': min(page_size, MAX_PAGE_SIZE),
        }
        return await self._get('top-headlines', params)
