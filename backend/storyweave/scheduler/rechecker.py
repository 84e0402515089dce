import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from storyweave.clustering.similarity import keyword_list
from storyweave.scheduler.backoff import RateLimitBackoff, RecheckState
from storyweave.schemas import Story
from storyweave.services.news_api import FetchResult
from storyweave.utils.dates import utcnow

RECHECK_JOB_ID = 'recheck_active_stories'
STALE_REPORT_JOB_ID = 'report_stale_stories'

# Key points mined for query terms
QUERY_KEY_POINTS = 2


class RecheckScheduler:
    """
    Periodically searches the article source for coverage of active stories
    and feeds what it finds back into ingestion
    """

    def __init__(
        self,
        store,
        manager,
        news_client,
        backoff: RateLimitBackoff,
        interval_minutes: int = 15,
        initial_delay_seconds: int = 60,
        active_window: timedelta = timedelta(hours=24),
        batch_size: int = 5,
        batch_pause_seconds: float = 2.0,
        max_lookback: timedelta = timedelta(days=3),
        query_max_terms: int = 6,
        page_size: int = 100,
        database_only_mode: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.manager = manager
        self.news_client = news_client
        self.backoff = backoff
        self.interval_minutes = interval_minutes
        self.initial_delay_seconds = initial_delay_seconds
        self.active_window = active_window
        self.batch_size = max(batch_size, 1)
        self.batch_pause_seconds = batch_pause_seconds
        self.max_lookback = max_lookback
        self.query_max_terms = query_max_terms
        self.page_size = page_size
        self.database_only_mode = database_only_mode
        self._clock = clock

        self.scheduler: Optional[AsyncIOScheduler] = None
        self.is_running = False
        self._in_progress = False
        self.last_run_at: Optional[datetime] = None
        self.last_summary: Dict[str, Any] = {}

    @property
    def state(self) -> RecheckState:
        if self._in_progress:
            return RecheckState.RUNNING
        return self.backoff.state

    def build_search_query(self, story: Story) -> str:
        """Title keywords, then key point keywords, de-duplicated and capped"""
        terms = keyword_list(story.title)
        for key_point in story.analysis.key_points[:QUERY_KEY_POINTS]:
            terms.extend(keyword_list(key_point.point))
        return ' '.join(list(dict.fromkeys(terms))[:self.query_max_terms])

    def search_start_date(self, story: Story, now: Optional[datetime] = None) -> datetime:
        now = now or self._clock()
        return max(story.metadata.first_published, now - self.max_lookback)

    async def _recheck_story(self, story: Story) -> FetchResult:
        try:
            query = self.build_search_query(story)
            if not query:
                logger.debug(f"No search terms for story {story.id}, skipping")
                return FetchResult(status='ok')

            result = await self.news_client.fetch(query, self.search_start_date(story), self.page_size)
            if result.status != 'ok':
                return result

            if result.articles:
                await self.manager.ingest_many(result.articles)
            return result

        except Exception as e:
            logger.error(f"Recheck of story {story.id} failed: {e}")
            return FetchResult(status='error', error=str(e))

    async def run_recheck(self) -> Dict[str, Any]:
        """
        One recheck pass over the active stories

        Skipped entirely while backing off. A rate-limited response ends
        the pass and enters backoff; a pass without one resets it.
        """
        if self.backoff.should_skip():
            remaining = self.backoff.remaining_seconds()
            logger.info(f"Recheck skipped, backing off for another {remaining:.0f}s")
            return {'status': 'skipped', 'reason': 'backoff', 'backoff_remaining_seconds': remaining}

        if self._in_progress:
            logger.warning("Recheck already in progress, skipping")
            return {'status': 'skipped', 'reason': 'in_progress'}

        self._in_progress = True
        now = self._clock()
        self.last_run_at = now
        summary = {'status': 'completed', 'active_stories': 0, 'checked': 0, 'articles_found': 0, 'failed': 0}

        try:
            stories = await self.store.get_active_stories(now - self.active_window)
            summary['active_stories'] = len(stories)
            logger.info(f"Starting recheck of {len(stories)} active stories")

            if self.database_only_mode:
                logger.info("Database-only mode: no outbound fetches during recheck")
                summary['status'] = 'database_only'
                return summary

            rate_limited = False
            batches = [stories[i:i + self.batch_size] for i in range(0, len(stories), self.batch_size)]

            for index, batch in enumerate(batches):
                results: List[FetchResult] = await asyncio.gather(*(self._recheck_story(s) for s in batch))

                for story, result in zip(batch, results):
                    summary['checked'] += 1
                    summary['articles_found'] += len(result.articles)
                    if result.status == 'rate_limited':
                        rate_limited = True
                    elif result.status == 'error':
                        summary['failed'] += 1
                        logger.warning(f"Recheck of story {story.id} failed: {result.error}")

                if rate_limited:
                    self.backoff.record_rate_limit()
                    summary['status'] = 'rate_limited'
                    break

                if index < len(batches) - 1 and self.batch_pause_seconds > 0:
                    await asyncio.sleep(self.batch_pause_seconds)

            if not rate_limited:
                self.backoff.record_success()

            logger.info(
                f"Recheck finished: status={summary['status']}, checked={summary['checked']}, "
                f"articles={summary['articles_found']}, failed={summary['failed']}"
            )
            return summary

        except Exception as e:
            logger.error(f"Recheck run failed: {e}")
            summary['status'] = 'error'
            summary['error'] = str(e)
            return summary

        finally:
            self._in_progress = False
            self.last_summary = summary

    async def report_stale_stories(self):
        try:
            await self.manager.report_stale_stories(self._clock())
        except Exception as e:
            logger.error(f"Stale story report failed: {e}")

    def start(self):
        """Start the scheduler (needs a running event loop)"""
        if self.is_running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting recheck scheduler...")

        self.scheduler = AsyncIOScheduler(
            job_defaults={
                'coalesce': True,  # Combine multiple pending executions into one
                'max_instances': 1,  # Only one instance of a job at a time
                'misfire_grace_time': 300
            },
            timezone='UTC'
        )

        self.scheduler.add_job(
            self.run_recheck,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            next_run_time=utcnow() + timedelta(seconds=self.initial_delay_seconds),
            id=RECHECK_JOB_ID,
            name='Recheck Active Stories',
            replace_existing=True
        )

        # Daily report at 2 AM UTC
        self.scheduler.add_job(
            self.report_stale_stories,
            trigger=CronTrigger(hour=2, minute=0),
            id=STALE_REPORT_JOB_ID,
            name='Report Stale Stories',
            replace_existing=True
        )

        self.scheduler.start()
        self.is_running = True
        logger.info(
            f"Recheck scheduler started: every {self.interval_minutes} minutes "
            f"after {self.initial_delay_seconds}s"
        )

    def shutdown(self):
        """Shutdown the scheduler"""
        if not self.scheduler or not self.is_running:
            return

        logger.info("Shutting down recheck scheduler...")
        self.scheduler.shutdown(wait=False)
        self.is_running = False
        logger.info("Recheck scheduler shut down successfully")

    async def trigger_now(self) -> Dict[str, Any]:
        """Run a recheck immediately, in addition to the scheduled runs"""
        logger.info("Manual recheck triggered")
        return await self.run_recheck()

    def next_run_time(self) -> Optional[datetime]:
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(RECHECK_JOB_ID)
        return job.next_run_time if job else None

    def status(self) -> Dict[str, Any]:
        next_run = self.next_run_time()
        return {
            'is_running': self.is_running,
            'state': self.state.value,
            'consecutive_rate_limits': self.backoff.consecutive_errors,
            'backoff_remaining_seconds': self.backoff.remaining_seconds(),
            'last_run_at': self.last_run_at.isoformat() if self.last_run_at else None,
            'next_run_time': next_run.isoformat() if next_run else None,
            'database_only_mode': self.database_only_mode,
        }
