"""
Story clustering: every incoming article either joins an existing story or
starts a new one.

Ingestion runs through the langgraph graph built in workflow.py. Articles
whose titles share the same significant words are ingested one at a time;
differently worded headlines about the same event can still race and
produce two stories.
"""
import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from loguru import logger

from storyweave.agents.state import IngestState
from storyweave.agents.workflow import build_ingest_graph
from storyweave.clustering.analysis import StoryAnalyzer
from storyweave.clustering.articles import build_story_from_article
from storyweave.clustering.matcher import MatchKind, SimilarityMatcher
from storyweave.clustering.similarity import contains_breaking_terms, get_keywords
from storyweave.schemas import NewsAPIArticle, Source, Story
from storyweave.utils.content_hash import keyword_fingerprint
from storyweave.utils.dates import utcnow
from storyweave.utils.locks import KeyedLock


@dataclass
class IngestResult:
    url: str
    status: str  # 'success', 'skipped', 'error'
    stage: str
    story_id: Optional[str] = None
    is_new_story: bool = False
    impact: Optional[str] = None
    errors: List[str] = field(default_factory=list)


def merge_sources(existing: List[Source], incoming: Iterable[Source], max_sources: int) -> Tuple[List[Source], bool]:
    """
    Existing sources first, then new ones, de-duplicated by URL and capped

    Returns:
        (merged sources, True if the set of sources changed)
    """
    merged = {}
    for source in list(existing) + list(incoming):
        merged.setdefault(source.url, source)

    sources = list(merged.values())[:max_sources]
    changed = [s.url for s in sources] != [s.url for s in existing]
    return sources, changed


class StoryClusterManager:
    """Turns articles into stories and keeps those stories up to date"""

    def __init__(
        self,
        store,
        matcher: SimilarityMatcher,
        analyzer: StoryAnalyzer,
        max_sources_per_story: int = 5,
        major_impact_max_sources: int = 2,
        major_impact_stale_after: timedelta = timedelta(hours=12),
        max_concurrent_ingests: int = 3,
        story_retention: timedelta = timedelta(days=7),
    ):
        self.store = store
        self.matcher = matcher
        self.analyzer = analyzer
        self.max_sources_per_story = max_sources_per_story
        self.major_impact_max_sources = major_impact_max_sources
        self.major_impact_stale_after = major_impact_stale_after
        self.max_concurrent_ingests = max_concurrent_ingests
        self.story_retention = story_retention
        self._locks = KeyedLock()
        self.graph = build_ingest_graph(self)

    def classify_impact(self, story: Story, new_story: Story, now: Optional[datetime] = None) -> str:
        """Impact of `new_story` on an existing `story`, judged before the merge"""
        now = now or utcnow()
        if len(story.sources) <= self.major_impact_max_sources:
            return 'major'
        if contains_breaking_terms(f"{new_story.title} {new_story.summary}"):
            return 'major'
        if now - story.metadata.last_updated > self.major_impact_stale_after:
            return 'major'
        return 'minor'

    # Graph nodes

    async def store_raw_node(self, state: IngestState) -> IngestState:
        stage_start = time.time()
        article = state['article']

        try:
            raw, created = await self.store.store_raw_article(article)
            state['raw_article'] = raw

            if raw.processed:
                logger.info(f"Article already processed, skipping: {article.url}")
                state['stage'] = 'duplicate_skipped'
                state['status'] = 'skipped'
                if raw.story_id:
                    state['story'] = await self.store.find_story(raw.story_id)
            else:
                if not created:
                    logger.debug(f"Resuming unprocessed raw article {raw.id}")
                state['stage'] = 'stored'

        except Exception as e:
            logger.error(f"store_raw node error: {e}")
            state['errors'].append(f"Storing raw article failed: {e}")
            state['status'] = 'error'
            state['stage'] = 'store_failed'

        state['stage_timings']['store_raw'] = time.time() - stage_start
        return state

    async def match_node(self, state: IngestState) -> IngestState:
        stage_start = time.time()

        try:
            candidate = build_story_from_article(state['article'])
            state['candidate'] = candidate

            result = await self.matcher.find_story_for(candidate)
            state['match'] = result
            state['stage'] = 'matched' if result.kind != MatchKind.NO_MATCH else 'unmatched'
            logger.info(f"Match for '{candidate.title[:50]}': {result.kind.value}")

        except Exception as e:
            logger.error(f"match node error: {e}")
            state['errors'].append(f"Matching failed: {e}")
            state['status'] = 'error'
            state['stage'] = 'match_failed'

        state['stage_timings']['match'] = time.time() - stage_start
        return state

    async def merge_into_story_node(self, state: IngestState) -> IngestState:
        stage_start = time.time()
        candidate = state['candidate']

        try:
            # Reload so the merge starts from the latest stored version
            story = await self.store.get_story(state['match'].story.id)
            now = utcnow()

            impact = self.classify_impact(story, candidate, now)
            sources, changed = merge_sources(story.sources, candidate.sources, self.max_sources_per_story)
            analysis = await self.analyzer.update_story_analysis(story, candidate)

            metadata = story.metadata.model_copy(update={
                'total_sources': len(sources),
                'last_updated': max(story.metadata.last_updated, now),
                'latest_development': candidate.summary or story.metadata.latest_development,
                'image_url': story.metadata.image_url or candidate.metadata.image_url,
            })
            updated = story.model_copy(update={
                'sources': sources,
                'metadata': metadata,
                'analysis': analysis,
            })

            if changed:
                self.analyzer.invalidate(story.id)

            state['story'] = await self.store.update_story(updated)
            await self.store.create_story_link(story.id, state['raw_article'].id, 'update', impact)

            state['is_new_story'] = False
            state['contribution_type'] = 'update'
            state['impact'] = impact
            state['stage'] = 'merged'
            logger.info(
                f"Merged article into story {story.id} "
                f"(impact={impact}, sources={len(sources)}, changed={changed})"
            )

        except Exception as e:
            logger.error(f"merge_into_story node error: {e}")
            state['errors'].append(f"Merging into story failed: {e}")
            state['status'] = 'error'
            state['stage'] = 'merge_failed'

        state['stage_timings']['merge_into_story'] = time.time() - stage_start
        return state

    async def create_story_node(self, state: IngestState) -> IngestState:
        stage_start = time.time()
        story = state['candidate']

        try:
            analysis = await self.analyzer.analyze_stories([story])
            if analysis is not None:
                story = story.model_copy(update={'analysis': analysis})
            else:
                logger.warning(f"Using default analysis for new story {story.id}")

            state['story'] = await self.store.add_story(story)
            await self.store.create_story_link(story.id, state['raw_article'].id, 'original', 'major')

            state['is_new_story'] = True
            state['contribution_type'] = 'original'
            state['impact'] = 'major'
            state['stage'] = 'created'
            logger.info(f"Created story {story.id}: '{story.title[:50]}'")

        except Exception as e:
            logger.error(f"create_story node error: {e}")
            state['errors'].append(f"Creating story failed: {e}")
            state['status'] = 'error'
            state['stage'] = 'create_failed'

        state['stage_timings']['create_story'] = time.time() - stage_start
        return state

    async def finalize_node(self, state: IngestState) -> IngestState:
        stage_start = time.time()

        try:
            await self.store.update_raw_article(
                state['raw_article'].id,
                processed=True,
                story_id=state['story'].id,
            )
            state['stage'] = 'finalized'
            state['status'] = 'success'

        except Exception as e:
            logger.error(f"finalize node error: {e}")
            state['errors'].append(f"Finalizing raw article failed: {e}")
            state['status'] = 'error'
            state['stage'] = 'finalize_failed'

        state['stage_timings']['finalize'] = time.time() - stage_start
        return state

    async def error_handler_node(self, state: IngestState) -> IngestState:
        logger.error(f"Error handler: ingestion of {state['article'].url} failed at stage '{state['stage']}'")
        logger.error(f"Errors: {', '.join(state['errors'])}")
        state['status'] = 'error'
        state['stage'] = 'error_handled'
        return state

    # Public operations

    async def ingest(self, article: NewsAPIArticle) -> IngestResult:
        """
        Ingest one article: link it to an existing story or create a new one

        Idempotent per URL. Never raises; failures are reported in the result.
        """
        initial_state: IngestState = {
            'article': article,
            'raw_article': None,
            'candidate': None,
            'match': None,
            'story': None,
            'is_new_story': False,
            'contribution_type': None,
            'impact': None,
            'stage': 'init',
            'errors': [],
            'status': '',
            'start_time': time.time(),
            'stage_timings': {},
        }

        fingerprint = keyword_fingerprint(get_keywords(article.title), fallback=article.url)

        try:
            async with self._locks.hold(fingerprint):
                state = await self.graph.ainvoke(initial_state)
        except Exception as e:
            logger.error(f"Ingestion workflow failed for {article.url}: {e}")
            state = initial_state
            state['errors'].append(f"Workflow exception: {e}")
            state['status'] = 'error'
            state['stage'] = 'workflow_failed'

        total_time = time.time() - initial_state['start_time']
        logger.info(
            f"Ingested {article.url}: status={state['status']}, "
            f"stage={state['stage']}, time={total_time:.2f}s"
        )

        story = state.get('story')
        return IngestResult(
            url=article.url,
            status=state['status'],
            stage=state['stage'],
            story_id=story.id if story else None,
            is_new_story=state.get('is_new_story', False),
            impact=state.get('impact'),
            errors=list(state['errors']),
        )

    async def ingest_many(self, articles: Iterable[NewsAPIArticle]) -> List[IngestResult]:
        """
        Ingest a batch with bounded concurrency

        Duplicate URLs within the batch are ingested once. One article's
        failure never stops the others.
        """
        unique = {}
        for article in articles:
            unique.setdefault(article.url, article)

        if not unique:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent_ingests)

        async def run(article: NewsAPIArticle) -> IngestResult:
            async with semaphore:
                return await self.ingest(article)

        outcomes = await asyncio.gather(*(run(a) for a in unique.values()), return_exceptions=True)

        results = []
        for article, outcome in zip(unique.values(), outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Ingestion of {article.url} raised: {outcome}")
                outcome = IngestResult(url=article.url, status='error', stage='workflow_failed', errors=[str(outcome)])
            results.append(outcome)

        created = sum(1 for r in results if r.is_new_story)
        failed = sum(1 for r in results if r.status == 'error')
        logger.info(f"Batch ingestion done: {len(results)} articles, {created} new stories, {failed} failed")
        return results

    async def refresh_story_analysis(self, story_id: str) -> Story:
        """
        Regenerate a story's analysis from scratch

        Raises:
            StoryNotFoundError: no story with this id
        """
        story = await self.store.get_story(story_id)
        self.analyzer.invalidate(story_id)

        analysis = await self.analyzer.analyze_stories([story])
        if analysis is None:
            logger.warning(f"Refresh of {story_id} got no analysis, keeping the existing one")
            return story

        return await self.store.update_story(story.model_copy(update={'analysis': analysis}))

    async def report_stale_stories(self, now: Optional[datetime] = None) -> List[Story]:
        """Log stories first published before the retention window; nothing is deleted"""
        now = now or utcnow()
        cutoff = now - self.story_retention
        stale = await self.store.get_stories_published_before(cutoff)
        if stale:
            logger.info(f"{len(stale)} stories are older than {self.story_retention.days} days (cutoff {cutoff})")
        else:
            logger.debug("No stale stories")
        return stale
