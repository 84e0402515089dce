"""
Tiered story matching.

Tiers escalate in cost and short-circuit on success:

1. exact link: one of the candidate's source URLs is already attached to a story
2. text search: keyword prefilter in the store, then a weighted keyword score
3. oracle tiebreak: the best few stories rejected by tier 2 are judged by the oracle
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List, Optional, Tuple

from loguru import logger

from storyweave.clustering.similarity import (
    calculate_similarity,
    extract_entities,
    keyword_list,
)
from storyweave.schemas import SimilarityAnalysis, Story
from storyweave.utils.dates import utcnow

TITLE_WEIGHT = 0.7
SUMMARY_WEIGHT = 0.3
TITLE_FRAGMENT_LENGTH = 40


class MatchKind(str, Enum):
    EXACT_LINK = "exact_link"
    TEXT_MATCH = "text_match"
    NO_MATCH = "no_match"


@dataclass
class ScoredStory:
    story: Story
    score: float
    title_similarity: float
    summary_similarity: float


@dataclass
class MatchResult:
    kind: MatchKind
    story: Optional[Story] = None
    score: float = 0.0
    candidates: List[ScoredStory] = field(default_factory=list)
    analysis: Optional[SimilarityAnalysis] = None

    @property
    def matched(self) -> bool:
        return self.kind != MatchKind.NO_MATCH


def select_main_story(stories: List[Story]) -> Story:
    """Story with the most sources; earliest first_published wins ties"""
    if not stories:
        raise ValueError("select_main_story() needs at least one story")
    return min(stories, key=lambda s: (-len(s.sources), s.metadata.first_published))


def score_pair(candidate: Story, story: Story) -> ScoredStory:
    title_similarity = calculate_similarity(candidate.title, story.title)
    summary_similarity = calculate_similarity(candidate.summary, story.summary)
    return ScoredStory(
        story=story,
        score=TITLE_WEIGHT * title_similarity + SUMMARY_WEIGHT * summary_similarity,
        title_similarity=title_similarity,
        summary_similarity=summary_similarity,
    )


class SimilarityMatcher:
    """Decides which existing story, if any, an incoming article belongs to"""

    def __init__(
        self,
        store,
        oracle=None,
        match_window: timedelta = timedelta(hours=72),
        match_threshold: float = 0.25,
        borderline_lower: float = 0.25,
        borderline_upper: float = 0.4,
        confidence_threshold: float = 0.6,
        pair_cache_size: int = 100,
        tiebreak_candidates: int = 3,
    ):
        self.store = store
        self.oracle = oracle
        self.match_window = match_window
        self.match_threshold = match_threshold
        self.borderline_lower = borderline_lower
        self.borderline_upper = borderline_upper
        self.confidence_threshold = confidence_threshold
        self.pair_cache_size = pair_cache_size
        self.tiebreak_candidates = tiebreak_candidates
        self._pair_cache: "OrderedDict[Tuple[str, str], SimilarityAnalysis]" = OrderedDict()

    async def find_story_for(self, candidate: Story) -> MatchResult:
        """
        Run the matching tiers for a one-article story projection

        Never raises: a failure anywhere yields NO_MATCH so that ingestion
        can go on and create a new story.
        """
        try:
            story = await self._find_exact_link(candidate)
            if story is not None:
                logger.debug(f"Exact link match for '{candidate.title[:60]}': {story.id}")
                return MatchResult(kind=MatchKind.EXACT_LINK, story=story, score=1.0)

            ranked, rejected = await self._rank(candidate)
            if ranked:
                main = select_main_story([scored.story for scored in ranked])
                score = next(scored.score for scored in ranked if scored.story.id == main.id)
                logger.debug(
                    f"Text match for '{candidate.title[:60]}': {main.id} "
                    f"(score={score:.2f}, {len(ranked)} candidates)"
                )
                return MatchResult(kind=MatchKind.TEXT_MATCH, story=main, score=score, candidates=ranked)

            # Oracle tiebreak over the best rejected candidates
            for scored in rejected[:self.tiebreak_candidates]:
                analysis = await self.compare_stories(candidate, scored.story)
                if analysis.is_similar:
                    logger.debug(
                        f"Oracle tiebreak matched '{candidate.title[:60]}' to {scored.story.id} "
                        f"(method={analysis.method}, confidence={analysis.confidence_score:.2f})"
                    )
                    return MatchResult(
                        kind=MatchKind.TEXT_MATCH,
                        story=scored.story,
                        score=scored.score,
                        candidates=[scored],
                        analysis=analysis,
                    )

        except Exception as e:
            logger.error(f"Story matching failed for '{candidate.title[:60]}': {e}")

        return MatchResult(kind=MatchKind.NO_MATCH)

    async def find_ranked_matches(self, candidate: Story) -> List[ScoredStory]:
        """Every story scoring at or above the match threshold, best first"""
        ranked, _ = await self._rank(candidate)
        return ranked

    async def _find_exact_link(self, candidate: Story) -> Optional[Story]:
        for source in candidate.sources:
            raw = await self.store.get_raw_article_by_url(source.url)
            if raw is not None and raw.story_id:
                story = await self.store.find_story(raw.story_id)
                if story is not None:
                    return story
        return None

    async def _search(self, candidate: Story) -> List[Story]:
        since = utcnow() - self.match_window
        keywords = keyword_list(f"{candidate.title} {candidate.summary}")
        try:
            return await self.store.find_related_stories(keywords, since)
        except Exception as e:
            logger.warning(f"Text search failed, falling back to title match: {e}")
            return await self.store.find_stories_by_title(candidate.title[:TITLE_FRAGMENT_LENGTH], since)

    async def _rank(self, candidate: Story) -> Tuple[List[ScoredStory], List[ScoredStory]]:
        """Split the prefiltered stories into (accepted, rejected), each best first"""
        stories = [story for story in await self._search(candidate) if story.id != candidate.id]
        scored = sorted(
            (score_pair(candidate, story) for story in stories),
            key=lambda s: s.score,
            reverse=True,
        )
        accepted = [s for s in scored if s.score >= self.match_threshold]
        rejected = [s for s in scored if s.score < self.match_threshold]
        return accepted, rejected

    async def compare_stories(self, first: Story, second: Story) -> SimilarityAnalysis:
        """
        Judge whether two already-fetched stories cover the same event

        Clear cases are decided from keyword overlap alone; only borderline
        pairs cost an oracle call.
        """
        key = tuple(sorted((first.id, second.id)))
        cached = self._pair_cache.get(key)
        if cached is not None:
            self._pair_cache.move_to_end(key)
            return cached

        result = await self._compare(first, second)

        self._pair_cache[key] = result
        if len(self._pair_cache) > self.pair_cache_size:
            self._pair_cache.popitem(last=False)
        return result

    async def _compare(self, first: Story, second: Story) -> SimilarityAnalysis:
        scored = score_pair(first, second)
        title_similarity = scored.title_similarity
        summary_similarity = scored.summary_similarity

        if title_similarity >= self.borderline_upper or summary_similarity >= self.borderline_upper:
            return SimilarityAnalysis(
                is_similar=True,
                confidence_score=max(title_similarity, summary_similarity),
                reasonings=[
                    f"Keyword overlap above {self.borderline_upper} "
                    f"(title={title_similarity:.2f}, summary={summary_similarity:.2f})"
                ],
                method='text',
            )

        in_band = any(
            self.borderline_lower <= value < self.borderline_upper
            for value in (title_similarity, summary_similarity)
        )
        if not in_band:
            return SimilarityAnalysis(
                is_similar=False,
                confidence_score=1.0 - max(title_similarity, summary_similarity),
                reasonings=["Keyword overlap below the borderline band"],
                method='text',
            )

        judgment = None
        if self.oracle is not None:
            entities = list(dict.fromkeys(
                extract_entities(f"{first.title} {first.summary}")
                + extract_entities(f"{second.title} {second.summary}")
            ))
            try:
                judgment = await self.oracle.similarity(first, second, entities)
            except Exception as e:
                logger.warning(f"Oracle similarity call failed: {e}")

        if judgment is not None:
            accepted = judgment.is_similar and judgment.confidence_score >= self.confidence_threshold
            return SimilarityAnalysis(
                is_similar=accepted,
                confidence_score=judgment.confidence_score,
                reasonings=judgment.reasonings,
                method='oracle',
            )

        logger.warning(f"No oracle judgment for {first.id} / {second.id}, using combined score")
        return SimilarityAnalysis(
            is_similar=scored.score >= self.match_threshold,
            confidence_score=scored.score,
            reasonings=[f"Oracle unavailable; combined score {scored.score:.2f}"],
            method='fallback',
        )
