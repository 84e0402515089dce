import re
from datetime import timedelta
from typing import Any, Dict, List, Optional

from loguru import logger

from storyweave.clustering.cache import AnalysisCache
from storyweave.clustering.merger import is_significant_update, merge_analysis, normalize_analysis
from storyweave.schemas import Story, StoryAnalysis
from storyweave.utils.dates import utcnow

COMPLEXITY_MINIMAL = 'minimal'
COMPLEXITY_STANDARD = 'standard'
COMPLEXITY_COMPREHENSIVE = 'comprehensive'

CONTROVERSY_TERMS = (
    'controversy', 'dispute', 'debate', 'disagree', 'conflict',
    'opposing', 'critics', 'versus', 'vs', 'clash',
)
_CONTROVERSY = re.compile(r'\b(?:' + '|'.join(CONTROVERSY_TERMS) + r')\b')

# Above this many sources a story gets the comprehensive prompt
COMPREHENSIVE_MIN_SOURCES = 3


def has_controversy(stories: List[Story]) -> bool:
    return any(_CONTROVERSY.search(f"{s.title} {s.summary}".lower()) for s in stories)


def determine_complexity(stories: List[Story], is_update: bool = False) -> str:
    if is_update:
        return COMPLEXITY_MINIMAL
    if any(len(story.sources) > COMPREHENSIVE_MIN_SOURCES for story in stories):
        return COMPLEXITY_COMPREHENSIVE
    if has_controversy(stories):
        return COMPLEXITY_COMPREHENSIVE
    return COMPLEXITY_STANDARD


class StoryAnalyzer:
    """Oracle-backed story analysis, gated by the analysis cache and the significance test"""

    def __init__(
        self,
        oracle,
        cache: AnalysisCache,
        significant_update_after: timedelta = timedelta(hours=8),
        novelty_threshold: float = 0.3,
    ):
        self.oracle = oracle
        self.cache = cache
        self.significant_update_after = significant_update_after
        self.novelty_threshold = novelty_threshold

    async def analyze_stories(self, stories: List[Story]) -> Optional[StoryAnalysis]:
        """
        Full analysis of a group of stories

        Args:
            stories: Stories analyzed together (usually one)

        Returns:
            The analysis, or None when the oracle gave nothing usable
        """
        if not stories:
            return None

        story_ids = [story.id for story in stories]
        cached = self.cache.get(story_ids)
        if cached is not None:
            logger.debug(f"Analysis cache hit for {story_ids}")
            return cached

        complexity = determine_complexity(stories)
        logger.info(f"Requesting {complexity} analysis for stories {story_ids}")

        try:
            raw = await self.oracle.analyze(stories, complexity)
        except Exception as e:
            logger.error(f"Oracle analysis failed for {story_ids}: {e}")
            return None

        if raw is None:
            logger.warning(f"Oracle returned no analysis for {story_ids}")
            return None

        analysis = normalize_analysis(raw)
        self.cache.put(story_ids, analysis)
        return analysis

    async def update_story_analysis(self, story: Story, new_story: Story) -> StoryAnalysis:
        """
        Analysis of `story` after `new_story` joined it

        Only significant updates cost an oracle call; otherwise, and on any
        oracle failure, the existing analysis is returned unchanged.
        """
        significant = is_significant_update(
            story,
            new_story,
            now=utcnow(),
            stale_after=self.significant_update_after,
            novelty_threshold=self.novelty_threshold,
        )
        if not significant:
            logger.debug(f"Update to {story.id} is not significant, reusing analysis")
            return story.analysis

        try:
            update = await self.oracle.update_analysis(story, new_story)
        except Exception as e:
            logger.error(f"Oracle update failed for {story.id}: {e}")
            return story.analysis

        if update is None:
            logger.warning(f"Oracle returned no update for {story.id}, keeping existing analysis")
            return story.analysis

        merged = merge_analysis(story.analysis, update)
        self.cache.invalidate(story.id)
        return merged

    def invalidate(self, story_id: str) -> int:
        return self.cache.invalidate(story_id)

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()
