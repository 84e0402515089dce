from storyweave.clustering.analysis import StoryAnalyzer, determine_complexity
from storyweave.clustering.cache import AnalysisCache, CacheEntry
from storyweave.clustering.matcher import (
    MatchKind,
    MatchResult,
    ScoredStory,
    SimilarityMatcher,
    select_main_story,
)
from storyweave.clustering.merger import (
    default_analysis,
    is_significant_update,
    merge_analysis,
    normalize_analysis,
)
from storyweave.clustering.similarity import calculate_similarity, get_keywords

__all__ = [
    "StoryAnalyzer",
    "determine_complexity",
    "AnalysisCache",
    "CacheEntry",
    "MatchKind",
    "MatchResult",
    "ScoredStory",
    "SimilarityMatcher",
    "select_main_story",
    "default_analysis",
    "is_significant_update",
    "merge_analysis",
    "normalize_analysis",
    "calculate_similarity",
    "get_keywords",
]
