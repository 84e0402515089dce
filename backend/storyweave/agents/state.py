from typing import TypedDict, List, Optional, Dict

from storyweave.clustering.matcher import MatchResult
from storyweave.schemas import NewsAPIArticle, RawArticle, Story


class IngestState(TypedDict):
    """
    State object for the ingestion workflow
    Passed between all graph nodes
    """
    # Input
    article: NewsAPIArticle

    # store_raw output
    raw_article: Optional[RawArticle]

    # match output
    candidate: Optional[Story]  # One-article projection of the input
    match: Optional[MatchResult]

    # merge_into_story / create_story output
    story: Optional[Story]
    is_new_story: bool
    contribution_type: Optional[str]  # 'original' or 'update'
    impact: Optional[str]  # 'major' or 'minor'

    # Control flow
    stage: str  # Current processing stage
    errors: List[str]
    status: str  # 'success', 'error', 'skipped'

    # Performance tracking
    start_time: float
    stage_timings: Dict[str, float]
