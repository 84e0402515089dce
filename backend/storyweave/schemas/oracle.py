from typing import List, Literal

from pydantic import BaseModel, Field


class SimilarityAnalysis(BaseModel):
    """Judgment on whether two stories cover the same event"""
    is_similar: bool = False
    confidence_score: float = 0.0
    reasonings: List[str] = Field(default_factory=list)
    # 'text': decided from keyword overlap, 'oracle': from the LLM,
    # 'fallback': oracle unavailable, decided from the combined score
    method: Literal['text', 'oracle', 'fallback'] = 'text'
