from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Source(BaseModel):
    """One outlet's contribution to a story"""
    id: str
    name: str
    url: str
    bias: float = 0.0
    sentiment: float = 0.0
    quote: Optional[str] = None
    perspective: Optional[str] = None


class StoryMetadata(BaseModel):
    first_published: datetime
    last_updated: datetime
    total_sources: int = 0
    categories: List[str] = Field(default_factory=list)
    latest_development: Optional[str] = None
    image_url: Optional[str] = None


class KeyPoint(BaseModel):
    point: str
    importance: str = "medium"
    context: Optional[str] = None


class Perspective(BaseModel):
    source_name: str = ""
    stance: str = ""
    summary: str = ""
    key_arguments: List[str] = Field(default_factory=list)
    bias: str = ""
    evidence: List[str] = Field(default_factory=list)


class Implications(BaseModel):
    short_term: List[str] = Field(default_factory=list)
    long_term: List[str] = Field(default_factory=list)


class NotableQuote(BaseModel):
    text: str
    source: str = "Unknown"
    context: Optional[str] = None
    significance: Optional[str] = None


class TimelineEvent(BaseModel):
    timestamp: datetime
    event: str = ""
    significance: str = ""
    sources: List[str] = Field(default_factory=list)


class StoryAnalysis(BaseModel):
    """Structured analysis attached to a story"""
    summary: str = ""
    background_context: str = ""
    key_points: List[KeyPoint] = Field(default_factory=list)
    main_perspectives: List[str] = Field(default_factory=list)
    controversial_points: List[str] = Field(default_factory=list)
    perspectives: List[Perspective] = Field(default_factory=list)
    implications: Implications = Field(default_factory=Implications)
    notable_quotes: List[NotableQuote] = Field(default_factory=list)
    timeline: List[TimelineEvent] = Field(default_factory=list)
    related_topics: List[str] = Field(default_factory=list)


class Story(BaseModel):
    """A cluster of articles about one event"""
    id: str
    title: str
    summary: str = ""
    content: str = ""
    sources: List[Source] = Field(default_factory=list)
    metadata: StoryMetadata
    analysis: StoryAnalysis = Field(default_factory=StoryAnalysis)

    class Config:
        from_attributes = True
