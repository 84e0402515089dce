from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from storyweave.utils.dates import parse_datetime


class NewsAPISource(BaseModel):
    """Outlet reference as NewsAPI reports it"""
    id: Optional[str] = None
    name: str = "Unknown"


class NewsAPIArticle(BaseModel):
    """Schema for an article record from the article source"""
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    url: str
    url_to_image: Optional[str] = Field(None, alias="urlToImage")
    published_at: Optional[datetime] = Field(None, alias="publishedAt")
    author: Optional[str] = None
    source: NewsAPISource = Field(default_factory=NewsAPISource)

    class Config:
        populate_by_name = True

    @field_validator("published_at", mode="before")
    @classmethod
    def _parse_published_at(cls, value):
        # NewsAPI sends ISO strings with a trailing Z; store naive UTC
        return parse_datetime(value)


class RawArticle(BaseModel):
    """An article as received, before clustering"""
    id: str
    source_article: NewsAPIArticle
    processed: bool = False
    story_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
