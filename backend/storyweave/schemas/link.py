from datetime import datetime
from typing import Literal

from pydantic import BaseModel

ContributionType = Literal['original', 'update', 'related']
Impact = Literal['major', 'minor', 'context']


class StoryArticleLink(BaseModel):
    """Join record between a story and one of its raw articles"""
    id: str
    story_id: str
    article_id: str
    added_at: datetime
    contribution_type: ContributionType
    impact: Impact

    class Config:
        from_attributes = True
