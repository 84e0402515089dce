from storyweave.models.raw_article import RawArticleRecord
from storyweave.models.story import StoryRecord
from storyweave.models.story_link import StoryArticleLinkRecord

__all__ = [
    "RawArticleRecord",
    "StoryRecord",
    "StoryArticleLinkRecord",
]
