from sqlalchemy import Column, String, DateTime, Boolean, JSON, ForeignKey
from sqlalchemy.sql import func
from storyweave.database import Base


class RawArticleRecord(Base):
    __tablename__ = "raw_articles"

    id = Column(String, primary_key=True)
    url = Column(String, nullable=False, unique=True, index=True)
    source_article_json = Column(JSON, nullable=False)
    published_at = Column(DateTime, nullable=True, index=True)
    processed = Column(Boolean, nullable=False, default=False, index=True)
    story_id = Column(String, ForeignKey('stories.id', ondelete='SET NULL'), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
