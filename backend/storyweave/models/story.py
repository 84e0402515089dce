from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from storyweave.database import Base


class StoryRecord(Base):
    __tablename__ = "stories"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    summary = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    sources_json = Column(JSON, nullable=False, default=list)
    first_published = Column(DateTime, nullable=False, index=True)
    last_updated = Column(DateTime, nullable=False, index=True)
    total_sources = Column(Integer, nullable=False, default=0)
    categories_json = Column(JSON, nullable=False, default=list)
    latest_development = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    analysis_json = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    links = relationship("StoryArticleLinkRecord", back_populates="story", cascade="all, delete-orphan")
