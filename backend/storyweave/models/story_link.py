from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from storyweave.database import Base


class StoryArticleLinkRecord(Base):
    __tablename__ = "story_article_links"

    id = Column(String, primary_key=True)
    story_id = Column(String, ForeignKey('stories.id', ondelete='CASCADE'), nullable=False, index=True)
    article_id = Column(String, ForeignKey('raw_articles.id', ondelete='CASCADE'), nullable=False, index=True)
    added_at = Column(DateTime, nullable=False, index=True)
    contribution_type = Column(String, nullable=False)
    impact = Column(String, nullable=False)

    # Relationships
    story = relationship("StoryRecord", back_populates="links")

    __table_args__ = (
        UniqueConstraint('story_id', 'article_id', name='uq_story_article'),
        CheckConstraint(
            "contribution_type IN ('original', 'update', 'related')",
            name='check_contribution_type'
        ),
        CheckConstraint(
            "impact IN ('major', 'minor', 'context')",
            name='check_impact'
        ),
    )
