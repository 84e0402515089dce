import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import case, func, or_, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from storyweave.database import create_db_engine, create_session_factory, init_db
from storyweave.exceptions import StorageNotInitializedError, StoryNotFoundError
from storyweave.models import RawArticleRecord, StoryArticleLinkRecord, StoryRecord
from storyweave.schemas import (
    NewsAPIArticle,
    RawArticle,
    Source,
    Story,
    StoryAnalysis,
    StoryArticleLink,
    StoryMetadata,
)
from storyweave.utils.dates import utcnow

# Upper bound on stories returned by a keyword prefilter
RELATED_STORIES_LIMIT = 50


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _raw_article_from_record(record: RawArticleRecord) -> RawArticle:
    return RawArticle(
        id=record.id,
        source_article=NewsAPIArticle.model_validate(record.source_article_json),
        processed=record.processed,
        story_id=record.story_id,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _story_from_record(record: StoryRecord) -> Story:
    return Story(
        id=record.id,
        title=record.title,
        summary=record.summary or "",
        content=record.content or "",
        sources=[Source.model_validate(s) for s in (record.sources_json or [])],
        metadata=StoryMetadata(
            first_published=record.first_published,
            last_updated=record.last_updated,
            total_sources=record.total_sources,
            categories=record.categories_json or [],
            latest_development=record.latest_development,
            image_url=record.image_url,
        ),
        analysis=StoryAnalysis.model_validate(record.analysis_json or {}),
    )


def _apply_story(record: StoryRecord, story: Story):
    record.title = story.title
    record.summary = story.summary
    record.content = story.content
    record.sources_json = [s.model_dump(mode="json") for s in story.sources]
    record.first_published = story.metadata.first_published
    record.last_updated = story.metadata.last_updated
    record.total_sources = len(story.sources)
    record.categories_json = list(story.metadata.categories)
    record.latest_development = story.metadata.latest_development
    record.image_url = story.metadata.image_url
    record.analysis_json = story.analysis.model_dump(mode="json")


class StoryStore:
    """
    SQLAlchemy persistence for raw articles, stories and story/article links

    Every call opens and closes its own session. Nothing works before
    initialize().
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self.engine = None
        self._session_factory: Optional[sessionmaker] = None

    async def initialize(self):
        if self._session_factory is not None:
            return

        self.engine = create_db_engine(self.database_url, echo=self.echo)
        init_db(self.engine)
        self._session_factory = create_session_factory(self.engine)
        logger.info(f"Story store initialized ({self.engine.url.drivername})")

    @property
    def is_initialized(self) -> bool:
        return self._session_factory is not None

    def _session(self) -> Session:
        if self._session_factory is None:
            raise StorageNotInitializedError()
        return self._session_factory()

    async def close(self):
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self._session_factory = None

    async def check_health(self) -> bool:
        db = self._session()
        try:
            db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
        finally:
            db.close()

    # Raw articles

    async def store_raw_article(self, article: NewsAPIArticle) -> Tuple[RawArticle, bool]:
        """
        Persist an article unless its URL is already stored

        Returns:
            (raw article, True if it was created by this call)
        """
        db = self._session()
        try:
            existing = db.query(RawArticleRecord).filter(RawArticleRecord.url == article.url).first()
            if existing:
                return _raw_article_from_record(existing), False

            now = utcnow()
            record = RawArticleRecord(
                id=uuid.uuid4().hex,
                url=article.url,
                source_article_json=article.model_dump(mode="json", by_alias=True),
                published_at=article.published_at,
                processed=False,
                created_at=now,
                updated_at=now,
            )
            db.add(record)
            try:
                db.commit()
            except IntegrityError:
                # Inserted concurrently by another session
                db.rollback()
                existing = db.query(RawArticleRecord).filter(RawArticleRecord.url == article.url).one()
                return _raw_article_from_record(existing), False

            db.refresh(record)
            return _raw_article_from_record(record), True
        finally:
            db.close()

    async def get_raw_article(self, article_id: str) -> Optional[RawArticle]:
        db = self._session()
        try:
            record = db.query(RawArticleRecord).filter(RawArticleRecord.id == article_id).first()
            return _raw_article_from_record(record) if record else None
        finally:
            db.close()

    async def get_raw_article_by_url(self, url: str) -> Optional[RawArticle]:
        db = self._session()
        try:
            record = db.query(RawArticleRecord).filter(RawArticleRecord.url == url).first()
            return _raw_article_from_record(record) if record else None
        finally:
            db.close()

    async def update_raw_article(
        self,
        article_id: str,
        processed: Optional[bool] = None,
        story_id: Optional[str] = None,
    ) -> Optional[RawArticle]:
        db = self._session()
        try:
            record = db.query(RawArticleRecord).filter(RawArticleRecord.id == article_id).first()
            if not record:
                return None

            if processed is not None:
                record.processed = processed
            if story_id is not None:
                record.story_id = story_id
            record.updated_at = utcnow()

            db.commit()
            db.refresh(record)
            return _raw_article_from_record(record)
        finally:
            db.close()

    async def get_raw_articles_by_story_id(self, story_id: str) -> List[RawArticle]:
        db = self._session()
        try:
            records = (
                db.query(RawArticleRecord)
                .filter(RawArticleRecord.story_id == story_id)
                .order_by(RawArticleRecord.created_at.desc())
                .all()
            )
            return [_raw_article_from_record(r) for r in records]
        finally:
            db.close()

    async def count_raw_articles(self) -> int:
        db = self._session()
        try:
            return db.query(func.count(RawArticleRecord.id)).scalar() or 0
        finally:
            db.close()

    # Stories

    async def add_story(self, story: Story) -> Story:
        db = self._session()
        try:
            record = StoryRecord(id=story.id)
            _apply_story(record, story)
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.debug(f"Stored story {story.id}")
            return _story_from_record(record)
        finally:
            db.close()

    async def find_story(self, story_id: str) -> Optional[Story]:
        db = self._session()
        try:
            record = db.query(StoryRecord).filter(StoryRecord.id == story_id).first()
            return _story_from_record(record) if record else None
        finally:
            db.close()

    async def get_story(self, story_id: str) -> Story:
        story = await self.find_story(story_id)
        if story is None:
            raise StoryNotFoundError(story_id)
        return story

    async def update_story(self, story: Story) -> Story:
        """
        Overwrite a stored story

        total_sources always mirrors the source list and last_updated
        never moves backwards.
        """
        db = self._session()
        try:
            record = db.query(StoryRecord).filter(StoryRecord.id == story.id).first()
            if not record:
                raise StoryNotFoundError(story.id)

            previous_update = record.last_updated
            _apply_story(record, story)
            if previous_update and previous_update > record.last_updated:
                record.last_updated = previous_update

            db.commit()
            db.refresh(record)
            return _story_from_record(record)
        finally:
            db.close()

    async def get_stories(self, page: int = 1, page_size: int = 20) -> List[Story]:
        db = self._session()
        try:
            records = (
                db.query(StoryRecord)
                .order_by(StoryRecord.last_updated.desc())
                .offset(max(page - 1, 0) * page_size)
                .limit(page_size)
                .all()
            )
            return [_story_from_record(r) for r in records]
        finally:
            db.close()

    async def count_stories(self) -> int:
        db = self._session()
        try:
            return db.query(func.count(StoryRecord.id)).scalar() or 0
        finally:
            db.close()

    async def get_active_stories(self, since: datetime) -> List[Story]:
        """Stories updated at or after `since`, most recent first"""
        db = self._session()
        try:
            records = (
                db.query(StoryRecord)
                .filter(StoryRecord.last_updated >= since)
                .order_by(StoryRecord.last_updated.desc())
                .all()
            )
            return [_story_from_record(r) for r in records]
        finally:
            db.close()

    async def get_stories_published_before(self, cutoff: datetime) -> List[Story]:
        db = self._session()
        try:
            records = (
                db.query(StoryRecord)
                .filter(StoryRecord.first_published < cutoff)
                .order_by(StoryRecord.first_published.asc())
                .all()
            )
            return [_story_from_record(r) for r in records]
        finally:
            db.close()

    async def find_related_stories(
        self,
        keywords: List[str],
        since: datetime,
        limit: int = RELATED_STORIES_LIMIT,
    ) -> List[Story]:
        """
        Keyword prefilter: stories updated since `since` whose title or
        summary contains any of the keywords

        Ordered by relevance (number of keywords present), then recency,
        so the limit drops the weakest candidates first.
        """
        if not keywords:
            return []

        db = self._session()
        try:
            conditions = []
            for keyword in dict.fromkeys(keywords):
                pattern = f"%{_escape_like(keyword)}%"
                conditions.append(or_(
                    StoryRecord.title.ilike(pattern, escape="\\"),
                    StoryRecord.summary.ilike(pattern, escape="\\"),
                ))

            relevance = sum(case((condition, 1), else_=0) for condition in conditions)

            records = (
                db.query(StoryRecord)
                .filter(StoryRecord.last_updated >= since)
                .filter(or_(*conditions))
                .order_by(relevance.desc(), StoryRecord.last_updated.desc())
                .limit(limit)
                .all()
            )
            return [_story_from_record(r) for r in records]
        finally:
            db.close()

    async def find_stories_by_title(self, fragment: str, since: datetime) -> List[Story]:
        if not fragment.strip():
            return []

        db = self._session()
        try:
            records = (
                db.query(StoryRecord)
                .filter(StoryRecord.last_updated >= since)
                .filter(StoryRecord.title.ilike(f"%{_escape_like(fragment.strip())}%", escape="\\"))
                .order_by(StoryRecord.last_updated.desc())
                .limit(RELATED_STORIES_LIMIT)
                .all()
            )
            return [_story_from_record(r) for r in records]
        finally:
            db.close()

    # Story/article links

    async def create_story_link(
        self,
        story_id: str,
        article_id: str,
        contribution_type: str,
        impact: str,
    ) -> StoryArticleLink:
        """
        Link an article to a story

        A pair that is already linked keeps its link; only the impact
        is overwritten.
        """
        db = self._session()
        try:
            record = (
                db.query(StoryArticleLinkRecord)
                .filter(
                    StoryArticleLinkRecord.story_id == story_id,
                    StoryArticleLinkRecord.article_id == article_id,
                )
                .first()
            )
            if record:
                record.impact = impact
            else:
                record = StoryArticleLinkRecord(
                    id=uuid.uuid4().hex,
                    story_id=story_id,
                    article_id=article_id,
                    added_at=utcnow(),
                    contribution_type=contribution_type,
                    impact=impact,
                )
                db.add(record)

            db.commit()
            db.refresh(record)
            return StoryArticleLink.model_validate(record)
        finally:
            db.close()

    async def get_story_links(self, story_id: str) -> List[StoryArticleLink]:
        db = self._session()
        try:
            records = (
                db.query(StoryArticleLinkRecord)
                .filter(StoryArticleLinkRecord.story_id == story_id)
                .order_by(StoryArticleLinkRecord.added_at.asc())
                .all()
            )
            return [StoryArticleLink.model_validate(r) for r in records]
        finally:
            db.close()

    async def get_article_links(self, article_id: str) -> List[StoryArticleLink]:
        db = self._session()
        try:
            records = (
                db.query(StoryArticleLinkRecord)
                .filter(StoryArticleLinkRecord.article_id == article_id)
                .all()
            )
            return [StoryArticleLink.model_validate(r) for r in records]
        finally:
            db.close()
