"""
Normalization and merging of story analyses.

The oracle answers with loosely shaped JSON: keys may be camelCase or
snake_case, lists may hold bare strings instead of objects, timestamps may be
missing or unparseable. Every such case is defaulted here and nowhere else.
"""
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

from storyweave.clustering.similarity import calculate_similarity, contains_breaking_terms
from storyweave.schemas import (
    Implications,
    KeyPoint,
    NotableQuote,
    Perspective,
    Story,
    StoryAnalysis,
    TimelineEvent,
)
from storyweave.utils.dates import parse_datetime, utcnow

IMPORTANCE_LEVELS = ('high', 'medium', 'low')

# Below this many sources every update is worth an oracle call
MIN_SOURCES_FOR_REUSE = 3


def _field(raw: Dict[str, Any], camel: str, snake: str, default=None):
    if camel in raw:
        return raw[camel]
    return raw.get(snake, default)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float, bool)):
        return str(value)
    return ''


def _string_list(value: Any) -> List[str]:
    items = [_as_text(item) for item in _as_list(value)]
    return [item for item in items if item]


def normalize_key_point(value: Any) -> Optional[KeyPoint]:
    if isinstance(value, KeyPoint):
        return value
    if isinstance(value, str):
        text = value.strip()
        return KeyPoint(point=text) if text else None
    if isinstance(value, dict):
        importance = _as_text(value.get('importance')).lower()
        if importance not in IMPORTANCE_LEVELS:
            importance = 'medium'
        return KeyPoint(
            point=_as_text(value.get('point')) or 'Unknown point',
            importance=importance,
            context=_as_text(value.get('context')) or None,
        )
    return None


def normalize_perspective(value: Any) -> Optional[Perspective]:
    if isinstance(value, Perspective):
        return value
    if isinstance(value, str):
        text = value.strip()
        return Perspective(summary=text) if text else None
    if isinstance(value, dict):
        return Perspective(
            source_name=_as_text(_field(value, 'sourceName', 'source_name')),
            stance=_as_text(value.get('stance')),
            summary=_as_text(value.get('summary')),
            key_arguments=_string_list(_field(value, 'keyArguments', 'key_arguments')),
            bias=_as_text(value.get('bias')),
            evidence=_string_list(value.get('evidence')),
        )
    return None


def normalize_quote(value: Any) -> Optional[NotableQuote]:
    if isinstance(value, NotableQuote):
        return value
    if isinstance(value, str):
        text = value.strip()
        return NotableQuote(text=text) if text else None
    if isinstance(value, dict):
        text = _as_text(value.get('text'))
        if not text:
            return None
        return NotableQuote(
            text=text,
            source=_as_text(value.get('source')) or 'Unknown',
            context=_as_text(value.get('context')) or None,
            significance=_as_text(value.get('significance')) or None,
        )
    return None


def normalize_timeline_event(value: Any) -> Optional[TimelineEvent]:
    if isinstance(value, TimelineEvent):
        return value
    if not isinstance(value, dict):
        return None

    timestamp = parse_datetime(value.get('timestamp'))
    if timestamp is None:
        logger.debug(f"Dropping timeline entry without a usable timestamp: {value.get('event')!r}")
        return None

    significance = value.get('significance')
    return TimelineEvent(
        timestamp=timestamp,
        event=_as_text(value.get('event')),
        # The oracle sometimes rates significance with a number
        significance='' if significance is None else str(significance),
        sources=_string_list(value.get('sources')),
    )


def _normalize_all(values: Any, normalizer: Callable[[Any], Any]) -> list:
    normalized = (normalizer(value) for value in _as_list(values))
    return [item for item in normalized if item is not None]


def sort_timeline(events: Iterable[TimelineEvent]) -> List[TimelineEvent]:
    return sorted(events, key=lambda event: event.timestamp, reverse=True)


def normalize_analysis(raw: Any) -> StoryAnalysis:
    """
    Build a complete StoryAnalysis from an oracle response

    Anything that isn't a mapping yields an empty analysis.
    """
    if isinstance(raw, StoryAnalysis):
        return raw
    if not isinstance(raw, dict):
        return StoryAnalysis()

    implications = raw.get('implications')
    if not isinstance(implications, dict):
        implications = {}

    return StoryAnalysis(
        summary=_as_text(raw.get('summary')),
        background_context=_as_text(_field(raw, 'backgroundContext', 'background_context')),
        key_points=_normalize_all(_field(raw, 'keyPoints', 'key_points'), normalize_key_point),
        main_perspectives=_string_list(_field(raw, 'mainPerspectives', 'main_perspectives')),
        controversial_points=_string_list(_field(raw, 'controversialPoints', 'controversial_points')),
        perspectives=_normalize_all(raw.get('perspectives'), normalize_perspective),
        implications=Implications(
            short_term=_string_list(_field(implications, 'shortTerm', 'short_term')),
            long_term=_string_list(_field(implications, 'longTerm', 'long_term')),
        ),
        notable_quotes=_normalize_all(_field(raw, 'notableQuotes', 'notable_quotes'), normalize_quote),
        timeline=sort_timeline(_normalize_all(raw.get('timeline'), normalize_timeline_event)),
        related_topics=_string_list(_field(raw, 'relatedTopics', 'related_topics')),
    )


def _union(new: List, existing: List, key: Callable[[Any], Any] = lambda item: item) -> List:
    """New items first, then existing ones, first occurrence of each key wins"""
    merged = {}
    for item in list(new) + list(existing):
        merged.setdefault(key(item), item)
    return list(merged.values())


def merge_analysis(existing: StoryAnalysis, update: Any) -> StoryAnalysis:
    """
    Fold a partial oracle update into an existing analysis

    Never raises: an update that can't be read leaves `existing` unchanged.
    """
    if not isinstance(update, (dict, StoryAnalysis)):
        logger.warning(f"Ignoring malformed analysis update of type {type(update).__name__}")
        return existing

    try:
        incoming = normalize_analysis(update)
    except Exception as e:
        logger.warning(f"Ignoring analysis update that failed normalization: {e}")
        return existing

    return StoryAnalysis(
        summary=incoming.summary or existing.summary,
        background_context=incoming.background_context or existing.background_context,
        key_points=_union(incoming.key_points, existing.key_points, key=lambda kp: kp.point),
        main_perspectives=_union(incoming.main_perspectives, existing.main_perspectives),
        controversial_points=_union(incoming.controversial_points, existing.controversial_points),
        perspectives=_union(
            incoming.perspectives,
            existing.perspectives,
            key=lambda p: (p.source_name, p.summary),
        ),
        implications=Implications(
            short_term=_union(incoming.implications.short_term, existing.implications.short_term),
            long_term=_union(incoming.implications.long_term, existing.implications.long_term),
        ),
        # Verbatim quotes are kept as-is, newest first
        notable_quotes=incoming.notable_quotes + existing.notable_quotes,
        timeline=sort_timeline(incoming.timeline + existing.timeline),
        related_topics=_union(incoming.related_topics, existing.related_topics),
    )


def is_significant_update(
    story: Story,
    new_story: Story,
    now: Optional[datetime] = None,
    stale_after: timedelta = timedelta(hours=8),
    novelty_threshold: float = 0.3,
) -> bool:
    """
    Decide whether a new article warrants regenerating the story analysis

    Args:
        story: The existing story
        new_story: One-article projection of the incoming article
        now: Current time (naive UTC)
        stale_after: Analyses older than this are always refreshed
        novelty_threshold: Below this similarity to every known perspective
            the article counts as new information

    Returns:
        True if the oracle should be asked for an update
    """
    now = now or utcnow()

    if len(story.sources) < MIN_SOURCES_FOR_REUSE:
        return True

    if contains_breaking_terms(f"{new_story.title} {new_story.summary}"):
        return True

    if now - story.metadata.last_updated > stale_after:
        return True

    perspectives = [source.perspective for source in story.sources if source.perspective]
    if perspectives:
        best = max(calculate_similarity(p, new_story.summary or '') for p in perspectives)
        if best < novelty_threshold:
            return True

    return False


def default_analysis(story: Story) -> StoryAnalysis:
    """Minimal analysis built from the story's own article"""
    summary = story.summary or ''
    source = story.sources[0] if story.sources else None

    quotes = []
    if source and source.quote:
        quotes.append(NotableQuote(text=source.quote, source=source.name, context='From original article'))

    return StoryAnalysis(
        summary=summary,
        key_points=[KeyPoint(point=summary)] if summary else [],
        main_perspectives=[summary] if summary else [],
        notable_quotes=quotes,
        timeline=[
            TimelineEvent(
                timestamp=story.metadata.first_published,
                event=summary,
                significance='Initial report',
                sources=[source.name] if source else [],
            )
        ],
    )
