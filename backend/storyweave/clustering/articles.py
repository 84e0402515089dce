"""
Helpers that turn an incoming article into the pieces of a story:
cleaned content, a Source entry, and a one-article Story projection.
"""
import re
import time
import uuid
from typing import Optional

from storyweave.clustering.merger import default_analysis
from storyweave.schemas import NewsAPIArticle, Source, Story, StoryMetadata
from storyweave.sources import get_outlet_bias, get_outlet_category
from storyweave.utils.dates import utcnow

# NewsAPI truncates content with a "[+123 chars]" marker
_TRUNCATION_MARKER = re.compile(r'\s*\[\+\d+ char(?:s|acters)\]$')
_QUOTED = re.compile(r'"([^"]*?)"')
_SENTENCE_SPLIT = re.compile(r'[.!?][\s\n]')


def new_id() -> str:
    return uuid.uuid4().hex


def slugify(text: str) -> str:
    text = re.sub(r'[^\w\s-]', '', (text or '').lower().strip())
    text = re.sub(r'[\s_-]+', '-', text)
    return text.strip('-')


def create_story_id(title: str) -> str:
    """Readable story id: title slug plus a millisecond timestamp"""
    slug = slugify(title)[:50].strip('-') or 'story'
    return f"{slug}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def clean_article_content(content: Optional[str]) -> str:
    if not content:
        return ''
    return _TRUNCATION_MARKER.sub('', content).strip()


def extract_quote(content: str, minimum_length: int = 20) -> Optional[str]:
    """
    Most substantial quotation in the text

    Falls back to the longest sentence, then to the first 100 characters.
    """
    if not content:
        return None

    quotes = [q for q in _QUOTED.findall(content) if len(q) >= minimum_length]
    if quotes:
        return max(quotes, key=len)

    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(content) if len(s.strip()) >= minimum_length]
    if sentences:
        return max(sentences, key=len)

    return content[:100] + '...'


def get_substantial_content(article: NewsAPIArticle) -> str:
    content = clean_article_content(article.content)
    if len(content) > 100:
        return content
    return article.description or content


def create_source_from_article(article: NewsAPIArticle) -> Source:
    cleaned = clean_article_content(article.content or article.description)

    return Source(
        id=slugify(article.source.id or article.source.name) or 'unknown',
        name=article.source.name,
        url=article.url,
        bias=get_outlet_bias(article.source.id),
        sentiment=0.0,
        quote=extract_quote(cleaned),
        perspective=article.description,
    )


def build_story_from_article(article: NewsAPIArticle) -> Story:
    """
    Transient story-shaped projection of a single article

    Used for matching; persisted as-is when no existing story matches.
    """
    published = article.published_at or utcnow()
    category = get_outlet_category(article.source.id)

    story = Story(
        id=create_story_id(article.title),
        title=article.title,
        summary=article.description or '',
        content=get_substantial_content(article),
        sources=[create_source_from_article(article)],
        metadata=StoryMetadata(
            first_published=published,
            last_updated=max(published, utcnow()),
            total_sources=1,
            categories=[category] if category else [],
            latest_development=article.description,
            image_url=article.url_to_image,
        ),
    )
    story.analysis = default_analysis(story)
    return story
