from storyweave.utils.content_hash import generate_content_hash, keyword_fingerprint, normalize_content
from storyweave.utils.dates import parse_datetime, to_naive_utc, utcnow
from storyweave.utils.locks import KeyedLock
from storyweave.utils.retry import retry_async

__all__ = [
    "generate_content_hash",
    "normalize_content",
    "keyword_fingerprint",
    "parse_datetime",
    "to_naive_utc",
    "utcnow",
    "KeyedLock",
    "retry_async",
]
