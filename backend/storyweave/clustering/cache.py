import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

CACHE_VERSION = 1


@dataclass
class CacheEntry:
    result: Any
    timestamp: float
    version: int
    story_ids: List[str] = field(default_factory=list)


class AnalysisCache:
    """
    In-process cache of story analyses keyed by the set of story ids analyzed

    Entries expire after `ttl_seconds`. When the cache grows past `max_size`
    the oldest fraction of entries is pruned in one pass.
    """

    def __init__(
        self,
        ttl_seconds: float = 12 * 3600,
        max_size: int = 100,
        prune_fraction: float = 0.2,
        version: int = CACHE_VERSION,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.prune_fraction = prune_fraction
        self.version = version
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def generate_key(story_ids: Iterable[str]) -> str:
        return '_'.join(sorted(story_ids))

    def _is_valid(self, entry: CacheEntry, now: float) -> bool:
        return entry.version == self.version and now - entry.timestamp < self.ttl_seconds

    def get(self, story_ids: Iterable[str]) -> Optional[Any]:
        key = self.generate_key(story_ids)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if not self._is_valid(entry, self._clock()):
            del self._entries[key]
            self.misses += 1
            logger.debug(f"Analysis cache entry expired: {key}")
            return None

        self.hits += 1
        return entry.result

    def put(self, story_ids: Iterable[str], result: Any) -> None:
        ids = sorted(story_ids)
        key = self.generate_key(ids)
        self._entries[key] = CacheEntry(
            result=result,
            timestamp=self._clock(),
            version=self.version,
            story_ids=ids,
        )

        if len(self._entries) > self.max_size:
            self._prune()

    def _prune(self) -> None:
        count = math.ceil(len(self._entries) * self.prune_fraction)
        # sorted() is stable, equal timestamps go in insertion order
        oldest = sorted(self._entries.items(), key=lambda item: item[1].timestamp)[:count]
        for key, _ in oldest:
            del self._entries[key]
        logger.debug(f"Pruned {count} analysis cache entries")

    def invalidate(self, story_id: str) -> int:
        """Drop every entry whose story set includes `story_id`"""
        stale = [key for key, entry in self._entries.items() if story_id in entry.story_ids]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} analysis cache entries for story {story_id}")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        valid = sum(1 for entry in self._entries.values() if self._is_valid(entry, now))
        return {
            'size': len(self._entries),
            'valid_entries': valid,
            'max_size': self.max_size,
            'ttl_seconds': self.ttl_seconds,
            'hits': self.hits,
            'misses': self.misses,
        }
