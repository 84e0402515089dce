from storyweave.clustering.cache import AnalysisCache

HOUR = 3600.0


class Clock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_key_is_order_independent():
    assert AnalysisCache.generate_key(["b", "a"]) == AnalysisCache.generate_key(["a", "b"]) == "a_b"


def test_entry_valid_before_ttl_and_absent_after():
    clock = Clock()
    cache = AnalysisCache(ttl_seconds=12 * HOUR, clock=clock)
    cache.put(["story-1"], {"summary": "x"})

    clock.now += 11 * HOUR
    assert cache.get(["story-1"]) == {"summary": "x"}

    clock.now += 2 * HOUR
    assert cache.get(["story-1"]) is None
    assert len(cache) == 0


def test_entry_at_exactly_ttl_is_expired():
    clock = Clock()
    cache = AnalysisCache(ttl_seconds=HOUR, clock=clock)
    cache.put(["s"], "result")

    clock.now += HOUR
    assert cache.get(["s"]) is None


def test_stale_version_is_absent():
    clock = Clock()
    cache = AnalysisCache(clock=clock)
    cache.put(["s"], "result")

    cache.version += 1
    assert cache.get(["s"]) is None


def test_overflow_prunes_oldest_fifth():
    clock = Clock()
    cache = AnalysisCache(max_size=5, clock=clock)
    for i in range(6):
        clock.now += 1
        cache.put([f"s{i}"], i)

    # ceil(6 * 0.2) == 2 oldest entries go
    assert len(cache) == 4
    assert cache.get(["s0"]) is None
    assert cache.get(["s1"]) is None
    assert cache.get(["s5"]) == 5


def test_prune_with_equal_timestamps_drops_first_inserted():
    cache = AnalysisCache(max_size=4, clock=Clock())
    for i in range(5):
        cache.put([f"s{i}"], i)

    assert cache.get(["s0"]) is None
    assert cache.get(["s1"]) == 1


def test_invalidate_drops_every_entry_containing_story():
    cache = AnalysisCache(clock=Clock())
    cache.put(["a"], 1)
    cache.put(["a", "b"], 2)
    cache.put(["b"], 3)

    assert cache.invalidate("a") == 2
    assert cache.get(["b"]) == 3
    assert cache.get(["a", "b"]) is None


def test_stats_and_clear():
    clock = Clock()
    cache = AnalysisCache(ttl_seconds=HOUR, clock=clock)
    cache.put(["a"], 1)
    cache.get(["a"])
    cache.get(["missing"])

    stats = cache.stats()
    assert stats["size"] == 1
    assert stats["valid_entries"] == 1
    assert stats["hits"] == 1
    assert stats["misses"] == 1

    cache.clear()
    assert cache.stats()["size"] == 0
