from datetime import timedelta

from storyweave.clustering import AnalysisCache, StoryAnalyzer, determine_complexity
from storyweave.schemas import KeyPoint, StoryAnalysis
from storyweave.utils.dates import utcnow

from conftest import FakeOracle, make_story


def test_complexity_tiers():
    plain = make_story("a", "Council approves budget", source_urls=["u1"])
    crowded = make_story("b", "Council approves budget", source_urls=["u1", "u2", "u3", "u4"])
    disputed = make_story("c", "Critics dispute council budget", source_urls=["u1"])

    assert determine_complexity([plain]) == "standard"
    assert determine_complexity([crowded]) == "comprehensive"
    assert determine_complexity([disputed]) == "comprehensive"
    assert determine_complexity([plain], is_update=True) == "minimal"


async def test_analyze_stories_uses_cache():
    oracle = FakeOracle(analysis={"summary": "Cached"})
    analyzer = StoryAnalyzer(oracle, AnalysisCache())
    story = make_story("a", "Council approves budget")

    first = await analyzer.analyze_stories([story])
    second = await analyzer.analyze_stories([story])

    assert first.summary == second.summary == "Cached"
    assert len(oracle.analyze_calls) == 1
    assert analyzer.cache_stats()["hits"] == 1


async def test_analyze_stories_returns_none_on_oracle_failure():
    analyzer = StoryAnalyzer(FakeOracle(analysis=None), AnalysisCache())

    assert await analyzer.analyze_stories([make_story("a", "Council approves budget")]) is None
    assert analyzer.cache_stats()["size"] == 0


async def test_insignificant_update_reuses_analysis():
    oracle = FakeOracle(update={"summary": "Should not be used"})
    analyzer = StoryAnalyzer(oracle, AnalysisCache())
    story = make_story("s", "Council approves budget", "Budget passes council vote",
                       source_urls=["u1", "u2", "u3"], last_updated=utcnow() - timedelta(hours=1))
    story.analysis = StoryAnalysis(summary="Existing")

    result = await analyzer.update_story_analysis(story, make_story("n", "Council approves budget",
                                                                    "Budget passes council vote"))

    assert result.summary == "Existing"
    assert oracle.update_calls == []


async def test_significant_update_merges_and_invalidates_cache():
    oracle = FakeOracle(update={"summary": "Updated", "keyPoints": ["Taxes rise"]})
    cache = AnalysisCache()
    analyzer = StoryAnalyzer(oracle, cache)
    story = make_story("s", "Council approves budget", "Budget passes", source_urls=["u1"])
    story.analysis = StoryAnalysis(summary="Existing", key_points=[KeyPoint(point="Budget approved")])
    cache.put(["s"], story.analysis)

    result = await analyzer.update_story_analysis(story, make_story("n", "Council approves budget"))

    assert result.summary == "Updated"
    assert [kp.point for kp in result.key_points] == ["Taxes rise", "Budget approved"]
    assert cache.get(["s"]) is None


async def test_failed_update_keeps_existing_analysis():
    analyzer = StoryAnalyzer(FakeOracle(update=None), AnalysisCache())
    story = make_story("s", "Council approves budget", source_urls=["u1"])
    story.analysis = StoryAnalysis(summary="Existing")

    result = await analyzer.update_story_analysis(story, make_story("n", "Council approves budget"))

    assert result.summary == "Existing"
