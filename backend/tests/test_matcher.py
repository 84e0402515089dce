from datetime import timedelta

import pytest

from storyweave.clustering.matcher import MatchKind, SimilarityMatcher, select_main_story
from storyweave.schemas import SimilarityAnalysis
from storyweave.utils.dates import utcnow

from conftest import FakeOracle, make_story


def test_select_main_story_prefers_most_sources():
    small = make_story("small", "T", source_urls=["u1"])
    big = make_story("big", "T", source_urls=["u2", "u3"])

    assert select_main_story([small, big]).id == "big"


def test_select_main_story_breaks_ties_by_earliest_first_published():
    now = utcnow()
    later = make_story("later", "T", source_urls=["u1"], first_published=now - timedelta(hours=1))
    earlier = make_story("earlier", "T", source_urls=["u2"], first_published=now - timedelta(hours=5))

    assert select_main_story([later, earlier]).id == "earlier"


def test_select_main_story_needs_candidates():
    with pytest.raises(ValueError):
        select_main_story([])


async def test_exact_link_is_authoritative(store, matcher, manager):
    from conftest import make_article

    article = make_article("Council approves budget", "https://a.com/1")
    first = await manager.ingest(article)

    candidate = make_story("candidate", "Completely different headline", source_urls=["https://a.com/1"])
    result = await matcher.find_story_for(candidate)

    assert result.kind == MatchKind.EXACT_LINK
    assert result.story.id == first.story_id


async def test_text_match_ranks_and_selects_main_story(store, matcher):
    now = utcnow()
    await store.add_story(make_story("one", "City council approves budget", source_urls=["u1"],
                                     first_published=now - timedelta(hours=1)))
    await store.add_story(make_story("two", "Council approves city budget plan", source_urls=["u2"],
                                     first_published=now - timedelta(hours=6)))
    await store.add_story(make_story("other", "Storm floods coastal villages", source_urls=["u3"]))

    candidate = make_story("candidate", "Council approves city budget", source_urls=["new"])
    result = await matcher.find_story_for(candidate)

    assert result.kind == MatchKind.TEXT_MATCH
    assert {c.story.id for c in result.candidates} == {"one", "two"}
    assert result.candidates[0].score >= result.candidates[1].score
    # Equal source counts: the earlier story wins
    assert result.story.id == "two"


async def test_stories_outside_window_are_ignored(store, matcher):
    old = utcnow() - timedelta(hours=100)
    await store.add_story(make_story("old", "City council approves budget", first_published=old, last_updated=old))

    result = await matcher.find_story_for(make_story("candidate", "Council approves city budget", source_urls=["new"]))

    assert result.kind == MatchKind.NO_MATCH


async def test_find_ranked_matches_returns_all_above_threshold(store, matcher):
    await store.add_story(make_story("one", "City council approves budget", source_urls=["u1"]))
    await store.add_story(make_story("two", "City council approves budget again", source_urls=["u2"]))

    ranked = await matcher.find_ranked_matches(make_story("c", "City council approves budget", source_urls=["n"]))

    assert [s.story.id for s in ranked] == ["one", "two"]
    assert ranked[0].score == pytest.approx(0.7)


async def test_text_search_failure_falls_back_to_title_match(store, matcher, monkeypatch):
    await store.add_story(make_story("one", "City council approves budget", source_urls=["u1"]))

    async def broken(*args, **kwargs):
        raise RuntimeError("search index unavailable")

    monkeypatch.setattr(store, "find_related_stories", broken)

    result = await matcher.find_story_for(make_story("c", "City council approves budget", source_urls=["n"]))

    assert result.kind == MatchKind.TEXT_MATCH
    assert result.story.id == "one"


async def test_matcher_failure_yields_no_match(store, matcher, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("database is gone")

    monkeypatch.setattr(store, "get_raw_article_by_url", broken)

    result = await matcher.find_story_for(make_story("c", "City council approves budget", source_urls=["n"]))

    assert result.kind == MatchKind.NO_MATCH


# Title similarity 0.25: inside the borderline band, combined score 0.175
BORDERLINE_A = "Senate passes climate bill tonight"
BORDERLINE_B = "Senate rejects climate proposal again"


async def test_borderline_pair_matched_by_confident_oracle(store):
    oracle = FakeOracle(similarity_result=SimilarityAnalysis(is_similar=True, confidence_score=0.9, method='oracle'))
    matcher = SimilarityMatcher(store, oracle)
    await store.add_story(make_story("senate", BORDERLINE_A, source_urls=["u1"]))

    result = await matcher.find_story_for(make_story("c", BORDERLINE_B, source_urls=["n"]))

    assert result.kind == MatchKind.TEXT_MATCH
    assert result.story.id == "senate"
    assert result.analysis.method == 'oracle'
    assert len(oracle.similarity_calls) == 1
    assert "Senate" in oracle.similarity_calls[0][2]


async def test_borderline_pair_rejected_when_oracle_unsure(store):
    oracle = FakeOracle(similarity_result=SimilarityAnalysis(is_similar=True, confidence_score=0.5, method='oracle'))
    matcher = SimilarityMatcher(store, oracle)
    await store.add_story(make_story("senate", BORDERLINE_A, source_urls=["u1"]))

    result = await matcher.find_story_for(make_story("c", BORDERLINE_B, source_urls=["n"]))

    assert result.kind == MatchKind.NO_MATCH


async def test_compare_stories_skips_oracle_for_clear_cases():
    oracle = FakeOracle()
    matcher = SimilarityMatcher(store=None, oracle=oracle)

    similar = await matcher.compare_stories(
        make_story("a", "Fire breaks out downtown"), make_story("b", "Downtown fire breaks out")
    )
    different = await matcher.compare_stories(
        make_story("c", "City council approves budget"), make_story("d", "Storm floods coastal villages")
    )

    assert similar.is_similar and similar.method == 'text'
    assert not different.is_similar and different.method == 'text'
    assert oracle.similarity_calls == []


async def test_compare_stories_falls_back_when_oracle_fails():
    matcher = SimilarityMatcher(store=None, oracle=FakeOracle(similarity_result=None))

    result = await matcher.compare_stories(make_story("a", BORDERLINE_A), make_story("b", BORDERLINE_B))

    assert result.method == 'fallback'
    assert not result.is_similar
    assert result.confidence_score == pytest.approx(0.175)


async def test_compare_stories_memoizes_pairs():
    oracle = FakeOracle(similarity_result=SimilarityAnalysis(is_similar=True, confidence_score=0.8))
    matcher = SimilarityMatcher(store=None, oracle=oracle, pair_cache_size=1)
    a, b, c = make_story("a", BORDERLINE_A), make_story("b", BORDERLINE_B), make_story("c", BORDERLINE_B)

    await matcher.compare_stories(a, b)
    await matcher.compare_stories(b, a)
    assert len(oracle.similarity_calls) == 1

    await matcher.compare_stories(a, c)
    await matcher.compare_stories(a, b)
    assert len(oracle.similarity_calls) == 3


async def test_oracle_tiebreak_is_limited_to_best_rejected_candidates(store):
    oracle = FakeOracle(similarity_result=SimilarityAnalysis(is_similar=False, confidence_score=0.9, method='oracle'))
    matcher = SimilarityMatcher(store, oracle, tiebreak_candidates=3)
    for i in range(20):
        await store.add_story(make_story(f"senate-{i}", BORDERLINE_A, source_urls=[f"u{i}"]))

    result = await matcher.find_story_for(make_story("c", BORDERLINE_B, source_urls=["n"]))

    assert result.kind == MatchKind.NO_MATCH
    assert len(oracle.similarity_calls) == 3


async def test_oracle_tiebreak_with_single_candidate(store):
    oracle = FakeOracle(similarity_result=SimilarityAnalysis(is_similar=False, confidence_score=0.9, method='oracle'))
    matcher = SimilarityMatcher(store, oracle, tiebreak_candidates=1)
    for i in range(5):
        await store.add_story(make_story(f"senate-{i}", BORDERLINE_A, source_urls=[f"u{i}"]))

    await matcher.find_story_for(make_story("c", BORDERLINE_B, source_urls=["n"]))

    assert len(oracle.similarity_calls) == 1
