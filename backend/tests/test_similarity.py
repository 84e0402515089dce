from storyweave.clustering.similarity import (
    calculate_similarity,
    contains_breaking_terms,
    extract_entities,
    get_keywords,
    keyword_list,
)


def test_keywords_drop_short_tokens_and_stop_words():
    assert get_keywords("The fire at the old mill, says Mayor") == {"fire", "mill", "mayor"}


def test_keyword_list_keeps_first_appearance_order():
    assert keyword_list("Budget vote: council budget approved") == ["budget", "vote", "council", "approved"]


def test_similarity_is_symmetric_and_high_for_shared_words():
    forward = calculate_similarity("Fire breaks out downtown", "Downtown fire breaks out")
    backward = calculate_similarity("Downtown fire breaks out", "Fire breaks out downtown")

    assert forward == backward
    assert forward > 0.5


def test_similarity_of_texts_without_keywords_is_zero():
    assert calculate_similarity("", "") == 0.0
    assert calculate_similarity("a an the", "of to in") == 0.0


def test_similarity_of_unrelated_texts_is_low():
    assert calculate_similarity("City council approves budget", "Storm floods coastal villages") < 0.2


def test_extract_entities_finds_capitalized_phrases():
    entities = extract_entities("Prime Minister Jacinda Ardern met officials in Wellington")

    assert "Wellington" in entities
    assert "Prime Minister Jacinda Ardern" in entities


def test_breaking_terms():
    assert contains_breaking_terms("BREAKING: quake hits coast")
    assert contains_breaking_terms("Just in - markets close early")
    assert not contains_breaking_terms("Council approves budget")
