"""
Keyword-overlap text similarity.

Scores are Jaccard indexes over "significant" words: lower-cased,
alphanumeric, longer than three characters and not a stop word.
"""
import re
from typing import Iterable, List, Set

# Tokens of length <= MIN_TOKEN_LENGTH are ignored
MIN_TOKEN_LENGTH = 3

STOP_WORDS = frozenset(
    "the a an and or but in on at to for of with by from that this these those"
    " have has had were been being will would could should about after over into"
    " than then them they their there what when where which while says said".split()
)

BREAKING_TERMS = ('breaking', 'urgent', 'just in', 'update', 'developing')

_NON_ALNUM = re.compile(r'[^a-z0-9\s]')
_CAPITALIZED = re.compile(r'\b[A-Z][a-zA-Z]*\b')
_CAPITALIZED_PHRASE = re.compile(r'\b[A-Z][a-zA-Z]*(?:\s+[A-Z][a-zA-Z]*)+\b')


def keyword_list(text: str) -> List[str]:
    """Significant words of a text, in order of first appearance"""
    if not text:
        return []

    cleaned = _NON_ALNUM.sub(' ', text.lower())
    seen = {}
    for word in cleaned.split():
        if len(word) > MIN_TOKEN_LENGTH and word not in STOP_WORDS:
            seen.setdefault(word, None)
    return list(seen)


def get_keywords(text: str) -> Set[str]:
    """Set of significant words of a text"""
    return set(keyword_list(text))


def jaccard(first: Iterable[str], second: Iterable[str]) -> float:
    first, second = set(first), set(second)
    union = first | second
    if not union:
        return 0.0
    return len(first & second) / len(union)


def calculate_similarity(text1: str, text2: str) -> float:
    """
    Keyword similarity of two texts in [0, 1]

    Commutative; two texts without significant words score 0.
    """
    return jaccard(get_keywords(text1), get_keywords(text2))


def extract_entities(text: str) -> List[str]:
    """
    Capitalized words and phrases, a cheap stand-in for named entities

    This is a heuristic, not NER: sentence-initial words are picked up too.
    Only used to enrich oracle prompts.
    """
    if not text:
        return []

    entities = _CAPITALIZED.findall(text) + _CAPITALIZED_PHRASE.findall(text)
    return list(dict.fromkeys(entities))


def contains_breaking_terms(text: str) -> bool:
    lowered = (text or '').lower()
    return any(term in lowered for term in BREAKING_TERMS)
