import hashlib
from typing import Iterable, Union


def generate_content_hash(content: Union[str, bytes]) -> str:
    """
    Generate SHA-256 hash of content

    Args:
        content: Text or bytes to hash

    Returns:
        Hexadecimal hash string
    """
    if isinstance(content, str):
        content = content.encode('utf-8')

    return hashlib.sha256(content).hexdigest()


def normalize_content(content: str) -> str:
    """
    Collapse whitespace and lower-case text before hashing

    Args:
        content: Raw content text

    Returns:
        Normalized content
    """
    return ' '.join(content.split()).lower()


def keyword_fingerprint(keywords: Iterable[str], fallback: str = "") -> str:
    """
    Order-independent fingerprint of a keyword set

    Two headlines made of the same significant words ("City council approves
    budget" / "Council approves city budget") share a fingerprint.

    Args:
        keywords: Significant words of a text
        fallback: Text hashed instead when there are no keywords (e.g. the URL)

    Returns:
        Short hexadecimal fingerprint
    """
    words = sorted(set(keywords))
    material = ' '.join(words) if words else normalize_content(fallback)
    return generate_content_hash(material)[:16]
