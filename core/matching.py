"""
Fuzzy matching of merchant/service descriptions.
Uses substring and word-overlap checks before falling back to Levenshtein
similarity, which is only computed for pairs that pass the cheap checks.
"""
from typing import List, Optional

import Levenshtein

from core.lexicon import (
    BRAND_LEXICON,
    SERVICE_NOISE_PATTERN,
    SERVICE_PREFIX_PATTERN,
    SERVICE_SUFFIX_PATTERN,
)
from core.logger import setup_logger

logger = setup_logger(__name__)

SIMILARITY_THRESHOLD = 0.7
WORD_OVERLAP_THRESHOLD = 0.5
MIN_WORD_LENGTH = 3


def normalize_string(text: Optional[str]) -> str:
    """
    Normalize string for matching: lowercase, trim, remove extra spaces.

    Args:
        text: Input string

    Returns:
        Normalized string
    """
    if not text or not isinstance(text, str):
        return ""

    return " ".join(text.lower().strip().split())


def normalize_service_name(description: Optional[str]) -> str:
    """
    Strip bank boilerplate from a description to recover the service name.

    "RECURRING NETFLIX.COM 8F3K2L9Q" -> "NETFLIX.COM"
    "PAYMENT TO SPOTIFY USA SUBSCRIPTION" -> "SPOTIFY USA"

    Args:
        description: Raw transaction description

    Returns:
        Service name with original casing, whitespace collapsed
    """
    if not description:
        return ""

    name = SERVICE_PREFIX_PATTERN.sub("", description.strip())
    name = SERVICE_NOISE_PATTERN.sub("", name)
    name = SERVICE_SUFFIX_PATTERN.sub("", name)
    return " ".join(name.split())


def calculate_similarity(s1: str, s2: str) -> float:
    """
    Normalized Levenshtein similarity: 1 - distance / len(longer).

    Args:
        s1: First string
        s2: Second string

    Returns:
        Similarity score (0.0 to 1.0)
    """
    if s1 == s2:
        return 1.0

    longer = max(len(s1), len(s2))
    if longer == 0:
        return 1.0

    distance = Levenshtein.distance(s1, s2)
    return (longer - distance) / longer


def _significant_words(text: str) -> List[str]:
    return [word for word in text.split() if len(word) >= MIN_WORD_LENGTH]


def word_overlap_ratio(desc1: str, desc2: str) -> float:
    """
    Share of significant words in desc1 that also appear (or contain each
    other) in desc2, relative to the longer word list.
    """
    words1 = _significant_words(desc1)
    words2 = _significant_words(desc2)
    if not words1 or not words2:
        return 0.0

    common = [
        w1 for w1 in words1
        if any(w1 == w2 or w1 in w2 or w2 in w1 for w2 in words2)
    ]
    return len(common) / max(len(words1), len(words2))


def descriptions_similar(desc1: str, desc2: str) -> bool:
    """
    Decide whether two normalized (lowercase) descriptions name the same service.

    Args:
        desc1: First normalized description
        desc2: Second normalized description

    Returns:
        True when one contains the other, or when the words overlap and the
        Levenshtein similarity exceeds the threshold
    """
    if desc1 == desc2:
        return True
    if not desc1 or not desc2:
        return False

    if desc1 in desc2 or desc2 in desc1:
        return True

    if word_overlap_ratio(desc1, desc2) > WORD_OVERLAP_THRESHOLD:
        similarity = calculate_similarity(desc1, desc2)
        logger.debug(f"Similarity '{desc1}' vs '{desc2}': {similarity:.2f}")
        return similarity > SIMILARITY_THRESHOLD

    return False


def detect_brand(description: Optional[str]) -> Optional[str]:
    """Return the display brand for a known subscription service, if any."""
    text = normalize_string(description)
    if not text:
        return None

    for keyword, brand in BRAND_LEXICON.items():
        if keyword in text:
            return brand
    return None
