"""
Unit tests for description normalization and fuzzy matching.
"""
import pytest

from core.matching import (
    calculate_similarity,
    descriptions_similar,
    detect_brand,
    normalize_service_name,
    normalize_string,
    word_overlap_ratio,
)


def test_normalize_string():
    """Test string normalization."""
    assert normalize_string("  Hello   World  ") == "hello world"
    assert normalize_string(None) == ""
    assert normalize_string("") == ""


def test_normalize_service_name_strips_boilerplate():
    assert normalize_service_name("RECURRING NETFLIX.COM 8F3K2L9Q") == "NETFLIX.COM"
    assert normalize_service_name("PAYMENT TO SPOTIFY USA SUBSCRIPTION") == "SPOTIFY USA"
    assert normalize_service_name("AUTO PAY Comcast Internet BILL") == "Comcast Internet"
    assert normalize_service_name("Adobe Creative Cloud 01/15/2025") == "Adobe Creative Cloud"


def test_normalize_service_name_keeps_plain_words():
    """Short numbers and words without digits are part of the name."""
    assert normalize_service_name("Office 365") == "Office 365"
    assert normalize_service_name("Planet Fitness Membership") == "Planet Fitness Membership"
    assert normalize_service_name(None) == ""


def test_calculate_similarity():
    """Test Levenshtein-based similarity."""
    assert calculate_similarity("netflix", "netflix") == 1.0
    assert calculate_similarity("", "") == 1.0
    assert calculate_similarity("kitten", "sitting") == pytest.approx(4 / 7)


def test_word_overlap_ratio():
    assert word_overlap_ratio("spotify premium", "spotify premium family") == pytest.approx(2 / 3)
    assert word_overlap_ratio("hulu", "disney plus") == 0.0
    assert word_overlap_ratio("", "spotify") == 0.0


def test_descriptions_similar():
    """Containment and close spellings match; unrelated services do not."""
    assert descriptions_similar("netflix.com", "netflix.com")
    assert descriptions_similar("netflix", "netflix.com")
    assert descriptions_similar("spotify premium family", "spotify premium famly")
    assert not descriptions_similar("hulu", "spotify")
    assert not descriptions_similar("", "spotify")


def test_detect_brand():
    """Most specific brand wins."""
    assert detect_brand("NETFLIX.COM 8F3K2L9Q") == "Netflix"
    assert detect_brand("YouTube Premium Family") == "YouTube Premium"
    assert detect_brand("Corner Bakery") is None
    assert detect_brand(None) is None
