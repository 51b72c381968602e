import pytest

from instagrab.core.url_classifier import (
    classify,
    extract_shortcode,
    normalize_url,
    to_mobile_url,
    username_from_url,
    validate_url,
)
from instagrab.models.data_models import ContentType


# ── validate_url ─────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "url",
    [
        "https://www.instagram.com/p/CxYz123AbC/",
        "https://instagram.com/p/ABC123",
        "http://www.instagram.com/reel/C1a2b3c4d5/?igsh=MTc4",
        "https://www.instagram.com/stories/natgeo/3301234567890123456/",
        "https://www.instagram.com/stories/some.user_01/3301234567890/",
        "https://instagram.com/tv/B_x-Yz12/",
        "  https://www.instagram.com/p/ABC123/  ",
    ],
)
def test_validate_url_accepts_supported_links(url):
    assert validate_url(url) is True


@pytest.mark.parametrize(
    "url",
    [
        "",
        "not a url",
        "https://www.instagram.com/natgeo/",
        "https://www.instagram.com/p/",
        "https://www.instagram.com/stories/natgeo/",
        "https://example.com/p/ABC123/",
        "https://notinstagram.com/p/ABC123/",
        "https://www.instagram.com.evil.net/p/ABC123/",
        "ftp://instagram.com/p/ABC123/",
        "https://m.instagram.com/p/ABC123/",
    ],
)
def test_validate_url_rejects_everything_else(url):
    assert validate_url(url) is False


def test_validate_url_rejects_non_strings():
    assert validate_url(None) is False
    assert validate_url(123) is False


# ── classify ─────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.instagram.com/p/ABC123/", ContentType.POST),
        ("https://www.instagram.com/reel/ABC123/", ContentType.REEL),
        ("https://www.instagram.com/stories/natgeo/123/", ContentType.STORY),
        ("https://www.instagram.com/tv/ABC123/", ContentType.IGTV),
    ],
)
def test_classify_by_path_segment(url, expected):
    assert classify(url) == expected


def test_classify_priority_order():
    # A story owner called "tv" is still a story
    assert classify("https://www.instagram.com/stories/tv/123") == ContentType.STORY
    assert classify("https://www.instagram.com/stories/reel/123") == ContentType.REEL
    assert classify("https://www.instagram.com/tv/p/") == ContentType.IGTV


def test_classify_defaults_to_post():
    assert classify("https://www.instagram.com/natgeo/") == ContentType.POST
    assert classify("garbage") == ContentType.POST


# ── URL helpers ──────────────────────────────────────────────────────


def test_normalize_url_strips_tracking_and_fragment():
    url = "http://instagram.com/reel/ABC123?igsh=MTc4&utm_source=ig_web&fbclid=x#comments"
    assert normalize_url(url) == "https://www.instagram.com/reel/ABC123/"


def test_normalize_url_keeps_other_query_params():
    assert normalize_url("https://www.instagram.com/p/ABC/?foo=bar&hl=en") == (
        "https://www.instagram.com/p/ABC/?foo=bar"
    )


def test_shared_variants_normalize_to_the_same_key():
    a = normalize_url("https://instagram.com/p/ABC123")
    b = normalize_url("https://www.instagram.com/p/ABC123/?igshid=abc")
    assert a == b


def test_to_mobile_url():
    assert to_mobile_url("https://www.instagram.com/reel/ABC123/?igsh=1") == (
        "https://m.instagram.com/reel/ABC123/"
    )


def test_extract_shortcode():
    assert extract_shortcode("https://www.instagram.com/p/ABC123/") == "ABC123"
    assert extract_shortcode("https://www.instagram.com/reel/XYZ/") == "XYZ"
    assert extract_shortcode("https://www.instagram.com/stories/natgeo/3301/") == "3301"
    assert extract_shortcode("https://www.instagram.com/natgeo/") is None


def test_username_from_url():
    assert username_from_url("https://www.instagram.com/stories/natgeo/3301/") == "natgeo"
    assert username_from_url("https://www.instagram.com/natgeo/p/ABC/") == "natgeo"
    assert username_from_url("https://www.instagram.com/p/ABC/") is None
