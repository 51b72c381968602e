import pytest

from instagrab.core.exceptions import ExtractionFailedError
from instagrab.core.normalize import (
    build_result,
    format_duration,
    og_media_url,
    parse_count,
    parse_engagement,
    parse_username,
    select_media,
)
from instagrab.models.data_models import ContentType, MediaCandidates, OpenGraphTags
from tests.conftest import POST_IMAGE, PROFILE_PIC, REEL_COVER, REEL_VIDEO_BIG, STATIC_LOGO

POST_URL = "https://www.instagram.com/p/ABC123/"
REEL_URL = "https://www.instagram.com/reel/XYZ/"
STORY_URL = "https://www.instagram.com/stories/natgeo/3301/"


# ── Field parsing ────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "title,expected",
    [
        ("National Geographic on Instagram: \"Sunrise\"", "National Geographic"),
        ("natgeo on Instagram", "natgeo"),
        ("Photo by @natgeo.travel", "natgeo.travel"),
    ],
)
def test_parse_username_from_og_title(title, expected):
    assert parse_username(title, POST_URL) == expected


def test_parse_username_falls_back_to_url_then_placeholder():
    assert parse_username("Instagram", STORY_URL) == "natgeo"
    assert parse_username(None, POST_URL) == "instagram_user"


@pytest.mark.parametrize(
    "text,expected",
    [("1,234", 1234), ("12.5K", 12500), ("3M", 3_000_000), ("7", 7), ("lots", None)],
)
def test_parse_count(text, expected):
    assert parse_count(text) == expected


def test_parse_engagement():
    description = "1,234 likes, 56 comments - natgeo on March 3, 2024: \"Sunrise\""
    assert parse_engagement(description) == (1234, 56)
    assert parse_engagement("12.5K likes - someone") == (12500, None)
    assert parse_engagement("Just a caption") == (None, None)
    assert parse_engagement(None) == (None, None)


def test_format_duration():
    assert format_duration("74.2") == "1:14"
    assert format_duration("9") == "0:09"
    assert format_duration(None) is None
    assert format_duration("n/a") is None


# ── Media selection ──────────────────────────────────────────────────


def test_post_prefers_image_candidates_over_og():
    candidates = MediaCandidates(images=[POST_IMAGE])
    og = OpenGraphTags(image=REEL_COVER)
    assert select_media(ContentType.POST, candidates, og) == [POST_IMAGE]


def test_post_falls_back_to_og_image():
    assert select_media(ContentType.POST, MediaCandidates(), OpenGraphTags(image=POST_IMAGE)) == [POST_IMAGE]


def test_post_without_any_image_fails():
    with pytest.raises(ExtractionFailedError, match="No image URL found for post"):
        select_media(ContentType.POST, MediaCandidates(), OpenGraphTags())


@pytest.mark.parametrize("content_type", [ContentType.REEL, ContentType.IGTV])
def test_video_types_never_return_images(content_type):
    candidates = MediaCandidates(images=[REEL_COVER])
    og = OpenGraphTags(image=REEL_COVER)

    with pytest.raises(ExtractionFailedError, match=f"No video URL found for {content_type.value}"):
        select_media(content_type, candidates, og)


def test_reel_uses_og_video_when_no_candidates():
    og = OpenGraphTags(video=REEL_VIDEO_BIG.replace("&", "&amp;"))
    assert select_media(ContentType.REEL, MediaCandidates(), og) == [REEL_VIDEO_BIG]


def test_story_order_videos_then_images_then_og():
    og = OpenGraphTags(image=POST_IMAGE)
    assert select_media(ContentType.STORY, MediaCandidates(videos=[REEL_VIDEO_BIG], images=[REEL_COVER]), og) == [
        REEL_VIDEO_BIG
    ]
    assert select_media(ContentType.STORY, MediaCandidates(images=[REEL_COVER]), og) == [REEL_COVER]
    assert select_media(ContentType.STORY, MediaCandidates(), og) == [POST_IMAGE]

    with pytest.raises(ExtractionFailedError, match="No media found for story"):
        select_media(ContentType.STORY, MediaCandidates(), OpenGraphTags())


# ── Result assembly ──────────────────────────────────────────────────


def test_build_result_for_og_only_post():
    result = build_result(ContentType.POST, POST_URL, MediaCandidates(), OpenGraphTags(image=POST_IMAGE))

    assert result.type == ContentType.POST
    assert result.media_urls == [POST_IMAGE]
    assert result.media_count == 1
    assert result.thumbnail == POST_IMAGE
    assert result.username == "instagram_user"
    assert result.caption == "Instagram content"
    assert result.views is None and result.duration is None


def test_build_result_for_reel():
    candidates = MediaCandidates(videos=[REEL_VIDEO_BIG], images=[REEL_COVER], duration="74.2", views="48210")
    og = OpenGraphTags(
        title="natgeo on Instagram: \"Whales\"",
        description="2,001 likes, 14 comments - natgeo: Whales off the coast",
    )

    result = build_result(ContentType.REEL, REEL_URL, candidates, og)

    assert result.media_urls == [REEL_VIDEO_BIG]
    assert result.thumbnail == REEL_COVER
    assert result.username == "natgeo"
    assert result.likes == 2001
    assert result.comments == 14
    assert result.views == 48210
    assert result.duration == "1:14"
    assert result.to_dict()["mediaCount"] == 1


def test_build_result_ignores_views_for_posts():
    candidates = MediaCandidates(images=[POST_IMAGE], views="99")
    result = build_result(ContentType.POST, POST_URL, candidates, OpenGraphTags())
    assert result.views is None


# ── Open-Graph fallback filtering ────────────────────────────────────


def test_og_media_url_rejects_logos_and_avatars():
    assert og_media_url(STATIC_LOGO) is None
    assert og_media_url(PROFILE_PIC) is None
    assert og_media_url("https://scontent.xx.example-mirror.net/v/t51.2885-15/photo.jpg") is not None


def test_post_with_only_static_og_image_fails():
    with pytest.raises(ExtractionFailedError, match="No image URL found for post"):
        build_result(ContentType.POST, POST_URL, MediaCandidates(), OpenGraphTags(image=STATIC_LOGO))


def test_story_with_only_profile_picture_fails():
    with pytest.raises(ExtractionFailedError, match="No media found for story"):
        build_result(ContentType.STORY, STORY_URL, MediaCandidates(), OpenGraphTags(image=PROFILE_PIC))


def test_rejected_og_image_is_not_used_as_thumbnail():
    candidates = MediaCandidates(images=[POST_IMAGE])
    result = build_result(ContentType.POST, POST_URL, candidates, OpenGraphTags(image=PROFILE_PIC))
    assert result.thumbnail == POST_IMAGE
