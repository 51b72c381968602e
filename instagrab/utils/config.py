"""Configuration management for InstaGrab."""

import os
from pathlib import Path
from typing import List, Optional

# Project root directory
PROJECT_ROOT = Path(os.getenv("INSTAGRAB_HOME", Path(__file__).parent.parent.parent))

# Database configuration
DB_PATH = PROJECT_ROOT / "instagrab.db"
DB_URL = os.getenv("INSTAGRAB_DB_URL", f"sqlite:///{DB_PATH}")

# Download configuration (created lazily by the downloader)
DOWNLOAD_DIR = Path(os.getenv("INSTAGRAB_DOWNLOAD_DIR", PROJECT_ROOT / "downloads"))

# Logs configuration
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE = LOG_DIR / "instagrab.log"

# Optional Instagram session cookie, only used for stories
IG_SESSIONID: Optional[str] = os.getenv("IG_SESSIONID") or None

# Rate limiting configuration
REQUEST_DELAY = 1.0  # Seconds between requests to instagram.com
REQUEST_JITTER = 0.2  # ±20% randomization
RATE_LIMIT_COOLDOWN = 30.0  # Pause after Instagram answers 429, doubled on repeats
RATE_LIMIT_MAX_COOLDOWN = 300.0
MAX_CONCURRENT_DOWNLOADS = 3

# Retry configuration (downloads only)
MAX_RETRIES = 3
RETRY_INITIAL_WAIT = 2.0  # Seconds
RETRY_MAX_WAIT = 30.0  # Seconds
RETRY_MULTIPLIER = 2.0  # Exponential backoff

# HTTP configuration
FAST_PATH_TIMEOUT = 8.0  # Seconds, whole fast-path request
CONNECT_TIMEOUT = 30.0  # Seconds
READ_TIMEOUT = 300.0  # Seconds
DOWNLOAD_CHUNK_SIZE = 8192  # Bytes

# Extraction cache
CACHE_TTL = 300.0  # Seconds

# Browser configuration
BROWSER_HEADLESS = os.getenv("INSTAGRAB_HEADLESS", "1") != "0"
NAVIGATION_TIMEOUT_MS = 20_000
SETTLE_DELAY_MS = 2_000
STORY_SETTLE_DELAY_MS = 5_000
BROWSER_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-blink-features=AutomationControlled",
]
BROWSER_VIEWPORT = {"width": 412, "height": 915}

# User agents. Extraction pretends to be the Instagram app on a phone,
# downloads look like a plain desktop browser.
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Mobile/15E148 Instagram 329.0.0.29.120 "
    "(iPhone14,3; iOS 17_4; en_US; en-US; scale=3.00; 1284x2778; 590232925)"
)
DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

# Instagram endpoints
INSTAGRAM_MOBILE_HOST = "m.instagram.com"
SESSION_COOKIE_NAME = "sessionid"
SESSION_COOKIE_DOMAIN = ".instagram.com"

# Media filtering
CDN_DOMAINS = ("cdninstagram.com", "fbcdn.net")
STATIC_PATH_TOKENS = ("/rsrc.php", "/static/", "/images/", "/favicon")
TINY_SIZE_TOKENS = (
    "s150x150", "p150x150", "s64x64", "s44x44", "s32x32",
    "s240x240", "p240x240", "s320x320", "p320x320",
)
PROFILE_PIC_TOKENS = ("t51.2885-19", "profile_pic", "/profile/")

# Query parameters that identify the sharer, not the content
TRACKING_PARAMS = ("igsh", "igshid", "fbclid", "ref", "hl", "img_index", "story_media_id")
TRACKING_PARAM_PREFIXES = ("utm_",)

# Placeholders for best-effort fields
DEFAULT_USERNAME = "instagram_user"
DEFAULT_CAPTION = "Instagram content"

# App information
APP_NAME = "instagrab"
