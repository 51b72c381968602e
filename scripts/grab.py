#!/usr/bin/env python3
"""
Download Instagram posts, reels, stories and IGTV videos.

Each URL becomes a download job; the job record is printed when it ends.
Set IG_SESSIONID to your Instagram ``sessionid`` cookie to read stories
that need an account.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from instagrab.core.app_service import InstaGrabService
from instagrab.core.exceptions import InvalidURLError
from instagrab.storage.database import close_db, init_db
from instagrab.utils.logging import setup_logging


async def grab(urls: list[str], preview_only: bool = False) -> int:
    """Process every URL and return the number of failures."""
    await init_db()
    try:
        return await _run(urls, preview_only)
    finally:
        await close_db()


async def _run(urls: list[str], preview_only: bool) -> int:
    failures = 0

    async with InstaGrabService() as service:
        if preview_only:
            for url in urls:
                try:
                    result = await service.preview(url)
                except Exception as e:
                    print(f"❌ {url}\n   {e}\n")
                    failures += 1
                    continue
                print(f"🔎 {url}")
                print(f"   {result.type.value} by {result.username}, {result.media_count} media")
                for media_url in result.media_urls:
                    print(f"   - {media_url}")
                print()
            return failures

        job_ids = []
        for url in urls:
            try:
                job = await service.submit(url)
            except InvalidURLError as e:
                print(f"❌ {e}")
                failures += 1
                continue
            print(f"⏳ Queued {job.type} job {job.id}")
            job_ids.append(job.id)

        await service.wait_for_jobs()

        for job_id in job_ids:
            job = await service.get_job(job_id)
            if job.status == "completed":
                print(f"✅ {job.url}\n   Saved to {job.file_path} ({job.file_size} bytes)\n")
            else:
                failures += 1
                print(f"❌ {job.url}\n   {job.error}\n")

    return failures


def print_usage():
    """Print usage information."""
    print("InstaGrab")
    print("\nUsage:")
    print("  python scripts/grab.py [--preview] [--verbose] URL [URL ...]")
    print("\nOptions:")
    print("  --preview            Only extract metadata, do not download")
    print("  --verbose            Show debug logging on the console")
    print("\nExamples:")
    print("  python scripts/grab.py https://www.instagram.com/reel/C1a2b3c4d5/")
    print("  IG_SESSIONID=... python scripts/grab.py https://www.instagram.com/stories/someone/3301234567890/")


def main():
    """Main entry point."""
    args = sys.argv[1:]
    if not args or args[0] in ["-h", "--help", "help"]:
        print_usage()
        return

    preview_only = "--preview" in args
    verbose = "--verbose" in args
    urls = [arg for arg in args if not arg.startswith("--")]
    if not urls:
        print_usage()
        sys.exit(1)

    setup_logging(level=logging.DEBUG if verbose else logging.INFO)
    failures = asyncio.run(grab(urls, preview_only=preview_only))
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
