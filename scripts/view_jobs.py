#!/usr/bin/env python3
"""
View InstaGrab download jobs
"""

import asyncio
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from instagrab.core.jobs import JobManager
from instagrab.models.data_models import ExtractionResult
from instagrab.models.schema import JobStatus
from instagrab.storage.database import init_db

STATUS_EMOJI = {
    JobStatus.PENDING.value: "⏳",
    JobStatus.PROCESSING.value: "🔄",
    JobStatus.COMPLETED.value: "✅",
    JobStatus.FAILED.value: "❌",
}


def format_datetime(dt: Optional[datetime]) -> str:
    """Format datetime for display."""
    return dt.strftime("%Y-%m-%d %H:%M:%S") if dt else "-"


def format_size(size: Optional[int]) -> str:
    """Human readable file size."""
    if size is None:
        return "-"
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


async def view_recent_jobs(limit: int = 20, status: Optional[str] = None):
    """View recent jobs, optionally filtered by status."""
    jobs = await JobManager().list_recent_jobs(limit=limit, status=status)

    if not jobs:
        print("📭 No jobs found")
        return

    print(f"\n📊 Recent Jobs (showing {len(jobs)} records)\n")
    print("=" * 100)

    for job in jobs:
        print(f"{STATUS_EMOJI.get(job.status, '📦')} {job.type.upper()}  {job.id}")
        print(f"   URL: {job.url}")
        print(f"   Created: {format_datetime(job.created_at)}")
        if job.media_metadata:
            result = ExtractionResult.from_dict(job.media_metadata)
            print(f"   User: {result.username}  Media: {result.media_count}")
            if result.duration:
                print(f"   Duration: {result.duration}  Views: {result.views or '-'}")
        if job.file_path:
            print(f"   File: {job.file_path} ({format_size(job.file_size)})")
        if job.error:
            print(f"   Error: {job.error[:200]}")
        print()


async def view_stats():
    """Show job counts per status."""
    stats = await JobManager().get_stats()
    print("\n📊 Job Statistics\n")
    print("=" * 40)
    for status in JobStatus:
        print(f"{STATUS_EMOJI[status.value]} {status.value:<12} {stats.get(status.value, 0)}")
    print("-" * 40)
    print(f"   {'total':<12} {stats['total']}\n")


def print_usage():
    """Print usage information."""
    print("InstaGrab Job Viewer")
    print("\nUsage:")
    print("  python scripts/view_jobs.py [command] [options]")
    print("\nCommands:")
    print("  recent [N]           Show N most recent jobs (default: 20)")
    print("  failed [N]           Show N most recent failed jobs")
    print("  stats                Show job counts per status")
    print("\nExamples:")
    print("  python scripts/view_jobs.py recent 50")
    print("  python scripts/view_jobs.py failed")


async def main():
    """Main entry point."""
    args = sys.argv[1:]

    if not args or args[0] in ["-h", "--help", "help"]:
        print_usage()
        return

    await init_db()
    command = args[0].lower()

    if command == "recent":
        limit = int(args[1]) if len(args) > 1 else 20
        await view_recent_jobs(limit=limit)

    elif command == "failed":
        limit = int(args[1]) if len(args) > 1 else 20
        await view_recent_jobs(limit=limit, status=JobStatus.FAILED.value)

    elif command == "stats":
        await view_stats()

    else:
        print(f"❌ Unknown command: {command}\n")
        print_usage()


if __name__ == "__main__":
    asyncio.run(main())
