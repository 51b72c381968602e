"""Application service layer orchestrating the extract and download workflow."""

import asyncio
from datetime import datetime
from typing import List, Optional, Set

from instagrab.core.downloader import MediaDownloader, generate_filename
from instagrab.core.exceptions import (
    DownloadError,
    ExtractionFailedError,
    InvalidURLError,
)
from instagrab.core.jobs import JobManager
from instagrab.core.scraper import InstagramExtractor
from instagrab.core.url_classifier import classify, validate_url
from instagrab.models.data_models import ExtractionResult
from instagrab.models.schema import DownloadJob, JobStatus
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)


class InstaGrabService:
    """
    Main application service: accepts URLs, runs each job in the
    background and records the outcome on the job.

    Usage:
        async with InstaGrabService() as service:
            job = await service.submit(url)
            await service.wait_for_jobs()
    """

    def __init__(
        self,
        extractor: Optional[InstagramExtractor] = None,
        downloader: Optional[MediaDownloader] = None,
        jobs: Optional[JobManager] = None,
    ):
        self.extractor = extractor or InstagramExtractor()
        self.downloader = downloader or MediaDownloader()
        self.jobs = jobs or JobManager()
        self._tasks: Set[asyncio.Task] = set()

    async def __aenter__(self):
        await self.extractor.__aenter__()
        await self.downloader.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Wait for running jobs, then release HTTP clients and the browser."""
        await self.wait_for_jobs()
        await self.downloader.__aexit__(None, None, None)
        await self.extractor.close()

    async def submit(self, url: str) -> DownloadJob:
        """
        Create a job for ``url`` and start processing it in the background.

        Returns immediately with the pending job.

        Raises:
            InvalidURLError: If the URL is not a supported Instagram link
        """
        url = url.strip()
        if not validate_url(url):
            raise InvalidURLError(f"Invalid Instagram URL: {url}")

        job = await self.jobs.create_job(url, classify(url))
        task = asyncio.create_task(self.process_job(job.id, url), name=f"job-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job

    async def process_job(self, job_id: str, url: str) -> Optional[DownloadJob]:
        """
        Run one job: extract, record metadata, download the first media item.

        Never raises; every failure ends with the job marked failed.
        """
        await self.jobs.update_job(job_id, status=JobStatus.PROCESSING)

        try:
            result = await self.extractor.extract_metadata(url)
        except (InvalidURLError, ExtractionFailedError) as e:
            logger.error(f"Job {job_id}: extraction failed: {e}")
            return await self.jobs.update_job(job_id, status=JobStatus.FAILED, error=str(e))
        except Exception as e:
            logger.exception(f"Job {job_id}: unexpected error during extraction")
            return await self.jobs.update_job(job_id, status=JobStatus.FAILED, error=f"Unexpected error: {e}")

        await self.jobs.update_job(job_id, media_metadata=result.to_dict())

        try:
            download = await self.downloader.download_media(
                result.media_urls[0], generate_filename(result)
            )
        except DownloadError as e:
            logger.error(f"Job {job_id}: download failed: {e}")
            return await self.jobs.update_job(job_id, status=JobStatus.FAILED, error=str(e))
        except Exception as e:
            logger.exception(f"Job {job_id}: unexpected error during download")
            return await self.jobs.update_job(job_id, status=JobStatus.FAILED, error=f"Unexpected error: {e}")

        logger.info(f"Job {job_id} completed: {download.file_path}")
        return await self.jobs.update_job(
            job_id,
            status=JobStatus.COMPLETED,
            file_path=download.file_path,
            file_size=download.file_size,
            downloaded_at=datetime.utcnow(),
        )

    async def preview(self, url: str) -> ExtractionResult:
        """Extract metadata without creating a job or downloading anything."""
        return await self.extractor.extract_metadata(url)

    async def get_job(self, job_id: str) -> Optional[DownloadJob]:
        return await self.jobs.get_job(job_id)

    async def list_recent_jobs(self, limit: int = 20) -> List[DownloadJob]:
        return await self.jobs.list_recent_jobs(limit)

    async def wait_for_jobs(self) -> None:
        """Block until every submitted job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
