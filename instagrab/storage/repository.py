"""Repository layer for database operations."""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from instagrab.models.schema import DownloadJob, JobStatus
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)

# Columns callers may change after creation
UPDATABLE_FIELDS = frozenset({
    "status", "media_metadata", "error", "file_path", "file_size", "downloaded_at",
})


class JobRepository:
    """Repository for DownloadJob operations."""

    @staticmethod
    async def create(session: AsyncSession, url: str, content_type: str) -> DownloadJob:
        """
        Create a new pending job.

        Args:
            session: Database session
            url: Submitted Instagram URL
            content_type: Classified content type value

        Returns:
            DownloadJob instance
        """
        job = DownloadJob(url=url, type=content_type, status=JobStatus.PENDING.value)
        session.add(job)
        await session.flush()
        logger.debug(f"Created job {job.id} for {url[:60]}")
        return job

    @staticmethod
    async def get(session: AsyncSession, job_id: str) -> Optional[DownloadJob]:
        """
        Get a job by id.

        Args:
            session: Database session
            job_id: Job id

        Returns:
            DownloadJob instance or None
        """
        result = await session.execute(
            select(DownloadJob).where(DownloadJob.id == job_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def update(session: AsyncSession, job_id: str, fields: Dict[str, Any]) -> Optional[DownloadJob]:
        """
        Apply a partial update to a job.

        Args:
            session: Database session
            job_id: Job id
            fields: Column values to set

        Returns:
            Updated DownloadJob instance, or None if the job does not exist

        Raises:
            ValueError: If a field is not updatable
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update job fields: {', '.join(sorted(unknown))}")

        job = await JobRepository.get(session, job_id)
        if job is None:
            logger.warning(f"Update for unknown job {job_id}")
            return None

        for key, value in fields.items():
            if isinstance(value, JobStatus):
                value = value.value
            setattr(job, key, value)

        await session.flush()
        logger.debug(f"Updated job {job_id}: {', '.join(sorted(fields))}")
        return job

    @staticmethod
    async def get_recent(
        session: AsyncSession,
        limit: int = 50,
        status: Optional[str] = None,
    ) -> List[DownloadJob]:
        """
        Get the most recently created jobs.

        Args:
            session: Database session
            limit: Maximum number of records to return
            status: Only return jobs with this status

        Returns:
            List of DownloadJob instances, newest first
        """
        query = select(DownloadJob)
        if status is not None:
            query = query.where(DownloadJob.status == status)
        result = await session.execute(
            query.order_by(desc(DownloadJob.created_at)).limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_stats(session: AsyncSession) -> Dict[str, int]:
        """
        Count jobs per status.

        Args:
            session: Database session

        Returns:
            Dictionary mapping every status to its job count, plus ``total``
        """
        result = await session.execute(
            select(DownloadJob.status, func.count(DownloadJob.id)).group_by(DownloadJob.status)
        )
        stats = {status.value: 0 for status in JobStatus}
        for status, count in result.all():
            stats[status] = count
        stats["total"] = sum(stats.values())
        return stats
