"""Download job bookkeeping on top of the job repository."""

from typing import Any, Callable, List, Optional

from instagrab.models.data_models import ContentType
from instagrab.models.schema import DownloadJob
from instagrab.storage.database import get_async_session
from instagrab.storage.repository import JobRepository
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)


class JobManager:
    """
    Owns job records: creation, partial updates and lookups.

    Each call runs in its own short session so background workers never
    share a session with the caller that submitted the job.
    """

    def __init__(self, session_scope: Callable[[], Any] = get_async_session):
        """
        Args:
            session_scope: Factory returning an async session context manager
        """
        self.session_scope = session_scope

    async def create_job(self, url: str, content_type: ContentType) -> DownloadJob:
        async with self.session_scope() as session:
            job = await JobRepository.create(session, url, ContentType(content_type).value)
        logger.info(f"Job {job.id} created ({job.type})")
        return job

    async def update_job(self, job_id: str, **fields: Any) -> Optional[DownloadJob]:
        async with self.session_scope() as session:
            return await JobRepository.update(session, job_id, fields)

    async def get_job(self, job_id: str) -> Optional[DownloadJob]:
        async with self.session_scope() as session:
            return await JobRepository.get(session, job_id)

    async def list_recent_jobs(self, limit: int = 20, status: Optional[str] = None) -> List[DownloadJob]:
        async with self.session_scope() as session:
            return await JobRepository.get_recent(session, limit=limit, status=status)

    async def get_stats(self) -> dict:
        async with self.session_scope() as session:
            return await JobRepository.get_stats(session)
