"""Media downloader with streaming to local storage."""

import asyncio
import os
import re
import time
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from instagrab.core.exceptions import DownloadError
from instagrab.models.data_models import DownloadResult, ExtractionResult
from instagrab.utils.config import (
    CONNECT_TIMEOUT,
    DESKTOP_USER_AGENT,
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_DIR,
    MAX_CONCURRENT_DOWNLOADS,
    MAX_RETRIES,
    READ_TIMEOUT,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_WAIT,
    RETRY_MULTIPLIER,
)
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]+")


def generate_filename(result: ExtractionResult, index: int = 0, timestamp_ms: Optional[int] = None) -> str:
    """
    Build ``{username}_{type}_{unixMillis}[_{n}].{mp4|jpg}``.

    The ``_{n}`` suffix (1-based) is only added when the result holds more
    than one media item.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    extension = "mp4" if result.type.is_video else "jpg"
    suffix = f"_{index + 1}" if result.media_count > 1 else ""
    username = _UNSAFE_FILENAME_CHARS.sub("_", result.username).strip("_") or "instagram_user"
    return f"{username}_{result.type.value}_{timestamp_ms}{suffix}.{extension}"


class MediaDownloader:
    """
    Streams media files from the Instagram CDN to the downloads directory.
    """

    def __init__(
        self,
        download_dir: Path = DOWNLOAD_DIR,
        max_concurrent: int = MAX_CONCURRENT_DOWNLOADS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            download_dir: Directory files are written to (created if absent)
            max_concurrent: Maximum concurrent downloads
            transport: Optional httpx transport, used by tests
        """
        self.download_dir = Path(download_dir)
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None
        self.download_count = 0
        self.failed_downloads = []

    async def __aenter__(self):
        """Create HTTP client on context entry."""
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(CONNECT_TIMEOUT, read=READ_TIMEOUT),
            follow_redirects=True,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close HTTP client on context exit."""
        if self.client:
            await self.client.aclose()
            self.client = None

    def _get_headers(self) -> dict:
        # CDN fetches use the desktop agent, page loads the app agent
        return {
            "User-Agent": DESKTOP_USER_AGENT,
            "Accept": "*/*",
        }

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(
            multiplier=RETRY_MULTIPLIER,
            min=RETRY_INITIAL_WAIT,
            max=RETRY_MAX_WAIT,
        ),
        reraise=True,
    )
    async def _stream_to_file(self, url: str, filepath: Path) -> None:
        async with self.client.stream("GET", url, headers=self._get_headers()) as response:
            response.raise_for_status()
            async with aiofiles.open(filepath, "wb") as f:
                async for chunk in response.aiter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    await f.write(chunk)

    async def download_media(self, url: str, filename: str) -> DownloadResult:
        """
        Download a single media file.

        Args:
            url: Media URL
            filename: Name of the file inside the downloads directory

        Returns:
            DownloadResult with the final path and on-disk size

        Raises:
            DownloadError: If the download fails
        """
        if not self.client:
            raise DownloadError("MediaDownloader must be used as context manager")

        self.download_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.download_dir / Path(filename).name
        # Unique per call: two jobs can resolve to the same final name
        temp_filepath = filepath.with_name(f"{filepath.name}.{uuid.uuid4().hex[:8]}.tmp")

        try:
            logger.debug(f"Downloading: {url} -> {filepath}")

            async with self.semaphore:
                await self._stream_to_file(url, temp_filepath)

            os.replace(temp_filepath, filepath)
            # On-disk size, not content-length
            file_size = filepath.stat().st_size

            self.download_count += 1
            logger.info(f"Downloaded: {filepath.name} ({file_size} bytes)")
            return DownloadResult(file_path=str(filepath), file_size=file_size)

        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code} downloading {url}"
            logger.error(error_msg)
            self.failed_downloads.append(str(filepath))
            raise DownloadError(error_msg) from e

        except httpx.HTTPError as e:
            error_msg = f"Network error downloading {url}: {e}"
            logger.error(error_msg)
            self.failed_downloads.append(str(filepath))
            raise DownloadError(error_msg) from e

        except OSError as e:
            error_msg = f"Could not write {filepath}: {e}"
            logger.error(error_msg)
            self.failed_downloads.append(str(filepath))
            raise DownloadError(error_msg) from e

        except Exception as e:
            error_msg = f"Unexpected error downloading {url}: {e}"
            logger.exception(error_msg)
            self.failed_downloads.append(str(filepath))
            raise DownloadError(error_msg) from e

        finally:
            if temp_filepath.exists():
                try:
                    temp_filepath.unlink()
                except OSError as e:
                    logger.warning(f"Failed to delete temp file {temp_filepath}: {e}")

    def get_stats(self) -> dict:
        return {
            "total_downloads": self.download_count,
            "failed_downloads": len(self.failed_downloads),
            "failed_files": self.failed_downloads,
        }
