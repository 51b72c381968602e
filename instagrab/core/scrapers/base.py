"""Common interface for extraction strategies."""

from abc import ABC, abstractmethod

from instagrab.core.exceptions import ExtractionFailedError
from instagrab.models.data_models import ContentType, ExtractionOutcome, ExtractionResult
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)


class ExtractionStrategy(ABC):
    """
    One way of getting media out of an Instagram page.

    Strategies only find media and metadata; they never download files.
    """

    name = "base"

    @abstractmethod
    async def extract(self, url: str, content_type: ContentType) -> ExtractionResult:
        """
        Raises:
            ExtractionFailedError: If no usable media was found
        """

    async def run(self, url: str, content_type: ContentType) -> ExtractionOutcome:
        """Run ``extract`` and report success or failure as a value."""
        try:
            result = await self.extract(url, content_type)
        except ExtractionFailedError as e:
            logger.info(f"{self.name} extraction failed for {url}: {e}")
            return ExtractionOutcome(strategy=self.name, error=e)
        except Exception as e:
            logger.exception(f"Unexpected error in {self.name} extraction for {url}")
            error = ExtractionFailedError(f"Unexpected error in {self.name} extraction: {e}")
            error.__cause__ = e
            return ExtractionOutcome(strategy=self.name, error=error)
        return ExtractionOutcome(strategy=self.name, result=result)
