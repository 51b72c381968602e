"""Short-lived in-process cache of extraction results."""

import time
from typing import Callable, Dict, Optional, Tuple

from instagrab.models.data_models import ExtractionResult
from instagrab.utils.config import CACHE_TTL
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)


class ExtractionCache:
    """
    Maps a normalized URL to its last successful result.

    Entries expire after ``ttl`` seconds and are only dropped when a lookup
    finds them stale; there is no other eviction.
    """

    def __init__(self, ttl: float = CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, Tuple[ExtractionResult, float]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[ExtractionResult]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        result, stored_at = entry
        if self.clock() - stored_at >= self.ttl:
            self._entries.pop(key, None)
            self.misses += 1
            logger.debug(f"Cache entry expired: {key}")
            return None

        self.hits += 1
        return result

    def set(self, key: str, result: ExtractionResult) -> None:
        self._entries[key] = (result, self.clock())

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}
