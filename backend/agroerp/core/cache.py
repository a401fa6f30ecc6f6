"""Process-local report cache with a fixed time-to-live.

Entries are never invalidated early; readers may see data up to ``ttl``
seconds old. Not safe for concurrent writers in multi-process deployments.
"""

import logging
import time
from typing import Any

logger = logging.getLogger(__name__)


class ReportCache:
    def __init__(self, ttl_seconds: float = 300, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, data = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        logger.debug("Report cache hit: %s", key)
        return data

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = (self._clock(), data)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


report_cache = ReportCache()


def configure_report_cache(ttl_seconds: float) -> ReportCache:
    report_cache.ttl_seconds = ttl_seconds
    report_cache.clear()
    return report_cache
