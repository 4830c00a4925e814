"""Short-lived dedup markers for Slack event redelivery.

Slack retries a delivery it considers unacknowledged, and a single upload can
arrive as several events. A marker keyed by file id + channel id suppresses the
repeat within the dedup window. This is a redelivery filter, not long-term
idempotence: markers expire with their TTL.
"""

import logging
import time
from collections.abc import Callable

from cachetools import TLRUCache

from voice_converter.models.slack import InboundEvent

logger = logging.getLogger(__name__)

_KEY_PREFIX = "processed_file"


def _expires_at(_key: str, ttl: float, now: float) -> float:
    return now + ttl


class DedupCache:
    """TTL set of already-handled event keys.

    Every backend failure fails open: the event is treated as new and a
    warning is logged.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        maxsize: int = 4096,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        # value stored per key is its own TTL, so mark_seen can vary it
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)

    @staticmethod
    def key(event: InboundEvent) -> str:
        """Canonical dedup key: first file id + channel id.

        A given file is shared once per channel post, so the pair identifies
        the upload across Slack's redeliveries.
        """
        file_id = event.first_file.id if event.first_file else ""
        return f"{_KEY_PREFIX}:{file_id}:{event.channel_id}"

    def seen(self, key: str) -> bool:
        """Return True if a non-expired marker exists for key."""
        try:
            return key in self._cache
        except Exception:
            logger.warning("Dedup lookup failed for %s, treating as new", key, exc_info=True)
            return False

    def mark_seen(self, key: str, ttl_seconds: float | None = None) -> None:
        """Insert or refresh the marker for key."""
        try:
            self._cache[key] = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        except Exception:
            logger.warning("Dedup write failed for %s", key, exc_info=True)

    def check_and_mark(self, key: str) -> bool:
        """Return True if key was already seen; otherwise record it and return False.

        Read-then-write is not atomic: two near-simultaneous deliveries can both
        pass the check. Accepted given the short window.
        """
        if self.seen(key):
            logger.info("Duplicate event detected: %s", key)
            return True
        self.mark_seen(key)
        logger.info("New event recorded: %s", key)
        return False

    def clear(self) -> None:
        """Drop every marker. Administrative use only."""
        self._cache.clear()
