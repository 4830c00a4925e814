"""TTL store for pending transcription rechecks, one record per file."""

import logging
import time
from collections.abc import Callable

from cachetools import TTLCache
from pydantic import ValidationError

from voice_converter.models.transcription import PendingTranscription

logger = logging.getLogger(__name__)


class PendingTranscriptionStore:
    """Keeps the retry state of each file's recheck chain.

    Records are stored as JSON, the way they would sit in an external
    key/value store, and expire on their own if a chain is abandoned.
    """

    def __init__(
        self,
        ttl_seconds: float = 600,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)

    def get(self, file_id: str) -> PendingTranscription | None:
        raw = self._cache.get(file_id)
        if raw is None:
            return None
        try:
            return PendingTranscription.model_validate_json(raw)
        except ValidationError:
            logger.error("Discarding unreadable pending record for %s", file_id, exc_info=True)
            self._cache.pop(file_id, None)
            return None

    def save(self, pending: PendingTranscription) -> None:
        self._cache[pending.file_id] = pending.model_dump_json()

    def delete(self, file_id: str) -> None:
        self._cache.pop(file_id, None)

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, file_id: str) -> bool:
        return file_id in self._cache
