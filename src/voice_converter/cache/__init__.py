"""TTL caches: dedup markers and pending transcription records."""

from voice_converter.cache.dedup import DedupCache
from voice_converter.cache.pending import PendingTranscriptionStore

__all__ = ["DedupCache", "PendingTranscriptionStore"]
