"""Lazily built process-wide components.

Follows the cached-singleton pattern of the Slack client: each accessor
builds its component on first call from settings, and ``reset_services``
clears everything for tests. The pipeline is only built once credentials
validate, so a misconfigured deployment fails on every invocation rather
than once at import.
"""

import logging

from voice_converter.cache.dedup import DedupCache
from voice_converter.cache.pending import PendingTranscriptionStore
from voice_converter.config import get_settings, load_credentials
from voice_converter.pipeline import VoiceMemoPipeline
from voice_converter.scheduling import AsyncioTaskQueue
from voice_converter.slack.client import SlackClient
from voice_converter.transcription.selector import TranscriptionSelector
from voice_converter.transcription.speech import GoogleSpeechClient, SpeechRecognitionError

logger = logging.getLogger(__name__)

_dedup_cache: DedupCache | None = None
_pending_store: PendingTranscriptionStore | None = None
_task_queue: AsyncioTaskQueue | None = None
_pipeline: VoiceMemoPipeline | None = None


def get_dedup_cache() -> DedupCache:
    global _dedup_cache
    if _dedup_cache is None:
        _dedup_cache = DedupCache(ttl_seconds=get_settings().dedup_ttl_seconds)
    return _dedup_cache


def get_pending_store() -> PendingTranscriptionStore:
    """Pending records outlive the whole recheck chain plus one delay of slack."""
    global _pending_store
    if _pending_store is None:
        settings = get_settings()
        ttl = settings.recheck_delay_seconds * (settings.max_rechecks + 2)
        _pending_store = PendingTranscriptionStore(ttl_seconds=ttl)
    return _pending_store


def get_task_queue() -> AsyncioTaskQueue:
    global _task_queue
    if _task_queue is None:
        _task_queue = AsyncioTaskQueue()
    return _task_queue


def get_pipeline() -> VoiceMemoPipeline:
    """Return the voice memo pipeline, building it on first call.

    Raises:
        ConfigurationError: If the Slack tokens are not configured.
    """
    global _pipeline
    if _pipeline is None:
        settings = get_settings()
        credentials = load_credentials(settings)
        slack = SlackClient.from_credentials(credentials)

        speech = None
        if settings.external_speech != "off":
            if settings.google_service_account_json:
                try:
                    speech = GoogleSpeechClient.from_json(
                        settings.google_service_account_json,
                        language_code=settings.speech_language_code,
                        alternative_language_codes=settings.speech_alternative_language_codes,
                    )
                except SpeechRecognitionError:
                    logger.error("Service account JSON is invalid, using Slack only", exc_info=True)
            else:
                logger.warning(
                    "EXTERNAL_SPEECH=%s but no service account is configured, using Slack only",
                    settings.external_speech,
                )

        queue = get_task_queue()
        selector = TranscriptionSelector(
            slack=slack,
            queue=queue,
            pending=get_pending_store(),
            speech=speech,
            external_speech=settings.external_speech,
            recheck_delay=settings.recheck_delay_seconds,
        )
        _pipeline = VoiceMemoPipeline(
            credentials=credentials,
            slack=slack,
            selector=selector,
            cleanup_target=settings.cleanup_target,
            max_retries=settings.max_rechecks,
        )
        queue.register_handler(_pipeline.handle_task)
    return _pipeline


def clear_state() -> dict:
    """Drop dedup markers and pending records and cancel scheduled rechecks."""
    get_dedup_cache().clear()
    get_pending_store().clear()
    cancelled = get_task_queue().cancel_all()
    logger.info("Cleared event cache and %d scheduled recheck(s)", cancelled)
    return {"status": "cleared", "cancelled_rechecks": cancelled}


def reset_services() -> None:
    """Reset every cached component. Used for testing."""
    global _dedup_cache, _pending_store, _task_queue, _pipeline
    if _task_queue is not None:
        _task_queue.cancel_all()
    _dedup_cache = None
    _pending_store = None
    _task_queue = None
    _pipeline = None
