"""Slack event classification, dedup, and dispatch to the voice memo pipeline."""

import logging

from fastapi import BackgroundTasks

from voice_converter.config import ConfigurationError
from voice_converter.models.slack import EventKind, InboundEvent
from voice_converter.services import get_dedup_cache, get_pipeline
from voice_converter.slack.files import is_audio_file

logger = logging.getLogger(__name__)

# Status bodies returned to Slack. Informational only; Slack never parses them.
NO_EVENT = "No event data"
FILE_SHARED_RECEIVED = "File shared event received"
UNSUPPORTED_EVENT = "Unsupported event type"
NO_FILE = "No file information"
NOT_AUDIO = "Not an audio file"
DUPLICATE = "Duplicate event"
PROCESSING = "Processing voice memo"
ERROR = "Error processing event"


def handle_slack_event(payload: dict, background_tasks: BackgroundTasks) -> str:
    """Classify a webhook payload and return the plain-text response body.

    - url_verification: the challenge token, verbatim
    - file_shared: acknowledged only; the message/file_share event for the
      same file arrives separately and is the one processed
    - message/file_share with audio: dedup, then the pipeline in the background
    - anything else: acknowledged

    Never raises; Slack redelivers aggressively on anything but a 200.
    """
    try:
        event = InboundEvent.from_payload(payload)
        if event is None:
            logger.info("Payload carries no event (type=%s)", payload.get("type"))
            return NO_EVENT

        if event.kind == EventKind.URL_VERIFICATION:
            logger.info("Answering URL verification challenge")
            return event.challenge or ""

        if event.kind == EventKind.FILE_SHARED:
            logger.info("file_shared notice for %s acknowledged", _file_ids(event))
            return FILE_SHARED_RECEIVED

        if event.kind == EventKind.FILE_SHARE:
            return handle_file_share(event, background_tasks)

        logger.info("Ignoring event type=%s subtype=%s", event.event_type, event.subtype)
        return UNSUPPORTED_EVENT
    except Exception:
        logger.exception("Failed to handle Slack event")
        return ERROR


def handle_file_share(event: InboundEvent, background_tasks: BackgroundTasks) -> str:
    """Filter a message/file_share event and dispatch it once per dedup key."""
    file_ref = event.first_file
    if file_ref is None:
        logger.info("file_share message %s has no files", event.timestamp)
        return NO_FILE

    # Slack sometimes omits metadata (file_access=check_file_info); the
    # pipeline checks the type again against files.info
    if (file_ref.filetype or file_ref.mimetype) and not is_audio_file(
        file_ref.filetype, file_ref.mimetype
    ):
        logger.info("File %s is not audio: %s", file_ref.id, file_ref.filetype or file_ref.mimetype)
        return NOT_AUDIO

    dedup = get_dedup_cache()
    if dedup.check_and_mark(dedup.key(event)):
        return DUPLICATE

    logger.info(
        "Dispatching voice memo %s from user %s in channel %s",
        file_ref.id,
        event.user_id,
        event.channel_id,
    )
    background_tasks.add_task(process_voice_memo, event)
    return PROCESSING


async def process_voice_memo(event: InboundEvent) -> None:
    """Background entry: load credentials and run the pipeline.

    Missing credentials are fatal for the invocation and nothing else runs.
    """
    try:
        pipeline = get_pipeline()
    except ConfigurationError as exc:
        logger.error("Cannot process voice memo: %s", exc)
        return
    await pipeline.run(event)


def _file_ids(event: InboundEvent) -> str:
    return ",".join(ref.id for ref in event.file_refs) or "unknown file"
