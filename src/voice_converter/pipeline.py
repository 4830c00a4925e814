"""Voice memo pipeline: channel filter, type check, transcription, post, cleanup.

The transcript is always posted before any cleanup, and a failed cleanup
never retracts it: "transcript posted, original survives" is preferred over
"transcript lost". Cleanup only runs when the posted text is a real
transcription, so a voice memo whose transcription failed is kept.
"""

import logging
from typing import Literal

from voice_converter.config import Credentials
from voice_converter.models.slack import InboundEvent, VoiceFile
from voice_converter.models.transcription import PendingTranscription, Transcript
from voice_converter.slack.client import SlackClient
from voice_converter.slack.files import is_audio_file
from voice_converter.slack.messages import build_fallback_text, build_transcript_blocks
from voice_converter.transcription.selector import TranscriptionSelector

logger = logging.getLogger(__name__)

CleanupTarget = Literal["file", "message", "none"]


class VoiceMemoPipeline:
    """End-to-end handling of one actionable file_share event."""

    def __init__(
        self,
        credentials: Credentials,
        slack: SlackClient,
        selector: TranscriptionSelector,
        cleanup_target: CleanupTarget = "file",
        max_retries: int = 6,
    ):
        self.credentials = credentials
        self.slack = slack
        self.selector = selector
        self.cleanup_target = cleanup_target
        self.max_retries = max_retries

    async def run(self, event: InboundEvent) -> None:
        """Process a voice memo event. Never raises."""
        try:
            await self._run(event)
        except Exception:
            logger.exception("Voice memo pipeline failed for message %s", event.timestamp)

    async def recheck(self, file_id: str) -> None:
        """Re-enter the transcription check for a pending file. Never raises."""
        try:
            await self._recheck(file_id)
        except Exception:
            logger.exception("Transcription recheck failed for %s", file_id)
            self.selector.abandon(file_id)

    async def handle_task(self, payload: dict) -> None:
        """TaskQueue handler for scheduled rechecks."""
        await self.recheck(payload["file_id"])

    async def _run(self, event: InboundEvent) -> None:
        file_ref = event.first_file
        if file_ref is None:
            logger.info("No file attached to message %s", event.timestamp)
            return

        if not await self._channel_matches(event.channel_id):
            return

        voice_file = await self.slack.get_file_info(file_ref.id)
        if voice_file is None:
            logger.error("Could not fetch file info for %s, giving up", file_ref.id)
            return

        if not is_audio_file(voice_file.filetype, voice_file.mimetype):
            logger.info(
                "File %s is not audio (filetype=%s, mimetype=%s)",
                voice_file.id,
                voice_file.filetype,
                voice_file.mimetype,
            )
            return

        pending = PendingTranscription(
            file_id=voice_file.id,
            channel_id=event.channel_id,
            timestamp=event.timestamp,
            max_retries=self.max_retries,
        )
        transcript = await self.selector.acquire(voice_file, pending)
        if transcript is None:
            return
        await self._deliver(voice_file, event.channel_id, event.timestamp, transcript)

    async def _recheck(self, file_id: str) -> None:
        pending = self.selector.pending.get(file_id)
        if pending is None:
            logger.warning("No pending transcription for %s, nothing to recheck", file_id)
            return

        logger.info(
            "Rechecking transcription of %s (attempt %d/%d)",
            file_id,
            pending.retry_count + 1,
            pending.max_retries,
        )
        voice_file = await self.slack.get_file_info(file_id)
        if voice_file is None:
            logger.error("File %s could not be refetched, ending recheck chain", file_id)
            self.selector.abandon(file_id)
            return

        transcript = await self.selector.recheck(voice_file, pending)
        if transcript is None:
            return
        await self._deliver(voice_file, pending.channel_id, pending.timestamp, transcript)

    async def _channel_matches(self, channel_id: str) -> bool:
        expected = self.credentials.channel_filter
        if not expected:
            return True

        channel = await self.slack.get_channel_info(channel_id)
        if channel is None:
            logger.warning("Channel %s could not be looked up, skipping", channel_id)
            return False

        name = channel.get("name")
        if name != expected:
            logger.info("Channel %s (%s) does not match %s, skipping", channel_id, name, expected)
            return False
        return True

    async def _deliver(
        self, voice_file: VoiceFile, channel_id: str, timestamp: str, transcript: Transcript
    ) -> None:
        posted = await self.slack.post_message(
            channel_id,
            build_fallback_text(transcript),
            blocks=build_transcript_blocks(transcript),
        )
        if posted is None:
            logger.error("Transcript for %s was not posted, keeping original", voice_file.id)
            return
        logger.info(
            "Posted %s transcript for %s to %s: %.80s",
            transcript.source.value,
            voice_file.id,
            channel_id,
            transcript.text,
        )

        if not transcript.has_content:
            logger.info("Keeping original voice memo %s, no transcript was obtained", voice_file.id)
            return
        await self._cleanup(voice_file.id, channel_id, timestamp)

    async def _cleanup(self, file_id: str, channel_id: str, timestamp: str) -> None:
        if self.cleanup_target == "file":
            deleted = await self.slack.delete_file(file_id)
        elif self.cleanup_target == "message":
            deleted = await self.slack.delete_message(channel_id, timestamp)
        else:
            return
        if not deleted:
            logger.warning(
                "Original voice memo %s survives, %s delete failed", file_id, self.cleanup_target
            )
