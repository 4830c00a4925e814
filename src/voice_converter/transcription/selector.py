"""Transcription source selection with a bounded, non-blocking wait.

Per file, the selector inspects Slack's native transcription state:

- complete: use the preview, upgraded to the full text when truncated
- processing: persist a PendingTranscription and schedule a recheck after a
  fixed delay, up to max_retries; afterwards proceed with what is available
- failed: fixed failure notice, no retry
- none: "no transcription" notice, or Google Speech-to-Text when enabled

Errors in either source degrade to a fixed notice so the pipeline always has
something to post. A failed Speech API comparison keeps a complete Slack
transcript.
"""

import logging
from typing import Literal

from voice_converter.cache.pending import PendingTranscriptionStore
from voice_converter.models.slack import TranscriptionState, VoiceFile
from voice_converter.models.transcription import (
    PendingTranscription,
    Transcript,
    TranscriptSource,
)
from voice_converter.scheduling import TaskQueue
from voice_converter.slack import messages
from voice_converter.slack.client import SlackClient
from voice_converter.transcription.speech import GoogleSpeechClient, SpeechRecognitionError

logger = logging.getLogger(__name__)

ExternalSpeechMode = Literal["off", "fallback", "always"]

# External text must be this much longer than Slack's to be preferred
EXTERNAL_PREFERENCE_RATIO = 1.2


def recheck_task_id(file_id: str) -> str:
    return f"recheck:{file_id}"


def normalize_transcript(transcript: Transcript) -> Transcript:
    """Replace empty or whitespace-only text with the nothing-to-transcribe notice."""
    text = transcript.text.strip()
    if not text:
        return Transcript(text=messages.NOTHING_TO_TRANSCRIBE, source=TranscriptSource.NOTICE)
    return Transcript(text=text, source=transcript.source)


def prefer_transcript(native: str, external: str) -> Transcript:
    """Choose between Slack's text and the Speech API's.

    The external text wins only when meaningfully longer. This is a heuristic,
    not a correctness guarantee.
    """
    if len(external.strip()) > EXTERNAL_PREFERENCE_RATIO * len(native.strip()):
        return Transcript(text=external, source=TranscriptSource.SPEECH_API)
    return Transcript(text=native, source=TranscriptSource.SLACK)


class TranscriptionSelector:
    """Produces the final transcript for a voice file."""

    def __init__(
        self,
        slack: SlackClient,
        queue: TaskQueue,
        pending: PendingTranscriptionStore,
        speech: GoogleSpeechClient | None = None,
        external_speech: ExternalSpeechMode = "off",
        recheck_delay: float = 10.0,
    ):
        self.slack = slack
        self.queue = queue
        self.pending = pending
        self.speech = speech
        self.external_speech = external_speech if speech is not None else "off"
        self.recheck_delay = recheck_delay

    async def acquire(
        self, voice_file: VoiceFile, pending: PendingTranscription
    ) -> Transcript | None:
        """First check for a file. Returns None when a recheck was scheduled instead."""
        if voice_file.transcription_state == TranscriptionState.PROCESSING:
            if voice_file.id in self.pending:
                logger.info("Recheck already pending for %s, not starting another", voice_file.id)
                return None
            if not pending.exhausted:
                self._wait(pending)
                return None
        return await self._finish(voice_file)

    async def recheck(
        self, voice_file: VoiceFile, pending: PendingTranscription
    ) -> Transcript | None:
        """A scheduled recheck. Advances the retry counter while still processing."""
        if voice_file.transcription_state == TranscriptionState.PROCESSING:
            if not pending.exhausted:
                self._wait(pending.next_attempt())
                return None
            logger.warning(
                "Transcription of %s still processing after %d rechecks, using best available",
                voice_file.id,
                pending.retry_count,
            )
        self.abandon(voice_file.id)
        return await self._finish(voice_file)

    def abandon(self, file_id: str) -> None:
        """End a file's recheck chain."""
        self.pending.delete(file_id)
        self.queue.cancel(recheck_task_id(file_id))

    def _wait(self, pending: PendingTranscription) -> None:
        self.pending.save(pending)
        self.queue.schedule(
            recheck_task_id(pending.file_id),
            self.recheck_delay,
            {"file_id": pending.file_id},
        )
        logger.info(
            "Transcription of %s still processing, recheck %d/%d in %.0fs",
            pending.file_id,
            pending.retry_count + 1,
            pending.max_retries,
            self.recheck_delay,
        )

    async def _finish(self, voice_file: VoiceFile) -> Transcript:
        try:
            transcript = await self._resolve(voice_file)
        except Exception:
            logger.exception("Transcription failed for %s", voice_file.id)
            transcript = Transcript(text=messages.TRANSCRIPTION_ERROR, source=TranscriptSource.NOTICE)
        return normalize_transcript(transcript)

    async def _resolve(self, voice_file: VoiceFile) -> Transcript:
        state = voice_file.transcription_state
        logger.info("Slack transcription state for %s: %s", voice_file.id, state.value)

        if state == TranscriptionState.COMPLETE:
            native = await self._native_text(voice_file)
            if self.external_speech == "always":
                try:
                    external = await self._external_text(voice_file)
                except Exception:
                    logger.warning(
                        "Speech API comparison failed for %s, using Slack transcript",
                        voice_file.id,
                        exc_info=True,
                    )
                    return Transcript(text=native, source=TranscriptSource.SLACK)
                return prefer_transcript(native, external)
            return Transcript(text=native, source=TranscriptSource.SLACK)

        if state == TranscriptionState.FAILED:
            return Transcript(text=messages.TRANSCRIPTION_FAILED, source=TranscriptSource.NOTICE)

        if self.external_speech != "off":
            return Transcript(
                text=await self._external_text(voice_file), source=TranscriptSource.SPEECH_API
            )

        if state == TranscriptionState.PROCESSING:
            return Transcript(text=messages.TRANSCRIPTION_PROCESSING, source=TranscriptSource.NOTICE)
        return Transcript(text=messages.NO_TRANSCRIPTION, source=TranscriptSource.NOTICE)

    async def _native_text(self, voice_file: VoiceFile) -> str:
        preview = voice_file.preview
        if preview is None or not preview.content:
            logger.info("Transcription of %s is complete but empty", voice_file.id)
            return ""
        if not preview.has_more:
            return preview.content

        full = await self.slack.get_full_transcription(voice_file.id)
        # the full-text lookup echoes the preview when Slack returns no full text
        if full and full.strip() != preview.content.strip():
            return full
        logger.warning("Full transcript unavailable for %s, posting truncated preview", voice_file.id)
        return preview.content + messages.TRUNCATED_MARKER

    async def _external_text(self, voice_file: VoiceFile) -> str:
        if not voice_file.url_private:
            raise SpeechRecognitionError(f"File {voice_file.id} has no download URL")
        audio = await self.slack.download_file(voice_file.url_private)
        if audio is None:
            raise SpeechRecognitionError(f"Could not download {voice_file.id}")
        return await self.speech.recognize(audio, voice_file.mimetype)
