"""Transcription results and the state carried across delayed rechecks."""

from enum import Enum

from pydantic import BaseModel


class TranscriptSource(str, Enum):
    """Where a transcript came from."""

    SLACK = "slack"
    SPEECH_API = "speech_api"
    NOTICE = "notice"  # a fixed status message, not a real transcript


class Transcript(BaseModel):
    """Final text to post, with its provenance."""

    text: str
    source: TranscriptSource

    @property
    def has_content(self) -> bool:
        """True when the text is an actual transcription rather than a notice."""
        return self.source != TranscriptSource.NOTICE


class PendingTranscription(BaseModel):
    """A bounded wait for Slack's native transcription of one file.

    retry_count never exceeds max_retries while a recheck is scheduled.
    """

    file_id: str
    channel_id: str
    timestamp: str
    retry_count: int = 0
    max_retries: int = 6

    @property
    def exhausted(self) -> bool:
        return self.retry_count >= self.max_retries

    def next_attempt(self) -> "PendingTranscription":
        """Return a copy with the retry counter advanced by one."""
        return self.model_copy(update={"retry_count": self.retry_count + 1})
