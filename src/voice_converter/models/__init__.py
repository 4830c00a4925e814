"""Data models for the voice memo pipeline."""

from voice_converter.models.slack import (
    EventKind,
    FileRef,
    InboundEvent,
    TranscriptionState,
    TranscriptPreview,
    VoiceFile,
)
from voice_converter.models.transcription import (
    PendingTranscription,
    Transcript,
    TranscriptSource,
)

__all__ = [
    "EventKind",
    "FileRef",
    "InboundEvent",
    "TranscriptionState",
    "TranscriptPreview",
    "VoiceFile",
    "PendingTranscription",
    "Transcript",
    "TranscriptSource",
]
