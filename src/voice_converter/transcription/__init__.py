"""Transcript acquisition from Slack or Google Cloud Speech-to-Text."""

from voice_converter.transcription.selector import (
    TranscriptionSelector,
    normalize_transcript,
    prefer_transcript,
    recheck_task_id,
)
from voice_converter.transcription.speech import GoogleSpeechClient, SpeechRecognitionError

__all__ = [
    "GoogleSpeechClient",
    "SpeechRecognitionError",
    "TranscriptionSelector",
    "normalize_transcript",
    "prefer_transcript",
    "recheck_task_id",
]
