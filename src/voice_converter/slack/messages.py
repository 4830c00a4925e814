"""Block Kit builders and fixed notice texts for transcript messages."""

from voice_converter.models.transcription import Transcript, TranscriptSource

# Slack rejects section blocks whose text exceeds 3000 characters
SECTION_TEXT_LIMIT = 3000

HEADER = ":memo: *Voice memo transcription*"

NOTHING_TO_TRANSCRIBE = "There was nothing to transcribe in this voice memo."
TRANSCRIPTION_ERROR = "An error occurred while transcribing this voice memo."
TRANSCRIPTION_FAILED = "Slack could not transcribe this voice memo."
TRANSCRIPTION_PROCESSING = (
    "The transcription is still processing. "
    "It will be available on the file in Slack once it finishes."
)
NO_TRANSCRIPTION = "This voice memo has no transcription."
TRUNCATED_MARKER = " (truncated)"

_ATTRIBUTION = {
    TranscriptSource.SLACK: "Transcribed by Slack",
    TranscriptSource.SPEECH_API: "Transcribed by Google Cloud Speech-to-Text",
    TranscriptSource.NOTICE: "Slack Voice Converter",
}


def split_text(text: str, limit: int = SECTION_TEXT_LIMIT) -> list[str]:
    """Split text into chunks no longer than limit, preferring line then word breaks."""
    chunks: list[str] = []
    remaining = text
    while len(remaining) > limit:
        cut = remaining.rfind("\n", 0, limit)
        if cut <= 0:
            cut = remaining.rfind(" ", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(remaining[:cut].rstrip())
        remaining = remaining[cut:].lstrip()
    if remaining:
        chunks.append(remaining)
    return chunks


def build_transcript_blocks(transcript: Transcript) -> list[dict]:
    """Sections for the transcript body followed by an attribution footer."""
    blocks: list[dict] = [{"type": "section", "text": {"type": "mrkdwn", "text": HEADER}}]
    for chunk in split_text(transcript.text):
        blocks.append({"type": "section", "text": {"type": "plain_text", "text": chunk}})
    blocks.append(
        {
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": _ATTRIBUTION[transcript.source]}],
        }
    )
    return blocks


def build_fallback_text(transcript: Transcript) -> str:
    """Plain-text version shown in notifications and clients without Block Kit."""
    return f"{HEADER}\n{transcript.text}"
