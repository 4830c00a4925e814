"""Slack webhook event and file metadata models."""

from enum import Enum

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    """How an inbound webhook payload is classified."""

    URL_VERIFICATION = "url_verification"
    FILE_SHARED = "file_shared"  # preliminary notice, never processed
    FILE_SHARE = "file_share"  # message/file_share, the actionable case
    OTHER = "other"


class FileRef(BaseModel):
    """A file attached to a message event, as Slack inlines it in the payload."""

    id: str
    filetype: str | None = None
    mimetype: str | None = None
    url_private: str | None = None
    file_access: str | None = None  # "check_file_info" when Slack omits metadata


class InboundEvent(BaseModel):
    """A parsed webhook body. Built once per request and never persisted."""

    kind: EventKind
    event_type: str | None = None
    subtype: str | None = None
    channel_id: str = ""
    user_id: str = ""
    timestamp: str = ""  # Slack message ts, kept opaque
    file_refs: list[FileRef] = Field(default_factory=list)
    event_id: str | None = None
    challenge: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "InboundEvent | None":
        """Classify a raw webhook payload.

        Returns None when the payload carries neither a handshake nor an event.
        """
        if payload.get("type") == "url_verification":
            return cls(kind=EventKind.URL_VERIFICATION, challenge=payload.get("challenge", ""))

        event = payload.get("event")
        if not event:
            return None

        event_type = event.get("type")
        subtype = event.get("subtype")
        if event_type == "file_shared":
            kind = EventKind.FILE_SHARED
        elif event_type == "message" and subtype == "file_share":
            kind = EventKind.FILE_SHARE
        else:
            kind = EventKind.OTHER

        files = event.get("files") or []
        if not files and (event.get("file_id") or event.get("file")):
            # file_shared notices carry a bare id instead of a files list
            files = [{"id": event.get("file_id") or event["file"].get("id", "")}]

        return cls(
            kind=kind,
            event_type=event_type,
            subtype=subtype,
            channel_id=event.get("channel") or event.get("channel_id") or "",
            user_id=event.get("user") or event.get("user_id") or "",
            timestamp=event.get("ts") or event.get("event_ts") or "",
            file_refs=[FileRef.model_validate(f) for f in files if f.get("id")],
            event_id=payload.get("event_id"),
        )

    @property
    def first_file(self) -> FileRef | None:
        """The first attached file, in the order Slack attached them."""
        return self.file_refs[0] if self.file_refs else None


class TranscriptionState(str, Enum):
    """Slack's native transcription status for a file."""

    NONE = "none"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"


class TranscriptPreview(BaseModel):
    """Possibly truncated transcript text returned by files.info."""

    content: str = ""
    has_more: bool = False


class VoiceFile(BaseModel):
    """Slack's metadata for an uploaded file, fetched fresh per invocation."""

    id: str
    name: str | None = None
    filetype: str | None = None
    mimetype: str | None = None
    url_private: str | None = None  # auth-required download URL
    transcription_state: TranscriptionState = TranscriptionState.NONE
    preview: TranscriptPreview | None = None  # meaningful only when complete
    full_text: str | None = None

    @classmethod
    def from_api(cls, file: dict) -> "VoiceFile":
        """Build from the `file` object of a files.info response."""
        transcription = file.get("transcription") or {}
        try:
            state = TranscriptionState(transcription.get("status") or "none")
        except ValueError:
            state = TranscriptionState.NONE

        preview = transcription.get("preview")
        full = transcription.get("full") or {}
        return cls(
            id=file["id"],
            name=file.get("name"),
            filetype=file.get("filetype"),
            mimetype=file.get("mimetype"),
            url_private=file.get("url_private_download") or file.get("url_private"),
            transcription_state=state,
            preview=TranscriptPreview(
                content=preview.get("content") or "",
                has_more=bool(preview.get("has_more")),
            )
            if preview
            else None,
            full_text=full.get("content"),
        )
