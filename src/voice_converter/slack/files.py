"""Audio file detection for Slack file attachments."""

import re

AUDIO_FILETYPES = frozenset({"m4a", "mp3", "mp4", "wav", "mpeg", "ogg", "aac"})

# audio/*, video/* (voice clips recorded on mobile arrive as video/mp4), or *mp4
_AUDIO_MIMETYPE = re.compile(r"^audio/|^video/|mp4$")


def is_audio_file(filetype: str | None, mimetype: str | None) -> bool:
    """Return True if the Slack filetype or mimetype identifies audio.

    Either signal is sufficient. A file with neither is not audio.
    """
    if filetype and filetype.lower() in AUDIO_FILETYPES:
        return True
    if mimetype and _AUDIO_MIMETYPE.search(mimetype.lower()):
        return True
    return False
