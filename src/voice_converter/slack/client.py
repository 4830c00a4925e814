"""Thin async wrappers around the Slack Web API methods the pipeline uses.

Two AsyncWebClient instances are held: the bot token reads file and channel
info and posts messages; the privileged user token performs deletes, which
must come from the authoring user. Required user scopes: ``files:write`` for
files.delete, ``chat:write`` for chat.delete.

No method raises for API or transport failures. Errors are logged with their
Slack error code and converted to None/False so callers can apply their own
fallback policy.
"""

import logging

import aiohttp
import httpx
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from voice_converter.config import Credentials
from voice_converter.models.slack import VoiceFile

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (SlackClientError, aiohttp.ClientError, TimeoutError)

# Error codes that are expected in normal operation and only warrant a warning
_EXPECTED_DELETE_ERRORS = frozenset(
    {"cant_delete_file", "cant_delete_message", "file_not_found", "file_deleted", "message_not_found"}
)


def _error_code(exc: Exception) -> str:
    """Return the Slack error code carried by an exception, if any."""
    if isinstance(exc, SlackApiError) and exc.response is not None:
        return exc.response.get("error", "") or f"http_{exc.response.status_code}"
    return type(exc).__name__


class SlackClient:
    """Slack Web API calls for one workspace."""

    def __init__(
        self,
        bot_client: AsyncWebClient,
        privileged_client: AsyncWebClient,
        bot_token: str = "",
    ):
        self.bot = bot_client
        self.privileged = privileged_client
        self._bot_token = bot_token

    @classmethod
    def from_credentials(cls, credentials: Credentials) -> "SlackClient":
        return cls(
            bot_client=AsyncWebClient(token=credentials.bot_token),
            privileged_client=AsyncWebClient(token=credentials.privileged_token),
            bot_token=credentials.bot_token,
        )

    async def get_file_info(self, file_id: str) -> VoiceFile | None:
        """Fetch file metadata, including Slack's transcription status."""
        try:
            response = await self.bot.files_info(file=file_id)
        except _TRANSPORT_ERRORS as exc:
            logger.error("files.info failed for %s: %s", file_id, _error_code(exc))
            return None
        return VoiceFile.from_api(response["file"])

    async def get_full_transcription(self, file_id: str) -> str | None:
        """Re-fetch file info asking for the untruncated transcript.

        Falls back to the preview text when the full text is absent.
        """
        try:
            response = await self.bot.files_info(file=file_id, get_transcript="true")
        except _TRANSPORT_ERRORS as exc:
            logger.error("Full transcript fetch failed for %s: %s", file_id, _error_code(exc))
            return None

        voice_file = VoiceFile.from_api(response["file"])
        if voice_file.full_text:
            return voice_file.full_text
        if voice_file.preview and voice_file.preview.content:
            return voice_file.preview.content
        logger.warning("files.info returned no transcript for %s", file_id)
        return None

    async def get_channel_info(self, channel_id: str) -> dict | None:
        try:
            response = await self.bot.conversations_info(channel=channel_id)
        except _TRANSPORT_ERRORS as exc:
            logger.error("conversations.info failed for %s: %s", channel_id, _error_code(exc))
            return None
        return response["channel"]

    async def download_file(self, url: str) -> bytes | None:
        """Download a private file URL with the bot token."""
        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=httpx.Timeout(30.0),
            ) as client:
                response = await client.get(
                    url, headers={"Authorization": f"Bearer {self._bot_token}"}
                )
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as exc:
            logger.error("File download failed for %s: %s", url, exc)
            return None

    async def post_message(
        self, channel_id: str, text: str, blocks: list[dict] | None = None
    ) -> str | None:
        """Post a message as the bot. Returns the new message ts, or None on failure."""
        try:
            response = await self.bot.chat_postMessage(channel=channel_id, text=text, blocks=blocks)
        except _TRANSPORT_ERRORS as exc:
            logger.error("chat.postMessage failed in %s: %s", channel_id, _error_code(exc))
            return None
        return response.get("ts")

    async def delete_message(self, channel_id: str, timestamp: str) -> bool:
        """Delete a message using the privileged token."""
        try:
            await self.privileged.chat_delete(channel=channel_id, ts=timestamp)
        except _TRANSPORT_ERRORS as exc:
            self._log_delete_failure("message", f"{channel_id}/{timestamp}", exc)
            return False
        logger.info("Deleted message %s in %s", timestamp, channel_id)
        return True

    async def delete_file(self, file_id: str) -> bool:
        """Delete a file object using the privileged token."""
        try:
            await self.privileged.files_delete(file=file_id)
        except _TRANSPORT_ERRORS as exc:
            self._log_delete_failure("file", file_id, exc)
            return False
        logger.info("Deleted file %s", file_id)
        return True

    async def auth_test(self) -> dict[str, dict | None]:
        """Validate both tokens with auth.test. Returns identity per token, None if invalid."""
        results: dict[str, dict | None] = {}
        for label, client in (("bot", self.bot), ("privileged", self.privileged)):
            try:
                response = await client.auth_test()
            except _TRANSPORT_ERRORS as exc:
                logger.error("auth.test failed for %s token: %s", label, _error_code(exc))
                results[label] = None
                continue
            results[label] = {"team": response.get("team"), "user": response.get("user")}
        return results

    @staticmethod
    def _log_delete_failure(kind: str, target: str, exc: Exception) -> None:
        code = _error_code(exc)
        if code in _EXPECTED_DELETE_ERRORS:
            logger.warning("Could not delete %s %s (%s)", kind, target, code)
        else:
            logger.error("Failed to delete %s %s: %s", kind, target, code)
