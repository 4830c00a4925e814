"""Google Cloud Speech-to-Text client using a service-account JWT exchange.

The service account's private key signs an RS256 assertion (one-hour expiry,
audience = token endpoint, cloud-platform scope) that is exchanged for a
bearer token at the OAuth2 token endpoint. The token is cached until shortly
before it expires. Recognition uses the synchronous ``speech:recognize``
method with inline base64 audio, so it only suits short voice memos.
"""

import base64
import json
import logging
import time

import httpx
from google.auth import crypt, jwt

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
RECOGNIZE_URL = "https://speech.googleapis.com/v1p1beta1/speech:recognize"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

ASSERTION_LIFETIME = 3600
# Refresh this many seconds before the access token expires
_TOKEN_EXPIRY_MARGIN = 60

# Container formats Speech-to-Text can decode; others are left to auto-detection
_ENCODINGS = {
    "audio/ogg": "OGG_OPUS",
    "audio/opus": "OGG_OPUS",
    "audio/webm": "WEBM_OPUS",
    "audio/mpeg": "MP3",
    "audio/mp3": "MP3",
    "audio/flac": "FLAC",
    "audio/x-flac": "FLAC",
}


class SpeechRecognitionError(Exception):
    """Raised when the token exchange or the recognize call fails."""


def select_best_transcript(response: dict) -> str:
    """Join the highest-confidence alternative of each recognition result.

    Alternatives without a confidence score rank below scored ones.
    """
    parts = []
    for result in response.get("results", []):
        alternatives = result.get("alternatives") or []
        if not alternatives:
            continue
        best = max(alternatives, key=lambda alt: alt.get("confidence", 0.0))
        transcript = best.get("transcript", "").strip()
        if transcript:
            parts.append(transcript)
    return " ".join(parts)


class GoogleSpeechClient:
    """Transcribes audio bytes with Google Cloud Speech-to-Text."""

    def __init__(
        self,
        service_account_info: dict,
        language_code: str = "ja-JP",
        alternative_language_codes: list[str] | None = None,
        timeout: float = 60.0,
    ):
        self._info = service_account_info
        self.language_code = language_code
        self.alternative_language_codes = alternative_language_codes or []
        self._timeout = timeout
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_json(cls, raw: str, **kwargs) -> "GoogleSpeechClient":
        """Build from the service-account JSON blob stored in settings."""
        try:
            info = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SpeechRecognitionError("Service account JSON is not valid JSON") from exc
        return cls(info, **kwargs)

    def build_assertion(self, now: int | None = None) -> str:
        """Sign the JWT assertion presented to the token endpoint."""
        now = int(time.time()) if now is None else now
        email = self._info.get("client_email")
        if not email or not self._info.get("private_key"):
            raise SpeechRecognitionError("Service account is missing client_email or private_key")

        signer = crypt.RSASigner.from_service_account_info(self._info)
        payload = {
            "iss": email,
            "sub": email,
            "aud": TOKEN_URI,
            "iat": now,
            "exp": now + ASSERTION_LIFETIME,
            "scope": CLOUD_PLATFORM_SCOPE,
        }
        return jwt.encode(signer, payload).decode("utf-8")

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        """Return a cached bearer token, exchanging a fresh assertion when needed."""
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token

        response = await client.post(
            TOKEN_URI,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": self.build_assertion()},
        )
        if response.status_code != 200:
            raise SpeechRecognitionError(
                f"Token exchange failed with status {response.status_code}: {response.text[:200]}"
            )
        data = response.json()
        token = data.get("access_token")
        if not token:
            raise SpeechRecognitionError("Token endpoint returned no access_token")

        self._access_token = token
        expires_in = int(data.get("expires_in", ASSERTION_LIFETIME))
        self._token_expires_at = time.time() + expires_in - _TOKEN_EXPIRY_MARGIN
        return token

    def build_request(self, audio: bytes, mimetype: str | None = None) -> dict:
        config: dict = {
            "languageCode": self.language_code,
            "enableAutomaticPunctuation": True,
            "model": "default",
        }
        if self.alternative_language_codes:
            config["alternativeLanguageCodes"] = self.alternative_language_codes
        encoding = _ENCODINGS.get((mimetype or "").lower())
        if encoding:
            config["encoding"] = encoding
        return {
            "config": config,
            "audio": {"content": base64.b64encode(audio).decode("ascii")},
        }

    async def recognize(self, audio: bytes, mimetype: str | None = None) -> str:
        """Transcribe audio and return the concatenated best transcript.

        Raises:
            SpeechRecognitionError: On token, transport, or API failures.
        """
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                token = await self.get_access_token(client)
                response = await client.post(
                    RECOGNIZE_URL,
                    json=self.build_request(audio, mimetype),
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as exc:
            raise SpeechRecognitionError(f"Speech API request failed: {exc}") from exc

        if response.status_code != 200:
            raise SpeechRecognitionError(
                f"Speech API returned {response.status_code}: {response.text[:200]}"
            )

        transcript = select_best_transcript(response.json())
        logger.info("Speech API returned %d characters", len(transcript))
        return transcript
