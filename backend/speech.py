from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

import requests

from agent.config import Settings

logger = logging.getLogger(__name__)

OPENAI_TTS_VOICES = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")
_CHUNK_SIZE = 16 * 1024


@dataclass
class SpeechResult:
    chunks: Iterator[bytes] = field(default_factory=lambda: iter(()))
    content_type: str = "audio/mpeg"
    status: int = 200
    error: Optional[str] = None


class OpenAISpeechSynthesizer:
    """Thin proxy to the OpenAI-compatible ``/audio/speech`` endpoint.

    Upstream failures are returned, not raised: the result carries the
    provider's status and error message verbatim so the API can relay them.
    """

    def __init__(self, settings: Settings, timeout: float = 30.0) -> None:
        self.settings = settings
        self.timeout = timeout
        voice = (settings.tts_voice or "").strip()
        self.voice = voice if voice in OPENAI_TTS_VOICES else "alloy"
        self.model = settings.tts_model or "tts-1"

    @property
    def available(self) -> bool:
        return bool(self.settings.openai_api_key)

    def synthesize(self, text: str) -> SpeechResult:
        if not self.available:
            return SpeechResult(status=500, error="OpenAI API Key is missing")
        try:
            resp = requests.post(
                f"{self.settings.api_base}/audio/speech",
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.settings.openai_api_key}",
                },
                json={
                    "model": self.model,
                    "input": text[: self.settings.tts_max_chars],
                    "voice": self.voice,
                    "response_format": "mp3",
                },
                stream=True,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("TTS request failed: %s", exc)
            return SpeechResult(status=502, error=str(exc))

        if not resp.ok:
            message = _error_message(resp)
            resp.close()
            logger.warning("TTS provider returned %s: %s", resp.status_code, message)
            return SpeechResult(status=resp.status_code, error=message)

        return SpeechResult(chunks=_iter_body(resp), content_type="audio/mpeg")


def _error_message(resp: requests.Response) -> str:
    raw = resp.text
    try:
        payload = resp.json()
    except ValueError:
        return raw
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return raw


def _iter_body(resp: requests.Response) -> Iterator[bytes]:
    try:
        for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
            if chunk:
                yield chunk
    finally:
        resp.close()


__all__ = ["OpenAISpeechSynthesizer", "SpeechResult", "OPENAI_TTS_VOICES"]
