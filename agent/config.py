from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_DATABASE_URL = "sqlite:///./tabletalk.db"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or default


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, resolved once at start-up.

    Only presence is checked, and only by the component that needs a value
    at call time (a missing API key fails the first model call, not boot).
    """

    database_url: str = DEFAULT_DATABASE_URL
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = DEFAULT_MODEL
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"
    tts_max_chars: int = 4096
    stream_timeout: float = 30.0
    max_messages: int = 100
    conversation_list_limit: int = 20
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        timeout = _env("CHAT_STREAM_TIMEOUT")
        return cls(
            database_url=_env("DATABASE_URL", DEFAULT_DATABASE_URL),
            openai_api_key=_env("OPENAI_API_KEY"),
            openai_base_url=_env("OPENAI_BASE_URL"),
            openai_model=_env("OPENAI_MODEL", DEFAULT_MODEL),
            tts_model=_env("OPENAI_TTS_MODEL", "tts-1"),
            tts_voice=_env("OPENAI_TTS_VOICE", "alloy"),
            stream_timeout=float(timeout) if timeout else 30.0,
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def api_base(self) -> str:
        return (self.openai_base_url or DEFAULT_BASE_URL).rstrip("/")


__all__ = ["Settings", "DEFAULT_MODEL", "DEFAULT_BASE_URL"]
