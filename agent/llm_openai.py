from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from .config import Settings
from .errors import ConfigurationError, UpstreamError
from .messages import ModelMessage

logger = logging.getLogger(__name__)


class OpenAIChatStream:
    """Thin wrapper for streamed Chat Completions.

    Configuration comes from the injected ``Settings``:
      - openai_api_key (required at call time)
      - openai_base_url (optional, for OpenAI-compatible gateways)
      - openai_model (default: gpt-4o-mini)
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.model = settings.openai_model
        self._client: Optional[AsyncOpenAI] = None

    @property
    def available(self) -> bool:
        return bool(self.settings.openai_api_key)

    def _get_client(self) -> AsyncOpenAI:
        if not self.available:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url or None,
            )
        return self._client

    async def stream(self, system: str, messages: Sequence[ModelMessage]) -> AsyncIterator[str]:
        """Yield reply text deltas as the provider produces them."""
        client = self._get_client()
        payload: List[dict] = [{"role": "system", "content": system}]
        payload.extend(m.to_openai() for m in messages)
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=payload,
                stream=True,
            )
        except openai.APIStatusError as exc:
            raise UpstreamError(_status_message(exc), status_code=exc.status_code) from exc
        except openai.APIConnectionError as exc:
            raise UpstreamError(f"Completion provider unreachable: {exc}") from exc

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except openai.APIStatusError as exc:
            raise UpstreamError(_status_message(exc), status_code=exc.status_code) from exc
        except openai.APIConnectionError as exc:
            raise UpstreamError(f"Completion stream interrupted: {exc}") from exc
        finally:
            await response.close()


def _status_message(exc: "openai.APIStatusError") -> str:
    body = exc.body
    if isinstance(body, dict):
        error = body.get("error")
        message = body.get("message") or (error.get("message") if isinstance(error, dict) else error)
        if message:
            return str(message)
    return exc.message


__all__ = ["OpenAIChatStream"]
