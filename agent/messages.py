from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

MODEL_ROLES = ("user", "assistant")


class PartKind(str, Enum):
    TEXT = "text"
    REASONING = "reasoning"
    OTHER = "other"


@dataclass(frozen=True)
class MessagePart:
    kind: PartKind
    text: str = ""

    @classmethod
    def from_raw(cls, raw: Any) -> "MessagePart":
        if not isinstance(raw, dict):
            return cls(kind=PartKind.OTHER)
        try:
            kind = PartKind(raw.get("type"))
        except ValueError:
            return cls(kind=PartKind.OTHER)
        if kind is PartKind.OTHER:
            return cls(kind=PartKind.OTHER)
        text = raw.get("text")
        return cls(kind=kind, text=text if isinstance(text, str) else "")


@dataclass(frozen=True)
class ModelMessage:
    role: str
    content: str

    def to_openai(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


def extract_text(content: Optional[str], parts: Iterable[MessagePart]) -> str:
    """Flat content wins; otherwise join text parts in order.

    Reasoning and unknown parts never reach the model.
    """
    if content:
        return content
    return "".join(part.text for part in parts if part.kind is PartKind.TEXT)


def to_model_messages(messages: Sequence[Any]) -> List[ModelMessage]:
    """Keep user/assistant turns and flatten each one to plain text.

    ``messages`` are ``ChatMessage`` request models (anything exposing
    ``role``, ``content`` and ``typed_parts()``).
    """
    out: List[ModelMessage] = []
    for message in messages:
        if message.role not in MODEL_ROLES:
            continue
        out.append(ModelMessage(role=message.role, content=extract_text(message.content, message.typed_parts())))
    return out


def triggering_user_content(messages: Sequence[ModelMessage]) -> str:
    """Content of the final message when it is a user turn, else ``""``."""
    if messages and messages[-1].role == "user":
        return messages[-1].content
    return ""


__all__ = [
    "PartKind",
    "MessagePart",
    "ModelMessage",
    "extract_text",
    "to_model_messages",
    "triggering_user_content",
    "MODEL_ROLES",
]
