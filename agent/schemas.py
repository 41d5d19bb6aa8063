from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .messages import MessagePart

MAX_MESSAGES = 100

ModelT = TypeVar("ModelT", bound=BaseModel)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system", "data"]
    content: Optional[str] = None
    parts: List[Any] = Field(default_factory=list)

    def typed_parts(self) -> List[MessagePart]:
        return [MessagePart.from_raw(part) for part in self.parts]


class TurnRequest(BaseModel):
    restaurantId: str = Field(min_length=1)
    conversationId: str = Field(min_length=1)
    messages: List[ChatMessage] = Field(min_length=1)

    @field_validator("messages")
    @classmethod
    def _cap_transcript(cls, value: List[ChatMessage], info: ValidationInfo) -> List[ChatMessage]:
        limit = (info.context or {}).get("max_messages", MAX_MESSAGES)
        if len(value) > limit:
            raise ValueError(f"at most {limit} messages are allowed, got {len(value)}")
        return value


def _violations(exc: PydanticValidationError) -> List[Dict[str, str]]:
    out: List[Dict[str, str]] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc") or ()) or "body"
        out.append({"field": loc, "message": err.get("msg", "invalid value")})
    return out


class CreateConversationBody(BaseModel):
    restaurantId: str = Field(min_length=1)


def validate_payload(model: Type[ModelT], payload: Any, context: Optional[Dict[str, Any]] = None) -> ModelT:
    """Validate ``payload`` against ``model``, raising our ValidationError."""
    try:
        return model.model_validate(payload, context=context)
    except PydanticValidationError as exc:
        raise ValidationError(_violations(exc)) from exc


def parse_turn_request(payload: Any, max_messages: int = MAX_MESSAGES) -> TurnRequest:
    return validate_payload(TurnRequest, payload, context={"max_messages": max_messages})


__all__ = [
    "ChatMessage",
    "TurnRequest",
    "CreateConversationBody",
    "validate_payload",
    "parse_turn_request",
    "MAX_MESSAGES",
]
