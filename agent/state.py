from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class TurnStage(str, Enum):
    RECEIVED = "received"
    LOADED = "loaded"
    ASSEMBLED = "assembled"
    STREAMING = "streaming"
    STREAMED = "streamed"
    PERSISTED = "persisted"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TurnState:
    """Request-scoped bookkeeping for one chat turn; never shared."""

    restaurant_id: str
    conversation_id: str
    stage: TurnStage = TurnStage.RECEIVED
    chunks: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def advance(self, stage: TurnStage) -> None:
        self.stage = stage

    def fail(self, message: str) -> None:
        self.stage = TurnStage.FAILED
        self.error = message

    def remember_chunk(self, chunk: str) -> None:
        self.chunks.append(chunk)

    @property
    def reply(self) -> str:
        return "".join(self.chunks)

    def as_log(self) -> Dict[str, object]:
        out: Dict[str, object] = {
            "restaurant": self.restaurant_id,
            "conversation": self.conversation_id,
            "stage": self.stage.value,
            "chars": sum(len(c) for c in self.chunks),
        }
        if self.error:
            out["error"] = self.error
        return out


__all__ = ["TurnStage", "TurnState"]
