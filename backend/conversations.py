from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from agent.errors import NotFoundError, PersistenceError

from .db import SessionFactory
from .models import Conversation, Message, Restaurant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationRecord:
    id: str
    restaurant_id: str
    title: str
    created_at: datetime

    def to_api(self) -> Dict[str, object]:
        return {"id": self.id, "title": self.title, "createdAt": self.created_at.isoformat() + "Z"}

    @classmethod
    def from_row(cls, row: Conversation) -> "ConversationRecord":
        return cls(id=row.id, restaurant_id=row.restaurant_id, title=row.title, created_at=row.created_at)


class ConversationStore:
    """Conversations and their append-only message log."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    def create(self, restaurant_id: str, title: str = "New Chat") -> str:
        with self._session_factory() as session:
            if session.get(Restaurant, restaurant_id) is None:
                raise NotFoundError("Restaurant not found")
            conversation = Conversation(restaurant_id=restaurant_id, title=title)
            session.add(conversation)
            session.commit()
            logger.info("Created conversation %s for restaurant %s", conversation.id, restaurant_id)
            return conversation.id

    def list_recent(self, restaurant_id: str, limit: int = 20) -> List[ConversationRecord]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(Conversation)
                .where(Conversation.restaurant_id == restaurant_id)
                .order_by(Conversation.created_at.desc())
                .limit(limit)
            ).all()
            return [ConversationRecord.from_row(row) for row in rows]

    def get_owned(self, conversation_id: str, restaurant_id: str) -> Optional[ConversationRecord]:
        """Return the conversation only when it belongs to ``restaurant_id``."""
        with self._session_factory() as session:
            row = session.scalars(
                select(Conversation).where(
                    Conversation.id == conversation_id,
                    Conversation.restaurant_id == restaurant_id,
                )
            ).first()
            return ConversationRecord.from_row(row) if row else None

    def history(self, conversation_id: str) -> List[Dict[str, str]]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at, Message.id)
            ).all()
            return [{"role": row.role, "content": row.content} for row in rows]

    # ------------------------------------------------------------------
    def append_turn(
        self,
        conversation_id: str,
        user_content: str,
        assistant_content: str,
        *,
        score_total: Optional[int] = None,
        evaluation: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Insert the user row and the assistant row in one transaction.

        Either both rows are committed or neither is.
        """
        session = self._session_factory()
        try:
            with session.begin():
                session.add(Message(conversation_id=conversation_id, role="user", content=user_content))
                session.flush()
                session.add(
                    Message(
                        conversation_id=conversation_id,
                        role="assistant",
                        content=assistant_content,
                        score_total=score_total,
                        eval_json=json.dumps(evaluation) if evaluation is not None else None,
                    )
                )
                session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save messages: {exc}") from exc
        finally:
            session.close()


__all__ = ["ConversationRecord", "ConversationStore"]
