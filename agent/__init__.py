from __future__ import annotations

import logging
from typing import Optional

from .config import Settings
from .core import ConversationOrchestrator, PreparedTurn
from .llm_openai import OpenAIChatStream

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Optional[Settings] = None) -> ConversationOrchestrator:
    # backend imports agent.errors, so the stores are imported here
    from backend.conversations import ConversationStore
    from backend.db import init_db, make_engine, make_session_factory
    from backend.restaurants import RestaurantStore

    settings = settings or Settings.from_env()
    engine = make_engine(settings.database_url)
    init_db(engine)
    session_factory = make_session_factory(engine)

    completions = OpenAIChatStream(settings)
    logger.info(
        "Completion client configured: %s",
        {
            "available": completions.available,
            "model": completions.model,
            "base_url": settings.openai_base_url or "default",
        },
    )
    return ConversationOrchestrator(
        restaurants=RestaurantStore(session_factory),
        conversations=ConversationStore(session_factory),
        completions=completions,
        settings=settings,
    )


__all__ = ["build_orchestrator", "ConversationOrchestrator", "PreparedTurn", "Settings"]
