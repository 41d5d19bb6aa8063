"""Domain services for the TableTalk virtual host backend."""

from .conversations import ConversationRecord, ConversationStore
from .db import Base, init_db, make_engine, make_session_factory
from .restaurants import MenuItem, RestaurantContext, RestaurantStore
from .speech import OpenAISpeechSynthesizer, SpeechResult

__all__ = [
    "Base",
    "init_db",
    "make_engine",
    "make_session_factory",
    "ConversationRecord",
    "ConversationStore",
    "MenuItem",
    "RestaurantContext",
    "RestaurantStore",
    "OpenAISpeechSynthesizer",
    "SpeechResult",
]
