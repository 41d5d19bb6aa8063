import asyncio

import pytest

from agent import ConversationOrchestrator, Settings
from backend.conversations import ConversationStore
from backend.db import init_db, make_engine, make_session_factory
from backend.restaurants import RestaurantStore
from backend.seed import create_restaurant


class FakeCompletions:
    """Stands in for OpenAIChatStream; records every call it receives."""

    def __init__(self, chunks=("Our special today is ", "Grilled Salmon."), delay=0.0, error=None):
        self.chunks = list(chunks)
        self.delay = delay
        self.error = error
        self.calls = []
        self.closed = False
        self.available = True
        self.model = "fake-model"

    async def stream(self, system, messages):
        self.calls.append((system, list(messages)))
        try:
            for chunk in self.chunks:
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield chunk
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


def collect(orchestrator, turn):
    """Drain ``orchestrator.stream(turn)`` and return the chunks."""

    async def run():
        return [chunk async for chunk in orchestrator.stream(turn)]

    return asyncio.run(run())


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'tabletalk.db'}")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def restaurant_id(session_factory):
    return create_restaurant(
        session_factory,
        name="TableTalk Bistro",
        address="123 Culinary Ave, Food City, FC 90210",
        phone="(555) 123-4567",
        hours={"Monday": "11:00 AM - 10:00 PM", "Tuesday": "11:00 AM - 10:00 PM"},
        menu=[
            {
                "name": "Grilled Salmon",
                "description": "Fresh Atlantic salmon with lemon butter sauce and asparagus.",
                "price": "24.00",
                "allergens": ["Fish", "Dairy"],
                "tags": ["Special"],
            }
        ],
        policy=["Greet guests warmly."],
    )


@pytest.fixture
def restaurants(session_factory):
    return RestaurantStore(session_factory)


@pytest.fixture
def conversations(session_factory):
    return ConversationStore(session_factory)


@pytest.fixture
def conversation_id(conversations, restaurant_id):
    return conversations.create(restaurant_id)


@pytest.fixture
def completions():
    return FakeCompletions()


@pytest.fixture
def settings():
    return Settings(openai_api_key="sk-test", stream_timeout=5.0)


@pytest.fixture
def orchestrator(restaurants, conversations, completions, settings):
    return ConversationOrchestrator(
        restaurants=restaurants,
        conversations=conversations,
        completions=completions,
        settings=settings,
    )
