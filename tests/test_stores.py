import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from agent.errors import NotFoundError, PersistenceError
from backend.models import Message, PolicyVersion
from backend.seed import DEMO_RESTAURANT, create_restaurant, seed_demo


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------
def test_create_requires_existing_restaurant(conversations):
    with pytest.raises(NotFoundError):
        conversations.create("nope")


def test_list_recent_is_newest_first_and_bounded(conversations, restaurant_id):
    ids = []
    for _ in range(3):
        ids.append(conversations.create(restaurant_id))
        time.sleep(0.01)

    listed = conversations.list_recent(restaurant_id, limit=2)

    assert [c.id for c in listed] == [ids[2], ids[1]]
    assert listed[0].to_api()["title"] == "New Chat"


def test_get_owned_checks_restaurant(conversations, session_factory, restaurant_id, conversation_id):
    other_id = create_restaurant(session_factory, name="Other Place")

    assert conversations.get_owned(conversation_id, restaurant_id).id == conversation_id
    assert conversations.get_owned(conversation_id, other_id) is None
    assert conversations.get_owned("missing", restaurant_id) is None


def test_append_turn_writes_both_rows(conversations, conversation_id, session_factory):
    conversations.append_turn(conversation_id, "Hi", "Hello!", score_total=100, evaluation={"score": 100})

    assert conversations.history(conversation_id) == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
    ]
    with session_factory() as session:
        assistant = session.query(Message).filter(Message.role == "assistant").one()
        assert json.loads(assistant.eval_json) == {"score": 100}


def test_rows_are_stamped_in_naive_utc(conversations, conversation_id, session_factory):
    conversations.append_turn(conversation_id, "Hi", "Hello!", score_total=100, evaluation={})

    with session_factory() as session:
        stamp = session.query(Message).filter(Message.conversation_id == conversation_id).first().created_at

    assert stamp.tzinfo is None
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    assert now - timedelta(minutes=1) < stamp <= now


def test_append_turn_rolls_back_when_second_insert_fails(conversations, conversation_id, session_factory):
    # assistant content is NOT NULL, so the second insert fails after the first flushed
    with pytest.raises(PersistenceError):
        conversations.append_turn(conversation_id, "Hi", None)

    with session_factory() as session:
        assert session.query(Message).count() == 0
    assert conversations.history(conversation_id) == []


# ---------------------------------------------------------------------------
# Restaurants
# ---------------------------------------------------------------------------
def test_load_context_snapshot(restaurants, restaurant_id):
    context = restaurants.load_context(restaurant_id)

    assert context.name == "TableTalk Bistro"
    assert list(context.hours) == ["Monday", "Tuesday"]
    assert context.active_policy == ("Greet guests warmly.",)
    salmon = context.menu[0]
    assert salmon.name == "Grilled Salmon"
    assert f"{salmon.price:.2f}" == "24.00"
    assert salmon.allergens == frozenset({"Fish", "Dairy"})


def test_highest_active_policy_version_wins(restaurants, restaurant_id, session_factory):
    with session_factory() as session:
        session.add_all(
            [
                PolicyVersion(restaurant_id=restaurant_id, version=2, policy_json=json.dumps(["v2 rule"]), is_active=True),
                PolicyVersion(restaurant_id=restaurant_id, version=3, policy_json=json.dumps(["draft"]), is_active=False),
            ]
        )
        session.commit()

    assert restaurants.load_context(restaurant_id).active_policy == ("v2 rule",)


def test_restaurant_without_policy_or_menu(restaurants, session_factory):
    bare_id = create_restaurant(session_factory, name="Bare Bones")
    context = restaurants.load_context(bare_id)

    assert context.active_policy == ()
    assert context.menu == ()
    assert dict(context.hours) == {}


def test_missing_restaurant_is_none(restaurants):
    assert restaurants.load_context("missing") is None


def test_negative_price_is_rejected(session_factory):
    with pytest.raises(ValueError):
        create_restaurant(session_factory, name="Bad", menu=[{"name": "Refund", "price": "-1"}])


def test_seed_demo_is_first_restaurant(restaurants, session_factory):
    restaurant_id = seed_demo(session_factory)
    context = restaurants.first()

    assert context.id == restaurant_id
    assert [item.name for item in context.menu] == [item["name"] for item in DEMO_RESTAURANT["menu"]]
    assert len(context.active_policy) == 5
