from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .db import Base


def _uuid() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    # stored naive, in UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(32), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    address = Column(String(300), nullable=False, default="")
    phone = Column(String(50), nullable=False, default="")

    # weekday -> free-text range, JSON object (key order is display order)
    hours_json = Column(Text, nullable=True)
    # flat rule list kept on the profile; the prompt reads policy_versions
    policies_json = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    menu_items = relationship(
        "MenuItemRow", back_populates="restaurant", order_by="MenuItemRow.position", cascade="all, delete-orphan"
    )
    policy_versions = relationship("PolicyVersion", back_populates="restaurant", cascade="all, delete-orphan")
    conversations = relationship("Conversation", back_populates="restaurant", cascade="all, delete-orphan")


class MenuItemRow(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), index=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False, default=0)
    allergens_json = Column(Text, nullable=False, default="[]")
    tags_json = Column(Text, nullable=False, default="[]")
    position = Column(Integer, nullable=False, default=0)

    restaurant = relationship("Restaurant", back_populates="menu_items")


class PolicyVersion(Base):
    __tablename__ = "policy_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), index=True, nullable=False)
    version = Column(Integer, nullable=False)
    policy_json = Column(Text, nullable=False, default="[]")
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    restaurant = relationship("Restaurant", back_populates="policy_versions")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(32), primary_key=True, default=_uuid)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), index=True, nullable=False)
    title = Column(String(200), nullable=False, default="New Chat")
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    restaurant = relationship("Restaurant", back_populates="conversations")
    messages = relationship(
        "Message", back_populates="conversation", order_by="[Message.created_at, Message.id]", cascade="all, delete-orphan"
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String(32), ForeignKey("conversations.id"), index=True, nullable=False)
    role = Column(String(16), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    score_total = Column(Integer, nullable=True)
    eval_json = Column(Text, nullable=True)

    conversation = relationship("Conversation", back_populates="messages")


__all__ = ["Restaurant", "MenuItemRow", "PolicyVersion", "Conversation", "Message"]
