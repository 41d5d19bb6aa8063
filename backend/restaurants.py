from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from sqlalchemy import select

from .db import SessionFactory
from .models import MenuItemRow, PolicyVersion, Restaurant

logger = logging.getLogger(__name__)


def _loads(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed JSON column value: %r", raw[:80])
        return default


@dataclass(frozen=True)
class MenuItem:
    """Represents a single menu item."""

    name: str
    description: str = ""
    price: Decimal = Decimal("0")
    allergens: FrozenSet[str] = field(default_factory=frozenset)
    tags: FrozenSet[str] = field(default_factory=frozenset)

    def to_api(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "allergens": sorted(self.allergens),
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_row(cls, row: MenuItemRow) -> "MenuItem":
        price = Decimal(str(row.price if row.price is not None else 0))
        return cls(
            name=row.name,
            description=row.description or "",
            price=max(price, Decimal("0")),
            allergens=frozenset(str(a) for a in _loads(row.allergens_json, [])),
            tags=frozenset(str(t) for t in _loads(row.tags_json, [])),
        )


@dataclass(frozen=True)
class RestaurantContext:
    """Read-only snapshot of what the host is allowed to talk about."""

    id: str
    name: str
    address: str = ""
    phone: str = ""
    hours: Mapping[str, str] = field(default_factory=dict)
    active_policy: Tuple[str, ...] = ()
    menu: Tuple[MenuItem, ...] = ()

    def to_api(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "hours": dict(self.hours),
            "policy": list(self.active_policy),
            "menu": [item.to_api() for item in self.menu],
        }


class RestaurantStore:
    """Loads restaurant context snapshots from the relational store."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    def load_context(self, restaurant_id: str) -> Optional[RestaurantContext]:
        with self._session_factory() as session:
            restaurant = session.get(Restaurant, restaurant_id)
            if restaurant is None:
                return None
            return self._snapshot(session, restaurant)

    def first(self) -> Optional[RestaurantContext]:
        with self._session_factory() as session:
            restaurant = session.scalars(select(Restaurant).order_by(Restaurant.created_at).limit(1)).first()
            if restaurant is None:
                return None
            return self._snapshot(session, restaurant)

    # ------------------------------------------------------------------
    def _snapshot(self, session, restaurant: Restaurant) -> RestaurantContext:
        policy_row = session.scalars(
            select(PolicyVersion)
            .where(PolicyVersion.restaurant_id == restaurant.id, PolicyVersion.is_active.is_(True))
            .order_by(PolicyVersion.version.desc())
            .limit(1)
        ).first()
        rules: Tuple[str, ...] = ()
        if policy_row is not None:
            rules = tuple(str(rule) for rule in _loads(policy_row.policy_json, []))

        hours = _loads(restaurant.hours_json, {})
        if not isinstance(hours, dict):
            hours = {}

        return RestaurantContext(
            id=restaurant.id,
            name=restaurant.name,
            address=restaurant.address or "",
            phone=restaurant.phone or "",
            hours={str(day): str(span) for day, span in hours.items()},
            active_policy=rules,
            menu=tuple(MenuItem.from_row(row) for row in restaurant.menu_items),
        )


__all__ = ["MenuItem", "RestaurantContext", "RestaurantStore"]
