from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .db import SessionFactory
from .models import MenuItemRow, PolicyVersion, Restaurant

logger = logging.getLogger(__name__)

DEMO_POLICY = [
    "Greet guests warmly.",
    "Inform guests about the daily special: Grilled Salmon.",
    "We do not take reservations for groups larger than 6 without a deposit.",
    "Vegan options are marked with (V) on the menu.",
    "The kitchen closes 30 minutes before closing time.",
]

DEMO_RESTAURANT: Dict[str, Any] = {
    "name": "TableTalk Bistro",
    "address": "123 Culinary Ave, Food City, FC 90210",
    "phone": "(555) 123-4567",
    "hours": {
        "Monday": "11:00 AM - 10:00 PM",
        "Tuesday": "11:00 AM - 10:00 PM",
        "Wednesday": "11:00 AM - 10:00 PM",
        "Thursday": "11:00 AM - 11:00 PM",
        "Friday": "11:00 AM - 11:00 PM",
        "Saturday": "10:00 AM - 11:00 PM",
        "Sunday": "10:00 AM - 10:00 PM",
    },
    "menu": [
        {
            "name": "Grilled Salmon",
            "description": "Fresh Atlantic salmon with lemon butter sauce and asparagus.",
            "price": "24.00",
            "allergens": ["Fish", "Dairy"],
            "tags": ["Gluten-Free", "Special"],
        },
        {
            "name": "Classic Burger",
            "description": "Angus beef patty, cheddar, lettuce, tomato, brioche bun.",
            "price": "16.00",
            "allergens": ["Gluten", "Dairy"],
            "tags": [],
        },
        {
            "name": "Quinoa Salad",
            "description": "Mixed greens, quinoa, avocado, cherry tomatoes, balsamic vinaigrette.",
            "price": "14.00",
            "allergens": [],
            "tags": ["Vegan", "Gluten-Free"],
        },
    ],
    "policy": DEMO_POLICY,
}


def create_restaurant(
    session_factory: SessionFactory,
    *,
    name: str,
    address: str = "",
    phone: str = "",
    hours: Optional[Dict[str, str]] = None,
    menu: Optional[List[Dict[str, Any]]] = None,
    policy: Optional[List[str]] = None,
    policy_version: int = 1,
) -> str:
    """Insert a restaurant with its menu and (optionally) an active policy version."""
    with session_factory() as session:
        restaurant = Restaurant(
            name=name,
            address=address,
            phone=phone,
            hours_json=json.dumps(hours) if hours is not None else None,
            policies_json=json.dumps(policy) if policy is not None else None,
        )
        for position, item in enumerate(menu or []):
            price = Decimal(str(item.get("price", 0) or 0))
            if price < 0:
                raise ValueError(f"negative price for menu item {item.get('name')!r}")
            restaurant.menu_items.append(
                MenuItemRow(
                    name=str(item["name"]),
                    description=str(item.get("description") or ""),
                    price=price,
                    allergens_json=json.dumps(list(item.get("allergens") or [])),
                    tags_json=json.dumps(list(item.get("tags") or [])),
                    position=position,
                )
            )
        if policy is not None:
            restaurant.policy_versions.append(
                PolicyVersion(version=policy_version, policy_json=json.dumps(policy), is_active=True)
            )
        session.add(restaurant)
        session.commit()
        return restaurant.id


def seed_demo(session_factory: SessionFactory) -> str:
    restaurant_id = create_restaurant(session_factory, **DEMO_RESTAURANT)
    logger.info("Seeded %s as %s", DEMO_RESTAURANT["name"], restaurant_id)
    return restaurant_id


__all__ = ["DEMO_RESTAURANT", "DEMO_POLICY", "create_restaurant", "seed_demo"]
