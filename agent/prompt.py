from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List

if TYPE_CHECKING:  # pragma: no cover
    from backend.restaurants import MenuItem, RestaurantContext

FALLBACK_POLICY = "Be helpful and polite."
UNKNOWN_ANSWER_DIRECTIVE = "If you don't know the answer, say you will check with a manager."
TONE_DIRECTIVE = "Be concise and friendly."


def _menu_line(item: "MenuItem") -> str:
    return f"{item.name} (${item.price:.2f}): {item.description}"


def _lines(items: Iterable[str]) -> str:
    return "\n".join(items)


def build_system_prompt(context: "RestaurantContext") -> str:
    """Render the grounding instruction for one restaurant.

    Sections stay in a fixed order and keep their headers even when empty,
    so the output is deterministic for a given snapshot.
    """
    hours = _lines(f"{day}: {span}" for day, span in context.hours.items())
    menu = _lines(_menu_line(item) for item in context.menu)
    policy = _lines(context.active_policy) if context.active_policy else FALLBACK_POLICY

    parts: List[str] = [
        f"You are a helpful restaurant host for {context.name}.",
        "",
        "Restaurant Info:",
        f"Address: {context.address}",
        f"Phone: {context.phone}",
        "",
        "Hours:",
        hours,
        "",
        "Menu:",
        menu,
        "",
        "Your Policy (Follow these rules strictly):",
        policy,
        "",
        UNKNOWN_ANSWER_DIRECTIVE,
        TONE_DIRECTIVE,
    ]
    return "\n".join(parts)


__all__ = ["build_system_prompt", "FALLBACK_POLICY", "UNKNOWN_ANSWER_DIRECTIVE", "TONE_DIRECTIVE"]
