from decimal import Decimal

from agent.prompt import FALLBACK_POLICY, TONE_DIRECTIVE, UNKNOWN_ANSWER_DIRECTIVE, build_system_prompt
from backend.restaurants import MenuItem, RestaurantContext


def _bistro() -> RestaurantContext:
    return RestaurantContext(
        id="r1",
        name="TableTalk Bistro",
        address="123 Culinary Ave",
        phone="(555) 123-4567",
        hours={"Monday": "11:00 AM - 10:00 PM", "Sunday": "10:00 AM - 10:00 PM"},
        active_policy=("Greet guests warmly.", "No groups over 6 without a deposit."),
        menu=(
            MenuItem(name="Grilled Salmon", description="Lemon butter sauce.", price=Decimal("24.00")),
            MenuItem(name="Quinoa Salad", description="Mixed greens.", price=Decimal("14")),
        ),
    )


def test_prompt_embeds_profile_menu_and_policy():
    prompt = build_system_prompt(_bistro())

    assert "TableTalk Bistro" in prompt
    assert "Address: 123 Culinary Ave" in prompt
    assert "Phone: (555) 123-4567" in prompt
    assert "Grilled Salmon ($24.00): Lemon butter sauce." in prompt
    assert "Quinoa Salad ($14.00): Mixed greens." in prompt
    assert "Greet guests warmly.\nNo groups over 6 without a deposit." in prompt
    assert FALLBACK_POLICY not in prompt


def test_hours_keep_stored_order():
    prompt = build_system_prompt(_bistro())
    assert prompt.index("Monday: 11:00 AM - 10:00 PM") < prompt.index("Sunday: 10:00 AM - 10:00 PM")


def test_prompt_ends_with_fixed_directives():
    prompt = build_system_prompt(_bistro())
    assert prompt.endswith(f"{UNKNOWN_ANSWER_DIRECTIVE}\n{TONE_DIRECTIVE}")
    assert "check with a manager" in prompt


def test_empty_context_renders_empty_sections_and_fallback_policy():
    prompt = build_system_prompt(RestaurantContext(id="r2", name="Empty Diner"))

    assert "Empty Diner" in prompt
    assert "Hours:\n\n" in prompt
    assert "Menu:\n\n" in prompt
    assert f"Your Policy (Follow these rules strictly):\n{FALLBACK_POLICY}" in prompt
    assert prompt.endswith(TONE_DIRECTIVE)


def test_prompt_is_deterministic():
    assert build_system_prompt(_bistro()) == build_system_prompt(_bistro())
