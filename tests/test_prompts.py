from __future__ import annotations

from datetime import date

from concierge.domain.models import ConversationTurn
from concierge.models.conversation import MessageRole
from concierge.pipelines.conversation.prompts import (
    build_agent_prompt,
    build_deduplication_prompt,
    build_follow_up_agent_prompt,
    build_follow_up_readable_prompt,
    build_readable_prompt,
    build_verification_prompt,
    format_history,
    format_prompt_date,
    with_personalization,
)

TODAY = date(2026, 10, 19)

HISTORY = [
    ConversationTurn(role=MessageRole.USER, content="Flights from Paris to London"),
    ConversationTurn(role=MessageRole.ASSISTANT, content="<p>Here are three flights</p>"),
]


def test_prompt_date_is_rendered_long_form():
    assert format_prompt_date(TODAY) == "October 19, 2026"
    assert format_prompt_date(date(2026, 3, 5)) == "March 5, 2026"


def test_agent_prompt_embeds_query_date_and_category_line():
    prompt = build_agent_prompt("I want sushi in Lyon", today=TODAY)

    assert "I want sushi in Lyon" in prompt
    assert "October 19, 2026" in prompt
    assert "Category: [Travel/Shopping/Food/Multiple]" in prompt


def test_builders_are_deterministic():
    assert build_agent_prompt("same", today=TODAY) == build_agent_prompt("same", today=TODAY)
    assert build_verification_prompt("same") == build_verification_prompt("same")


def test_history_is_rendered_with_speaker_labels():
    assert format_history(HISTORY) == (
        "User: Flights from Paris to London\nAssistant: <p>Here are three flights</p>"
    )


def test_follow_up_prompts_include_history_and_new_message():
    brief = build_follow_up_agent_prompt(HISTORY, "What about trains?", today=TODAY)
    reply = build_follow_up_readable_prompt("Eurostar at 9am", "What about trains?", HISTORY)

    for prompt in (brief, reply):
        assert "User: Flights from Paris to London" in prompt
        assert "What about trains?" in prompt
    assert "October 19, 2026" in brief
    assert "Eurostar at 9am" in reply


def test_readable_prompt_carries_findings_and_query():
    prompt = build_readable_prompt("Findings with https://a.example", "sushi in Lyon")

    assert "### RESEARCH FINDINGS ###" in prompt
    assert "https://a.example" in prompt
    assert "sushi in Lyon" in prompt


def test_verification_prompt_opens_in_mode_three():
    prompt = build_verification_prompt("Book me a trip")

    assert prompt.startswith("You are in MODE 3.")
    assert "Book me a trip" in prompt


def test_personalization_block_is_prepended_only_with_context():
    assert with_personalization("", "PROMPT") == "PROMPT"
    assert with_personalization("   ", "PROMPT") == "PROMPT"

    personalized = with_personalization("City: Lyon", "PROMPT")
    assert personalized.startswith("### WHAT WE KNOW ABOUT THE USER ###\nCity: Lyon")
    assert personalized.endswith("PROMPT")


def test_deduplication_prompt_marks_empty_profile():
    assert "(none)" in build_deduplication_prompt([], "Allergy: cats")

    prompt = build_deduplication_prompt(["City: Lyon"], "Allergy: cats")
    assert "- City: Lyon" in prompt
    assert "(none)" not in prompt
