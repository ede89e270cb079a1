"""Prompt construction for every model call in the conversation pipeline.

All builders are pure: the same inputs always give the same string, and the
current date is passed in rather than read from the clock.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from concierge.domain.models import ConversationTurn
from concierge.models.conversation import MessageRole

from .instructions import HTML_INSTRUCTIONS

CATEGORIES = ("Travel", "Shopping", "Food", "Multiple")

_CATEGORY_LINE = 'Start with: "Category: [Travel/Shopping/Food/Multiple]"'

_CATEGORY_FIELDS = """
- Travel: origin, destination, dates, preferences, transport mode
- Shopping: product, location, budget, online or in-store, urgency
- Food: cuisine, location, budget, dietary restrictions, occasion
"""


def format_prompt_date(value: date) -> str:
    """Render a date like ``October 19, 2026``."""

    return f"{value:%B} {value.day}, {value.year}"


def format_history(history: Iterable[ConversationTurn]) -> str:
    lines = []
    for turn in history:
        speaker = "User" if turn.role == MessageRole.USER else "Assistant"
        lines.append(f"{speaker}: {turn.content}")
    return "\n".join(lines)


def with_personalization(context: str, prompt: str) -> str:
    """Prepend the user's knowledge block to a prompt when there is one."""

    if not context.strip():
        return prompt
    return (
        "### WHAT WE KNOW ABOUT THE USER ###\n"
        f"{context.strip()}\n"
        "Use these facts only when they are relevant to the request.\n\n"
        f"{prompt}"
    )


def build_agent_prompt(utterance: str, *, today: date) -> str:
    """Mode 1: rewrite a first message as a third-person research brief."""

    current_date = format_prompt_date(today)
    return f"""### TASK ###
Transform the user's query into a structured third-person brief for the
research agent. The query is about Travel, Shopping, Food, or several of them.

### INSTRUCTIONS ###
1. Identify the category or categories.
2. Extract every detail the user stated.
3. Rewrite first person as third person ("I" becomes "the user").
4. Include the current date: {current_date}.
5. Structure the details for the category:{_CATEGORY_FIELDS}
6. Do not fill in missing information.

### OUTPUT FORMAT ###
{_CATEGORY_LINE}
Then write short declarative sentences such as "The user wants..." and
"The current date is {current_date}."

### EXAMPLES ###
Query: "I live in Paris and want to go to London in two days, cheap please."
Output:
Category: Travel
The user lives in Paris.
The user wants to travel to London.
The current date is {current_date}.
The user wants to depart in two days.
The user prefers cheaper options.

Query: "Best Italian restaurants in downtown Chicago, I'm vegetarian, about $50 each."
Output:
Category: Food
The user wants Italian restaurants in downtown Chicago.
The current date is {current_date}.
The user is vegetarian.
The user has a budget of around $50 per person.

### USER QUERY (plain text) ###
\"\"\"
{utterance}
\"\"\"

Return only the plain text brief. No JSON, quotes, markdown, HTML or commentary.
"""


def build_follow_up_agent_prompt(
    history: Sequence[ConversationTurn], new_message: str, *, today: date
) -> str:
    """Mode 1 for an ongoing conversation: fold the history into the brief."""

    return f"""### TASK ###
Transform the user's new message into a structured third-person brief for the
research agent, using the conversation so far for context. The new message may
be a follow-up, a new request, a change of category, extra preferences, or a
correction of the previous request.

### CONVERSATION HISTORY ###
\"\"\"
{format_history(history)}
\"\"\"

### NEW MESSAGE ###
\"\"\"
{new_message}
\"\"\"

### OUTPUT FORMAT ###
{_CATEGORY_LINE}
Then state, in third person:
- what the user is asking for now
- any new constraints or preferences
- earlier context that still applies (origin, location, budget)
- the current date: {format_prompt_date(today)}

### EXAMPLE ###
Previous: the user asked about flights to London.
New message: "What about trains instead?"
Output:
Category: Travel
The user now wants train options to London instead of flights.
The user still departs from the previously mentioned origin.

Return only the brief.
"""


def build_readable_prompt(agent_response: str, utterance: str) -> str:
    """Mode 2: turn research findings into the user's first HTML answer."""

    return f"""### TASK ###
Turn the research findings below into a warm, detailed guide for the user,
like advice from a well-informed friend.

### REQUIREMENTS ###
1. Answer in the SAME LANGUAGE as the user's query.
2. Keep EVERY URL from the findings as a clickable link and list the sources
   at the end.
3. Be detailed: prices, times, addresses, tips, warnings and alternatives.
4. Shape the answer for the category:
   - Travel: options compared, best pick with reasons, booking tips,
     documents, destination essentials.
   - Shopping: where it is available, prices per seller, best deal,
     alternatives, return and warranty notes.
   - Food: recommended places with address, hours, price range, ratings,
     signature dishes, reservations, top picks.
{HTML_INSTRUCTIONS}
### USER QUERY ###
\"\"\"
{utterance}
\"\"\"

### RESEARCH FINDINGS ###
\"\"\"
{agent_response}
\"\"\"

Return only the HTML answer in the user's language. No markdown, quotes or code blocks.
"""


def build_follow_up_readable_prompt(
    agent_response: str, new_message: str, history: Sequence[ConversationTurn]
) -> str:
    """Mode 2 for an ongoing conversation: answer only what was just asked."""

    return f"""### TASK ###
The user already received an answer and has now asked a follow-up. Turn the
new research findings into a direct reply to their latest message. This
continues an existing conversation: skip greetings and do not repeat what was
already said unless comparing.

### REQUIREMENTS ###
- Answer in the SAME LANGUAGE as the new message.
- Keep every URL from the findings as a clickable link.
- Highlight what is new or different from the earlier options.
- Be concise but complete.
{HTML_INSTRUCTIONS}
### RESEARCH FINDINGS ###
\"\"\"
{agent_response}
\"\"\"

### NEW MESSAGE ###
\"\"\"
{new_message}
\"\"\"

### CONVERSATION HISTORY ###
\"\"\"
{format_history(history)}
\"\"\"

Return only the HTML reply. No markdown, quotes or code blocks.
"""


def build_verification_prompt(utterance: str) -> str:
    """Mode 3: check the first message has the minimum fields for its category."""

    return f"""You are in MODE 3.

### TASK ###
Check whether the user's query has enough information to be researched.

### MINIMUM INFORMATION BY CATEGORY ###
Travel: departure location and destination are required; an approximate date
is expected.
Shopping: the product is required; a location or an online preference is
expected.
Food: the location is required; a cuisine or kind of restaurant is expected.

### OUTPUT FORMAT ###
- If the minimum information is present, return only: true
  (lowercase, nothing else, no quotes)
- Otherwise return a short friendly HTML message in the user's language that
  acknowledges the request, says what is missing and asks for it, with an
  example if useful.
{HTML_INSTRUCTIONS}
### USER QUERY ###
\"\"\"
{utterance}
\"\"\"
"""


def build_deduplication_prompt(existing_facts: Sequence[str], candidate: str) -> str:
    known = "\n".join(f"- {fact}" for fact in existing_facts) or "(none)"
    return f"""### FACTS ALREADY STORED ###
{known}

### CANDIDATE FACT ###
{candidate}
"""


__all__ = [
    "CATEGORIES",
    "build_agent_prompt",
    "build_deduplication_prompt",
    "build_follow_up_agent_prompt",
    "build_follow_up_readable_prompt",
    "build_readable_prompt",
    "build_verification_prompt",
    "format_history",
    "format_prompt_date",
    "with_personalization",
]
