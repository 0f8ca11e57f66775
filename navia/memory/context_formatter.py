"""
Conversation Context Formatting
===============================

Renders conversation turns into the text blocks that prompts embed.

Agent prompts get up to three clearly delimited sections, always in this
order:
1. CURRENT SESSION            - the live chat, used to resolve follow-ups
2. RELEVANT PAST CONVERSATIONS - older turns found by similarity search
3. CHRONOLOGICAL HISTORY       - the user's most recent stored exchanges

The classifier prompt gets a single block with the most recent session
exchange set apart, since it is the strongest signal for pronoun resolution.
"""

from typing import Iterable, Sequence

from navia.schemas.models import ConversationTurn, MessageRole

MAX_TURN_CHARS = 500

CURRENT_SESSION_HEADER = "=== CURRENT SESSION (MOST RECENT QUESTIONS, use these to resolve follow-ups) ==="
SEMANTIC_HEADER = "=== RELEVANT PAST CONVERSATIONS (older, matched by topic) ==="
CHRONOLOGICAL_HEADER = "=== CHRONOLOGICAL HISTORY (older sessions, oldest first) ==="
LATEST_EXCHANGE_HEADER = ">>> MOST RECENT EXCHANGE (strongest signal for 'that', 'it', 'more') <<<"
EARLIER_CONTEXT_HEADER = "EARLIER CONVERSATION (oldest first):"


def _truncate(text: str, limit: int) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def format_turn(turn: ConversationTurn, max_chars: int = MAX_TURN_CHARS) -> str:
    """Render one turn as ``User: ...`` / ``Assistant: ...``."""
    role = "User" if turn.role == MessageRole.USER else "Assistant"
    return f"{role}: {_truncate(turn.content, max_chars)}"


def format_turns(turns: Iterable[ConversationTurn], max_chars: int = MAX_TURN_CHARS) -> str:
    """Render turns one per line, in the order given."""
    return "\n".join(format_turn(t, max_chars) for t in turns)


def split_latest_exchange(
    turns: Sequence[ConversationTurn],
) -> tuple[list[ConversationTurn], list[ConversationTurn]]:
    """
    Split chronological turns into (earlier, latest exchange).

    The latest exchange starts at the last user turn and includes any
    assistant replies after it. With no user turn at all, the final turn
    on its own is the latest exchange.
    """
    turns = list(turns)
    if not turns:
        return [], []

    for index in range(len(turns) - 1, -1, -1):
        if turns[index].role == MessageRole.USER:
            return turns[:index], turns[index:]

    return turns[:-1], turns[-1:]


def session_turns(turns: Sequence[ConversationTurn]) -> list[ConversationTurn]:
    """Turns from the live session, dropping similarity-retrieved ones."""
    return [t for t in turns if not t.is_semantic_match]


def render_classifier_context(turns: Sequence[ConversationTurn]) -> str:
    """
    Render the classifier's context block with the latest exchange emphasized.

    Only live-session turns can be the latest exchange. Similarity matches
    always stay in the earlier block with their marker, and with no session
    turns there is no latest-exchange block at all.
    """
    if not turns:
        return "CONVERSATION CONTEXT: none (this is the first message)."

    _, latest = split_latest_exchange(session_turns(turns))
    latest_ids = {id(t) for t in latest}
    earlier = [t for t in turns if id(t) not in latest_ids]
    blocks = []

    if earlier:
        lines = []
        for turn in earlier:
            marker = " (related past conversation)" if turn.is_semantic_match else ""
            lines.append(format_turn(turn) + marker)
        blocks.append(EARLIER_CONTEXT_HEADER + "\n" + "\n".join(lines))

    if latest:
        blocks.append(LATEST_EXCHANGE_HEADER + "\n" + format_turns(latest))
    return "\n\n".join(blocks)


def render_recent_window(turns: Sequence[ConversationTurn], label: str) -> str:
    """Render a small history window under a heading, or nothing."""
    if not turns:
        return ""
    return f"\n{label}\n{format_turns(turns)}\n"


def _turn_key(turn: ConversationTurn) -> tuple[str, str]:
    return turn.role.value, turn.content.strip()


def render_agent_sections(
    current_session: Sequence[ConversationTurn],
    semantic_matches: Sequence[ConversationTurn],
    chronological: Sequence[ConversationTurn],
) -> str:
    """
    Render the three conversation sections for a domain agent prompt.

    A turn appears in at most one section; the current session wins,
    then semantic matches. Empty sections are left out.
    """
    seen: set[tuple[str, str]] = set()
    sections = []

    for header, turns in (
        (CURRENT_SESSION_HEADER, current_session),
        (SEMANTIC_HEADER, semantic_matches),
        (CHRONOLOGICAL_HEADER, chronological),
    ):
        unique = []
        for turn in turns:
            key = _turn_key(turn)
            if key in seen:
                continue
            seen.add(key)
            unique.append(turn)
        if unique:
            sections.append(f"{header}\n{format_turns(unique)}")

    return "\n\n".join(sections)
