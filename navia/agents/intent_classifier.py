"""
Intent Classifier
=================

The Intent Classifier is the "traffic controller" of the agent core.
It maps a raw user message to one or more domains.

RESPONSIBILITIES:
1. Decide whether the message is a likely follow-up
2. Choose how much conversation context to show the model
3. Ask the model for domains, confidence, complexity and a breakdown hint
4. Fall back to the daily-task domain whenever anything goes wrong

FOLLOW-UP HEURISTIC:
A message is a likely follow-up iff the session is active
(session_message_count > 0) AND it has at most 10 words. Follow-ups only
see the current session, so an unrelated past conversation that happened
to match by similarity cannot pull the routing off-topic.

ROUTING CONTEXT:
┌──────────────────────┬────────────────────────────────────────────┐
│ Message              │ Context shown to the model                 │
├──────────────────────┼────────────────────────────────────────────┤
│ Likely follow-up     │ Current-session turns only                 │
│ New / longer message │ Up to 12 turns (session + semantic matches)│
└──────────────────────┴────────────────────────────────────────────┘
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from langchain_core.messages import SystemMessage
from langchain_core.prompts import ChatPromptTemplate

from navia.agents.base_agent import TextCompletionService, clamp_number, is_true_flag
from navia.agents.prompts import (
    FOLLOW_UP_NOTE,
    INTENT_SYSTEM_PROMPT,
    INTENT_USER_PROMPT,
    NEW_TOPIC_NOTE,
)
from navia.memory.context_formatter import render_classifier_context, session_turns
from navia.schemas.models import AgentDomain, ConversationTurn, IntentDetection

logger = logging.getLogger(__name__)

CLASSIFIER_HISTORY_WINDOW = 12
FOLLOW_UP_MAX_WORDS = 10

FALLBACK_DOMAIN = AgentDomain.DAILY_TASK

_DOMAIN_ALIASES = {
    "finance": AgentDomain.FINANCE,
    "financial": AgentDomain.FINANCE,
    "money": AgentDomain.FINANCE,
    "career": AgentDomain.CAREER,
    "job": AgentDomain.CAREER,
    "daily_task": AgentDomain.DAILY_TASK,
    "daily-task": AgentDomain.DAILY_TASK,
    "daily task": AgentDomain.DAILY_TASK,
    "dailytask": AgentDomain.DAILY_TASK,
    "task": AgentDomain.DAILY_TASK,
}


def is_likely_follow_up(
    query: str,
    session_message_count: int,
    max_words: int = FOLLOW_UP_MAX_WORDS,
) -> bool:
    """Active session and a short message. Purely structural, no keyword lists."""
    return session_message_count > 0 and len(query.split()) <= max_words


def parse_domains(raw: Any) -> list[AgentDomain]:
    """Map the model's domain strings onto AgentDomain, dropping unknown ones."""
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []

    domains = []
    for item in raw:
        if not isinstance(item, str):
            continue
        domain = _DOMAIN_ALIASES.get(item.strip().lower())
        if domain is not None and domain not in domains:
            domains.append(domain)
    return domains


def fallback_intent(reasoning: str, complexity: int = 5) -> IntentDetection:
    """Safe routing used whenever classification cannot be trusted."""
    return IntentDetection(
        domains=[FALLBACK_DOMAIN],
        confidence=0.5,
        complexity=complexity,
        needs_breakdown=False,
        reasoning=reasoning,
    )


class Classifier(ABC):
    """
    Capability interface for intent routing.

    Implementations must be total: detect_intent() always returns an
    IntentDetection and never raises.
    """

    @abstractmethod
    async def detect_intent(
        self,
        query: str,
        history: Optional[Sequence[ConversationTurn]] = None,
        session_message_count: int = 0,
    ) -> IntentDetection:
        """Route one message."""
        pass

    async def quick_detect_domain(self, query: str) -> AgentDomain:
        """Primary domain only, for callers that need a single answer."""
        intent = await self.detect_intent(query)
        return intent.domains[0]


class LLMIntentClassifier(Classifier):
    """
    Routes messages with a JSON-mode completion.

    Usage:
        classifier = LLMIntentClassifier(completion)
        intent = await classifier.detect_intent(
            "what about that one?", history=turns, session_message_count=2
        )
    """

    def __init__(
        self,
        completion: TextCompletionService,
        history_window: int = CLASSIFIER_HISTORY_WINDOW,
        follow_up_max_words: int = FOLLOW_UP_MAX_WORDS,
    ):
        self._completion = completion
        self._history_window = history_window
        self._follow_up_max_words = follow_up_max_words
        self._prompt = ChatPromptTemplate.from_messages([("human", INTENT_USER_PROMPT)])

    def select_context(
        self,
        query: str,
        history: Sequence[ConversationTurn],
        session_message_count: int,
    ) -> tuple[list[ConversationTurn], bool]:
        """
        Pick the turns shown to the model.

        Returns:
            (turns in chronological order, whether the message is a follow-up)
        """
        follow_up = is_likely_follow_up(query, session_message_count, self._follow_up_max_words)

        if follow_up:
            turns = session_turns(history)
            return turns[-session_message_count:], True

        return list(history)[-self._history_window:], False

    def build_messages(
        self,
        query: str,
        history: Sequence[ConversationTurn],
        session_message_count: int,
    ):
        turns, follow_up = self.select_context(query, history, session_message_count)
        user_messages = self._prompt.format_messages(
            context=render_classifier_context(turns),
            follow_up_note=FOLLOW_UP_NOTE if follow_up else NEW_TOPIC_NOTE,
            query=query,
        )
        return [SystemMessage(content=INTENT_SYSTEM_PROMPT), *user_messages], follow_up

    async def detect_intent(
        self,
        query: str,
        history: Optional[Sequence[ConversationTurn]] = None,
        session_message_count: int = 0,
    ) -> IntentDetection:
        """
        Classify a message into one or more domains.

        Never raises: completion errors and malformed JSON degrade to the
        daily-task fallback.
        """
        history = list(history or [])

        try:
            messages, follow_up = self.build_messages(query, history, session_message_count)
            data = await self._completion.complete_json(messages)
        except Exception as e:
            logger.warning(f"Intent detection failed, defaulting to {FALLBACK_DOMAIN.value}: {e}")
            return fallback_intent(f"Error in intent detection ({type(e).__name__}), defaulting to daily task agent")

        domains = parse_domains(data.get("domains"))
        if not domains:
            logger.info("Classifier returned no usable domains, using fallback domain")
            return fallback_intent(
                str(data.get("reasoning") or "No domain detected, defaulting to daily task agent"),
                complexity=int(round(clamp_number(data.get("complexity"), 0, 10, 5))),
            )

        intent = IntentDetection(
            domains=domains,
            confidence=clamp_number(data.get("confidence"), 0.0, 1.0, 0.7),
            complexity=int(round(clamp_number(data.get("complexity"), 0, 10, 5))),
            needs_breakdown=is_true_flag(data.get("needsBreakdown")),
            reasoning=str(data.get("reasoning") or "Intent detected"),
        )

        logger.info(
            f"Routed query '{query[:50]}': {[d.value for d in intent.domains]} "
            f"(confidence={intent.confidence:.2f}, follow_up={follow_up})"
        )
        return intent


class ScriptedClassifier(Classifier):
    """
    Deterministic classifier returning scripted decisions.

    Rules are checked in order: a (substring, IntentDetection) pair matches
    when the substring occurs in the lower-cased query. Unmatched queries
    get ``default`` (or the daily-task fallback). Every call is recorded
    in ``calls``.
    """

    def __init__(
        self,
        rules: Optional[Sequence[tuple[str, IntentDetection]]] = None,
        default: Optional[IntentDetection] = None,
    ):
        self._rules = list(rules or [])
        self._default = default or fallback_intent("Scripted default")
        self.calls: list[tuple[str, list[ConversationTurn], int]] = []

    async def detect_intent(
        self,
        query: str,
        history: Optional[Sequence[ConversationTurn]] = None,
        session_message_count: int = 0,
    ) -> IntentDetection:
        self.calls.append((query, list(history or []), session_message_count))
        lowered = query.lower()
        for needle, intent in self._rules:
            if needle.lower() in lowered:
                return intent
        return self._default
