"""
Breakdown Generator
===================

Turns a big or fuzzy task into a short, concrete plan of steps.

This module provides:
- BreakdownGenerator.generate_breakdown(): the plan itself
- BreakdownGenerator.explicitly_requests_breakdown(): the cheap gate that
  decides whether a plan is built eagerly for a query
- BreakdownGenerator.analyze_task_complexity(): complexity score for metadata
- Pure helpers for tips, greetings, offer text and low-energy trimming

NEVER A DEAD END:
Every public method is total. A failed or garbled completion degrades to
a fixed three-step plan, so the user always gets something actionable.

PARSING:
The model's reply goes through a three-way parse:

    structured  ->  list of step objects (missing sub-steps are filled in)
    legacy      ->  flat list of strings (each string becomes a step)
    fallback    ->  nothing usable, use the fixed plan
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Sequence

from langchain_core.messages import SystemMessage
from langchain_core.prompts import ChatPromptTemplate

from navia.agents.base_agent import TextCompletionService, clamp_number, coerce_string_list, is_true_flag
from navia.agents.prompts import (
    BREAKDOWN_SYSTEM_PROMPT,
    BREAKDOWN_USER_PROMPT,
    COMPLEXITY_SYSTEM_PROMPT,
    COMPLEXITY_USER_PROMPT,
    EF_PROFILE_DIRECTIVE,
    EXPLICIT_REQUEST_SYSTEM_PROMPT,
    EXPLICIT_REQUEST_USER_PROMPT,
)
from navia.memory.context_formatter import render_recent_window
from navia.schemas.models import (
    BreakdownResult,
    BreakdownStep,
    ComplexityAnalysis,
    ConversationTurn,
)

logger = logging.getLogger(__name__)

# Two exchanges: "make a plan for that" must resolve against the
# immediately preceding topic only.
BREAKDOWN_HISTORY_WINDOW = 4
EXPLICIT_REQUEST_HISTORY_WINDOW = 10

DEFAULT_TIME_ESTIMATE = "5-10 min"
LEGACY_SUB_STEP = "Work through this step at your own pace"

LOW_ENERGY_MAX_STEPS = 3

_GREETING_PATTERN = re.compile(
    r"^\s*(hi+|hey+|hello+|yo|hiya|howdy|good (morning|afternoon|evening)|"
    r"thanks?( you)?( so much)?|thank u|thx|ty|ok(ay)?|cool|great|nice|bye|"
    r"goodbye|see you|got it|sounds good)[\s!.,:)]*$",
    re.IGNORECASE,
)

_STEP_NUMBER_PREFIX = re.compile(r"^\s*(step\s*\d+\s*[:.)-]?|\d+\s*[.)-])\s*", re.IGNORECASE)


# =============================================================================
# Pure helpers
# =============================================================================

def default_sub_steps(title: str) -> list[str]:
    """Generic read / split / do / verify sub-steps derived from a step title."""
    subject = title.strip().rstrip(".") or "this step"
    lowered = subject[0].lower() + subject[1:]
    return [
        f"Read through what \"{lowered}\" involves",
        "Split it into the smallest piece you can start right now",
        "Do that first piece, then the next one",
        "Check it off and confirm it is done",
    ]


def fallback_breakdown() -> BreakdownResult:
    """The fixed generic plan returned whenever generation fails."""
    return BreakdownResult(
        breakdown=[
            BreakdownStep(
                title="Research what the task needs",
                time_estimate="10-15 min",
                sub_steps=[
                    "Write down what done looks like",
                    "Gather any materials or information you need",
                ],
            ),
            BreakdownStep(
                title="Decide on the first action and do it",
                time_estimate="15-30 min",
                sub_steps=[
                    "Pick the smallest piece you can start right now",
                    "Work on it in short chunks with breaks",
                ],
            ),
            BreakdownStep(
                title="Complete and review",
                time_estimate="5-10 min",
                sub_steps=[
                    "Check what you finished against what done looks like",
                    "Celebrate the progress you made",
                ],
            ),
        ],
        tips=["Take breaks between steps", "You don't have to do it all at once"],
        complexity=5,
        estimated_time="Varies based on task",
        needs_breakdown=True,
        is_fallback=True,
    )


def ef_specific_tips(ef_profile: Optional[Sequence[str]]) -> list[str]:
    """Encouraging tips matched to the user's executive-function challenges."""
    tags = {tag.strip().lower().replace(" ", "_") for tag in (ef_profile or [])}
    tips = []

    if tags & {"task_initiation", "procrastination"}:
        tips.append("Set a timer for just 5 minutes to start. You can stop after if needed")
        tips.append("The hardest part is starting; it gets easier once you begin")

    if tags & {"time_blindness", "time_management"}:
        tips.append("Use a visual timer you can see while working")
        tips.append("Set alarms for transitions between steps")

    if "working_memory" in tags:
        tips.append("Write down each step as you complete it")
        tips.append("Keep this breakdown visible while working")

    if tags & {"overwhelm", "anxiety"}:
        tips.append("You don't have to do all steps today")
        tips.append("Taking breaks is productive, not lazy")

    if not tips:
        tips = ["Progress over perfection", "Celebrate completing each step"]

    return tips


def is_simple_greeting(query: str) -> bool:
    """True for bare greetings, thanks and acknowledgements."""
    return bool(_GREETING_PATTERN.match(query or ""))


def breakdown_offer_message(task: str, complexity: int) -> str:
    """Text the UI shows when offering to build a plan."""
    task = task.strip()
    if complexity >= 7:
        return (
            f'This looks like a complex task. Would you like me to break "{task}" '
            "into smaller, manageable steps? It might help reduce overwhelm."
        )
    if complexity >= 5:
        return f'I can break "{task}" down into clear steps if that would be helpful. Would you like me to do that?'
    return f'Would you like me to create a simple step-by-step plan for "{task}"?'


def simplify_for_low_energy(steps: Sequence[BreakdownStep]) -> list[BreakdownStep]:
    """Keep only the first few steps for a low-energy day."""
    return list(steps[:LOW_ENERGY_MAX_STEPS])


# =============================================================================
# Reply parsing
# =============================================================================

@dataclass
class ParsedBreakdown:
    """Result of parsing the model's breakdown reply."""
    kind: Literal["structured", "legacy", "fallback"]
    steps: list[BreakdownStep] = field(default_factory=list)


def _structured_step(raw: dict[str, Any], position: int) -> BreakdownStep:
    title = str(raw.get("title") or raw.get("step") or "").strip() or f"Step {position}"
    sub_steps = coerce_string_list(raw.get("subSteps", raw.get("sub_steps")))
    return BreakdownStep(
        title=title,
        time_estimate=str(raw.get("timeEstimate") or raw.get("time_estimate") or DEFAULT_TIME_ESTIMATE),
        sub_steps=sub_steps or default_sub_steps(title),
        is_optional=bool(raw.get("isOptional", False)),
        is_hard=bool(raw.get("isHard", False)),
    )


def _legacy_step(raw: str) -> Optional[BreakdownStep]:
    title = _STEP_NUMBER_PREFIX.sub("", raw).strip()
    if not title:
        return None
    return BreakdownStep(title=title, time_estimate=DEFAULT_TIME_ESTIMATE, sub_steps=[LEGACY_SUB_STEP])


def parse_breakdown_steps(raw: Any) -> ParsedBreakdown:
    """
    Classify and normalize the model's ``breakdown`` array.

    Structured wins when any item is an object; a list of plain strings is
    the legacy shape. Anything that yields no steps is a fallback.
    """
    if not isinstance(raw, list) or not raw:
        return ParsedBreakdown(kind="fallback")

    if any(isinstance(item, dict) for item in raw):
        steps = [
            _structured_step(item, position)
            for position, item in enumerate(raw, start=1)
            if isinstance(item, dict)
        ]
        return ParsedBreakdown(kind="structured", steps=steps)

    steps = [step for step in (_legacy_step(str(item)) for item in raw if item is not None) if step]
    if steps:
        return ParsedBreakdown(kind="legacy", steps=steps)

    return ParsedBreakdown(kind="fallback")


# =============================================================================
# Generator
# =============================================================================

class BreakdownGenerator:
    """
    Builds step-by-step plans with the completion model.

    Usage:
        generator = BreakdownGenerator(completion)
        if await generator.explicitly_requests_breakdown(query, history):
            plan = await generator.generate_breakdown(query, history=history)
    """

    def __init__(
        self,
        completion: TextCompletionService,
        history_window: int = BREAKDOWN_HISTORY_WINDOW,
        explicit_history_window: int = EXPLICIT_REQUEST_HISTORY_WINDOW,
    ):
        self._completion = completion
        self._history_window = history_window
        self._explicit_history_window = explicit_history_window

        self._breakdown_prompt = ChatPromptTemplate.from_messages([("human", BREAKDOWN_USER_PROMPT)])
        self._explicit_prompt = ChatPromptTemplate.from_messages([("human", EXPLICIT_REQUEST_USER_PROMPT)])
        self._complexity_prompt = ChatPromptTemplate.from_messages([("human", COMPLEXITY_USER_PROMPT)])

    def build_breakdown_messages(
        self,
        task: str,
        context: Optional[str] = None,
        ef_profile: Optional[Sequence[str]] = None,
        history: Optional[Sequence[ConversationTurn]] = None,
    ):
        """System + user messages for one generation call."""
        window = list(history or [])[-self._history_window:] if self._history_window > 0 else []

        user_messages = self._breakdown_prompt.format_messages(
            task=task,
            context_block=f"\nCONTEXT: {context}\n" if context else "",
            history_block=render_recent_window(
                window, "RECENT CONVERSATION (resolve 'that' / 'this' against the last exchange):"
            ),
            profile_block=EF_PROFILE_DIRECTIVE.format(profile=", ".join(ef_profile)) if ef_profile else "",
        )
        return [SystemMessage(content=BREAKDOWN_SYSTEM_PROMPT), *user_messages]

    async def generate_breakdown(
        self,
        task: str,
        context: Optional[str] = None,
        ef_profile: Optional[Sequence[str]] = None,
        history: Optional[Sequence[ConversationTurn]] = None,
    ) -> BreakdownResult:
        """
        Generate a plan for a task.

        Args:
            task: What the user wants to get done
            context: Optional domain context (e.g. "Career guidance")
            ef_profile: The user's executive-function challenge tags
            history: Conversation turns, chronological; only the last few are used

        Returns:
            BreakdownResult, the fixed fallback plan on any failure
        """
        try:
            messages = self.build_breakdown_messages(task, context, ef_profile, history)
            data = await self._completion.complete_json(messages)
        except Exception as e:
            logger.warning(f"Breakdown generation failed, using fallback plan: {e}")
            return fallback_breakdown()

        parsed = parse_breakdown_steps(data.get("breakdown"))
        if parsed.kind == "fallback":
            logger.warning("Breakdown reply had no usable steps, using fallback plan")
            return fallback_breakdown()

        tips = coerce_string_list(data.get("tips")) or ef_specific_tips(ef_profile)
        estimated = data.get("estimatedTime") or data.get("estimated_time")

        logger.info(f"Generated {parsed.kind} breakdown with {len(parsed.steps)} steps for '{task[:50]}'")

        return BreakdownResult(
            breakdown=parsed.steps,
            tips=tips,
            complexity=int(round(clamp_number(data.get("complexity"), 0, 10, 5))),
            estimated_time=str(estimated) if estimated else None,
            needs_breakdown=True,
        )

    async def explicitly_requests_breakdown(
        self,
        query: str,
        history: Optional[Sequence[ConversationTurn]] = None,
    ) -> bool:
        """
        Did the user explicitly ask for a plan, steps or a breakdown?

        History is only shown so the model can resolve "that" / "this".
        Defaults to False on any error.
        """
        if not query.strip() or is_simple_greeting(query):
            return False

        window = list(history or [])[-self._explicit_history_window:] if self._explicit_history_window > 0 else []

        try:
            user_messages = self._explicit_prompt.format_messages(
                history_block=render_recent_window(window, "CONVERSATION HISTORY (for referents only):").lstrip("\n"),
                query=query,
            )
            data = await self._completion.complete_json(
                [SystemMessage(content=EXPLICIT_REQUEST_SYSTEM_PROMPT), *user_messages],
                fast=True,
            )
        except Exception as e:
            logger.warning(f"Explicit breakdown check failed, assuming no request: {e}")
            return False

        requested = data.get("explicitRequest", data.get("explicit_request", False))
        result = is_true_flag(requested)
        logger.debug(f"Explicit breakdown request for '{query[:50]}': {result}")
        return result

    async def analyze_task_complexity(
        self,
        task: str,
        context: Optional[str] = None,
    ) -> ComplexityAnalysis:
        """Cheap complexity score; defaults to 5 / needs breakdown on error."""
        try:
            user_messages = self._complexity_prompt.format_messages(
                task=task,
                context_block=f"CONTEXT: {context}\n" if context else "",
            )
            data = await self._completion.complete_json(
                [SystemMessage(content=COMPLEXITY_SYSTEM_PROMPT), *user_messages],
                fast=True,
            )
        except Exception as e:
            logger.warning(f"Complexity analysis failed: {e}")
            return ComplexityAnalysis(
                complexity=5,
                needs_breakdown=True,
                reasoning="Unable to analyze, defaulting to breakdown support",
            )

        complexity = int(round(clamp_number(data.get("complexity"), 0, 10, 5)))
        needs = data.get("needsBreakdown")
        return ComplexityAnalysis(
            complexity=complexity,
            needs_breakdown=needs if isinstance(needs, bool) else complexity >= 5,
            reasoning=str(data.get("reasoning") or "Task requires multiple steps"),
        )
