"""
Daily Task Agent
================

Executive-function support: getting started, time blindness, routines,
focus and overwhelm. Also the fallback agent for vague or emotional
messages, so its tone is the gentlest of the three.

ENERGY AWARENESS:
- low:  the prompt asks for one or two tiny steps, and a generated plan
        is trimmed to its first three steps
- high: the prompt allows more detailed guidance
"""

from navia.agents.breakdown import simplify_for_low_energy
from navia.agents.domain_agent import DomainAgent
from navia.agents.prompts import (
    DAILY_TASK_AGENT_PROMPT,
    GENTLE_NOTE,
    HIGH_ENERGY_NOTE,
    LOW_ENERGY_NOTE,
)
from navia.schemas.models import (
    AgentDomain,
    BreakdownStep,
    EnergyLevel,
    ResourceLink,
    UserContext,
)
from navia.tools.task_tools import detect_task_sub_topic, fetch_task_resources


class DailyTaskAgent(DomainAgent):
    """Answers executive-function and everyday task questions."""

    system_prompt = DAILY_TASK_AGENT_PROMPT
    breakdown_context_label = "Daily task/executive function"
    default_summary = "Here's some support for your task."
    fallback_summary = (
        "I ran into an issue with your question. That's okay, sometimes technology "
        "has its own executive function challenges! Could you try rephrasing it?"
    )

    @property
    def domain(self) -> AgentDomain:
        return AgentDomain.DAILY_TASK

    async def fetch_external_resources(self, query: str, user_context: UserContext) -> list[ResourceLink]:
        return await fetch_task_resources(self._web_search, query, user_context.ef_profile)

    def detect_sub_topic(self, query: str) -> str:
        return detect_task_sub_topic(query)

    def extra_prompt_notes(self, user_context: UserContext) -> list[str]:
        notes = []
        if user_context.energy_level == EnergyLevel.LOW:
            notes.append(LOW_ENERGY_NOTE)
        elif user_context.energy_level == EnergyLevel.HIGH:
            notes.append(HIGH_ENERGY_NOTE)
        notes.append(GENTLE_NOTE)
        return notes

    def post_process_breakdown(
        self,
        steps: list[BreakdownStep],
        user_context: UserContext,
    ) -> list[BreakdownStep]:
        if user_context.energy_level == EnergyLevel.LOW:
            return simplify_for_low_energy(steps)
        return steps
