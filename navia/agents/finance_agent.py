"""
Finance Agent
=============

Budgeting, bills, debt, student aid and disability benefits, explained
without shame or jargon.
"""

from navia.agents.domain_agent import DomainAgent
from navia.agents.prompts import FINANCE_AGENT_PROMPT
from navia.schemas.models import AgentDomain, ResourceLink, UserContext
from navia.tools.finance_tools import detect_finance_sub_topic, fetch_finance_resources


class FinanceAgent(DomainAgent):
    """Answers money questions."""

    system_prompt = FINANCE_AGENT_PROMPT
    breakdown_context_label = "Finance task"
    default_summary = "Here's some guidance on your finance question."
    fallback_summary = (
        "I ran into an issue with your finance question. Could you try rephrasing, "
        "or ask something more specific about budgeting, bills or financial planning?"
    )

    @property
    def domain(self) -> AgentDomain:
        return AgentDomain.FINANCE

    async def fetch_external_resources(self, query: str, user_context: UserContext) -> list[ResourceLink]:
        return await fetch_finance_resources(self._web_search, query)

    def detect_sub_topic(self, query: str) -> str:
        return detect_finance_sub_topic(query)
