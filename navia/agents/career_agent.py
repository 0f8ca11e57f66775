"""
Career Agent
============

Job searching, resumes, interviews, workplace accommodations and
networking, with realistic expectations and ready-to-use scripts.
"""

from navia.agents.domain_agent import DomainAgent
from navia.agents.prompts import CAREER_AGENT_PROMPT
from navia.schemas.models import AgentDomain, ResourceLink, UserContext
from navia.tools.career_tools import detect_career_sub_topic, fetch_career_resources


class CareerAgent(DomainAgent):
    """Answers job and workplace questions."""

    system_prompt = CAREER_AGENT_PROMPT
    breakdown_context_label = "Career task"
    default_summary = "Here's some guidance on your career question."
    fallback_summary = (
        "I ran into an issue with your career question. Could you try rephrasing, "
        "or ask something more specific about job searching, resumes or work?"
    )

    @property
    def domain(self) -> AgentDomain:
        return AgentDomain.CAREER

    async def fetch_external_resources(self, query: str, user_context: UserContext) -> list[ResourceLink]:
        return await fetch_career_resources(self._web_search, query)

    def detect_sub_topic(self, query: str) -> str:
        return detect_career_sub_topic(query)
