from __future__ import annotations

import json
from typing import Any, Optional

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from navia.agents.base_agent import TextCompletionService
from navia.agents.breakdown import BreakdownGenerator
from navia.agents.career_agent import CareerAgent
from navia.agents.daily_task_agent import DailyTaskAgent
from navia.agents.finance_agent import FinanceAgent
from navia.memory.conversation_store import InMemoryConversationStore
from navia.schemas.models import AgentDomain, KnowledgePassage, WebResult
from navia.tools.web_search import WebSearch
from navia.vectorstore.knowledge_store import KnowledgeRetriever

# System-prompt markers, one per kind of completion call
INTENT = "You are the Intent Detection system"
EXPLICIT = "EXPLICIT BREAKDOWN REQUEST CHECK."
COMPLEXITY = "COMPLEXITY ANALYSIS ONLY."
BREAKDOWN = "You are the Breakdown Tool"
FINANCE = "YOUR ROLE: FINANCE SPECIALIST"
CAREER = "YOUR ROLE: CAREER SPECIALIST"
DAILY = "YOUR ROLE: DAILY TASKS"


class KeyedFakeChatModel(BaseChatModel):
    """
    Chat model that answers by system-prompt marker.

    ``responses`` maps a marker to a reply string or an exception to
    raise. The first marker found in the system message wins; calls
    without a match get ``default``. Every call is recorded.
    """

    responses: dict[str, Any] = Field(default_factory=dict)
    default: str = "{}"
    calls: list[list[BaseMessage]] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "keyed-fake"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        self.calls.append(list(messages))
        system = next((str(m.content) for m in messages if m.type == "system"), "")

        reply: Any = self.default
        for marker, candidate in self.responses.items():
            if marker in system:
                reply = candidate
                break

        if isinstance(reply, Exception):
            raise reply
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=reply))])

    def calls_for(self, marker: str) -> list[list[BaseMessage]]:
        return [c for c in self.calls if any(m.type == "system" and marker in str(m.content) for m in c)]


def as_json(**payload: Any) -> str:
    return json.dumps(payload)


class FakeRetriever(KnowledgeRetriever):
    def __init__(self, passages: Optional[dict[AgentDomain, list[KnowledgePassage]]] = None, error: Exception = None):
        self.passages = passages or {}
        self.error = error
        self.calls: list[tuple[str, AgentDomain, int]] = []

    async def retrieve(self, query: str, domain: AgentDomain, limit: int = 5) -> list[KnowledgePassage]:
        self.calls.append((query, domain, limit))
        if self.error:
            raise self.error
        return self.passages.get(domain, [])[:limit]


class FakeWebSearch(WebSearch):
    def __init__(self, results: Optional[list[WebResult]] = None, error: Exception = None):
        self.results = results or []
        self.error = error
        self.queries: list[dict] = []

    async def search(self, query, max_results=5, include_domains=None, search_depth=None) -> list[WebResult]:
        self.queries.append({
            "query": query,
            "max_results": max_results,
            "include_domains": include_domains,
            "search_depth": search_depth,
        })
        if self.error:
            raise self.error
        return self.results[:max_results]


@pytest.fixture
def llm() -> KeyedFakeChatModel:
    return KeyedFakeChatModel()


@pytest.fixture
def completion(llm: KeyedFakeChatModel) -> TextCompletionService:
    return TextCompletionService(llm=llm, timeout=5.0)


@pytest.fixture
def breakdown_generator(completion: TextCompletionService) -> BreakdownGenerator:
    return BreakdownGenerator(completion)


@pytest.fixture
def embeddings() -> DeterministicFakeEmbedding:
    return DeterministicFakeEmbedding(size=64)


@pytest.fixture
def conversation_store(embeddings) -> InMemoryConversationStore:
    return InMemoryConversationStore(embeddings)


@pytest.fixture
def make_agent(completion, breakdown_generator):
    def factory(agent_cls=FinanceAgent, **kwargs):
        kwargs.setdefault("timeout", 5.0)
        return agent_cls(completion, breakdown_generator, **kwargs)

    return factory


@pytest.fixture
def all_agents(make_agent):
    return [make_agent(FinanceAgent), make_agent(CareerAgent), make_agent(DailyTaskAgent)]
