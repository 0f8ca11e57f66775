"""
Service Container
=================

Builds every long-lived client exactly once, at process start, and
wires them together. Nothing in the agent core creates its own clients;
they are all passed in from here (or from a test).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from navia.agents.base_agent import create_completion_service
from navia.agents.breakdown import BreakdownGenerator
from navia.agents.career_agent import CareerAgent
from navia.agents.daily_task_agent import DailyTaskAgent
from navia.agents.finance_agent import FinanceAgent
from navia.agents.intent_classifier import LLMIntentClassifier
from navia.config import Settings, get_settings
from navia.memory.conversation_store import ConversationStore, InMemoryConversationStore
from navia.services.orchestrator import AgentOrchestrator
from navia.tools.web_search import TavilySearchClient, WebSearch
from navia.vectorstore.embeddings import create_embeddings
from navia.vectorstore.knowledge_store import FAISSKnowledgeStore

logger = logging.getLogger(__name__)


@dataclass
class NaviaServices:
    """Long-lived clients, owned by the application lifespan."""
    settings: Settings
    orchestrator: AgentOrchestrator
    breakdown_generator: BreakdownGenerator
    knowledge_store: Optional[FAISSKnowledgeStore]
    conversation_store: ConversationStore
    web_search: Optional[WebSearch] = None

    async def aclose(self) -> None:
        if isinstance(self.web_search, TavilySearchClient):
            await self.web_search.aclose()


def build_services(settings: Optional[Settings] = None) -> NaviaServices:
    """
    Construct the completion service, stores, agents and orchestrator.

    Raises:
        ValueError: If the configured LLM or embedding provider is unsupported
    """
    settings = settings or get_settings()
    settings.ensure_directories()

    completion = create_completion_service(settings)
    embeddings = create_embeddings(settings)

    knowledge_store = FAISSKnowledgeStore.from_settings(embeddings, settings)
    conversation_store = InMemoryConversationStore(embeddings, threshold=settings.semantic_match_threshold)
    web_search = TavilySearchClient.from_settings(settings)

    breakdown = BreakdownGenerator(
        completion,
        history_window=settings.breakdown_history_window,
        explicit_history_window=settings.explicit_request_history_window,
    )

    agent_kwargs = dict(
        completion=completion,
        breakdown_generator=breakdown,
        knowledge_retriever=knowledge_store,
        web_search=web_search,
        conversation_store=conversation_store,
        timeout=settings.agent_timeout,
        retrieval_timeout=settings.retrieval_timeout,
        web_search_timeout=settings.web_search_timeout,
        knowledge_limit=settings.retrieval_top_k,
        semantic_history_limit=settings.semantic_history_limit,
        max_resources=settings.agent_max_resources,
        max_sources=settings.agent_max_sources,
    )
    agents = [FinanceAgent(**agent_kwargs), CareerAgent(**agent_kwargs), DailyTaskAgent(**agent_kwargs)]

    classifier = LLMIntentClassifier(
        completion,
        history_window=settings.classifier_history_window,
        follow_up_max_words=settings.follow_up_max_words,
    )

    orchestrator = AgentOrchestrator(
        classifier=classifier,
        agents=agents,
        conversation_store=conversation_store,
        history_window=settings.orchestrator_history_window,
        history_timeout=settings.retrieval_timeout,
        max_resources=settings.max_resources,
        max_sources=settings.max_sources,
    )

    logger.info(
        f"Services ready: provider={settings.llm_provider}, "
        f"knowledge passages={knowledge_store.document_count}, web search={web_search.enabled}"
    )

    return NaviaServices(
        settings=settings,
        orchestrator=orchestrator,
        breakdown_generator=breakdown,
        knowledge_store=knowledge_store,
        conversation_store=conversation_store,
        web_search=web_search,
    )
