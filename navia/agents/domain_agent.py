"""
Domain Agent
============

The shared pipeline behind the finance, career and daily-task agents.

PIPELINE (per query):
1. Gather, concurrently: domain knowledge passages, external web
   resources, and similar past conversations
2. Explicit-request gate: only if the user asked for a plan is the
   breakdown generated up front (complexity is scored alongside)
3. Build the prompt: system prompt + conversation sections + knowledge
   + resources + either the generated plan or "decide needsBreakdown"
4. One JSON completion
5. Resolve needsBreakdown / showResources, merge resources and sources,
   attach the pre-generated plan (never the model's own)

Subclasses only choose the prompt, the resource fetchers and a few
tone hooks. Collaborator failures in step 1 degrade to empty lists; a
failure of the completion itself is turned into the apologetic fallback
by safe_process().
"""

import asyncio
import json
import logging
from abc import abstractmethod
from typing import Any, Awaitable, Optional, Sequence

from langchain_core.messages import SystemMessage
from langchain_core.prompts import ChatPromptTemplate

from navia.agents.base_agent import (
    BaseAgent,
    TextCompletionService,
    clamp_number,
    coerce_string_list,
)
from navia.agents.breakdown import (
    BreakdownGenerator,
    breakdown_offer_message,
    is_simple_greeting,
)
from navia.agents.prompts import (
    AGENT_USER_PROMPT,
    BREAKDOWN_PROVIDED_INSTRUCTION,
    NO_BREAKDOWN_INSTRUCTION,
)
from navia.memory.context_formatter import render_agent_sections, session_turns
from navia.memory.conversation_store import ConversationStore
from navia.schemas.models import (
    AgentContext,
    AgentMetadata,
    AgentResponse,
    BreakdownResult,
    BreakdownStep,
    ComplexityAnalysis,
    ConversationTurn,
    KnowledgePassage,
    ResourceLink,
    SourceReference,
    UserContext,
)
from navia.tools.web_search import WebSearch
from navia.vectorstore.knowledge_store import KnowledgeRetriever

logger = logging.getLogger(__name__)

AGENT_MAX_RESOURCES = 8
AGENT_MAX_SOURCES = 5
KNOWLEDGE_LIMIT = 5
SEMANTIC_HISTORY_LIMIT = 3

EXCERPT_CHARS = 200
KNOWLEDGE_PROMPT_CHARS = 600
RESOURCE_PROMPT_CHARS = 150


def parse_resources(raw: Any) -> list[ResourceLink]:
    """Resource links proposed by the model; items without a title and url are skipped."""
    if not isinstance(raw, list):
        return []

    resources = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("url") or not item.get("title"):
            continue
        resources.append(ResourceLink(
            title=str(item["title"]),
            url=str(item["url"]),
            description=str(item.get("description") or ""),
            type=item.get("type") or "article",
        ))
    return resources


def parse_sources(raw: Any) -> list[SourceReference]:
    """Source references proposed by the model; items without a title are skipped."""
    if not isinstance(raw, list):
        return []

    sources = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        relevance = item.get("relevance")
        sources.append(SourceReference(
            title=str(item["title"]),
            url=str(item["url"]) if item.get("url") else None,
            excerpt=str(item.get("excerpt") or ""),
            relevance=clamp_number(relevance, 0.0, 1.0, 0.0) if relevance is not None else None,
        ))
    return sources


def passage_to_source(passage: KnowledgePassage) -> SourceReference:
    return SourceReference(
        title=passage.title,
        url=passage.url,
        excerpt=passage.content[:EXCERPT_CHARS],
        relevance=passage.score,
    )


class DomainAgent(BaseAgent):
    """
    Base class for the three domain agents.

    Each subclass must provide:
    - domain / system_prompt / breakdown_context_label
    - fetch_external_resources(): keyword-triggered resource fetchers

    Optional hooks:
    - detect_sub_topic(), extra_prompt_notes(), post_process_breakdown()
    """

    system_prompt: str = ""
    breakdown_context_label: str = ""
    default_summary: str = "Here's some support with that."

    def __init__(
        self,
        completion: TextCompletionService,
        breakdown_generator: BreakdownGenerator,
        knowledge_retriever: Optional[KnowledgeRetriever] = None,
        web_search: Optional[WebSearch] = None,
        conversation_store: Optional[ConversationStore] = None,
        timeout: Optional[float] = None,
        retrieval_timeout: float = 10.0,
        web_search_timeout: float = 15.0,
        knowledge_limit: int = KNOWLEDGE_LIMIT,
        semantic_history_limit: int = SEMANTIC_HISTORY_LIMIT,
        max_resources: int = AGENT_MAX_RESOURCES,
        max_sources: int = AGENT_MAX_SOURCES,
    ):
        """
        Args:
            completion: Shared text completion service
            breakdown_generator: Plan generator and explicit-request gate
            knowledge_retriever: Domain-filtered knowledge passages (optional)
            web_search: Web resource search (optional)
            conversation_store: Source of similar past conversations (optional)
            timeout: Seconds allowed for one full agent run
            retrieval_timeout: Seconds allowed per knowledge / history lookup
            web_search_timeout: Seconds allowed for the resource fetchers
            knowledge_limit: Passages retrieved per query
            semantic_history_limit: Similar past exchanges retrieved per query
            max_resources: Resources kept in the response
            max_sources: Sources kept in the response
        """
        super().__init__(completion, timeout=timeout)
        self._breakdown = breakdown_generator
        self._retriever = knowledge_retriever
        self._web_search = web_search
        self._conversations = conversation_store
        self._retrieval_timeout = retrieval_timeout
        self._web_search_timeout = web_search_timeout
        self._knowledge_limit = knowledge_limit
        self._semantic_history_limit = semantic_history_limit
        self._max_resources = max_resources
        self._max_sources = max_sources
        self._prompt = ChatPromptTemplate.from_messages([("human", AGENT_USER_PROMPT)])

    # =========================================================================
    # Hooks
    # =========================================================================

    @abstractmethod
    async def fetch_external_resources(self, query: str, user_context: UserContext) -> list[ResourceLink]:
        """Keyword-triggered resource fetchers for this domain."""
        pass

    def detect_sub_topic(self, query: str) -> str:
        return "general"

    def extra_prompt_notes(self, user_context: UserContext) -> list[str]:
        """Tone adjustments appended to the prompt."""
        return []

    def post_process_breakdown(
        self,
        steps: list[BreakdownStep],
        user_context: UserContext,
    ) -> list[BreakdownStep]:
        return steps

    # =========================================================================
    # Collaborator calls (each degrades to an empty list)
    # =========================================================================

    async def _guarded(self, label: str, call: Awaitable[list], timeout: float) -> list:
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.domain.value} agent: {label} timed out after {timeout:.0f}s")
        except Exception as e:
            logger.warning(f"{self.domain.value} agent: {label} failed: {type(e).__name__}: {e}")
        return []

    async def _retrieve_knowledge(self, query: str) -> list[KnowledgePassage]:
        if self._retriever is None:
            return []
        return await self._guarded(
            "knowledge retrieval",
            self._retriever.retrieve(query, self.domain, self._knowledge_limit),
            self._retrieval_timeout,
        )

    async def _fetch_resources(self, query: str, user_context: UserContext) -> list[ResourceLink]:
        if self._web_search is None:
            return []
        return await self._guarded(
            "resource fetch",
            self.fetch_external_resources(query, user_context),
            self._web_search_timeout,
        )

    async def _fetch_similar_conversations(self, user_id: str, query: str) -> list[ConversationTurn]:
        if self._conversations is None:
            return []
        return await self._guarded(
            "semantic history",
            self._conversations.fetch_semantic(user_id, query, self.domain, self._semantic_history_limit),
            self._retrieval_timeout,
        )

    async def _maybe_generate_breakdown(
        self,
        query: str,
        user_context: UserContext,
        conversation: Sequence[ConversationTurn],
    ) -> Optional[BreakdownResult]:
        if not await self._breakdown.explicitly_requests_breakdown(query, conversation):
            return None

        logger.info(f"{self.domain.value} agent: explicit plan request, generating breakdown")
        return await self._breakdown.generate_breakdown(
            query,
            context=self.breakdown_context_label,
            ef_profile=user_context.ef_profile,
            history=conversation,
        )

    # =========================================================================
    # Prompt
    # =========================================================================

    def _render_user_context(self, user_context: UserContext) -> str:
        lines = []
        if user_context.energy_level:
            lines.append(f"- Energy level: {user_context.energy_level.value}")
        if user_context.ef_profile:
            lines.append(f"- EF challenges: {', '.join(user_context.ef_profile)}")
        if user_context.current_goals:
            lines.append(f"- Goals: {', '.join(user_context.current_goals)}")
        if user_context.communication_style:
            lines.append(f"- Prefers: {user_context.communication_style.value} replies")
        if not lines:
            return ""
        return "USER CONTEXT:\n" + "\n".join(lines)

    def build_sections(
        self,
        user_context: UserContext,
        conversation_sections: str,
        knowledge: Sequence[KnowledgePassage],
        resources: Sequence[ResourceLink],
    ) -> str:
        blocks = [self._render_user_context(user_context), conversation_sections]

        if knowledge:
            lines = ["RELEVANT KNOWLEDGE:"]
            for i, passage in enumerate(knowledge, 1):
                lines.append(f"[{i}] {passage.title} (relevance {passage.score:.2f})")
                lines.append(passage.content[:KNOWLEDGE_PROMPT_CHARS])
            blocks.append("\n".join(lines))

        if resources:
            lines = ["EXTERNAL RESOURCES FOUND:"]
            for resource in resources:
                lines.append(f"- {resource.title}: {resource.description[:RESOURCE_PROMPT_CHARS]}")
            blocks.append("\n".join(lines))

        blocks.extend(self.extra_prompt_notes(user_context))
        return "\n\n" + "\n\n".join(b for b in blocks if b)

    def build_messages(
        self,
        query: str,
        sections: str,
        complexity: ComplexityAnalysis,
        steps: Optional[list[BreakdownStep]],
    ):
        if steps:
            plan = json.dumps([s.model_dump(by_alias=True) for s in steps], indent=2)
            instruction = BREAKDOWN_PROVIDED_INSTRUCTION.format(plan=plan)
        else:
            instruction = NO_BREAKDOWN_INSTRUCTION

        user_messages = self._prompt.format_messages(
            query=query,
            sections=sections,
            complexity=complexity.complexity,
            breakdown_instruction=instruction,
        )
        return [SystemMessage(content=self.system_prompt), *user_messages]

    # =========================================================================
    # Main entry point
    # =========================================================================

    async def process(self, context: AgentContext) -> AgentResponse:
        """
        Answer one query for this domain.

        Raises:
            CompletionError / MalformedResponseError: If the main completion fails
            (safe_process() turns these into the fallback response)
        """
        query = context.query
        user_context = context.user_context or UserContext()

        current_session = session_turns(user_context.recent_history)
        earlier_matches = [t for t in user_context.recent_history if t.is_semantic_match]
        conversation = current_session or list(context.chat_history)

        logger.info(f"{self.domain.value} agent processing: {query[:80]}")

        # Step 1: knowledge, resources and similar conversations
        knowledge, external_resources, similar = await asyncio.gather(
            self._retrieve_knowledge(query),
            self._fetch_resources(query, user_context),
            self._fetch_similar_conversations(context.user_id, query),
        )
        conversation_sections = render_agent_sections(
            current_session,
            [*similar, *earlier_matches],
            context.chat_history,
        )

        # Steps 2-3: explicit plan request and complexity, independently
        greeting = is_simple_greeting(query)
        if greeting:
            breakdown_result = None
            complexity = ComplexityAnalysis(complexity=0, needs_breakdown=False, reasoning="Greeting")
        else:
            breakdown_result, complexity = await asyncio.gather(
                self._maybe_generate_breakdown(query, user_context, conversation),
                self._breakdown.analyze_task_complexity(query, self.breakdown_context_label),
            )

        steps = None
        if breakdown_result is not None:
            steps = self.post_process_breakdown(list(breakdown_result.breakdown), user_context) or None

        # Steps 4-5: prompt and completion
        sections = self.build_sections(user_context, conversation_sections, knowledge, external_resources)
        messages = self.build_messages(query, sections, complexity, steps)
        data = await self._completion.complete_json(messages)

        model_meta = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}

        # Step 6: a plan already attached satisfies the need for one
        if greeting or steps:
            needs_breakdown = False
        else:
            needs_breakdown = model_meta.get("needsBreakdown", data.get("needsBreakdown")) is True

        # Step 7
        show_resources = model_meta.get("showResources", True)
        if not isinstance(show_resources, bool):
            show_resources = True

        # Step 8: retrieved items first, then the model's own
        resources = [*external_resources, *parse_resources(data.get("resources"))]
        sources = [*(passage_to_source(p) for p in knowledge), *parse_sources(data.get("sources"))]

        summary = str(data.get("summary") or "").strip() or self.default_summary

        metadata = AgentMetadata(
            confidence=clamp_number(model_meta.get("confidence"), 0.0, 1.0, 0.8),
            complexity=complexity.complexity,
            needs_breakdown=needs_breakdown,
            show_resources=show_resources,
            suggested_actions=coerce_string_list(model_meta.get("suggestedActions")),
            sub_topic=self.detect_sub_topic(query),
            breakdown_offer=breakdown_offer_message(query, complexity.complexity) if needs_breakdown else None,
            retrieved_from_rag=len(knowledge),
            external_resources_found=len(external_resources),
        )

        logger.info(
            f"{self.domain.value} agent done: breakdown={len(steps or [])} steps, "
            f"needs_breakdown={needs_breakdown}, complexity={complexity.complexity}, "
            f"resources={len(resources)}, sources={len(sources)}"
        )

        # Step 9: only the pre-generated plan is ever attached
        return AgentResponse(
            domain=self.domain,
            summary=summary,
            breakdown=steps,
            breakdown_tips=list(breakdown_result.tips) if steps else None,
            resources=resources[:self._max_resources],
            sources=sources[:self._max_sources],
            metadata=metadata,
        )
