"""
Multi-Agent Orchestrator
========================

The orchestrator is the "conductor" of the agent core. It is the single
entry point callers use, and it never raises.

PIPELINE FLOW:

    ┌─────────┐
    │  Query  │
    └────┬────┘
         │
    ┌────▼──────┐
    │  Intent   │ ──► One or more domains, confidence, complexity
    │ Classifier│
    └────┬──────┘
         │
    ┌────▼──────────┐
    │ Chat history  │ ──► Recent exchanges, to enrich agent context
    └────┬──────────┘
         │
    ┌────▼────────────────────────────────┐
    │ Finance  │  Career  │  Daily Task   │ ──► Run concurrently,
    │  Agent   │  Agent   │    Agent      │     each on its own context copy
    └────┬────────────────────────────────┘
         │ (wait for all)
    ┌────▼────┐
    │  Merge  │ ──► Combined summary, ONE primary breakdown,
    └────┬────┘     resources/sources deduped by URL and capped
         │
    ┌────▼────┐
    │ Result  │
    └─────────┘

FAILURE POLICY:
- A failed agent is dropped; the others still answer (success=true)
- If every agent fails: success=false, no responses, metadata.error set
"""

import asyncio
import logging
import re
import time
from typing import Iterable, Mapping, Optional, Sequence, TypeVar, Union

from navia.agents.base_agent import BaseAgent
from navia.agents.intent_classifier import FALLBACK_DOMAIN, Classifier
from navia.memory.conversation_store import ConversationStore
from navia.schemas.models import (
    AgentContext,
    AgentDomain,
    AgentResponse,
    BreakdownStep,
    ConversationStats,
    ConversationTurn,
    OrchestrationMetadata,
    OrchestrationResult,
    ResourceLink,
    SourceReference,
    UserContext,
)

logger = logging.getLogger(__name__)

ORCHESTRATOR_HISTORY_WINDOW = 5
MAX_RESOURCES = 10
MAX_SOURCES = 8

DOMAIN_LABELS = {
    AgentDomain.FINANCE: "Finance Guidance",
    AgentDomain.CAREER: "Career Guidance",
    AgentDomain.DAILY_TASK: "Task Management Guidance",
}

TWO_DOMAIN_INTRO = "I've looked at your question from two angles. Here's guidance for each:"
MULTI_DOMAIN_INTRO = "Your question touches on several areas. Here's what I can help with:"
PLAN_MENTION = "I've put one step-by-step plan below to help you get started."

# "I've created a step-by-step plan below..." and similar sentences
_PLAN_PHRASE = re.compile(
    r"[^.!?\n]*\b(?:I've|I have|I)\s+(?:created|made|put together|built|generated|prepared)\b"
    r"[^.!?\n]*\b(?:plan|breakdown|steps)\b[^.!?\n]*\bbelow\b[^.!?\n]*[.!?]?",
    re.IGNORECASE,
)
_SEE_PLAN_PHRASE = re.compile(
    r"[^.!?\n]*\b(?:see|check out|follow)\s+the\s+(?:[\w-]+\s+)*(?:plan|breakdown|steps)\s+below\b[^.!?\n]*[.!?]?",
    re.IGNORECASE,
)

LinkT = TypeVar("LinkT", ResourceLink, SourceReference)


# =============================================================================
# Merge helpers
# =============================================================================

def strip_plan_mentions(summary: str) -> str:
    """Remove sentences that point at a plan below; keep the rest of the text."""
    stripped = _SEE_PLAN_PHRASE.sub("", _PLAN_PHRASE.sub("", summary))
    stripped = re.sub(r"[ \t]{2,}", " ", stripped)
    stripped = re.sub(r"\n{3,}", "\n\n", stripped).strip()
    return stripped or summary.strip()


def combine_summaries(responses: Sequence[AgentResponse], has_plan: bool) -> Optional[str]:
    """
    Labeled multi-domain summary; None for a single response.

    Plan references are stripped from every section and, when a primary
    breakdown exists, mentioned exactly once at the end.
    """
    if len(responses) <= 1:
        return None

    intro = TWO_DOMAIN_INTRO if len(responses) == 2 else MULTI_DOMAIN_INTRO
    sections = "\n\n---\n\n".join(
        f"{DOMAIN_LABELS.get(r.domain, r.domain.value)}:\n{strip_plan_mentions(r.summary)}"
        for r in responses
    )

    combined = f"{intro}\n\n{sections}"
    if has_plan:
        combined += f"\n\n{PLAN_MENTION}"
    return combined


def select_primary_breakdown(
    responses: Sequence[AgentResponse],
) -> Optional[AgentResponse]:
    """The first response, in domain order, that carries a breakdown."""
    for response in responses:
        if response.breakdown:
            return response
    return None


def dedupe_by_url(items: Iterable[LinkT], cap: int) -> list[LinkT]:
    """
    First occurrence per URL wins, order preserved, then capped.

    Items without a URL cannot collide and are all kept.
    """
    seen: set[str] = set()
    unique = []
    for item in items:
        url = (item.url or "").strip()
        if url:
            if url in seen:
                continue
            seen.add(url)
        unique.append(item)
    return unique[:cap]


def aggregate_needs_breakdown(responses: Sequence[AgentResponse]) -> bool:
    """True when some domain wants a plan and that domain has not produced one."""
    return any(r.metadata.needs_breakdown and not r.breakdown for r in responses)


# =============================================================================
# Orchestrator
# =============================================================================

class AgentOrchestrator:
    """
    Routes a query to the domain agents and merges their answers.

    All collaborators are injected, so tests can pass fakes.

    Usage:
        orchestrator = AgentOrchestrator(
            classifier=LLMIntentClassifier(completion),
            agents=[finance_agent, career_agent, daily_task_agent],
            conversation_store=store,
        )
        result = await orchestrator.orchestrate_query("user_1", "Help me budget")
    """

    def __init__(
        self,
        classifier: Classifier,
        agents: Union[Mapping[AgentDomain, BaseAgent], Sequence[BaseAgent]],
        conversation_store: Optional[ConversationStore] = None,
        history_window: int = ORCHESTRATOR_HISTORY_WINDOW,
        history_timeout: float = 10.0,
        max_resources: int = MAX_RESOURCES,
        max_sources: int = MAX_SOURCES,
    ):
        """
        Args:
            classifier: Intent classifier
            agents: One agent per domain (mapping, or a list keyed by agent.domain)
            conversation_store: Source of recent chat history (optional)
            history_window: Past exchanges fetched to enrich agent context
            history_timeout: Seconds allowed for the history fetch
            max_resources: Resources kept in the merged result
            max_sources: Sources kept in the merged result
        """
        self._classifier = classifier
        if isinstance(agents, Mapping):
            self._agents = dict(agents)
        else:
            self._agents = {agent.domain: agent for agent in agents}
        self._conversations = conversation_store
        self._history_window = history_window
        self._history_timeout = history_timeout
        self._max_resources = max_resources
        self._max_sources = max_sources

        logger.info(
            f"Orchestrator initialized with agents: {[d.value for d in self._agents]}"
        )

    def _agent_for(self, domain: AgentDomain) -> Optional[BaseAgent]:
        return self._agents.get(domain) or self._agents.get(FALLBACK_DOMAIN)

    def _dispatch_domains(self, domains: Sequence[AgentDomain]) -> list[AgentDomain]:
        """Requested domains, minus any that would run an already scheduled agent again."""
        scheduled: set[int] = set()
        dispatch = []
        for domain in domains:
            agent = self._agent_for(domain)
            if agent is not None:
                if id(agent) in scheduled:
                    logger.info(f"Skipping {domain.value}: {agent.domain.value} agent already scheduled")
                    continue
                scheduled.add(id(agent))
            dispatch.append(domain)
        return dispatch

    async def _fetch_history(self, user_id: str) -> list[ConversationTurn]:
        if self._conversations is None or self._history_window <= 0:
            return []
        try:
            return await asyncio.wait_for(
                self._conversations.fetch_recent(user_id, self._history_window),
                timeout=self._history_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Chat history fetch timed out for {user_id}")
        except Exception as e:
            logger.warning(f"Chat history fetch failed for {user_id}: {type(e).__name__}: {e}")
        return []

    async def _run_agent(self, domain: AgentDomain, context: AgentContext) -> AgentResponse:
        agent = self._agent_for(domain)
        if agent is None:
            raise LookupError(f"No agent registered for {domain.value}")
        return await agent.safe_process(context)

    async def orchestrate_query(
        self,
        user_id: str,
        query: str,
        user_context: Optional[UserContext] = None,
    ) -> OrchestrationResult:
        """
        Answer one query with one or more domain agents.

        Args:
            user_id: Opaque user identifier
            query: Raw user text
            user_context: Personalization and current-session history

        Returns:
            OrchestrationResult (never raises)
        """
        start_time = time.perf_counter()

        def elapsed_ms() -> float:
            return round((time.perf_counter() - start_time) * 1000, 2)

        user_context = user_context or UserContext()
        logger.info(f"Orchestrating query for {user_id}: {query[:100]}")

        try:
            # Step 1: Route
            intent = await self._classifier.detect_intent(
                query,
                history=user_context.recent_history,
                session_message_count=user_context.session_message_count,
            )
            logger.info(
                f"Intent: {[d.value for d in intent.domains]} "
                f"(confidence={intent.confidence:.2f}, complexity={intent.complexity})"
            )
            domains = self._dispatch_domains(intent.domains)

            # Step 2: Recent history, for agent context only
            chat_history = await self._fetch_history(user_id)
            context = AgentContext(
                user_id=user_id,
                query=query,
                user_context=user_context,
                chat_history=chat_history,
            )

            # Step 3: Fan out and wait for every agent
            outcomes = await asyncio.gather(
                *(self._run_agent(domain, context.model_copy(deep=True)) for domain in domains),
                return_exceptions=True,
            )

            responses: list[AgentResponse] = []
            failed: list[AgentDomain] = []
            for domain, outcome in zip(domains, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(f"{domain.value} agent raised: {type(outcome).__name__}: {outcome}")
                    failed.append(domain)
                elif outcome.failed:
                    logger.warning(f"{domain.value} agent failed: {outcome.metadata.error}")
                    failed.append(domain)
                else:
                    responses.append(outcome)

            if not responses:
                logger.error(f"All agents failed for query: {query[:100]}")
                return OrchestrationResult(
                    success=False,
                    metadata=OrchestrationMetadata(
                        domains_involved=domains,
                        execution_time_ms=elapsed_ms(),
                        confidence=intent.confidence,
                        complexity=intent.complexity,
                        failed_domains=failed,
                        error="All agents failed to process query",
                    ),
                )

            # Steps 4-7: Merge
            primary = select_primary_breakdown(responses)
            breakdown: Optional[list[BreakdownStep]] = None
            breakdown_tips: Optional[list[str]] = None
            if primary is not None:
                breakdown = [step.model_copy() for step in primary.breakdown]
                breakdown_tips = list(primary.breakdown_tips) if primary.breakdown_tips else None

            resources = dedupe_by_url(
                (resource for r in responses for resource in r.resources), self._max_resources
            )
            sources = dedupe_by_url(
                (source for r in responses for source in r.sources), self._max_sources
            )
            needs_breakdown = aggregate_needs_breakdown(responses)

            result = OrchestrationResult(
                success=True,
                responses=responses,
                combined_summary=combine_summaries(responses, has_plan=primary is not None),
                breakdown=breakdown,
                breakdown_tips=breakdown_tips,
                resources=resources,
                sources=sources,
                metadata=OrchestrationMetadata(
                    domains_involved=[r.domain for r in responses],
                    execution_time_ms=elapsed_ms(),
                    used_breakdown=primary is not None,
                    needs_breakdown=needs_breakdown,
                    confidence=intent.confidence,
                    complexity=intent.complexity,
                    multi_agent=len(responses) > 1,
                    failed_domains=failed,
                ),
            )

            logger.info(
                f"Orchestration done in {result.metadata.execution_time_ms:.0f}ms: "
                f"domains={[d.value for d in result.metadata.domains_involved]}, "
                f"breakdown_from={primary.domain.value if primary else None}, "
                f"needs_breakdown={needs_breakdown}, resources={len(resources)}, sources={len(sources)}"
            )
            return result

        except Exception as e:
            logger.error(f"Orchestration error: {e}", exc_info=True)
            return OrchestrationResult(
                success=False,
                metadata=OrchestrationMetadata(
                    execution_time_ms=elapsed_ms(),
                    error="Orchestration failed",
                ),
            )

    async def quick_detect_domain(self, query: str) -> AgentDomain:
        """Primary domain for a query; the fallback domain on any error."""
        try:
            return await self._classifier.quick_detect_domain(query)
        except Exception as e:
            logger.warning(f"Quick domain detection failed: {e}")
            return FALLBACK_DOMAIN

    async def get_agent_stats(self, user_id: str) -> ConversationStats:
        """Usage counts from the conversation store (empty when unavailable)."""
        if self._conversations is None:
            return ConversationStats()
        try:
            return await self._conversations.statistics(user_id)
        except Exception as e:
            logger.warning(f"Could not load stats for {user_id}: {e}")
            return ConversationStats()
