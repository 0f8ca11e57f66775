"""
API Routes
==========

FastAPI endpoints for the Navia agent core.

ENDPOINTS:
- GET    /health                   : Health check
- POST   /query                    : Answer a query with one or more domain agents
- POST   /breakdown                : Build a step-by-step plan ("build me a plan" button)
- POST   /knowledge                : Ingest knowledge passages
- DELETE /knowledge                : Clear the knowledge store
- GET    /stats/{user_id}          : Usage counts for a user
- DELETE /conversations/{user_id}  : Clear a user's stored history

A failed orchestration (success=false) is still a 200: the client
renders the retry state from the payload. 5xx is reserved for errors
outside the agent core.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from navia import __version__
from navia.memory.context_formatter import session_turns
from navia.schemas.models import (
    BreakdownRequest,
    BreakdownResult,
    ConversationStats,
    ConversationTurn,
    HealthResponse,
    IngestionRequest,
    IngestionResponse,
    OrchestrationResult,
    QueryRequest,
    UserContext,
)
from navia.services.container import NaviaServices

logger = logging.getLogger(__name__)

# Create router with prefix and tags for OpenAPI docs
router = APIRouter(prefix="/api/v1", tags=["navia"])


def get_services(request: Request) -> NaviaServices:
    """Services built by the application lifespan."""
    return request.app.state.services


async def load_session_context(
    services: NaviaServices,
    user_id: str,
    query: str,
    user_context: UserContext,
    session_id: str = None,
) -> UserContext:
    """
    Fill in current-session history and similar past turns from the store.

    History the client already sent is kept as-is. Store failures only
    cost context; the query is still answered.
    """
    if user_context.recent_history:
        return user_context

    settings = services.settings
    store = services.conversation_store
    session: list[ConversationTurn] = []
    similar: list[ConversationTurn] = []
    count = user_context.session_message_count

    try:
        if session_id:
            session = await store.fetch_recent(
                user_id, limit=settings.classifier_history_window // 2, session_id=session_id
            )
            count = await store.session_message_count(user_id, session_id)
        similar = await store.fetch_semantic(user_id, query, limit=settings.semantic_history_limit)
    except Exception as e:
        logger.warning(f"Could not load conversation context for {user_id}: {e}")

    session_keys = {(t.role, t.content) for t in session}
    similar = [t for t in similar if (t.role, t.content) not in session_keys]

    return user_context.model_copy(update={
        "recent_history": [*similar, *session],
        "session_message_count": count,
        "session_id": session_id,
    })


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check if the API is running and the knowledge store is ready",
)
async def health_check(services: NaviaServices = Depends(get_services)) -> HealthResponse:
    store = services.knowledge_store
    return HealthResponse(
        status="healthy",
        version=__version__,
        llm_provider=services.settings.llm_provider,
        knowledge_store_ready=bool(store and store.is_ready),
        document_count=store.document_count if store else 0,
    )


# =============================================================================
# Query Endpoint
# =============================================================================

@router.post(
    "/query",
    response_model=OrchestrationResult,
    summary="Submit Query",
    description="Route a query to the finance, career and/or daily-task agents",
)
async def submit_query(
    request: QueryRequest,
    services: NaviaServices = Depends(get_services),
) -> OrchestrationResult:
    """
    Answer a query and record the exchange.

    Flow:
    1. Load current-session history and similar past turns
    2. Orchestrate (classifier -> agents -> merge)
    3. Append the exchange to the conversation store
    """
    user_context = request.user_context or UserContext()
    session_id = request.session_id or user_context.session_id

    user_context = await load_session_context(
        services, request.user_id, request.query, user_context, session_id
    )

    result = await services.orchestrator.orchestrate_query(request.user_id, request.query, user_context)

    if result.success:
        try:
            await services.conversation_store.append(
                request.user_id,
                request.query,
                result.summary,
                domain=result.responses[0].domain,
                session_id=session_id,
                had_breakdown=result.metadata.used_breakdown,
            )
        except Exception as e:
            logger.warning(f"Could not store exchange for {request.user_id}: {e}")

    logger.info(
        f"Query answered for {request.user_id}: success={result.success}, "
        f"domains={[d.value for d in result.metadata.domains_involved]}"
    )
    return result


# =============================================================================
# Breakdown Endpoint
# =============================================================================

@router.post(
    "/breakdown",
    response_model=BreakdownResult,
    summary="Generate Breakdown",
    description="Break a task into small, concrete steps",
)
async def generate_breakdown(
    request: BreakdownRequest,
    services: NaviaServices = Depends(get_services),
) -> BreakdownResult:
    history: list[ConversationTurn] = []
    if request.user_id and request.session_id:
        try:
            history = await services.conversation_store.fetch_recent(
                request.user_id,
                limit=services.settings.breakdown_history_window,
                session_id=request.session_id,
            )
        except Exception as e:
            logger.warning(f"Could not load history for breakdown: {e}")

    return await services.breakdown_generator.generate_breakdown(
        request.task,
        context=request.context,
        ef_profile=request.ef_profile,
        history=session_turns(history),
    )


# =============================================================================
# Knowledge Management
# =============================================================================

@router.post(
    "/knowledge",
    response_model=IngestionResponse,
    summary="Ingest Knowledge",
    description="Add domain-tagged knowledge passages to the retriever",
)
async def ingest_knowledge(
    request: IngestionRequest,
    services: NaviaServices = Depends(get_services),
) -> IngestionResponse:
    store = services.knowledge_store
    if store is None:
        raise HTTPException(status_code=503, detail="Knowledge store is not configured")

    try:
        # Embedding and index writes are blocking
        await run_in_threadpool(store.add_sources, request.sources)
    except Exception as e:
        logger.error(f"Knowledge ingestion failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to ingest knowledge: {str(e)}"
        )

    logger.info(f"Ingested {len(request.sources)} knowledge sources")
    return IngestionResponse(sources_ingested=len(request.sources), document_count=store.document_count)


@router.delete(
    "/knowledge",
    summary="Clear Knowledge",
    description="Delete every passage from the knowledge store",
)
async def clear_knowledge(services: NaviaServices = Depends(get_services)) -> dict:
    """WARNING: This is destructive and cannot be undone."""
    if services.knowledge_store is None:
        raise HTTPException(status_code=503, detail="Knowledge store is not configured")

    services.knowledge_store.delete_all()
    return {
        "success": True,
        "message": "All passages have been cleared from the knowledge store",
    }


# =============================================================================
# Conversation Management
# =============================================================================

@router.get(
    "/stats/{user_id}",
    response_model=ConversationStats,
    summary="User Stats",
    description="Query counts by domain and breakdown usage for one user",
)
async def get_user_stats(
    user_id: str,
    services: NaviaServices = Depends(get_services),
) -> ConversationStats:
    return await services.orchestrator.get_agent_stats(user_id)


@router.delete(
    "/conversations/{user_id}",
    summary="Clear Conversations",
    description="Delete a user's stored conversation history",
)
async def clear_conversations(
    user_id: str,
    services: NaviaServices = Depends(get_services),
) -> dict:
    deleted = await services.conversation_store.clear(user_id)
    return {
        "success": True,
        "deleted": deleted,
        "message": f"Cleared conversation history for user: {user_id}",
    }
