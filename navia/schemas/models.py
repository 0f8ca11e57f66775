"""
Data Models
===========

This module defines all Pydantic models used throughout the agent core.
Models provide:
- Value objects passed between the orchestrator and the domain agents
- Validation of the JSON the completion model sends back
- The caller-facing OrchestrationResult contract

Python attributes are snake_case. Every model serializes with camelCase
keys (``subSteps``, ``combinedSummary``, ``executionTimeMs``...) because
that is the shape the web and mobile clients consume. Both spellings are
accepted on input.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serializing to camelCase keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"


# =============================================================================
# Enums
# =============================================================================

class AgentDomain(str, Enum):
    """
    Domains a query can be routed to.

    Each domain has one specialist agent:
    - FINANCE: Budgeting, bills, debt, benefits
    - CAREER: Job search, resumes, interviews, accommodations
    - DAILY_TASK: Executive function, routines, focus, overwhelm
    """
    FINANCE = "finance"
    CAREER = "career"
    DAILY_TASK = "daily_task"


class MessageRole(str, Enum):
    """Speaker of a conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


class EnergyLevel(str, Enum):
    """Self-reported energy level."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CommunicationStyle(str, Enum):
    """How the user prefers to be spoken to."""
    CONCISE = "concise"
    DETAILED = "detailed"
    SUPPORTIVE = "supportive"


class ResourceType(str, Enum):
    """Kinds of resource links shown in the UI."""
    ARTICLE = "article"
    TOOL = "tool"
    GUIDE = "guide"
    TEMPLATE = "template"
    VIDEO = "video"


# =============================================================================
# Conversation Models
# =============================================================================

class ConversationTurn(CamelModel):
    """
    A single message in the conversation history.

    Turns fetched by similarity search rather than recency are tagged
    with ``is_semantic_match`` so prompts can render them separately.
    """
    role: MessageRole = Field(..., description="'user' or 'assistant'")
    content: str = Field(..., description="Message text")
    timestamp: datetime = Field(default_factory=_utcnow)
    domain: Optional[AgentDomain] = Field(default=None)
    session_id: Optional[str] = Field(default=None)
    is_semantic_match: bool = Field(default=False)

    class Config:
        frozen = True


class UserContext(CamelModel):
    """
    Personalization data supplied with a query.

    ``recent_history`` and ``session_message_count`` come from the
    current chat session and drive follow-up-aware routing.
    """
    energy_level: Optional[EnergyLevel] = None
    ef_profile: list[str] = Field(
        default_factory=list,
        description="Self-reported executive-function challenge tags"
    )
    current_goals: list[str] = Field(default_factory=list)
    communication_style: Optional[CommunicationStyle] = None
    recent_history: list[ConversationTurn] = Field(default_factory=list)
    session_message_count: int = Field(default=0, ge=0)
    session_id: Optional[str] = None

    @field_validator("energy_level", "communication_style", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AgentContext(CamelModel):
    """Everything one domain agent needs to answer one query."""
    user_id: str
    query: str
    user_context: Optional[UserContext] = None
    chat_history: list[ConversationTurn] = Field(default_factory=list)


# =============================================================================
# Intent Detection
# =============================================================================

class IntentDetection(CamelModel):
    """Routing decision produced once per orchestration call."""
    domains: list[AgentDomain] = Field(..., min_length=1)
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    complexity: int = Field(default=5, ge=0, le=10)
    needs_breakdown: bool = False
    reasoning: str = ""

    class Config:
        frozen = True

    @field_validator("domains")
    @classmethod
    def _dedupe_domains(cls, value: list[AgentDomain]) -> list[AgentDomain]:
        return list(dict.fromkeys(value))


# =============================================================================
# Breakdown Models
# =============================================================================

class BreakdownStep(CamelModel):
    """
    One top-level step of a task breakdown.

    A step is only valid with at least one sub-step; the breakdown
    generator fills in defaults before constructing one.
    """
    title: str = Field(..., min_length=1)
    time_estimate: str = Field(default="5-10 min")
    sub_steps: list[str] = Field(..., min_length=1)
    is_optional: bool = False
    is_hard: bool = False


class BreakdownResult(CamelModel):
    """Output of the breakdown generator."""
    breakdown: list[BreakdownStep] = Field(..., min_length=1)
    tips: list[str] = Field(default_factory=list)
    complexity: int = Field(default=5, ge=0, le=10)
    estimated_time: Optional[str] = None
    needs_breakdown: bool = True
    is_fallback: bool = False


class ComplexityAnalysis(CamelModel):
    """Cheap complexity estimate used for agent metadata."""
    complexity: int = Field(default=5, ge=0, le=10)
    needs_breakdown: bool = True
    reasoning: str = ""


# =============================================================================
# Resources and Sources
# =============================================================================

class ResourceLink(CamelModel):
    """An external resource shown to the user."""
    title: str
    url: str
    description: str = ""
    type: ResourceType = ResourceType.ARTICLE

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        try:
            return ResourceType(value)
        except (TypeError, ValueError):
            return ResourceType.ARTICLE


class SourceReference(CamelModel):
    """A knowledge passage cited by an agent."""
    title: str
    url: Optional[str] = None
    excerpt: str = ""
    relevance: Optional[float] = None


class KnowledgePassage(CamelModel):
    """A passage returned by the knowledge retriever."""
    title: str
    content: str
    url: Optional[str] = None
    score: float = 0.0
    domain: Optional[AgentDomain] = None


class WebResult(CamelModel):
    """A single web search hit."""
    title: str
    url: str
    content: str = ""
    score: Optional[float] = None


# =============================================================================
# Agent Response Models
# =============================================================================

class AgentMetadata(CamelModel):
    """Per-agent metadata attached to every AgentResponse."""
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    complexity: Optional[int] = Field(default=None, ge=0, le=10)
    needs_breakdown: bool = False
    show_resources: bool = True
    suggested_actions: list[str] = Field(default_factory=list)
    sub_topic: Optional[str] = None
    breakdown_offer: Optional[str] = None
    retrieved_from_rag: int = 0
    external_resources_found: int = 0
    error: Optional[str] = None


class AgentResponse(CamelModel):
    """
    Response from one domain agent.

    The orchestrator never mutates these; it only combines them into
    a new OrchestrationResult.
    """
    domain: AgentDomain
    summary: str
    breakdown: Optional[list[BreakdownStep]] = None
    breakdown_tips: Optional[list[str]] = None
    resources: list[ResourceLink] = Field(default_factory=list)
    sources: list[SourceReference] = Field(default_factory=list)
    metadata: AgentMetadata = Field(default_factory=AgentMetadata)

    @property
    def has_breakdown(self) -> bool:
        return bool(self.breakdown)

    @property
    def failed(self) -> bool:
        return self.metadata.error is not None


# =============================================================================
# Orchestration Models
# =============================================================================

class OrchestrationMetadata(CamelModel):
    """Timing and routing metadata for one orchestration call."""
    domains_involved: list[AgentDomain] = Field(default_factory=list)
    execution_time_ms: float = 0.0
    used_breakdown: bool = False
    needs_breakdown: bool = False
    confidence: float = 0.0
    complexity: int = 0
    multi_agent: bool = False
    failed_domains: list[AgentDomain] = Field(default_factory=list)
    error: Optional[str] = None


class OrchestrationResult(CamelModel):
    """
    The caller-facing aggregate of one orchestration call.

    Example:
        {
            "success": true,
            "responses": [...],
            "combinedSummary": null,
            "breakdown": [{"title": "...", "subSteps": ["..."]}],
            "resources": [...],
            "sources": [...],
            "metadata": {"domainsInvolved": ["finance"], "executionTimeMs": 812.4}
        }
    """
    success: bool
    responses: list[AgentResponse] = Field(default_factory=list)
    combined_summary: Optional[str] = None
    breakdown: Optional[list[BreakdownStep]] = None
    breakdown_tips: Optional[list[str]] = None
    resources: list[ResourceLink] = Field(default_factory=list)
    sources: list[SourceReference] = Field(default_factory=list)
    metadata: OrchestrationMetadata = Field(default_factory=OrchestrationMetadata)

    @property
    def summary(self) -> str:
        """Text to show or store: the combined summary or the single reply."""
        if self.combined_summary:
            return self.combined_summary
        if self.responses:
            return self.responses[0].summary
        return ""


# =============================================================================
# API Request/Response Models
# =============================================================================

class QueryRequest(CamelModel):
    """
    User query submitted to the coach.

    Example:
        {
            "userId": "user_123",
            "query": "Help me make a budget for this month",
            "sessionId": "session-abc",
            "userContext": {"energyLevel": "low", "efProfile": ["task_initiation"]}
        }
    """
    user_id: str = Field(..., min_length=1)
    query: str = Field(..., min_length=1, max_length=2000)
    session_id: Optional[str] = None
    user_context: Optional[UserContext] = None


class BreakdownRequest(CamelModel):
    """Explicit request to build a step-by-step plan for a task."""
    task: str = Field(..., min_length=1, max_length=2000)
    context: Optional[str] = None
    ef_profile: list[str] = Field(default_factory=list)
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class KnowledgeSourceIn(CamelModel):
    """A knowledge passage to add to the retriever."""
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    domain: AgentDomain
    url: Optional[str] = None
    source_type: ResourceType = ResourceType.ARTICLE
    tags: list[str] = Field(default_factory=list)


class IngestionRequest(CamelModel):
    """Batch of knowledge sources to ingest."""
    sources: list[KnowledgeSourceIn] = Field(..., min_length=1)


class IngestionResponse(CamelModel):
    """Response after knowledge ingestion."""
    sources_ingested: int
    document_count: int


class ConversationStats(CamelModel):
    """Usage counts for one user's stored conversations."""
    total_queries: int = 0
    by_domain: dict[str, int] = Field(default_factory=dict)
    breakdown_usage: int = 0


class HealthResponse(CamelModel):
    """API health check response."""
    status: str = Field(..., description="'healthy' or 'unhealthy'")
    version: str
    llm_provider: str
    knowledge_store_ready: bool
    document_count: int
