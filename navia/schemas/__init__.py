"""
Pydantic Schemas
================

Value objects shared by the agents, the orchestrator and the API.
"""

from navia.schemas.models import (
    AgentContext,
    AgentDomain,
    AgentMetadata,
    AgentResponse,
    BreakdownRequest,
    BreakdownResult,
    BreakdownStep,
    ComplexityAnalysis,
    ConversationStats,
    ConversationTurn,
    EnergyLevel,
    HealthResponse,
    IngestionRequest,
    IngestionResponse,
    IntentDetection,
    KnowledgePassage,
    KnowledgeSourceIn,
    MessageRole,
    OrchestrationMetadata,
    OrchestrationResult,
    QueryRequest,
    ResourceLink,
    ResourceType,
    SourceReference,
    UserContext,
    WebResult,
)

__all__ = [
    "AgentContext",
    "AgentDomain",
    "AgentMetadata",
    "AgentResponse",
    "BreakdownRequest",
    "BreakdownResult",
    "BreakdownStep",
    "ComplexityAnalysis",
    "ConversationStats",
    "ConversationTurn",
    "EnergyLevel",
    "HealthResponse",
    "IngestionRequest",
    "IngestionResponse",
    "IntentDetection",
    "KnowledgePassage",
    "KnowledgeSourceIn",
    "MessageRole",
    "OrchestrationMetadata",
    "OrchestrationResult",
    "QueryRequest",
    "ResourceLink",
    "ResourceType",
    "SourceReference",
    "UserContext",
    "WebResult",
]
