"""
Conversation Store
==================

Append-only per-user record of past exchanges.

Each record is one (query, response) exchange with its domain, session
and timestamp. The store supports two reads:
- fetch_recent(): the latest exchanges, oldest first
- fetch_semantic(): past exchanges similar to a query, above a threshold

Both are filterable by domain and session. Appends happen in the HTTP
layer after a query has been answered; the agent core only reads.

WHY TWO READS?
- Recency answers "what were we just talking about?"
- Similarity answers "have we discussed this topic before?"
"""

import logging
import uuid
from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import InMemoryVectorStore

from navia.schemas.models import AgentDomain, ConversationStats, ConversationTurn, MessageRole

logger = logging.getLogger(__name__)

SEMANTIC_MATCH_THRESHOLD = 0.7


@dataclass
class ConversationRecord:
    """One stored exchange."""
    user_id: str
    query: str
    response: str
    domain: Optional[AgentDomain] = None
    session_id: Optional[str] = None
    had_breakdown: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_turns(self, is_semantic_match: bool = False) -> list[ConversationTurn]:
        """The exchange as a user turn followed by an assistant turn."""
        shared = {
            "timestamp": self.timestamp,
            "domain": self.domain,
            "session_id": self.session_id,
            "is_semantic_match": is_semantic_match,
        }
        return [
            ConversationTurn(role=MessageRole.USER, content=self.query, **shared),
            ConversationTurn(role=MessageRole.ASSISTANT, content=self.response, **shared),
        ]


class ConversationStore(ABC):
    """Capability interface for conversation history."""

    @abstractmethod
    async def append(
        self,
        user_id: str,
        query: str,
        response: str,
        domain: Optional[AgentDomain] = None,
        session_id: Optional[str] = None,
        had_breakdown: bool = False,
    ) -> ConversationRecord:
        """Store one exchange."""
        pass

    @abstractmethod
    async def fetch_recent(
        self,
        user_id: str,
        limit: int,
        domain: Optional[AgentDomain] = None,
        session_id: Optional[str] = None,
    ) -> list[ConversationTurn]:
        """
        The latest ``limit`` exchanges as turns, oldest first.

        ``limit`` counts exchanges, so up to ``2 * limit`` turns come back.
        """
        pass

    @abstractmethod
    async def fetch_semantic(
        self,
        user_id: str,
        query: str,
        domain: Optional[AgentDomain] = None,
        limit: int = 3,
    ) -> list[ConversationTurn]:
        """Past exchanges similar to ``query``, most similar first, tagged as semantic matches."""
        pass

    @abstractmethod
    async def session_message_count(self, user_id: str, session_id: str) -> int:
        """Number of stored messages (turns) in one session."""
        pass

    @abstractmethod
    async def statistics(self, user_id: str) -> ConversationStats:
        """Usage counts for one user."""
        pass

    @abstractmethod
    async def clear(self, user_id: str) -> int:
        """Delete a user's history. Returns the number of exchanges removed."""
        pass


class InMemoryConversationStore(ConversationStore):
    """
    Conversation store held in process memory.

    Similarity search uses LangChain's InMemoryVectorStore over
    "User: ... / Assistant: ..." texts. Without embeddings,
    fetch_semantic() returns nothing and recency still works.

    Usage:
        store = InMemoryConversationStore(embeddings)
        await store.append("user_1", "Should I use YNAB?", "YNAB is great for...", AgentDomain.FINANCE)
        turns = await store.fetch_recent("user_1", limit=5)
    """

    def __init__(
        self,
        embeddings: Optional[Embeddings] = None,
        threshold: float = SEMANTIC_MATCH_THRESHOLD,
    ):
        self._records: dict[str, list[ConversationRecord]] = defaultdict(list)
        self._threshold = threshold
        self._vectors = InMemoryVectorStore(embeddings) if embeddings is not None else None

    async def append(
        self,
        user_id: str,
        query: str,
        response: str,
        domain: Optional[AgentDomain] = None,
        session_id: Optional[str] = None,
        had_breakdown: bool = False,
    ) -> ConversationRecord:
        record = ConversationRecord(
            user_id=user_id,
            query=query,
            response=response,
            domain=domain,
            session_id=session_id,
            had_breakdown=had_breakdown,
        )
        self._records[user_id].append(record)

        if self._vectors is not None:
            await self._vectors.aadd_documents(
                [Document(
                    page_content=f"User: {query}\nAssistant: {response}",
                    metadata={
                        "user_id": user_id,
                        "record_id": record.record_id,
                        "domain": domain.value if domain else None,
                        "session_id": session_id,
                    },
                )],
                ids=[record.record_id],
            )

        logger.debug(f"Stored exchange for {user_id} (domain={domain.value if domain else None}): {query[:50]}")
        return record

    def _filtered(
        self,
        user_id: str,
        domain: Optional[AgentDomain] = None,
        session_id: Optional[str] = None,
    ) -> list[ConversationRecord]:
        return [
            r for r in self._records.get(user_id, [])
            if (domain is None or r.domain == domain)
            and (session_id is None or r.session_id == session_id)
        ]

    async def fetch_recent(
        self,
        user_id: str,
        limit: int,
        domain: Optional[AgentDomain] = None,
        session_id: Optional[str] = None,
    ) -> list[ConversationTurn]:
        if limit <= 0:
            return []
        records = self._filtered(user_id, domain, session_id)[-limit:]
        return [turn for record in records for turn in record.to_turns()]

    async def fetch_semantic(
        self,
        user_id: str,
        query: str,
        domain: Optional[AgentDomain] = None,
        limit: int = 3,
    ) -> list[ConversationTurn]:
        if self._vectors is None or limit <= 0 or not query.strip() or not self._records.get(user_id):
            return []

        def matches(doc: Document) -> bool:
            return doc.metadata.get("user_id") == user_id and (
                domain is None or doc.metadata.get("domain") == domain.value
            )

        hits = await self._vectors.asimilarity_search_with_score(query, k=limit, filter=matches)

        by_id = {r.record_id: r for r in self._records[user_id]}
        turns = []
        for doc, score in hits:
            if score <= self._threshold:
                continue
            record = by_id.get(doc.metadata.get("record_id"))
            if record is not None:
                turns.extend(record.to_turns(is_semantic_match=True))

        logger.debug(f"Found {len(turns) // 2} similar past exchanges for {user_id}")
        return turns

    async def session_message_count(self, user_id: str, session_id: str) -> int:
        return 2 * len(self._filtered(user_id, session_id=session_id))

    async def statistics(self, user_id: str) -> ConversationStats:
        records = self._records.get(user_id, [])
        by_domain = Counter(r.domain.value for r in records if r.domain is not None)
        return ConversationStats(
            total_queries=len(records),
            by_domain={d.value: by_domain.get(d.value, 0) for d in AgentDomain},
            breakdown_usage=sum(1 for r in records if r.had_breakdown),
        )

    async def clear(self, user_id: str) -> int:
        records = self._records.pop(user_id, [])
        if records and self._vectors is not None:
            await self._vectors.adelete([r.record_id for r in records])
        if records:
            logger.info(f"Cleared {len(records)} stored exchanges for {user_id}")
        return len(records)
