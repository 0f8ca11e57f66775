"""
Knowledge Store
===============

Domain-tagged knowledge passages behind a FAISS index.

HOW IT WORKS:
1. Sources are split into chunks, each tagged with its domain
2. Each chunk is embedded and indexed in FAISS
3. A query is embedded and compared against chunks of ONE domain
4. Chunks above the relevance threshold come back as passages

The index is persisted to disk after every ingestion when an index path
is configured, and loaded again at startup.
"""

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from langchain_community.vectorstores import FAISS
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_text_splitters import RecursiveCharacterTextSplitter

from navia.config import Settings, get_settings
from navia.schemas.models import AgentDomain, KnowledgePassage, KnowledgeSourceIn

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


class KnowledgeRetriever(ABC):
    """Capability interface: domain-filtered passage retrieval."""

    @abstractmethod
    async def retrieve(
        self,
        query: str,
        domain: AgentDomain,
        limit: int = 5,
    ) -> list[KnowledgePassage]:
        """Ranked passages for one domain, best first."""
        pass


class FAISSKnowledgeStore(KnowledgeRetriever):
    """
    Knowledge retriever over a local FAISS index.

    Usage:
        store = FAISSKnowledgeStore(embeddings, index_path=Path("./data/knowledge_index"))
        store.add_sources([KnowledgeSourceIn(title="...", content="...", domain="finance")])
        passages = await store.retrieve("how do I start a budget", AgentDomain.FINANCE)
    """

    def __init__(
        self,
        embeddings: Embeddings,
        index_path: Optional[Path] = None,
        min_score: float = 0.7,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ):
        """
        Args:
            embeddings: Shared embeddings client
            index_path: Directory for save/load (None keeps the index in memory only)
            min_score: Relevance threshold in [0, 1]
            chunk_size: Characters per chunk
            chunk_overlap: Characters shared between consecutive chunks
        """
        self._embeddings = embeddings
        self._index_path = index_path
        self._min_score = min_score
        self._store: Optional[FAISS] = None
        self._text_splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
            # Split hierarchy: paragraphs -> sentences -> words -> chars
            separators=["\n\n", "\n", ". ", " ", ""],
        )
        self._try_load_existing_index()

    @classmethod
    def from_settings(cls, embeddings: Embeddings, settings: Optional[Settings] = None) -> "FAISSKnowledgeStore":
        settings = settings or get_settings()
        return cls(
            embeddings,
            index_path=settings.faiss_index_path,
            min_score=settings.knowledge_min_score,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
        )

    def _try_load_existing_index(self) -> None:
        """Load a saved index if one exists; otherwise stay empty until sources are added."""
        if self._index_path is None:
            return

        if (self._index_path / "index.faiss").exists():
            try:
                self._store = FAISS.load_local(
                    str(self._index_path),
                    self._embeddings,
                    allow_dangerous_deserialization=True,
                )
                logger.info(f"Loaded existing knowledge index from {self._index_path}")
            except Exception as e:
                logger.warning(f"Could not load existing knowledge index: {e}")
                self._store = None
        else:
            logger.info("No existing knowledge index found. Ready for ingestion.")

    def _save_index(self) -> None:
        if self._store is None or self._index_path is None:
            return
        self._index_path.mkdir(parents=True, exist_ok=True)
        self._store.save_local(str(self._index_path))
        logger.info(f"Saved knowledge index to {self._index_path}")

    def add_sources(self, sources: Sequence[KnowledgeSourceIn]) -> int:
        """
        Chunk, embed and index knowledge sources.

        Returns:
            Number of chunks indexed
        """
        if not sources:
            logger.warning("No knowledge sources provided to index")
            return 0

        documents = [
            Document(
                page_content=source.content,
                metadata={
                    "title": source.title,
                    "url": source.url,
                    "domain": source.domain.value,
                    "source_type": source.source_type.value,
                    "tags": list(source.tags),
                },
            )
            for source in sources
        ]
        chunks = self._text_splitter.split_documents(documents)
        logger.info(f"Split {len(documents)} knowledge sources into {len(chunks)} chunks")

        if self._store is None:
            self._store = FAISS.from_documents(chunks, self._embeddings)
        else:
            self._store.add_documents(chunks)

        self._save_index()
        return len(chunks)

    async def retrieve(
        self,
        query: str,
        domain: AgentDomain,
        limit: int = 5,
    ) -> list[KnowledgePassage]:
        if self._store is None or not query.strip():
            return []

        results = await self._store.asimilarity_search_with_relevance_scores(
            query,
            k=limit,
            filter={"domain": domain.value},
            score_threshold=self._min_score,
        )

        passages = [
            KnowledgePassage(
                title=doc.metadata.get("title") or "Knowledge base",
                content=doc.page_content,
                url=doc.metadata.get("url"),
                score=round(float(score), 4),
                domain=domain,
            )
            for doc, score in results
        ]
        logger.debug(f"Retrieved {len(passages)} {domain.value} passages for '{query[:50]}'")
        return passages

    def delete_all(self) -> None:
        """Drop every indexed passage, including the saved index files."""
        self._store = None
        if self._index_path is not None and self._index_path.exists():
            shutil.rmtree(self._index_path)
            self._index_path.mkdir(parents=True, exist_ok=True)
        logger.info("Deleted all knowledge passages")

    @property
    def is_ready(self) -> bool:
        return self._store is not None

    @property
    def document_count(self) -> int:
        if self._store is None:
            return 0
        return self._store.index.ntotal
