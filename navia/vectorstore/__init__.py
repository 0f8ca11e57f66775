"""
Vector Store Module
===================

Embeddings and the FAISS-backed knowledge store agents retrieve from.
"""

from navia.vectorstore.embeddings import create_embeddings
from navia.vectorstore.knowledge_store import FAISSKnowledgeStore, KnowledgeRetriever

__all__ = ["create_embeddings", "FAISSKnowledgeStore", "KnowledgeRetriever"]
