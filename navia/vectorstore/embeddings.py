"""
Embeddings
==========

Converts text to vector embeddings for the knowledge store and the
semantic conversation lookup.

FREE OPTION: HuggingFace sentence-transformers
- Runs locally, no API costs
- Model: all-MiniLM-L6-v2 (384 dimensions, fast)

PAID OPTION: OpenAI
- Requires API key
"""

import logging
from typing import Optional

from langchain_core.embeddings import Embeddings

from navia.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_embeddings(
    settings: Optional[Settings] = None,
    provider: Optional[str] = None,
) -> Embeddings:
    """
    Create an embeddings client.

    Built once at startup and shared by every store that needs it.

    Args:
        settings: Settings to read (defaults to the cached instance)
        provider: Override provider from settings ("huggingface" or "openai")

    Returns:
        LangChain Embeddings instance

    Raises:
        ValueError: If provider is not supported
    """
    settings = settings or get_settings()
    provider = provider or settings.embedding_provider

    logger.info(f"Creating embeddings with provider: {provider}")

    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings
        return HuggingFaceEmbeddings(
            model_name=settings.huggingface_embedding_model,
            model_kwargs={"device": "cpu"},
            # Normalized vectors keep FAISS relevance scores in [0, 1]
            encode_kwargs={"normalize_embeddings": True},
        )

    elif provider == "openai":
        from langchain_openai import OpenAIEmbeddings
        return OpenAIEmbeddings(
            model=settings.openai_embedding_model,
            api_key=settings.openai_api_key,
        )

    else:
        raise ValueError(f"Unsupported embedding provider: {provider}")
