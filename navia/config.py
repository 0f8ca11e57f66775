"""
Configuration Management
========================

This module centralizes all configuration using pydantic-settings.
It loads environment variables and provides type-safe access to config values.

SUPPORTED LLM PROVIDERS:
1. groq        - Groq Cloud (default, fast Llama inference)
2. ollama      - Local LLMs (Llama, Mistral) - completely free
3. openai      - OpenAI
4. google      - Google Gemini
5. huggingface - HuggingFace Inference API

History windows and merge caps are settings too.
"""

from pathlib import Path
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    In production, override via environment variables or .env file.
    """

    # =========================================================================
    # LLM Provider Selection
    # =========================================================================
    llm_provider: Literal["groq", "ollama", "openai", "google", "huggingface"] = Field(
        default="groq",
        description="Which LLM provider backs the text completion service"
    )

    # =========================================================================
    # API Keys
    # =========================================================================
    groq_api_key: str = Field(default="", description="Groq API key")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    google_api_key: str = Field(default="", description="Google API key")
    huggingface_api_key: str = Field(default="", description="HuggingFace API key")
    tavily_api_key: str = Field(
        default="",
        description="Tavily API key (web search is disabled when empty)"
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================
    groq_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Groq model for agent responses and breakdowns"
    )

    fast_model: str = Field(
        default="llama-3.1-8b-instant",
        description="Smaller model for cheap yes/no and scoring calls"
    )

    ollama_model: str = Field(default="llama3.2", description="Ollama model")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model")
    google_model: str = Field(default="gemini-1.5-flash", description="Gemini model")
    huggingface_model: str = Field(
        default="mistralai/Mistral-7B-Instruct-v0.2",
        description="HuggingFace model ID"
    )

    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )

    llm_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="LLM temperature for agent responses"
    )

    llm_max_tokens: int = Field(
        default=2048,
        description="Maximum completion tokens per call"
    )

    # =========================================================================
    # Embedding Configuration
    # =========================================================================
    embedding_provider: Literal["huggingface", "openai"] = Field(
        default="huggingface",
        description="Embedding provider (huggingface runs locally)"
    )

    huggingface_embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Local embedding model"
    )

    openai_embedding_model: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model"
    )

    # =========================================================================
    # Knowledge Store Configuration
    # =========================================================================
    faiss_index_path: Path = Field(
        default=Path("./data/knowledge_index"),
        description="Directory to store the knowledge FAISS index"
    )

    retrieval_top_k: int = Field(
        default=5,
        description="Number of knowledge passages retrieved per agent"
    )

    knowledge_min_score: float = Field(
        default=0.7,
        description="Minimum similarity for a knowledge passage to be used"
    )

    chunk_size: int = Field(
        default=1000,
        description="Size of text chunks for knowledge passages (in characters)"
    )

    chunk_overlap: int = Field(
        default=200,
        description="Overlap between consecutive chunks"
    )

    # =========================================================================
    # Web Search Configuration
    # =========================================================================
    tavily_base_url: str = Field(
        default="https://api.tavily.com",
        description="Tavily REST endpoint"
    )

    web_search_depth: Literal["basic", "advanced"] = Field(
        default="basic",
        description="Tavily search depth"
    )

    # =========================================================================
    # Timeouts (seconds)
    # =========================================================================
    completion_timeout: float = Field(default=30.0, description="Per LLM call")
    retrieval_timeout: float = Field(default=10.0, description="Per knowledge lookup")
    web_search_timeout: float = Field(default=15.0, description="Per web search")
    agent_timeout: float = Field(default=90.0, description="Per domain agent run")

    # =========================================================================
    # Conversation Windows
    # =========================================================================
    classifier_history_window: int = Field(
        default=12,
        description="Max turns shown to the intent classifier for new topics"
    )

    breakdown_history_window: int = Field(
        default=4,
        description="Turns shown to the breakdown generator (2 exchanges)"
    )

    explicit_request_history_window: int = Field(
        default=10,
        description="Turns shown to the explicit breakdown request gate"
    )

    orchestrator_history_window: int = Field(
        default=5,
        description="Past chat records fetched to enrich agent context"
    )

    follow_up_max_words: int = Field(
        default=10,
        description="Queries at or below this length in an active session are follow-ups"
    )

    semantic_match_threshold: float = Field(
        default=0.7,
        description="Similarity cutoff for semantically retrieved past turns"
    )

    semantic_history_limit: int = Field(
        default=3,
        description="Past conversations retrieved by similarity per agent"
    )

    # =========================================================================
    # Merge Caps
    # =========================================================================
    max_resources: int = Field(default=10, description="Resources in the final result")
    max_sources: int = Field(default=8, description="Sources in the final result")
    agent_max_resources: int = Field(default=8, description="Resources per agent")
    agent_max_sources: int = Field(default=5, description="Sources per agent")

    # =========================================================================
    # API Configuration
    # =========================================================================
    api_host: str = Field(default="0.0.0.0", description="Host to bind the API server")
    api_port: int = Field(default=8000, description="Port for the API server")
    debug_mode: bool = Field(default=False, description="Enable auto-reload")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    class Config:
        """Pydantic configuration for settings."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.faiss_index_path.mkdir(parents=True, exist_ok=True)

    def get_model_name(self) -> str:
        """Get the model name for the selected provider."""
        model_map = {
            "groq": self.groq_model,
            "ollama": self.ollama_model,
            "openai": self.openai_model,
            "google": self.google_model,
            "huggingface": self.huggingface_model,
        }
        return model_map.get(self.llm_provider, self.groq_model)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
