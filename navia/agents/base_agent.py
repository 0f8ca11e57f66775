"""
Base Agent
==========

Shared LLM plumbing for every component of the agent core.

This module provides:
- create_llm(): builds a LangChain chat model for the configured provider
- TextCompletionService: the single seam through which every prompt is
  sent (JSON mode, per-call timeout, defensive JSON parsing)
- BaseAgent: abstract base class for the domain agents, with a
  safe_process() wrapper that always returns a valid AgentResponse

SUPPORTED PROVIDERS:
1. groq        - Groq Cloud (default)
2. ollama      - Local LLMs
3. openai      - OpenAI
4. google      - Google Gemini
5. huggingface - HuggingFace Inference API
"""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from navia.config import Settings, get_settings
from navia.schemas.models import AgentContext, AgentDomain, AgentMetadata, AgentResponse

logger = logging.getLogger(__name__)

MessageInput = Union[BaseMessage, dict[str, str]]

# Provider-specific arguments that switch the model into strict JSON output
JSON_MODE_KWARGS: dict[str, dict[str, Any]] = {
    "groq": {"response_format": {"type": "json_object"}},
    "openai": {"response_format": {"type": "json_object"}},
    "ollama": {"format": "json"},
}

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class CompletionError(Exception):
    """The completion call failed or timed out."""


class MalformedResponseError(ValueError):
    """The completion could not be parsed into the expected JSON shape."""


def create_llm(
    provider: Optional[str] = None,
    temperature: Optional[float] = None,
    model: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> BaseChatModel:
    """
    Create an LLM instance based on the configured provider.

    Args:
        provider: Override the default provider from settings
        temperature: Override the default temperature
        model: Override the provider's default model name
        settings: Settings to read (defaults to the cached instance)

    Returns:
        A LangChain chat model instance

    Raises:
        ValueError: If provider is not supported
    """
    settings = settings or get_settings()
    provider = provider or settings.llm_provider
    temp = temperature if temperature is not None else settings.llm_temperature

    logger.info(f"Creating LLM with provider: {provider}")

    if provider == "groq":
        from langchain_groq import ChatGroq
        return ChatGroq(
            model=model or settings.groq_model,
            api_key=settings.groq_api_key,
            temperature=temp,
            max_tokens=settings.llm_max_tokens,
        )

    elif provider == "ollama":
        from langchain_community.chat_models import ChatOllama
        return ChatOllama(
            model=model or settings.ollama_model,
            base_url=settings.ollama_base_url,
            temperature=temp,
        )

    elif provider == "openai":
        from langchain_openai import ChatOpenAI
        return ChatOpenAI(
            model=model or settings.openai_model,
            api_key=settings.openai_api_key,
            temperature=temp,
            max_tokens=settings.llm_max_tokens,
        )

    elif provider == "google":
        from langchain_google_genai import ChatGoogleGenerativeAI
        return ChatGoogleGenerativeAI(
            model=model or settings.google_model,
            google_api_key=settings.google_api_key,
            temperature=temp,
        )

    elif provider == "huggingface":
        from langchain_huggingface import ChatHuggingFace, HuggingFaceEndpoint
        llm = HuggingFaceEndpoint(
            repo_id=model or settings.huggingface_model,
            huggingfacehub_api_token=settings.huggingface_api_key,
            temperature=temp,
            max_new_tokens=settings.llm_max_tokens,
        )
        return ChatHuggingFace(llm=llm)

    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Parse a completion that should contain one JSON object.

    JSON mode is a request, not a guarantee: models still wrap output in
    code fences or add a sentence before the object. The fenced/prefixed
    forms are tolerated; anything else raises.

    Raises:
        MalformedResponseError: If no JSON object can be recovered
    """
    if not text or not text.strip():
        raise MalformedResponseError("Empty completion")

    candidate = _CODE_FENCE.sub("", text.strip())

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        start, end = candidate.find("{"), candidate.rfind("}")
        if start == -1 or end <= start:
            raise MalformedResponseError(f"No JSON object in completion: {text[:80]!r}")
        try:
            data = json.loads(candidate[start:end + 1])
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Invalid JSON in completion: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError(f"Expected a JSON object, got {type(data).__name__}")

    return data


def clamp_number(value: Any, low: float, high: float, default: float) -> float:
    """Coerce a model-supplied number into [low, high], or return default."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def is_true_flag(value: Any) -> bool:
    """True only for a JSON true or the string "true"; "false", 1 and "yes" are not."""
    return value is True or (isinstance(value, str) and value.strip().lower() == "true")


def coerce_string_list(raw: Any) -> list[str]:
    """Non-empty strings from a model-supplied list; anything else gives []."""
    if not isinstance(raw, list):
        return []
    return [str(item).strip() for item in raw if item is not None and str(item).strip()]


def _to_message(message: MessageInput) -> BaseMessage:
    if isinstance(message, BaseMessage):
        return message

    role = message.get("role", "user")
    content = message.get("content", "")
    if role == "system":
        return SystemMessage(content=content)
    if role == "assistant":
        return AIMessage(content=content)
    return HumanMessage(content=content)


def _content_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Some providers return a list of content blocks
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class TextCompletionService:
    """
    Sends role-tagged messages to a chat model and returns its text.

    Every LLM call in the agent core goes through here so that JSON mode,
    timeouts and error wrapping behave the same everywhere. The service
    is constructed once at startup and handed to each component.

    Usage:
        completion = TextCompletionService(llm=create_llm())
        data = await completion.complete_json([
            {"role": "system", "content": "Reply in JSON."},
            {"role": "user", "content": "..."},
        ])
    """

    def __init__(
        self,
        llm: BaseChatModel,
        fast_llm: Optional[BaseChatModel] = None,
        json_mode_kwargs: Optional[dict[str, Any]] = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            llm: Model used for agent replies and breakdowns
            fast_llm: Cheaper model for yes/no and scoring calls (optional)
            json_mode_kwargs: Arguments bound to the model to force JSON output
            timeout: Seconds before a call is abandoned
        """
        self._llm = llm
        self._fast_llm = fast_llm or llm
        self._json_mode_kwargs = json_mode_kwargs or {}
        self._timeout = timeout

    async def complete(
        self,
        messages: Sequence[MessageInput],
        json_mode: bool = False,
        fast: bool = False,
    ) -> str:
        """
        Run one completion.

        Raises:
            CompletionError: If the model call fails or times out
        """
        llm = self._fast_llm if fast else self._llm
        if json_mode and self._json_mode_kwargs:
            llm = llm.bind(**self._json_mode_kwargs)

        lc_messages = [_to_message(m) for m in messages]
        logger.debug(
            f"Completion request: {len(lc_messages)} messages, "
            f"{sum(len(str(m.content)) for m in lc_messages)} chars, json={json_mode}"
        )

        try:
            response = await asyncio.wait_for(llm.ainvoke(lc_messages), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise CompletionError(f"Completion timed out after {self._timeout:.0f}s") from e
        except Exception as e:
            raise CompletionError(f"{type(e).__name__}: {e}") from e

        return _content_text(response)

    async def complete_json(
        self,
        messages: Sequence[MessageInput],
        fast: bool = False,
    ) -> dict[str, Any]:
        """
        Run a JSON-mode completion and parse the result.

        Raises:
            CompletionError: If the model call fails
            MalformedResponseError: If the reply is not a JSON object
        """
        text = await self.complete(messages, json_mode=True, fast=fast)
        return parse_json_object(text)


def create_completion_service(settings: Optional[Settings] = None) -> TextCompletionService:
    """Build the completion service for the configured provider."""
    settings = settings or get_settings()
    llm = create_llm(settings=settings)

    fast_llm = None
    if settings.llm_provider == "groq" and settings.fast_model != settings.groq_model:
        fast_llm = create_llm(model=settings.fast_model, temperature=0.0, settings=settings)

    return TextCompletionService(
        llm=llm,
        fast_llm=fast_llm,
        json_mode_kwargs=JSON_MODE_KWARGS.get(settings.llm_provider),
        timeout=settings.completion_timeout,
    )


class BaseAgent(ABC):
    """
    Abstract base class for the domain agents.

    Each agent must implement:
    - domain: Which domain this agent answers for
    - process(): Main logic for the agent
    - fallback_summary: Apology shown when processing fails

    Provides:
    - A shared completion service
    - safe_process(), which never raises
    """

    fallback_summary: str = (
        "I ran into an issue answering that. Could you try rephrasing "
        "or asking something more specific?"
    )

    def __init__(
        self,
        completion: TextCompletionService,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            completion: Shared text completion service
            timeout: Seconds allowed for one full agent run
        """
        self._completion = completion
        self._timeout = timeout if timeout is not None else get_settings().agent_timeout

        logger.info(f"Initialized {self.domain.value} agent")

    @property
    @abstractmethod
    def domain(self) -> AgentDomain:
        """Return the domain of this agent."""
        pass

    @abstractmethod
    async def process(self, context: AgentContext) -> AgentResponse:
        """Answer one query."""
        pass

    async def safe_process(self, context: AgentContext) -> AgentResponse:
        """
        Process with error handling wrapper.

        This ensures agents always return a valid response, even if the
        completion fails, times out, or returns malformed JSON.
        """
        try:
            logger.debug(f"{self.domain.value} agent starting")
            response = await asyncio.wait_for(self.process(context), timeout=self._timeout)
            logger.debug(f"{self.domain.value} agent completed")
            return response

        except Exception as e:
            logger.error(
                f"{self.domain.value} agent failed: {type(e).__name__}: {e}",
                exc_info=not isinstance(e, (CompletionError, MalformedResponseError)),
            )
            return self.fallback_response(f"{type(e).__name__}: {e}")

    def fallback_response(self, error: str) -> AgentResponse:
        """Domain-tagged apology returned when processing fails."""
        return AgentResponse(
            domain=self.domain,
            summary=self.fallback_summary,
            metadata=AgentMetadata(
                confidence=0.3,
                needs_breakdown=False,
                show_resources=False,
                error=error or "Processing error",
            ),
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"{self.__class__.__name__}(domain={self.domain.value})"
