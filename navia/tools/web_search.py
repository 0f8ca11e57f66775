"""
Web Resource Search
===================

Real-time web search used by the domain agents to attach current,
linkable resources to their answers.

The default implementation calls Tavily's REST API directly with httpx.
Without an API key the client stays usable: it logs a warning and
returns no results, so agents answer from the model alone.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

import httpx

from navia.config import Settings, get_settings
from navia.schemas.models import ResourceLink, ResourceType, WebResult

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_CHARS = 300


class WebSearch(ABC):
    """Capability interface for web resource search."""

    @abstractmethod
    async def search(
        self,
        query: str,
        max_results: int = 5,
        include_domains: Optional[Sequence[str]] = None,
        search_depth: Optional[str] = None,
    ) -> list[WebResult]:
        """
        Search the web.

        Args:
            query: Search text
            max_results: Maximum hits to return
            include_domains: Restrict results to these sites (optional)
            search_depth: Provider-specific depth hint (optional)
        """
        pass


class TavilySearchClient(WebSearch):
    """
    Web search over Tavily's REST endpoint.

    Usage:
        client = TavilySearchClient(api_key="tvly-...")
        results = await client.search("budget apps for ADHD", max_results=3)
        await client.aclose()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.tavily.com",
        search_depth: str = "basic",
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._search_depth = search_depth
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

        if not api_key:
            logger.warning("Tavily API key not set; web search will return no results")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TavilySearchClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.tavily_api_key,
            base_url=settings.tavily_base_url,
            search_depth=settings.web_search_depth,
            timeout=settings.web_search_timeout,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def search(
        self,
        query: str,
        max_results: int = 5,
        include_domains: Optional[Sequence[str]] = None,
        search_depth: Optional[str] = None,
    ) -> list[WebResult]:
        """
        Run one Tavily search.

        Raises:
            httpx.HTTPError: On transport errors or a non-2xx response
        """
        if not self.enabled or not query.strip():
            return []

        payload = {
            "query": query,
            "max_results": max_results,
            "search_depth": search_depth or self._search_depth,
            "include_answer": False,
        }
        if include_domains:
            payload["include_domains"] = list(include_domains)

        response = await self._client.post(
            "/search",
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        response.raise_for_status()

        results = []
        for item in response.json().get("results", []):
            url = item.get("url")
            if not url:
                continue
            results.append(WebResult(
                title=item.get("title") or url,
                url=url,
                content=item.get("content") or "",
                score=item.get("score"),
            ))

        logger.debug(f"Tavily returned {len(results)} results for '{query[:60]}'")
        return results

    async def aclose(self) -> None:
        await self._client.aclose()


def mentions_any(text: str, keywords: Iterable[str]) -> bool:
    """True if any keyword appears in text at a word start (case-insensitive)."""
    lowered = text.lower()
    return any(re.search(rf"\b{re.escape(k.lower())}", lowered) for k in keywords)


def to_resource(result: WebResult, resource_type: ResourceType = ResourceType.ARTICLE) -> ResourceLink:
    """Convert a web hit into a resource link."""
    description = result.content.strip()
    if len(description) > MAX_DESCRIPTION_CHARS:
        description = description[:MAX_DESCRIPTION_CHARS].rstrip() + "..."
    return ResourceLink(title=result.title, url=result.url, description=description, type=resource_type)


async def search_resources(
    web_search: WebSearch,
    query: str,
    max_results: int = 5,
    include_domains: Optional[Sequence[str]] = None,
    resource_type: ResourceType = ResourceType.ARTICLE,
    search_depth: Optional[str] = None,
) -> list[ResourceLink]:
    """
    Search and convert hits to resource links.

    Failures degrade to an empty list; one failed fetcher never takes
    down the others running alongside it.
    """
    try:
        results = await web_search.search(
            query,
            max_results=max_results,
            include_domains=include_domains,
            search_depth=search_depth,
        )
    except Exception as e:
        logger.warning(f"Web search failed for '{query[:60]}': {type(e).__name__}: {e}")
        return []

    return [to_resource(r, resource_type) for r in results]


async def gather_resources(*fetches) -> list[ResourceLink]:
    """Run resource fetch coroutines concurrently and flatten in argument order."""
    batches = await asyncio.gather(*fetches, return_exceptions=True)

    resources = []
    for batch in batches:
        if isinstance(batch, BaseException):
            logger.warning(f"Resource fetcher failed: {type(batch).__name__}: {batch}")
            continue
        resources.extend(batch)
    return resources
