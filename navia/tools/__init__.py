"""
Tools Module
============

Web search and the per-domain resource fetchers built on it.
"""

from navia.tools.web_search import TavilySearchClient, WebSearch

__all__ = ["TavilySearchClient", "WebSearch"]
