"""
Finance Tools
=============

Resource fetchers for the finance agent.

Which fetchers run is decided by plain keyword triggers on the query.
Web searches are restricted to a short list of trusted personal-finance
and government sites.
"""

import logging

from navia.schemas.models import ResourceLink, ResourceType
from navia.tools.web_search import WebSearch, gather_resources, mentions_any, search_resources

logger = logging.getLogger(__name__)

FINANCE_SITES = [
    "nerdwallet.com",
    "mint.com",
    "ynab.com",
    "reddit.com/r/personalfinance",
    "investopedia.com",
]

BENEFITS_SITES = ["studentaid.gov", "benefits.gov", "ssa.gov", "ed.gov"]

BUDGET_KEYWORDS = ("budget", "expense", "track", "spending")
DEBT_KEYWORDS = ("debt", "loan", "credit")
BENEFIT_KEYWORDS = ("student", "benefit", "aid", "disability", "fafsa")
SAVINGS_KEYWORDS = ("save", "saving", "emergency fund")
TOOL_KEYWORDS = ("app", "tool")

BUDGETING_TOOLS = [
    ResourceLink(
        title="YNAB (You Need A Budget)",
        url="https://www.ynab.com",
        description="Zero-based budgeting app with a clear visual system. Popular with ADHD users.",
        type=ResourceType.TOOL,
    ),
    ResourceLink(
        title="Mint",
        url="https://www.mint.com",
        description="Free app that tracks expenses automatically. Good if manual entry is a struggle.",
        type=ResourceType.TOOL,
    ),
    ResourceLink(
        title="PocketGuard",
        url="https://www.pocketguard.com",
        description="Shows what is safe to spend right now. Very low cognitive load.",
        type=ResourceType.TOOL,
    ),
    ResourceLink(
        title="Goodbudget",
        url="https://www.goodbudget.com",
        description="Digital envelope budgeting. A visual, tactile approach.",
        type=ResourceType.TOOL,
    ),
]


def detect_finance_sub_topic(query: str) -> str:
    """Coarse finance sub-topic used for metadata and fetcher choice."""
    if mentions_any(query, ("budget", "expense")):
        return "budgeting"
    if mentions_any(query, ("debt", "loan")):
        return "debt"
    if mentions_any(query, SAVINGS_KEYWORDS):
        return "savings"
    if mentions_any(query, ("benefit", "aid")):
        return "benefits"
    if mentions_any(query, TOOL_KEYWORDS):
        return "tools"
    return "general"


def get_budgeting_tools() -> list[ResourceLink]:
    """Curated budgeting apps. No network call."""
    return [tool.model_copy() for tool in BUDGETING_TOOLS]


async def search_financial_resources(web_search: WebSearch, query: str, category: str = "") -> list[ResourceLink]:
    search_query = (
        f"{query} {category} young adults neurodivergent financial planning"
        if category
        else f"{query} financial planning budgeting young adults"
    )
    return await search_resources(web_search, search_query, max_results=5, include_domains=FINANCE_SITES)


async def search_student_benefits(web_search: WebSearch, query: str) -> list[ResourceLink]:
    return await search_resources(
        web_search,
        f"{query} student benefits financial aid disability accommodations",
        max_results=4,
        include_domains=BENEFITS_SITES,
        resource_type=ResourceType.GUIDE,
    )


async def fetch_finance_resources(web_search: WebSearch, query: str) -> list[ResourceLink]:
    """
    Fetch finance resources for a query.

    Triggers:
    - budget / expense / track  -> budgeting tips search + curated apps
    - debt / loan / credit      -> debt management search
    - student / benefit / aid   -> government benefits search
    - anything else             -> general financial planning search
    """
    fetches = []

    if mentions_any(query, BUDGET_KEYWORDS):
        fetches.append(search_financial_resources(web_search, "budgeting templates tips beginners", "budgeting"))
    if mentions_any(query, DEBT_KEYWORDS):
        fetches.append(search_financial_resources(web_search, f"{query} debt management strategies", "debt"))
    if mentions_any(query, BENEFIT_KEYWORDS):
        fetches.append(search_student_benefits(web_search, query))
    if not fetches:
        fetches.append(search_financial_resources(web_search, query))

    resources = await gather_resources(*fetches)

    if mentions_any(query, BUDGET_KEYWORDS + TOOL_KEYWORDS):
        resources.extend(get_budgeting_tools())

    logger.info(f"Finance fetchers found {len(resources)} resources")
    return resources
