"""
Task Tools
==========

Resource fetchers for the daily-task agent.

Web search is always attempted; queries that mention ADHD, autism or
executive function are enriched to favor neurodivergent-focused
results. Curated productivity tools are matched by keyword and by the
user's executive-function profile without any network call.
"""

import logging
from typing import Optional, Sequence

from navia.schemas.models import ResourceLink, ResourceType
from navia.tools.web_search import WebSearch, mentions_any, search_resources

logger = logging.getLogger(__name__)

NEURODIVERGENT_KEYWORDS = ("adhd", "autism", "autistic", "neurodivergent", "executive function")
NEURODIVERGENT_SUFFIX = "ADHD autism neurodivergent executive function"

FOCUS_KEYWORDS = ("focus", "concentrate", "distract")
ORGANIZE_KEYWORDS = ("organize", "organise", "task", "plan")
TIME_KEYWORDS = ("time", "schedule", "routine")
INITIATION_KEYWORDS = ("start", "stuck", "procrastinat")

FOCUS_TOOLS = [
    ResourceLink(
        title="Forest App",
        url="https://www.forestapp.cc/",
        description="Gamified focus timer that grows virtual trees while you work.",
        type=ResourceType.TOOL,
    ),
    ResourceLink(
        title="Focusmate",
        url="https://www.focusmate.com/",
        description="Virtual body doubling. Work alongside someone in 50-minute blocks.",
        type=ResourceType.TOOL,
    ),
]

ORGANIZE_TOOLS = [
    ResourceLink(
        title="Goblin Tools",
        url="https://goblin.tools/",
        description="Free tools for neurodivergent people: task breakdown, judgment-free to-do lists.",
        type=ResourceType.TOOL,
    ),
    ResourceLink(
        title="Todoist",
        url="https://todoist.com/",
        description="Clean task manager with natural language input.",
        type=ResourceType.TOOL,
    ),
]

TIME_TOOLS = [
    ResourceLink(
        title="Tiimo",
        url="https://www.tiimoapp.com/",
        description="Visual daily planner designed for neurodivergent users.",
        type=ResourceType.TOOL,
    ),
]

INITIATION_TOOLS = [
    ResourceLink(
        title="5-Minute Rule Timer",
        url="https://pomofocus.io/",
        description="Simple Pomodoro timer. Commit to just 5 minutes to get started.",
        type=ResourceType.TOOL,
    ),
]


def detect_task_sub_topic(query: str) -> str:
    if mentions_any(query, ("focus", "concentrate")):
        return "focus"
    if mentions_any(query, ("organize", "organise", "clutter")):
        return "organization"
    if mentions_any(query, ("time", "schedule")):
        return "time_management"
    if mentions_any(query, ("routine", "habit")):
        return "routines"
    if mentions_any(query, INITIATION_KEYWORDS):
        return "task_initiation"
    if mentions_any(query, ("overwhelm", "burnout")):
        return "overwhelm"
    return "general"


def is_neurodivergent_focus(query: str) -> bool:
    return mentions_any(query, NEURODIVERGENT_KEYWORDS)


def recommend_productivity_tools(query: str, ef_profile: Optional[Sequence[str]] = None) -> list[ResourceLink]:
    """Curated tools matched by keyword and EF profile."""
    tools = []
    if mentions_any(query, FOCUS_KEYWORDS):
        tools.extend(FOCUS_TOOLS)
    if mentions_any(query, ORGANIZE_KEYWORDS):
        tools.extend(ORGANIZE_TOOLS)
    if mentions_any(query, TIME_KEYWORDS):
        tools.extend(TIME_TOOLS)
    if "task_initiation" in (ef_profile or []) or mentions_any(query, INITIATION_KEYWORDS):
        tools.extend(INITIATION_TOOLS)
    return [tool.model_copy() for tool in tools]


async def fetch_task_resources(
    web_search: WebSearch,
    query: str,
    ef_profile: Optional[Sequence[str]] = None,
) -> list[ResourceLink]:
    """Web results first, then curated tools."""
    if is_neurodivergent_focus(query):
        resources = await search_resources(web_search, f"{query} {NEURODIVERGENT_SUFFIX}", max_results=4)
    else:
        resources = await search_resources(web_search, query, max_results=3)

    resources.extend(recommend_productivity_tools(query, ef_profile))
    logger.info(f"Task fetchers found {len(resources)} resources")
    return resources
