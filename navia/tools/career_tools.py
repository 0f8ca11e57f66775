"""
Career Tools
============

Resource fetchers for the career agent: job boards, resume help,
interview prep, workplace accommodations and networking.
"""

import logging

from navia.schemas.models import ResourceLink, ResourceType
from navia.tools.web_search import WebSearch, gather_resources, mentions_any, search_resources

logger = logging.getLogger(__name__)

JOB_SITES = ["linkedin.com", "indeed.com", "glassdoor.com"]
RESUME_SITES = ["resumegenius.com", "thebalancemoney.com", "zety.com", "indeed.com"]
ACCOMMODATION_SITES = ["askjan.org", "ada.gov", "eeoc.gov", "dol.gov"]

RESUME_KEYWORDS = ("resume", "cv", "cover letter")
INTERVIEW_KEYWORDS = ("interview",)
ACCOMMODATION_KEYWORDS = ("accommodation", "disability", "ada")
JOB_KEYWORDS = ("job", "hiring", "apply", "application")
TRANSITION_KEYWORDS = ("transition", "change career", "career change", "switch")
NETWORKING_KEYWORDS = ("network", "linkedin", "connect")


def detect_career_sub_topic(query: str) -> str:
    if mentions_any(query, RESUME_KEYWORDS):
        return "resume"
    if mentions_any(query, INTERVIEW_KEYWORDS):
        return "interview"
    if mentions_any(query, ("accommodation",)):
        return "accommodations"
    if mentions_any(query, ("job", "apply")):
        return "job_search"
    if mentions_any(query, ("network",)):
        return "networking"
    if mentions_any(query, ("transition", "change")):
        return "career_transition"
    return "general"


async def search_jobs(web_search: WebSearch, query: str) -> list[ResourceLink]:
    return await search_resources(
        web_search, f"{query} entry level jobs", max_results=5, include_domains=JOB_SITES
    )


async def get_resume_help(web_search: WebSearch) -> list[ResourceLink]:
    return await search_resources(
        web_search,
        "resume templates tips ATS neurodivergent friendly",
        max_results=4,
        include_domains=RESUME_SITES,
        resource_type=ResourceType.TEMPLATE,
    )


async def get_interview_prep(web_search: WebSearch) -> list[ResourceLink]:
    return await search_resources(
        web_search,
        "job interview tips questions common answers neurodivergent",
        max_results=5,
        resource_type=ResourceType.GUIDE,
    )


async def get_workplace_accommodations(web_search: WebSearch) -> list[ResourceLink]:
    return await search_resources(
        web_search,
        "workplace accommodations neurodivergent ADHD autism ADA rights",
        max_results=5,
        include_domains=ACCOMMODATION_SITES,
        resource_type=ResourceType.GUIDE,
        search_depth="advanced",
    )


async def search_career_advice(web_search: WebSearch, query: str) -> list[ResourceLink]:
    return await search_resources(
        web_search, f"{query} career transition guide transferable skills", max_results=4
    )


async def get_networking_tips(web_search: WebSearch) -> list[ResourceLink]:
    return await search_resources(
        web_search, "networking tips neurodivergent professionals ADHD autism introvert", max_results=4
    )


async def fetch_career_resources(web_search: WebSearch, query: str) -> list[ResourceLink]:
    """Run every career fetcher whose keywords the query mentions, concurrently."""
    fetches = []

    if mentions_any(query, RESUME_KEYWORDS):
        fetches.append(get_resume_help(web_search))
    if mentions_any(query, INTERVIEW_KEYWORDS):
        fetches.append(get_interview_prep(web_search))
    if mentions_any(query, ACCOMMODATION_KEYWORDS):
        fetches.append(get_workplace_accommodations(web_search))
    if mentions_any(query, JOB_KEYWORDS):
        fetches.append(search_jobs(web_search, query))
    if mentions_any(query, TRANSITION_KEYWORDS):
        fetches.append(search_career_advice(web_search, query))
    if mentions_any(query, NETWORKING_KEYWORDS):
        fetches.append(get_networking_tips(web_search))

    if not fetches:
        fetches.append(search_career_advice(web_search, query))

    resources = await gather_resources(*fetches)
    logger.info(f"Career fetchers found {len(resources)} resources")
    return resources
