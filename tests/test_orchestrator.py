from typing import Optional

import pytest

from navia.agents.base_agent import BaseAgent
from navia.agents.intent_classifier import Classifier, LLMIntentClassifier, ScriptedClassifier
from navia.schemas.models import (
    AgentDomain,
    AgentMetadata,
    AgentResponse,
    BreakdownStep,
    ConversationTurn,
    IntentDetection,
    MessageRole,
    ResourceLink,
    SourceReference,
    UserContext,
)
from navia.services.orchestrator import (
    PLAN_MENTION,
    TWO_DOMAIN_INTRO,
    AgentOrchestrator,
    combine_summaries,
    dedupe_by_url,
    strip_plan_mentions,
)

FINANCE, CAREER, DAILY = AgentDomain.FINANCE, AgentDomain.CAREER, AgentDomain.DAILY_TASK


def _steps(*titles: str) -> list[BreakdownStep]:
    return [BreakdownStep(title=t, sub_steps=[f"Start {t.lower()}"]) for t in titles]


def _response(
    domain: AgentDomain,
    summary: str = "Here's some help.",
    breakdown: Optional[list[BreakdownStep]] = None,
    tips: Optional[list[str]] = None,
    needs_breakdown: bool = False,
    resources: tuple = (),
    sources: tuple = (),
) -> AgentResponse:
    return AgentResponse(
        domain=domain,
        summary=summary,
        breakdown=breakdown,
        breakdown_tips=tips,
        resources=list(resources),
        sources=list(sources),
        metadata=AgentMetadata(needs_breakdown=needs_breakdown),
    )


def _intent(*domains: AgentDomain) -> IntentDetection:
    return IntentDetection(domains=list(domains), confidence=0.9, complexity=6, reasoning="scripted")


class StubAgent(BaseAgent):
    def __init__(self, completion, domain: AgentDomain, response: AgentResponse = None, error: Exception = None):
        self._domain = domain
        self._response = response or _response(domain)
        self._error = error
        self.contexts = []
        super().__init__(completion, timeout=5.0)

    @property
    def domain(self) -> AgentDomain:
        return self._domain

    async def process(self, context):
        self.contexts.append(context)
        if self._error:
            raise self._error
        return self._response


class ExplodingAgent(StubAgent):
    async def safe_process(self, context):
        raise RuntimeError("escaped the agent")


class BrokenClassifier(Classifier):
    async def detect_intent(self, query, history=None, session_message_count=0):
        raise RuntimeError("classifier bug")


def _orchestrator(agents, *domains, **kwargs) -> AgentOrchestrator:
    return AgentOrchestrator(ScriptedClassifier(default=_intent(*domains)), agents, **kwargs)


# =============================================================================
# Merge helpers
# =============================================================================

def test_dedupe_keeps_first_occurrence_and_url_less_items() -> None:
    items = [
        ResourceLink(title="A", url="https://a.example"),
        SourceReference(title="no url"),
        ResourceLink(title="A again", url="https://a.example"),
        SourceReference(title="also no url"),
        ResourceLink(title="B", url="https://b.example"),
    ]

    assert [i.title for i in dedupe_by_url(items, cap=10)] == ["A", "no url", "also no url", "B"]
    assert len(dedupe_by_url(items, cap=2)) == 2


def test_strip_plan_mentions() -> None:
    text = "Budgeting gets easier with practice. I've created a step-by-step plan below to help you start."

    assert strip_plan_mentions(text) == "Budgeting gets easier with practice."
    assert strip_plan_mentions("Check the plan below.") == "Check the plan below."


def test_single_response_has_no_combined_summary() -> None:
    assert combine_summaries([_response(FINANCE)], has_plan=True) is None


# =============================================================================
# Orchestration
# =============================================================================

async def test_single_domain_result(completion) -> None:
    plan = _steps("Open the bank app", "List bills")
    finance = StubAgent(completion, FINANCE, _response(FINANCE, "Start small.", breakdown=plan, tips=["Go slow"]))

    result = await _orchestrator([finance], FINANCE).orchestrate_query("user_1", "Help me budget")

    assert result.success
    assert result.combined_summary is None
    assert result.summary == "Start small."
    assert result.breakdown == plan
    assert result.breakdown_tips == ["Go slow"]
    assert result.metadata.domains_involved == [FINANCE]
    assert result.metadata.used_breakdown is True
    assert result.metadata.multi_agent is False
    assert result.metadata.confidence == 0.9
    assert result.metadata.complexity == 6
    assert result.metadata.execution_time_ms >= 0


async def test_multi_domain_merge(completion) -> None:
    career = StubAgent(completion, CAREER, _response(
        CAREER,
        "Apply to two jobs this week. I've put together a step-by-step plan below.",
        breakdown=_steps("Update resume"),
        tips=["One application at a time"],
        resources=(ResourceLink(title="Indeed", url="https://indeed.example"),),
        sources=(SourceReference(title="Job search 101", url="https://kb.example/jobs"),),
    ))
    finance = StubAgent(completion, FINANCE, _response(
        FINANCE,
        "Cut one subscription. See the plan below.",
        breakdown=_steps("Cancel a subscription"),
        resources=(
            ResourceLink(title="Indeed duplicate", url="https://indeed.example"),
            ResourceLink(title="YNAB", url="https://ynab.example"),
        ),
    ))

    result = await _orchestrator([finance, career], CAREER, FINANCE).orchestrate_query(
        "user_1", "I lost my job and need to cut spending"
    )

    assert result.success
    assert result.metadata.multi_agent is True
    assert result.metadata.domains_involved == [CAREER, FINANCE]
    assert [s.title for s in result.breakdown] == ["Update resume"]
    assert result.breakdown_tips == ["One application at a time"]
    assert [r.title for r in result.resources] == ["Indeed", "YNAB"]
    assert [s.title for s in result.sources] == ["Job search 101"]

    combined = result.combined_summary
    assert combined.startswith(TWO_DOMAIN_INTRO)
    assert combined.index("Career Guidance:") < combined.index("Finance Guidance:")
    assert "\n\n---\n\n" in combined
    assert "plan below" not in combined.replace(PLAN_MENTION, "")
    assert combined.count(PLAN_MENTION) == 1
    assert combined.endswith(PLAN_MENTION)


async def test_primary_breakdown_comes_from_first_agent_with_a_plan(completion) -> None:
    career_plan = _steps("Pick one job posting", "Tailor the first bullet")
    finance = StubAgent(completion, FINANCE, _response(FINANCE, "Track spending for a week."))
    career = StubAgent(completion, CAREER, _response(
        CAREER, "Apply to one job today.", breakdown=career_plan, tips=["Stop after one application"]
    ))
    daily = StubAgent(completion, DAILY, _response(DAILY, "Set a 10 minute timer.", tips=["Unused tip"]))

    result = await _orchestrator([finance, career, daily], FINANCE, CAREER, DAILY).orchestrate_query(
        "user_1", "I'm overwhelmed by money, job hunting and chores"
    )

    assert [r.domain for r in result.responses] == [FINANCE, CAREER, DAILY]
    assert result.breakdown == career_plan
    assert result.breakdown_tips == ["Stop after one application"]
    assert result.metadata.used_breakdown is True
    assert result.combined_summary.count(PLAN_MENTION) == 1


async def test_merged_lists_are_capped(completion) -> None:
    links = tuple(ResourceLink(title=f"R{i}", url=f"https://r.example/{i}") for i in range(8))
    refs = tuple(SourceReference(title=f"S{i}", url=f"https://s.example/{i}") for i in range(6))
    finance = StubAgent(completion, FINANCE, _response(FINANCE, resources=links, sources=refs))
    career = StubAgent(completion, CAREER, _response(CAREER, resources=links[::-1] + (
        ResourceLink(title="Extra 1", url="https://x.example/1"),
        ResourceLink(title="Extra 2", url="https://x.example/2"),
        ResourceLink(title="Extra 3", url="https://x.example/3"),
    ), sources=refs))

    result = await _orchestrator([finance, career], FINANCE, CAREER).orchestrate_query("u", "q")

    assert len(result.resources) == 10
    assert [r.title for r in result.resources][-2:] == ["Extra 1", "Extra 2"]
    assert len(result.sources) == 6


@pytest.mark.parametrize("finance_plan, expected", [(None, True), (_steps("Do it"), False)])
async def test_needs_breakdown_aggregate(completion, finance_plan, expected) -> None:
    finance = StubAgent(completion, FINANCE, _response(FINANCE, breakdown=finance_plan, needs_breakdown=True))
    career = StubAgent(completion, CAREER, _response(CAREER))

    result = await _orchestrator([finance, career], FINANCE, CAREER).orchestrate_query("u", "q")

    assert result.metadata.needs_breakdown is expected


async def test_partial_failure_keeps_other_domains(completion) -> None:
    finance = StubAgent(completion, FINANCE, error=RuntimeError("boom"))
    career = StubAgent(completion, CAREER, _response(CAREER, "Update your resume."))

    result = await _orchestrator([finance, career], FINANCE, CAREER).orchestrate_query("u", "q")

    assert result.success
    assert [r.domain for r in result.responses] == [CAREER]
    assert result.metadata.domains_involved == [CAREER]
    assert result.metadata.failed_domains == [FINANCE]
    assert result.combined_summary is None
    assert result.summary == "Update your resume."


async def test_total_failure(completion) -> None:
    finance = StubAgent(completion, FINANCE, error=RuntimeError("boom"))
    career = ExplodingAgent(completion, CAREER)

    result = await _orchestrator([finance, career], FINANCE, CAREER).orchestrate_query("u", "q")

    assert result.success is False
    assert result.responses == []
    assert result.breakdown is None
    assert result.metadata.error == "All agents failed to process query"
    assert result.metadata.domains_involved == [FINANCE, CAREER]
    assert result.metadata.failed_domains == [FINANCE, CAREER]
    assert result.summary == ""


async def test_classifier_crash_is_contained(completion) -> None:
    orchestrator = AgentOrchestrator(BrokenClassifier(), [StubAgent(completion, DAILY)])

    result = await orchestrator.orchestrate_query("u", "anything")

    assert result.success is False
    assert result.metadata.error == "Orchestration failed"


async def test_missing_domain_agent_uses_daily_task(completion) -> None:
    daily = StubAgent(completion, DAILY, _response(DAILY, "Let's take it slow."))

    result = await _orchestrator([daily], CAREER).orchestrate_query("u", "resume tips")

    assert result.success
    assert result.summary == "Let's take it slow."
    assert len(daily.contexts) == 1


async def test_fallback_agent_runs_once_for_several_missing_domains(completion) -> None:
    daily = StubAgent(completion, DAILY, _response(DAILY, "Let's take it slow."))

    result = await _orchestrator([daily], FINANCE, CAREER).orchestrate_query("u", "budget and resume help")

    assert len(daily.contexts) == 1
    assert [r.domain for r in result.responses] == [DAILY]
    assert result.metadata.domains_involved == [DAILY]
    assert result.combined_summary is None


async def test_fallback_is_not_repeated_when_daily_task_is_also_requested(completion) -> None:
    daily = StubAgent(completion, DAILY)

    result = await _orchestrator([daily], FINANCE, DAILY).orchestrate_query("u", "q")

    assert len(daily.contexts) == 1
    assert result.metadata.domains_involved == [DAILY]


async def test_no_agents_at_all(completion) -> None:
    result = await _orchestrator({}, FINANCE).orchestrate_query("u", "q")

    assert result.success is False
    assert result.metadata.failed_domains == [FINANCE]


async def test_each_agent_gets_its_own_context(completion) -> None:
    class MutatingAgent(StubAgent):
        async def process(self, context):
            context.user_context.current_goals.append("mutated")
            return await super().process(context)

    finance = MutatingAgent(completion, FINANCE)
    career = StubAgent(completion, CAREER)
    user_context = UserContext(current_goals=["save money"])

    await _orchestrator([finance, career], FINANCE, CAREER).orchestrate_query("u", "q", user_context)

    assert career.contexts[0].user_context.current_goals == ["save money"]
    assert user_context.current_goals == ["save money"]


async def test_chat_history_comes_from_the_store(completion, conversation_store) -> None:
    for i in range(7):
        await conversation_store.append("u", f"question {i}", f"answer {i}", FINANCE)
    daily = StubAgent(completion, DAILY)
    classifier = ScriptedClassifier()

    await AgentOrchestrator(classifier, [daily], conversation_store=conversation_store).orchestrate_query(
        "u", "hello again", UserContext(session_message_count=3)
    )

    history = daily.contexts[0].chat_history
    assert len(history) == 10
    assert history[0].content == "question 2"
    assert classifier.calls[0][2] == 3


async def test_history_store_failure_is_ignored(completion) -> None:
    class BrokenStore:
        async def fetch_recent(self, *args, **kwargs):
            raise ConnectionError("db down")

    daily = StubAgent(completion, DAILY)
    result = await AgentOrchestrator(ScriptedClassifier(), [daily], conversation_store=BrokenStore()).orchestrate_query(
        "u", "q"
    )

    assert result.success
    assert daily.contexts[0].chat_history == []


async def test_orchestration_is_total_with_real_agents(llm, completion, all_agents) -> None:
    orchestrator = AgentOrchestrator(LLMIntentClassifier(completion), all_agents)
    assistant_only = UserContext(
        recent_history=[ConversationTurn(role=MessageRole.ASSISTANT, content="How can I help today?")],
        session_message_count=1,
    )

    result = await orchestrator.orchestrate_query("u", "", assistant_only)

    assert result.success
    assert result.metadata.domains_involved == [DAILY]
    assert result.responses[0].summary


async def test_quick_detect_domain_and_stats(completion, conversation_store) -> None:
    await conversation_store.append("u", "budget?", "Try YNAB.", FINANCE, had_breakdown=True)
    await conversation_store.append("u", "resume?", "Lead with impact.", CAREER)
    orchestrator = AgentOrchestrator(
        ScriptedClassifier(rules=[("resume", _intent(CAREER))]),
        [StubAgent(completion, DAILY)],
        conversation_store=conversation_store,
    )

    assert await orchestrator.quick_detect_domain("fix my resume") == CAREER
    assert await orchestrator.quick_detect_domain("hmm") == DAILY

    stats = await orchestrator.get_agent_stats("u")
    assert stats.total_queries == 2
    assert stats.by_domain == {"finance": 1, "career": 1, "daily_task": 0}
    assert stats.breakdown_usage == 1
    assert (await AgentOrchestrator(ScriptedClassifier(), {}).get_agent_stats("u")).total_queries == 0
