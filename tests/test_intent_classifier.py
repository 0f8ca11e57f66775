from navia.agents.intent_classifier import (
    LLMIntentClassifier,
    ScriptedClassifier,
    is_likely_follow_up,
    parse_domains,
)
from navia.schemas.models import AgentDomain, ConversationTurn, IntentDetection, MessageRole
from tests.conftest import INTENT, as_json


def _turn(role: str, content: str, semantic: bool = False) -> ConversationTurn:
    return ConversationTurn(role=MessageRole(role), content=content, is_semantic_match=semantic)


def test_follow_up_requires_active_session_and_short_message() -> None:
    assert is_likely_follow_up("what about that one?", session_message_count=2)
    assert not is_likely_follow_up("what about that one?", session_message_count=0)
    assert not is_likely_follow_up(
        "could you walk me through every single step of filing my taxes this year please",
        session_message_count=4,
    )


def test_parse_domains_drops_unknown_and_duplicates() -> None:
    assert parse_domains(["finance", "weather", "Finance", "career"]) == [AgentDomain.FINANCE, AgentDomain.CAREER]
    assert parse_domains("daily_task") == [AgentDomain.DAILY_TASK]
    assert parse_domains(None) == []


async def test_follow_up_keeps_previous_domain_and_sees_only_session(llm, completion) -> None:
    llm.responses[INTENT] = as_json(domains=["finance"], confidence=0.9, complexity=2, reasoning="Follow-up on apps")
    classifier = LLMIntentClassifier(completion)
    history = [
        _turn("user", "I keep forgetting my dentist appointments", semantic=True),
        _turn("assistant", "Try calendar reminders", semantic=True),
        _turn("user", "Which budgeting app should I use?"),
        _turn("assistant", "YNAB and Mint are both popular."),
    ]

    intent = await classifier.detect_intent("What about Mint?", history=history, session_message_count=2)

    assert intent.domains == [AgentDomain.FINANCE]
    prompt = str(llm.calls_for(INTENT)[0][-1].content)
    assert "YNAB and Mint" in prompt
    assert "dentist" not in prompt
    assert "follow-up" in prompt


async def test_new_topic_sees_semantic_matches(completion) -> None:
    classifier = LLMIntentClassifier(completion)
    history = [_turn("user", "old question", semantic=True), _turn("assistant", "old answer", semantic=True)]

    turns, follow_up = classifier.select_context(
        "I need help figuring out how to pay my student loans and rent this month",
        history,
        session_message_count=0,
    )

    assert not follow_up
    assert [t.content for t in turns] == ["old question", "old answer"]


async def test_history_window_is_capped(completion) -> None:
    classifier = LLMIntentClassifier(completion, history_window=12)
    history = [_turn("user" if i % 2 == 0 else "assistant", f"message {i}") for i in range(20)]

    turns, _ = classifier.select_context("a completely new and much longer question about my career plans", history, 0)

    assert len(turns) == 12
    assert turns[-1].content == "message 19"


async def test_multi_domain_routing(llm, completion) -> None:
    llm.responses[INTENT] = as_json(
        domains=["career", "finance"], confidence=0.85, complexity=7, needsBreakdown=True, reasoning="Job + budget"
    )
    intent = await LLMIntentClassifier(completion).detect_intent("I lost my job and need a budget")

    assert intent.domains == [AgentDomain.CAREER, AgentDomain.FINANCE]
    assert intent.needs_breakdown is True
    assert intent.complexity == 7


async def test_completion_error_falls_back_to_daily_task(llm, completion) -> None:
    llm.responses[INTENT] = RuntimeError("provider down")

    intent = await LLMIntentClassifier(completion).detect_intent("help me budget")

    assert intent.domains == [AgentDomain.DAILY_TASK]
    assert intent.confidence == 0.5
    assert intent.needs_breakdown is False
    assert "defaulting to daily task" in intent.reasoning


async def test_malformed_json_falls_back(llm, completion) -> None:
    llm.responses[INTENT] = "finance, definitely"

    intent = await LLMIntentClassifier(completion).detect_intent("help me budget")

    assert intent.domains == [AgentDomain.DAILY_TASK]


async def test_empty_domains_fall_back_with_model_complexity(llm, completion) -> None:
    llm.responses[INTENT] = as_json(domains=[], complexity=8, reasoning="Unclear")

    intent = await LLMIntentClassifier(completion).detect_intent("ugh")

    assert intent.domains == [AgentDomain.DAILY_TASK]
    assert intent.complexity == 8


async def test_out_of_range_scores_are_clamped(llm, completion) -> None:
    llm.responses[INTENT] = as_json(domains=["career"], confidence=3, complexity=42)

    intent = await LLMIntentClassifier(completion).detect_intent("resume help")

    assert intent.confidence == 1.0
    assert intent.complexity == 10


async def test_scripted_classifier_matches_rules_and_records_calls() -> None:
    career = IntentDetection(domains=[AgentDomain.CAREER], reasoning="resume")
    classifier = ScriptedClassifier(rules=[("resume", career)])

    assert (await classifier.detect_intent("Fix my Resume")).domains == [AgentDomain.CAREER]
    assert (await classifier.detect_intent("hello")).domains == [AgentDomain.DAILY_TASK]
    assert await classifier.quick_detect_domain("resume tips") == AgentDomain.CAREER
    assert [call[0] for call in classifier.calls] == ["Fix my Resume", "hello", "resume tips"]


async def test_new_topic_prompt_keeps_past_matches_out_of_latest_exchange(llm, completion) -> None:
    llm.responses[INTENT] = as_json(domains=["career"], confidence=0.9, complexity=4, reasoning="Cover letter")
    classifier = LLMIntentClassifier(completion)
    history = [
        _turn("user", "How do I pay off my credit card?", semantic=True),
        _turn("assistant", "Try the avalanche method.", semantic=True),
    ]

    messages, follow_up = classifier.build_messages(
        "I need help writing a cover letter for a design job tomorrow", history, 0
    )

    prompt = str(messages[-1].content)
    assert not follow_up
    assert "MOST RECENT EXCHANGE" not in prompt
    assert "credit card? (related past conversation)" in prompt


async def test_needs_breakdown_string_false_is_not_true(llm, completion) -> None:
    llm.responses[INTENT] = as_json(domains=["finance"], confidence=0.8, complexity=3, needsBreakdown="false")

    intent = await LLMIntentClassifier(completion).detect_intent("How do I start a budget?")

    assert intent.needs_breakdown is False


async def test_needs_breakdown_string_true_counts(llm, completion) -> None:
    llm.responses[INTENT] = as_json(domains=["finance"], confidence=0.8, complexity=3, needsBreakdown="true")

    intent = await LLMIntentClassifier(completion).detect_intent("How do I start a budget?")

    assert intent.needs_breakdown is True
