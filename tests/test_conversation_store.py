from navia.memory.conversation_store import InMemoryConversationStore
from navia.schemas.models import AgentDomain, MessageRole


async def test_fetch_recent_returns_latest_exchanges_oldest_first(conversation_store) -> None:
    for i in range(4):
        await conversation_store.append("u", f"q{i}", f"a{i}", AgentDomain.FINANCE, session_id="s1")

    turns = await conversation_store.fetch_recent("u", limit=2)

    assert [t.content for t in turns] == ["q2", "a2", "q3", "a3"]
    assert [t.role for t in turns[:2]] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert not any(t.is_semantic_match for t in turns)
    assert await conversation_store.fetch_recent("u", limit=0) == []


async def test_filters_by_domain_and_session(conversation_store) -> None:
    await conversation_store.append("u", "budget?", "a", AgentDomain.FINANCE, session_id="s1")
    await conversation_store.append("u", "resume?", "b", AgentDomain.CAREER, session_id="s2")
    await conversation_store.append("other", "resume?", "c", AgentDomain.CAREER, session_id="s2")

    career = await conversation_store.fetch_recent("u", limit=5, domain=AgentDomain.CAREER)
    session = await conversation_store.fetch_recent("u", limit=5, session_id="s1")

    assert [t.content for t in career] == ["resume?", "b"]
    assert [t.content for t in session] == ["budget?", "a"]
    assert await conversation_store.session_message_count("u", "s2") == 2
    assert await conversation_store.session_message_count("u", "missing") == 0


async def test_semantic_fetch_returns_close_matches_only(conversation_store) -> None:
    await conversation_store.append("u", "Should I use YNAB?", "YNAB is great for visual budgets.", AgentDomain.FINANCE)
    await conversation_store.append("u", "How do I prep for interviews?", "Practice out loud.", AgentDomain.CAREER)

    # Deterministic fake embeddings only score identical text as similar
    same_text = "User: Should I use YNAB?\nAssistant: YNAB is great for visual budgets."
    turns = await conversation_store.fetch_semantic("u", same_text)

    assert [t.content for t in turns] == ["Should I use YNAB?", "YNAB is great for visual budgets."]
    assert all(t.is_semantic_match for t in turns)
    assert await conversation_store.fetch_semantic("u", same_text, domain=AgentDomain.CAREER) == []
    assert await conversation_store.fetch_semantic("someone_else", same_text) == []


async def test_semantic_fetch_without_embeddings_is_empty() -> None:
    store = InMemoryConversationStore()
    await store.append("u", "q", "a")

    assert await store.fetch_semantic("u", "User: q\nAssistant: a") == []
    assert len(await store.fetch_recent("u", limit=1)) == 2


async def test_statistics_and_clear(conversation_store) -> None:
    await conversation_store.append("u", "q1", "a1", AgentDomain.DAILY_TASK, had_breakdown=True)
    await conversation_store.append("u", "q2", "a2", AgentDomain.DAILY_TASK)
    await conversation_store.append("u", "q3", "a3")

    stats = await conversation_store.statistics("u")
    assert stats.total_queries == 3
    assert stats.by_domain["daily_task"] == 2
    assert stats.breakdown_usage == 1

    assert await conversation_store.clear("u") == 3
    assert await conversation_store.fetch_recent("u", limit=5) == []
    assert await conversation_store.fetch_semantic("u", "User: q1\nAssistant: a1") == []
    assert await conversation_store.clear("u") == 0
