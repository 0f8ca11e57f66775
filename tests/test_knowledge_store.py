import pytest

from navia.schemas.models import AgentDomain, KnowledgeSourceIn
from navia.vectorstore.knowledge_store import FAISSKnowledgeStore

BUDGET_TEXT = "The 50/30/20 rule splits take-home pay into needs, wants and savings."
RESUME_TEXT = "Lead each resume bullet with a verb and a measurable result."


@pytest.fixture
def sources() -> list[KnowledgeSourceIn]:
    return [
        KnowledgeSourceIn(title="Budget basics", content=BUDGET_TEXT, domain=AgentDomain.FINANCE,
                          url="https://kb.example/budget", tags=["budgeting"]),
        KnowledgeSourceIn(title="Resume bullets", content=RESUME_TEXT, domain=AgentDomain.CAREER),
        KnowledgeSourceIn(title="Budget basics (career copy)", content=BUDGET_TEXT, domain=AgentDomain.CAREER),
    ]


async def test_empty_store_returns_nothing(embeddings) -> None:
    store = FAISSKnowledgeStore(embeddings)

    assert not store.is_ready
    assert store.document_count == 0
    assert await store.retrieve(BUDGET_TEXT, AgentDomain.FINANCE) == []


async def test_retrieve_is_filtered_by_domain(embeddings, sources) -> None:
    store = FAISSKnowledgeStore(embeddings)
    assert store.add_sources(sources) == 3

    finance = await store.retrieve(BUDGET_TEXT, AgentDomain.FINANCE)
    career = await store.retrieve(BUDGET_TEXT, AgentDomain.CAREER)

    assert [p.title for p in finance] == ["Budget basics"]
    assert finance[0].url == "https://kb.example/budget"
    assert finance[0].domain == AgentDomain.FINANCE
    assert finance[0].score == pytest.approx(1.0)
    assert [p.title for p in career] == ["Budget basics (career copy)"]
    assert await store.retrieve("   ", AgentDomain.FINANCE) == []


async def test_long_sources_are_chunked(embeddings) -> None:
    store = FAISSKnowledgeStore(embeddings, chunk_size=100, chunk_overlap=0)
    long_text = "\n\n".join(f"Paragraph {i} about saving a little every week." for i in range(10))

    chunks = store.add_sources([KnowledgeSourceIn(title="Saving", content=long_text, domain=AgentDomain.FINANCE)])

    assert chunks > 1
    assert store.document_count == chunks


def test_index_persists_and_can_be_cleared(embeddings, sources, tmp_path) -> None:
    index_path = tmp_path / "knowledge_index"
    FAISSKnowledgeStore(embeddings, index_path=index_path).add_sources(sources)

    reloaded = FAISSKnowledgeStore(embeddings, index_path=index_path)
    assert reloaded.is_ready
    assert reloaded.document_count == 3

    reloaded.delete_all()
    assert not reloaded.is_ready
    assert reloaded.document_count == 0
    assert not FAISSKnowledgeStore(embeddings, index_path=index_path).is_ready


def test_add_nothing(embeddings) -> None:
    assert FAISSKnowledgeStore(embeddings).add_sources([]) == 0
