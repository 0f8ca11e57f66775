import pytest
from fastapi.testclient import TestClient

from navia.agents.daily_task_agent import DailyTaskAgent
from navia.agents.intent_classifier import ScriptedClassifier
from navia.config import Settings
from navia.main import create_app
from navia.services.container import NaviaServices
from navia.services.orchestrator import AgentOrchestrator
from navia.vectorstore.knowledge_store import FAISSKnowledgeStore
from tests.conftest import BREAKDOWN, COMPLEXITY, DAILY, EXPLICIT, as_json


@pytest.fixture
def classifier() -> ScriptedClassifier:
    return ScriptedClassifier()


@pytest.fixture
def services(llm, completion, breakdown_generator, embeddings, conversation_store, classifier) -> NaviaServices:
    llm.responses.update({
        EXPLICIT: as_json(explicitRequest=False),
        COMPLEXITY: as_json(complexity=3),
        DAILY: as_json(summary="Take one small step.", metadata={"needsBreakdown": False}),
        BREAKDOWN: as_json(breakdown=[{"title": "Fill the sink", "subSteps": ["Turn on hot water"]}]),
    })
    agent = DailyTaskAgent(completion, breakdown_generator, conversation_store=conversation_store, timeout=5.0)
    return NaviaServices(
        settings=Settings(),
        orchestrator=AgentOrchestrator(classifier, [agent], conversation_store=conversation_store),
        breakdown_generator=breakdown_generator,
        knowledge_store=FAISSKnowledgeStore(embeddings),
        conversation_store=conversation_store,
    )


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client


def test_health(client) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["knowledgeStoreReady"] is False
    assert body["documentCount"] == 0


def test_query_returns_camel_case_result_and_records_the_exchange(client, classifier) -> None:
    response = client.post("/api/v1/query", json={"userId": "u", "query": "I feel stuck", "sessionId": "s1"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["combinedSummary"] is None
    assert body["responses"][0]["domain"] == "daily_task"
    assert body["responses"][0]["summary"] == "Take one small step."
    assert body["metadata"]["domainsInvolved"] == ["daily_task"]
    assert "executionTimeMs" in body["metadata"]

    client.post("/api/v1/query", json={"userId": "u", "query": "and then?", "sessionId": "s1"})

    _, history, session_count = classifier.calls[1]
    assert session_count == 2
    assert [t.content for t in history] == ["I feel stuck", "Take one small step."]


def test_failed_orchestration_is_still_200_and_not_stored(client, llm, conversation_store) -> None:
    llm.responses[DAILY] = RuntimeError("provider down")

    response = client.post("/api/v1/query", json={"userId": "u", "query": "help"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["responses"] == []
    assert body["metadata"]["error"] == "All agents failed to process query"
    assert client.get("/api/v1/stats/u").json()["totalQueries"] == 0


def test_query_validation(client) -> None:
    assert client.post("/api/v1/query", json={"userId": "u", "query": ""}).status_code == 422


def test_breakdown_endpoint(client) -> None:
    response = client.post("/api/v1/breakdown", json={"task": "Do the dishes", "efProfile": ["overwhelm"]})

    assert response.status_code == 200
    body = response.json()
    assert body["breakdown"][0]["subSteps"] == ["Turn on hot water"]
    assert body["isFallback"] is False
    assert "You don't have to do all steps today" in body["tips"]


def test_knowledge_ingest_and_clear(client) -> None:
    response = client.post("/api/v1/knowledge", json={"sources": [
        {"title": "Body doubling", "content": "Working next to someone helps you start.", "domain": "daily_task"},
    ]})

    assert response.status_code == 200
    assert response.json() == {"sourcesIngested": 1, "documentCount": 1}
    assert client.get("/api/v1/health").json()["knowledgeStoreReady"] is True

    assert client.delete("/api/v1/knowledge").json()["success"] is True
    assert client.get("/api/v1/health").json()["documentCount"] == 0


def test_knowledge_ingest_requires_sources(client) -> None:
    assert client.post("/api/v1/knowledge", json={"sources": []}).status_code == 422


def test_stats_and_clear_conversations(client) -> None:
    client.post("/api/v1/query", json={"userId": "u", "query": "I feel stuck"})

    stats = client.get("/api/v1/stats/u").json()
    assert stats["totalQueries"] == 1
    assert stats["byDomain"]["daily_task"] == 1

    cleared = client.delete("/api/v1/conversations/u").json()
    assert cleared["success"] is True
    assert cleared["deleted"] == 1
    assert client.get("/api/v1/stats/u").json()["totalQueries"] == 0
