"""
Integration test fixtures. Overrides get_session_service so API tests drive
sessions against the scripted provider instead of a live Ollama server.
"""
import pytest

from fake_llm import FakeLLM


@pytest.fixture
def api_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def session_service(api_llm):
    from agents.feynman_agent.pipeline import ContentPipeline
    from api.services.session_service import LearningSessionService
    return LearningSessionService(ContentPipeline(api_llm))


@pytest.fixture
def api_client(session_service):
    """FastAPI TestClient with the session service override."""
    from fastapi.testclient import TestClient
    from api.api import app
    from api.services.session_service import get_session_service
    app.dependency_overrides[get_session_service] = lambda: session_service
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(api_client) -> str:
    response = api_client.post("/sessions")
    assert response.status_code == 200
    return response.json()["session_id"]
