"""E2E tests for application wiring and lifespan."""

from fastapi.testclient import TestClient

from src.db.content_store import InMemoryContentStore
from src.db.conversation_store import InMemoryConversationStore
from src.main import APP_VERSION, app


def test_root_endpoint(test_client, mock_settings):
    response = test_client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["model"] == mock_settings.completion_model
    assert body["version"] == APP_VERSION


def test_lifespan_wires_configured_stores(mock_settings, mock_logfire):
    with TestClient(app) as client:
        assert isinstance(app.state.content_store, InMemoryContentStore)
        assert isinstance(app.state.conversation_store, InMemoryConversationStore)
        assert client.get("/health").status_code == 200

    mock_logfire.configure.assert_called_once()
    startup = [
        c for c in mock_logfire.info.call_args_list
        if c.args and c.args[0] == "Application startup complete"
    ]
    config = startup[0].kwargs["config"]
    assert config["completion_api_key"] != mock_settings.completion_api_key


def test_cors_allows_embedding_sites(test_client):
    response = test_client.options(
        "/tenants/t1/chat",
        headers={
            "Origin": "https://tenant-site.example",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
