"""HTTP tests for the preferences service."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from codeintel.config.settings import Settings  # noqa: E402
from codeintel.storage import (  # noqa: E402
    ConfigOverlayStore,
    ConnectionRegistry,
    InMemoryPreferenceStore,
    TemplateStore,
)

_CONNECTIONS = [
    {"name": "openai", "type": "OPENAI", "apiKey": "sk-secret", "enabled": True},
    {"name": "local", "type": "OLLAMA", "enabled": True},
    {"name": "claude", "type": "ANTHROPIC", "enabled": False},
]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def preferences() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore({"apiConnections": json.dumps(_CONNECTIONS)})


@pytest.fixture
async def client(preferences: InMemoryPreferenceStore) -> AsyncIterator[AsyncClient]:
    from services.preferences import dependencies
    from services.preferences.app import app

    templates = TemplateStore(preferences)
    overlays = ConfigOverlayStore(preferences)
    registry = ConnectionRegistry(preferences)

    app.dependency_overrides[dependencies.get_template_store] = lambda: templates
    app.dependency_overrides[dependencies.get_overlay_store] = lambda: overlays
    app.dependency_overrides[dependencies.get_connection_registry] = lambda: registry
    app.dependency_overrides[dependencies.get_settings] = lambda: Settings()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


async def _create(client: AsyncClient, **template: object) -> dict:
    payload = {"enabled": True, "type": "CHAT", **template}
    response = await client.post("/templates", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.anyio("asyncio")
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "preferences"}
    assert response.headers["X-Request-ID"]


@pytest.mark.anyio("asyncio")
async def test_template_crud(client: AsyncClient) -> None:
    created = await _create(client, name="General", prompt="You help.")
    assert created["index"] == 0
    assert created["template"]["connectionName"] is None

    await _create(client, name="OpenAI", connectionName="openai", prompt="Be terse.")

    listing = (await client.get("/templates")).json()
    assert [t["name"] for t in listing["templates"]] == ["General", "OpenAI"]

    updated = await client.put(
        "/templates/0", json={"name": "Renamed", "type": "CHAT", "prompt": "x", "enabled": True}
    )
    assert updated.status_code == 200
    assert (await client.get("/templates/0")).json()["template"]["name"] == "Renamed"

    deleted = await client.delete("/templates/0")
    assert deleted.json()["template"]["name"] == "Renamed"
    assert len((await client.get("/templates")).json()["templates"]) == 1


@pytest.mark.anyio("asyncio")
async def test_insert_at_position(client: AsyncClient) -> None:
    await _create(client, name="a")
    response = await client.post(
        "/templates", params={"position": 0}, json={"name": "first", "type": "CHAT"}
    )

    assert response.json()["index"] == 0
    names = [t["name"] for t in (await client.get("/templates")).json()["templates"]]
    assert names == ["first", "a"]


@pytest.mark.anyio("asyncio")
async def test_missing_template_is_problem_404(client: AsyncClient) -> None:
    response = await client.get("/templates/5")

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["title"] == "Prompt Template Not Found"
    assert body["index"] == 5


@pytest.mark.anyio("asyncio")
async def test_invalid_template_text_is_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/templates", json={"name": "bad", "type": "INSTRUCT", "prompt": "ok\n{{#code}}"}
    )

    assert response.status_code == 422
    body = response.json()
    assert body["title"] == "Invalid Prompt Template"
    assert body["detail"] == "Section 'code' is never closed"
    assert body["line"] == 2
    assert (await client.get("/templates")).json()["templates"] == []


@pytest.mark.anyio("asyncio")
async def test_second_enabled_fallback_is_problem_422(client: AsyncClient) -> None:
    await _create(client, name="General", prompt="You help.")
    await _create(client, name="Instruct", type="INSTRUCT", prompt="{{code}}")

    response = await client.post(
        "/templates", json={"name": "Other", "type": "CHAT", "enabled": True}
    )

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["title"] == "Duplicate Fallback Template"
    assert body["promptType"] == "CHAT"
    assert body["existing"] == "General"

    disabled = await _create(client, name="Spare", enabled=False)
    enabled = await client.put(
        f"/templates/{disabled['index']}",
        json={"name": "Spare", "type": "CHAT", "enabled": True},
    )
    assert enabled.status_code == 422

    names = [t["name"] for t in (await client.get("/templates")).json()["templates"]]
    assert names == ["General", "Instruct", "Spare"]


@pytest.mark.anyio("asyncio")
async def test_move_template(client: AsyncClient) -> None:
    await _create(client, name="a")
    await _create(client, name="b", modelId="gpt-4o")

    response = await client.post("/templates/1/move", json={"direction": "up"})

    assert response.json()["index"] == 0
    names = [t["name"] for t in (await client.get("/templates")).json()["templates"]]
    assert names == ["b", "a"]


@pytest.mark.anyio("asyncio")
async def test_resolve_reports_specificity_and_default(client: AsyncClient) -> None:
    await _create(client, name="P1", connectionName="openai", prompt="P1")
    await _create(client, name="P2", prompt="P2")

    openai = (await client.post(
        "/templates/resolve", json={"type": "CHAT", "connectionName": "openai"}
    )).json()
    anthropic = (await client.post(
        "/templates/resolve", json={"type": "CHAT", "connectionName": "anthropic"}
    )).json()
    instruct = (await client.post("/templates/resolve", json={"type": "INSTRUCT"})).json()

    assert openai["template"]["prompt"] == "P1"
    assert openai["specificity"] == "CONNECTION"
    assert anthropic["template"]["prompt"] == "P2"
    assert anthropic["specificity"] == "FALLBACK"
    assert instruct["isDefault"] is True
    assert instruct["template"]["name"] == "<Default>"


@pytest.mark.anyio("asyncio")
async def test_render_submitted_and_stored_templates(client: AsyncClient) -> None:
    direct = await client.post(
        "/templates/render",
        json={"type": "INSTRUCT", "prompt": "{{#items}}{{.}},{{/items}}", "variables": {"items": ["a", "b"]}},
    )
    assert direct.json() == {"text": "a,b,", "templateName": None}

    await _create(client, name="Mine", type="INSTRUCT", prompt="Fix {{code}}")
    stored = await client.post(
        "/templates/render", json={"type": "INSTRUCT", "variables": {"code": "x"}}
    )
    assert stored.json() == {"text": "Fix x", "templateName": "Mine"}


@pytest.mark.anyio("asyncio")
async def test_preview(client: AsyncClient) -> None:
    response = await client.post(
        "/templates/preview", json={"type": "CHAT", "prompt": "Be helpful."}
    )

    messages = response.json()["messages"]
    assert [m["role"] for m in messages] == ["system", "user", "assistant"]


@pytest.mark.anyio("asyncio")
async def test_overlay_lifecycle(client: AsyncClient) -> None:
    put = await client.put("/overlays/openai/CHAT", json={"overlay": '{"temperature": 0.3}'})
    assert put.status_code == 204

    assert (await client.get("/overlays")).json() == {
        "openai": {"CHAT": '{"temperature": 0.3}'}
    }

    merged = await client.post(
        "/overlays/merge",
        json={"connectionName": "openai", "type": "CHAT", "base": {"temperature": 1, "model": "m"}},
    )
    assert merged.json() == {"body": {"temperature": 0.3, "model": "m"}}

    cleared = await client.put("/overlays/openai/CHAT", json={"overlay": "  "})
    assert cleared.status_code == 204
    assert (await client.get("/overlays")).json() == {}


@pytest.mark.anyio("asyncio")
async def test_invalid_overlay_is_rejected(client: AsyncClient) -> None:
    response = await client.put("/overlays/openai/CHAT", json={"overlay": "{invalid"})

    assert response.status_code == 422
    body = response.json()
    assert body["title"] == "Invalid Configuration Overlay"
    assert body["connectionName"] == "openai"
    assert (await client.get("/overlays")).json() == {}


@pytest.mark.anyio("asyncio")
async def test_overlay_for_unknown_connection_is_404(client: AsyncClient) -> None:
    response = await client.put("/overlays/nope/CHAT", json={"overlay": "{}"})

    assert response.status_code == 404
    assert response.json()["connectionName"] == "nope"


@pytest.mark.anyio("asyncio")
async def test_delete_overlay(client: AsyncClient) -> None:
    await client.put("/overlays/local/INSTRUCT", json={"overlay": "{}"})

    response = await client.delete("/overlays/local/INSTRUCT")

    assert response.status_code == 204
    assert (await client.get("/overlays")).json() == {}


@pytest.mark.anyio("asyncio")
async def test_suggestions(client: AsyncClient) -> None:
    ollama = (await client.get("/overlays/suggestions/local/CHAT")).json()
    claude = (await client.get("/overlays/suggestions/claude/CHAT")).json()

    assert json.loads(ollama["suggestion"])["keep_alive"] == "15m"
    assert claude["suggestion"] is None


@pytest.mark.anyio("asyncio")
async def test_eligible_connections_hide_credentials(client: AsyncClient) -> None:
    response = await client.get("/connections/eligible")

    payload = response.json()
    assert [c["name"] for c in payload] == ["openai", "local"]
    assert "apiKey" not in payload[0]
    assert "sk-secret" not in response.text


@pytest.mark.anyio("asyncio")
async def test_save_and_reload(
    client: AsyncClient, preferences: InMemoryPreferenceStore
) -> None:
    await _create(client, name="kept")
    await client.put("/overlays/openai/CHAT", json={"overlay": "{}"})

    saved = await client.post("/preferences/save")
    assert saved.json() == {"templates": 1, "overlayConnections": 1, "orphanedOverlays": []}
    assert json.loads(preferences.get("promptTemplates") or "")[0]["name"] == "kept"

    await _create(client, name="unsaved", connectionName="local")
    reloaded = await client.post("/preferences/reload")

    assert reloaded.json()["templates"] == 1


@pytest.mark.anyio("asyncio")
async def test_corrupt_storage_is_problem_503(
    client: AsyncClient, preferences: InMemoryPreferenceStore
) -> None:
    preferences.put("promptTemplates", "{corrupt")

    response = await client.post("/preferences/reload")

    assert response.status_code == 503
    assert response.json()["key"] == "promptTemplates"


@pytest.mark.anyio("asyncio")
async def test_request_validation_problem(client: AsyncClient) -> None:
    response = await client.post("/templates/resolve", json={"type": "UNKNOWN"})

    assert response.status_code == 422
    assert response.json()["title"] == "Request Validation Failed"


@pytest.mark.anyio("asyncio")
async def test_request_id_is_propagated(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
    assert response.headers["X-Response-Time"].endswith("s")
