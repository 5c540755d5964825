from __future__ import annotations

from typing import Iterator

import jwt
import pytest
from fastapi.testclient import TestClient

from vdsearch.app import config
from vdsearch.app.main import app
from vdsearch.app.utils import view_sessions


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "Hunter2")
    monkeypatch.setattr(config, "APP_JWT_SECRET", "test-secret")
    view_sessions.reset_sessions()
    yield TestClient(app)
    view_sessions.reset_sessions()


def _act(client: TestClient, session_id: str, action: str, **extra):
    return client.post(f"/ui/sessions/{session_id}/actions", json={"action": action, **extra})


def test_create_and_fetch_session(client: TestClient) -> None:
    created = client.post("/ui/sessions")

    assert created.status_code == 201
    body = created.json()
    assert body["view"] == "search"
    assert body["authenticated"] is False

    fetched = client.get(f"/ui/sessions/{body['session_id']}")
    assert fetched.status_code == 200
    assert fetched.json() == body


def test_unknown_session_is_404(client: TestClient) -> None:
    assert client.get("/ui/sessions/missing").status_code == 404
    assert _act(client, "missing", "open_settings").status_code == 404


def test_password_flow_issues_admin_token(client: TestClient) -> None:
    session_id = client.post("/ui/sessions").json()["session_id"]

    assert _act(client, session_id, "open_settings").json()["view"] == "settings"
    assert _act(client, session_id, "request_admin").json()["view"] == "password"

    response = _act(client, session_id, "submit_password", password="  hunter2 ")

    assert response.status_code == 200
    body = response.json()
    assert body["view"] == "admin"
    assert body["authenticated"] is True
    claims = jwt.decode(
        body["access_token"],
        "test-secret",
        algorithms=["HS256"],
        audience=config.APP_JWT_AUDIENCE,
        issuer=config.APP_JWT_ISSUER,
    )
    assert claims["sid"] == session_id
    assert claims["role"] == "admin"
    assert body["expires_at"] == claims["exp"]

    # Admin token opens the protected endpoints.
    status_response = client.get("/admin/status", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert status_response.status_code == 200


def test_wrong_password_returns_to_settings(client: TestClient) -> None:
    session_id = client.post("/ui/sessions").json()["session_id"]
    _act(client, session_id, "open_settings")
    _act(client, session_id, "request_admin")

    response = _act(client, session_id, "submit_password", password="letmein")

    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect password."
    state = client.get(f"/ui/sessions/{session_id}").json()
    assert state["view"] == "settings"
    assert state["authenticated"] is False


def test_authenticated_session_skips_prompt(client: TestClient) -> None:
    session_id = client.post("/ui/sessions").json()["session_id"]
    _act(client, session_id, "request_admin")
    _act(client, session_id, "submit_password", password="hunter2")
    _act(client, session_id, "go_home")

    response = _act(client, session_id, "request_admin")

    assert response.json()["view"] == "admin"
    assert response.json()["access_token"] is None


def test_submit_password_outside_prompt_conflicts(client: TestClient) -> None:
    session_id = client.post("/ui/sessions").json()["session_id"]

    response = _act(client, session_id, "submit_password", password="hunter2")

    assert response.status_code == 409


def test_missing_admin_password_is_server_error(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "ADMIN_PASSWORD", None)
    session_id = client.post("/ui/sessions").json()["session_id"]
    _act(client, session_id, "request_admin")

    response = _act(client, session_id, "submit_password", password="anything")

    assert response.status_code == 500


def test_unknown_action_is_rejected(client: TestClient) -> None:
    session_id = client.post("/ui/sessions").json()["session_id"]

    assert _act(client, session_id, "teleport").status_code == 422


def test_delete_session_forgets_authentication(client: TestClient) -> None:
    session_id = client.post("/ui/sessions").json()["session_id"]

    assert client.delete(f"/ui/sessions/{session_id}").status_code == 204
    assert client.get(f"/ui/sessions/{session_id}").status_code == 404
    assert view_sessions.session_count() == 0
