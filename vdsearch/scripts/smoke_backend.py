"""Lightweight smoke checks for the FastAPI application.

This script exercises the root endpoint, a view session and the suggestion
endpoint using FastAPI's TestClient so the wiring can be validated without
running the ASGI server. Suggestions hit the real suggestion API and fall back
to an empty list when offline.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.append(str(REPO_ROOT))

os.environ.setdefault("APP_JWT_SECRET", "smoke-secret")
os.environ.setdefault("ADMIN_PASSWORD", "smoke-password")

from vdsearch.app.main import app  # type: ignore[import]


def main() -> None:
    with TestClient(app) as client:
        root_response = client.get("/")
        print("/ status", root_response.status_code, root_response.json())

        session = client.post("/ui/sessions").json()
        print("/ui/sessions view", session["view"])

        session_id = session["session_id"]
        client.post(f"/ui/sessions/{session_id}/actions", json={"action": "request_admin"})
        login = client.post(
            f"/ui/sessions/{session_id}/actions",
            json={"action": "submit_password", "password": os.environ["ADMIN_PASSWORD"]},
        )
        print("admin login status", login.status_code, "view", login.json().get("view"))

        token = login.json().get("access_token")
        promotions = client.get("/admin/promotions", headers={"Authorization": f"Bearer {token}"})
        print("/admin/promotions status", promotions.status_code, "count", len(promotions.json().get("items", [])))

        suggestions = client.get("/search/suggestions", params={"q": "python"})
        print("/search/suggestions status", suggestions.status_code, suggestions.json()["suggestions"][:3])


if __name__ == "__main__":
    main()
