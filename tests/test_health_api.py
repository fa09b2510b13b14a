from fastapi.testclient import TestClient

import src.api.main as api_main
from src.workflow.members import TeamMemberRegistry
from tests.workflow_support import ADMIN


def test_health_returns_ok_when_directory_and_remotes_are_configured(monkeypatch) -> None:
    monkeypatch.setattr(api_main, "load_member_directory", lambda: TeamMemberRegistry([ADMIN]))

    client = TestClient(api_main.app)
    response = client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["services"]["team_members"] == {"ok": True, "count": 1}
    assert payload["services"]["remote_apis"]["ok"] is True


def test_health_returns_503_when_team_directory_is_empty(monkeypatch) -> None:
    monkeypatch.setattr(api_main, "load_member_directory", lambda: TeamMemberRegistry())

    client = TestClient(api_main.app)
    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


def test_version_reports_app_metadata() -> None:
    client = TestClient(api_main.app)
    response = client.get("/version")

    assert response.status_code == 200
    assert response.json()["name"] == api_main.settings.app_name
