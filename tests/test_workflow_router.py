from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

import src.api.main as api_main
from src.workflow.service import WorkflowServiceRegistry, get_workflow_service_registry
from tests.workflow_support import FakeRemote, build_service, make_member, make_workflow


ADMIN_HEADERS = {"X-Team-Member-Id": "tm-1"}
VIEWER_HEADERS = {"X-Team-Member-Id": "tm-3"}
SCOPE = {"organizationId": "org-1"}


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote(
        [
            make_workflow("wf-1", content="Spring teaser", priority="high"),
            make_workflow("wf-2", status="approved"),
            make_workflow("wf-3", status="changes_requested"),
        ]
    )


@pytest.fixture
def service(remote):
    built, _ = build_service(remote=remote, actor=None, load=False)
    return built


@pytest.fixture
def client(service):
    registry = WorkflowServiceRegistry(lambda scope: service)
    api_main.app.dependency_overrides[get_workflow_service_registry] = lambda: registry
    yield TestClient(api_main.app)
    api_main.app.dependency_overrides.clear()


def test_list_loads_on_first_access_and_reports_stats(client) -> None:
    response = client.get("/workflows", params=SCOPE)

    assert response.status_code == 200
    payload = response.json()
    assert payload["organizationId"] == "org-1"
    assert payload["loaded"] is True
    assert payload["total"] == 3
    assert payload["stats"]["pending"] == 1
    assert payload["stats"]["changesRequested"] == 1
    assert {item["id"] for item in payload["workflows"]} == {"wf-1", "wf-2", "wf-3"}


def test_list_applies_filters(client) -> None:
    response = client.get("/workflows", params={**SCOPE, "status": "pending", "search": "spring"})

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["workflows"]] == ["wf-1"]


def test_load_failure_is_reported_without_clearing(client, remote) -> None:
    client.post("/workflows/load", params=SCOPE)
    remote.fail("get_workflows")

    response = client.post("/workflows/load", params=SCOPE)

    assert response.status_code == 200
    assert response.json()["loadError"] == "fetch_error"
    assert response.json()["total"] == 3


def test_missing_or_blank_scope_is_rejected(client) -> None:
    assert client.get("/workflows").status_code == 422
    assert client.get("/workflows", params={"organizationId": "  "}).status_code == 422


def test_approve_endpoint_transitions_workflow(client, remote) -> None:
    client.post("/workflows/load", params=SCOPE)

    response = client.post("/workflows/wf-1/approve", params=SCOPE, json={"comment": "great"}, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "approved"
    assert payload["message"] == "workflow_approved"
    assert payload["workflow"]["reviewedBy"]["id"] == "tm-1"
    assert payload["stats"]["approved"] == 2
    assert ("approve_post", "post-wf-1", "great") in remote.calls


def test_reject_without_reason_is_unprocessable(client, remote) -> None:
    client.post("/workflows/load", params=SCOPE)

    response = client.post("/workflows/wf-1/reject", params=SCOPE, json={"reason": ""}, headers=ADMIN_HEADERS)

    assert response.status_code == 422
    assert response.json()["detail"] == "reject_requires_text"
    assert remote.mutation_calls() == []


def test_invalid_transition_is_conflict(client) -> None:
    client.post("/workflows/load", params=SCOPE)

    response = client.post("/workflows/wf-2/approve", params=SCOPE, json={}, headers=ADMIN_HEADERS)

    assert response.status_code == 409


def test_request_changes_route_and_prompt(client) -> None:
    client.post("/workflows/load", params=SCOPE)

    prompt = client.get("/workflows/wf-1/transitions/request-changes", params=SCOPE, headers=ADMIN_HEADERS)
    assert prompt.status_code == 200
    assert prompt.json()["reasonRequired"] is True
    assert prompt.json()["targetStatus"] == "changes_requested"

    response = client.post(
        "/workflows/wf-1/request-changes",
        params=SCOPE,
        json={"feedback": "fix the headline"},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "changes_requested"


def test_actor_checks(client, service) -> None:
    client.post("/workflows/load", params=SCOPE)
    service.registry.observe(make_member("tm-9", role="admin", name="Outsider", organization_id="org-2"))

    missing = client.post("/workflows/wf-1/approve", params=SCOPE, json={})
    viewer = client.post("/workflows/wf-1/approve", params=SCOPE, json={}, headers=VIEWER_HEADERS)
    outsider = client.post("/workflows/wf-1/approve", params=SCOPE, json={}, headers={"X-Team-Member-Id": "tm-9"})

    assert missing.status_code == 401
    assert viewer.status_code == 403
    assert viewer.json()["detail"] == "insufficient_role"
    assert outsider.status_code == 403


def test_unknown_workflow_is_not_found(client) -> None:
    client.post("/workflows/load", params=SCOPE)

    assert client.get("/workflows/wf-404", params=SCOPE).status_code == 404
    assert client.post("/workflows/wf-404/approve", params=SCOPE, json={}, headers=ADMIN_HEADERS).status_code == 404
    assert client.get("/workflows/wf-404/activities", params=SCOPE).status_code == 404
    assert client.get("/workflows/wf-404/comments", params=SCOPE).status_code == 404


def test_remote_failure_is_bad_gateway(client, service, remote) -> None:
    client.post("/workflows/load", params=SCOPE)
    remote.fail("approve_post")

    response = client.post("/workflows/wf-1/approve", params=SCOPE, json={}, headers=ADMIN_HEADERS)

    assert response.status_code == 502
    assert service.get("wf-1").status == "pending"


def test_comments_and_activities(client) -> None:
    client.post("/workflows/load", params=SCOPE)

    created = client.post(
        "/workflows/wf-3/comments",
        params=SCOPE,
        json={"content": "Looks closer now"},
        headers=VIEWER_HEADERS,
    )
    listed = client.get("/workflows/wf-3/comments", params=SCOPE)
    activities = client.get("/workflows/wf-3/activities", params=SCOPE)

    assert created.status_code == 201
    assert listed.status_code == 200
    assert listed.json()["comments"] == []
    assert listed.json()["loadError"] is None
    actions = [item["action"] for item in activities.json()["activities"]]
    assert actions == ["submitted", "changes_requested", "commented"]


def test_submit_endpoint_creates_workflow(client, service) -> None:
    client.post("/workflows/load", params=SCOPE)

    response = client.post(
        "/workflows/submit",
        params=SCOPE,
        json={"post": {"id": "post-50", "content": "Fresh post"}, "priority": "urgent"},
        headers={"X-Team-Member-Id": "tm-2"},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["status"] == "pending"
    assert payload["workflow"]["priority"] == "urgent"
    assert service.stats.pending == 2


def test_stats_endpoint(client) -> None:
    client.post("/workflows/load", params=SCOPE)

    response = client.get("/workflows/stats", params=SCOPE)

    assert response.status_code == 200
    assert response.json()["total"] == 3
    assert response.json()["avgReviewTime"] == pytest.approx(1.0)
