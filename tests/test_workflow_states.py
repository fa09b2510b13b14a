from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.workflow.models import ApprovalWorkflow, WorkflowScope
from src.workflow.states import (
    is_open_status,
    is_terminal_status,
    next_status,
    normalize_event,
)
from tests.workflow_support import ADMIN, NOW, make_workflow


def test_terminal_statuses_have_no_outgoing_transitions() -> None:
    for status in ("approved", "rejected"):
        assert is_terminal_status(status) is True
        for event in ("approve", "reject", "request_changes"):
            assert next_status(status, event) is None


def test_open_statuses() -> None:
    assert is_open_status("pending") is True
    assert is_open_status("changes_requested") is True
    assert is_open_status("approved") is False
    assert next_status("changes_requested", "request_changes") is None


def test_normalize_event_accepts_route_spellings() -> None:
    assert normalize_event("request-changes") == "request_changes"
    assert normalize_event("changes_requested") == "request_changes"
    assert normalize_event(" Approve ") == "approve"
    assert normalize_event(None) == ""


def test_review_fields_must_be_paired() -> None:
    payload = make_workflow("wf-1").model_dump()
    payload["reviewed_by"] = ADMIN.model_dump()

    with pytest.raises(ValidationError):
        ApprovalWorkflow.model_validate(payload)


def test_unknown_status_is_rejected() -> None:
    payload = make_workflow("wf-1").model_dump()
    payload["status"] = "archived"

    with pytest.raises(ValidationError):
        ApprovalWorkflow.model_validate(payload)


def test_workflow_parses_camel_case_payload() -> None:
    workflow = ApprovalWorkflow.model_validate(
        {
            "id": "wf-7",
            "postId": "post-7",
            "post": {"id": "post-7", "content": "Hello", "platforms": ["instagram"]},
            "status": "approved",
            "submittedBy": {"id": "tm-2", "name": "Mike Chen", "role": "editor"},
            "submittedAt": "2024-01-15T08:00:00Z",
            "reviewedBy": {"id": "tm-1", "name": "Sarah Johnson", "role": "admin"},
            "reviewedAt": "2024-01-15T10:30:00Z",
            "priority": "high",
        }
    )

    assert workflow.review_hours() == pytest.approx(2.5)
    assert workflow.submitted_by.user_id == "tm-2"
    assert workflow.reviewed_at <= NOW


def test_scope_requires_organization() -> None:
    with pytest.raises(ValidationError):
        WorkflowScope(organization_id="  ")

    scope = WorkflowScope(organization_id="org-1", company_id=" ", product_id="prod-1")
    assert scope.company_id is None
    assert scope.key == ("org-1", "", "prod-1")
