"""Canonical workflow statuses, review events and the legal transition table."""

from __future__ import annotations

from typing import Dict, Literal, Optional, Tuple, get_args


WorkflowStatus = Literal["pending", "approved", "rejected", "changes_requested"]
TransitionEvent = Literal["approve", "reject", "request_changes"]
Priority = Literal["low", "normal", "high", "urgent"]
MemberRole = Literal["admin", "editor", "viewer"]
ActivityAction = Literal["submitted", "approved", "rejected", "changes_requested", "commented", "updated"]
CommentType = Literal["comment", "feedback", "approval", "rejection"]

STATUS_PENDING: WorkflowStatus = "pending"
STATUS_APPROVED: WorkflowStatus = "approved"
STATUS_REJECTED: WorkflowStatus = "rejected"
STATUS_CHANGES_REQUESTED: WorkflowStatus = "changes_requested"

EVENT_APPROVE: TransitionEvent = "approve"
EVENT_REJECT: TransitionEvent = "reject"
EVENT_REQUEST_CHANGES: TransitionEvent = "request_changes"

ALL_STATUSES: Tuple[WorkflowStatus, ...] = get_args(WorkflowStatus)
ALL_EVENTS: Tuple[TransitionEvent, ...] = get_args(TransitionEvent)
ALL_PRIORITIES: Tuple[Priority, ...] = get_args(Priority)
ALL_TAB = "all"

TERMINAL_STATUSES = {STATUS_APPROVED, STATUS_REJECTED}
OPEN_STATUSES = {STATUS_PENDING, STATUS_CHANGES_REQUESTED}

# changes_requested -> rejected is accepted: revised content can still be turned down.
TRANSITIONS: Dict[Tuple[WorkflowStatus, TransitionEvent], WorkflowStatus] = {
    (STATUS_PENDING, EVENT_APPROVE): STATUS_APPROVED,
    (STATUS_PENDING, EVENT_REJECT): STATUS_REJECTED,
    (STATUS_PENDING, EVENT_REQUEST_CHANGES): STATUS_CHANGES_REQUESTED,
    (STATUS_CHANGES_REQUESTED, EVENT_APPROVE): STATUS_APPROVED,
    (STATUS_CHANGES_REQUESTED, EVENT_REJECT): STATUS_REJECTED,
}

# Events whose free-text input is mandatory.
REASON_REQUIRED_EVENTS = {EVENT_REJECT, EVENT_REQUEST_CHANGES}

EVENT_ACTIVITY_ACTIONS: Dict[TransitionEvent, ActivityAction] = {
    EVENT_APPROVE: "approved",
    EVENT_REJECT: "rejected",
    EVENT_REQUEST_CHANGES: "changes_requested",
}

STATUS_ACTIVITY_ACTIONS: Dict[WorkflowStatus, ActivityAction] = {
    STATUS_PENDING: "submitted",
    STATUS_APPROVED: "approved",
    STATUS_REJECTED: "rejected",
    STATUS_CHANGES_REQUESTED: "changes_requested",
}

PRIORITY_RANK: Dict[Priority, int] = {
    "urgent": 0,
    "high": 1,
    "normal": 2,
    "low": 3,
}

REVIEW_ROLES = {"admin", "editor"}
SUBMIT_ROLES = {"admin", "editor"}


def next_status(status: str, event: str) -> Optional[WorkflowStatus]:
    """Return the target status, or None when the pair is not in the table."""

    return TRANSITIONS.get((status, event))  # type: ignore[arg-type]


def is_terminal_status(status: str | None) -> bool:
    return status in TERMINAL_STATUSES


def is_open_status(status: str | None) -> bool:
    return status in OPEN_STATUSES


def normalize_event(raw: str | None) -> str:
    normalized = str(raw or "").strip().lower().replace("-", "_")
    if normalized == "changes_requested":
        return EVENT_REQUEST_CHANGES
    return normalized


def is_known_event(event: str) -> bool:
    return event in ALL_EVENTS
