"""Append-only activity trails per workflow."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
from uuid import uuid4

from src.workflow.models import ActivityMetadata, ApprovalWorkflow, TeamMember, WorkflowActivity
from src.workflow.states import (
    EVENT_ACTIVITY_ACTIONS,
    STATUS_ACTIVITY_ACTIONS,
    STATUS_PENDING,
    ActivityAction,
)


_TRANSITION_ACTION_STATUS = {
    "approved": "approved",
    "rejected": "rejected",
    "changes_requested": "changes_requested",
}


def _new_activity_id() -> str:
    return f"wa-{uuid4()}"


def replay_status(activities: Iterable[WorkflowActivity]) -> Optional[str]:
    """Rebuild a workflow's status from its trail; None when nothing was submitted."""

    status: Optional[str] = None
    for activity in activities:
        if activity.action == "submitted":
            status = STATUS_PENDING
        elif activity.action in _TRANSITION_ACTION_STATUS:
            status = activity.metadata.new_status or _TRANSITION_ACTION_STATUS[activity.action]
    return status


class ActivityLog:
    def __init__(self, *, id_factory: Callable[[], str] = _new_activity_id) -> None:
        self._id_factory = id_factory
        self._trails: Dict[str, List[WorkflowActivity]] = {}

    def record(
        self,
        *,
        workflow_id: str,
        actor: TeamMember,
        action: ActivityAction,
        timestamp: datetime,
        previous_status: str | None = None,
        new_status: str | None = None,
        comment: str | None = None,
    ) -> WorkflowActivity:
        activity = WorkflowActivity(
            id=self._id_factory(),
            workflow_id=workflow_id,
            actor=actor,
            action=action,
            timestamp=timestamp,
            metadata=ActivityMetadata(
                previous_status=previous_status,
                new_status=new_status,
                comment=comment,
            ),
        )
        self._trails.setdefault(workflow_id, []).append(activity)
        return activity

    def record_submission(self, workflow: ApprovalWorkflow) -> WorkflowActivity:
        return self.record(
            workflow_id=workflow.id,
            actor=workflow.submitted_by,
            action="submitted",
            timestamp=workflow.submitted_at,
            new_status=STATUS_PENDING,
        )

    def record_transition(
        self,
        *,
        before: ApprovalWorkflow,
        after: ApprovalWorkflow,
        event: str,
        actor: TeamMember,
        comment: str | None = None,
    ) -> WorkflowActivity:
        return self.record(
            workflow_id=after.id,
            actor=actor,
            action=EVENT_ACTIVITY_ACTIONS[event],  # type: ignore[index]
            timestamp=after.reviewed_at or after.submitted_at,
            previous_status=before.status,
            new_status=after.status,
            comment=comment,
        )

    def _seed(self, workflow: ApprovalWorkflow) -> List[WorkflowActivity]:
        self._trails.pop(workflow.id, None)
        self.record_submission(workflow)
        if workflow.status != STATUS_PENDING:
            self.record(
                workflow_id=workflow.id,
                actor=workflow.reviewed_by or workflow.submitted_by,
                action=STATUS_ACTIVITY_ACTIONS[workflow.status],
                timestamp=workflow.reviewed_at or workflow.submitted_at,
                previous_status=STATUS_PENDING,
                new_status=workflow.status,
            )
        return self._trails[workflow.id]

    def sync(self, workflows: Iterable[ApprovalWorkflow]) -> None:
        """Align trails with freshly loaded workflows, keeping comment entries."""

        for workflow in workflows:
            existing = self._trails.get(workflow.id, [])
            if existing and replay_status(self.activities(workflow.id)) == workflow.status:
                continue
            comments = [activity for activity in existing if activity.action == "commented"]
            self._seed(workflow).extend(comments)

    def activities(self, workflow_id: str) -> List[WorkflowActivity]:
        """Oldest first; entries sharing a timestamp keep their recording order."""

        return sorted(self._trails.get(workflow_id, []), key=lambda activity: activity.timestamp)
