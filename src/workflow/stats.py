"""Workflow statistics: full recomputation and O(1) incremental adjustment.

Both paths keep review time as an exact ``timedelta`` sum so an accumulator
that has seen a sequence of transitions reports the same numbers as a fresh
pass over the resulting workflows.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable

from src.workflow.models import ApprovalWorkflow, WorkflowStats
from src.workflow.states import ALL_STATUSES


def _average_hours(total: timedelta, count: int) -> float:
    if count <= 0:
        return 0.0
    return (total / count).total_seconds() / 3600.0


class StatsAccumulator:
    def __init__(self, *, as_of: datetime) -> None:
        self.as_of = as_of
        self._counts: Dict[str, int] = {status: 0 for status in ALL_STATUSES}
        self._review_total = timedelta(0)
        self._reviewed_count = 0
        self._overdue = 0

    @classmethod
    def from_workflows(cls, workflows: Iterable[ApprovalWorkflow], *, now: datetime) -> "StatsAccumulator":
        accumulator = cls(as_of=now)
        for workflow in workflows:
            accumulator.add(workflow)
        return accumulator

    def add(self, workflow: ApprovalWorkflow) -> None:
        self._counts[workflow.status] += 1
        if workflow.reviewed_at is not None:
            self._review_total += workflow.reviewed_at - workflow.submitted_at
            self._reviewed_count += 1
        if workflow.is_overdue(self.as_of):
            self._overdue += 1

    def remove(self, workflow: ApprovalWorkflow) -> None:
        self._counts[workflow.status] -= 1
        if workflow.reviewed_at is not None:
            self._review_total -= workflow.reviewed_at - workflow.submitted_at
            self._reviewed_count -= 1
        if workflow.is_overdue(self.as_of):
            self._overdue -= 1

    def advance(self, now: datetime, workflows: Iterable[ApprovalWorkflow]) -> None:
        """Move the overdue reference point forward; status counts and review time are unaffected."""

        if now <= self.as_of:
            return
        self.as_of = now
        self._overdue = sum(1 for workflow in workflows if workflow.is_overdue(now))

    def apply_transition(self, before: ApprovalWorkflow, after: ApprovalWorkflow) -> None:
        """Move one workflow from its prior bucket to its new one."""

        self.remove(before)
        self.add(after)

    def snapshot(self) -> WorkflowStats:
        return WorkflowStats(
            pending=self._counts["pending"],
            approved=self._counts["approved"],
            rejected=self._counts["rejected"],
            changes_requested=self._counts["changes_requested"],
            avg_review_time=_average_hours(self._review_total, self._reviewed_count),
            overdue_count=self._overdue,
        )


def compute_stats(workflows: Iterable[ApprovalWorkflow], *, now: datetime) -> WorkflowStats:
    """Single pass over the workflows in scope."""

    counts: Dict[str, int] = {status: 0 for status in ALL_STATUSES}
    review_total = timedelta(0)
    reviewed_count = 0
    overdue = 0
    for workflow in workflows:
        counts[workflow.status] += 1
        if workflow.reviewed_at is not None:
            review_total += workflow.reviewed_at - workflow.submitted_at
            reviewed_count += 1
        if workflow.is_overdue(now):
            overdue += 1

    return WorkflowStats(
        pending=counts["pending"],
        approved=counts["approved"],
        rejected=counts["rejected"],
        changes_requested=counts["changes_requested"],
        avg_review_time=_average_hours(review_total, reviewed_count),
        overdue_count=overdue,
    )
