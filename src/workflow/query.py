"""Read-only views over the workflow store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List

from src.workflow.models import ApprovalWorkflow
from src.workflow.states import ALL_TAB, PRIORITY_RANK


_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def _matches_search(workflow: ApprovalWorkflow, needle: str) -> bool:
    if not needle:
        return True
    return needle in workflow.post.content.lower() or needle in workflow.submitted_by.name.lower()


def filter_workflows(
    workflows: Iterable[ApprovalWorkflow],
    *,
    active_tab: str = ALL_TAB,
    search_query: str = "",
    priority_filter: str = ALL_TAB,
) -> List[ApprovalWorkflow]:
    """Status tab, case-insensitive search over content and submitter, and priority."""

    needle = (search_query or "").strip().lower()
    tab = (active_tab or ALL_TAB).strip().lower()
    priority = (priority_filter or ALL_TAB).strip().lower()
    return [
        workflow
        for workflow in workflows
        if (tab == ALL_TAB or workflow.status == tab)
        and (priority == ALL_TAB or workflow.priority == priority)
        and _matches_search(workflow, needle)
    ]


def overdue_workflows(workflows: Iterable[ApprovalWorkflow], *, now: datetime) -> List[ApprovalWorkflow]:
    return [workflow for workflow in workflows if workflow.is_overdue(now)]


def sort_by_urgency(workflows: Iterable[ApprovalWorkflow]) -> List[ApprovalWorkflow]:
    """Highest priority first, then earliest due date, then oldest submission."""

    return sorted(
        workflows,
        key=lambda workflow: (
            PRIORITY_RANK.get(workflow.priority, len(PRIORITY_RANK)),
            workflow.due_date or _FAR_FUTURE,
            workflow.submitted_at,
        ),
    )
