from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from src.workflow.errors import FetchError, RemoteMutationError
from src.workflow.members import TeamMemberRegistry
from src.workflow.models import ApprovalWorkflow, PostSnapshot, RawComment, TeamMember, WorkflowScope
from src.workflow.service import WorkflowService


NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
ORG_ID = "org-1"


def fixed_clock() -> datetime:
    return NOW


def make_member(
    member_id: str = "tm-1",
    *,
    role: str = "admin",
    name: str = "Sarah Johnson",
    organization_id: str = ORG_ID,
) -> TeamMember:
    return TeamMember(
        id=member_id,
        user_id=f"user-{member_id}",
        name=name,
        email=f"{member_id}@example.com",
        role=role,
        organization_id=organization_id,
    )


ADMIN = make_member("tm-1", role="admin", name="Sarah Johnson")
EDITOR = make_member("tm-2", role="editor", name="Mike Chen")
VIEWER = make_member("tm-3", role="viewer", name="Emma Davis")


def make_workflow(
    workflow_id: str = "wf-1",
    *,
    status: str = "pending",
    post_id: Optional[str] = None,
    content: str = "Launch announcement for the spring collection",
    submitted_by: TeamMember = EDITOR,
    submitted_at: datetime = NOW - timedelta(hours=4),
    review_after: Optional[timedelta] = None,
    reviewed_by: Optional[TeamMember] = None,
    priority: str = "normal",
    due_date: Optional[datetime] = None,
) -> ApprovalWorkflow:
    reviewed_at = None
    if status != "pending":
        reviewed_by = reviewed_by or ADMIN
        reviewed_at = submitted_at + (review_after or timedelta(hours=1))
    return ApprovalWorkflow(
        id=workflow_id,
        post_id=post_id or f"post-{workflow_id}",
        post=PostSnapshot(id=post_id or f"post-{workflow_id}", content=content, organization_id=ORG_ID),
        status=status,
        submitted_by=submitted_by,
        submitted_at=submitted_at,
        reviewed_by=reviewed_by,
        reviewed_at=reviewed_at,
        priority=priority,
        due_date=due_date,
    )


class FakeRemote:
    """In-memory stand-in for the remote workflow and content services."""

    def __init__(self, workflows: Optional[List[ApprovalWorkflow]] = None) -> None:
        self.workflows: List[ApprovalWorkflow] = list(workflows or [])
        self.comments: Dict[str, List[RawComment]] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.hooks: Dict[str, Callable[[], Awaitable[None]]] = {}
        self.submitted_id: Optional[str] = None

    async def _enter(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        hook = self.hooks.get(operation)
        if hook is not None:
            await hook()
        failure = self.failures.get(operation)
        if failure is not None:
            raise failure

    async def get_workflows(self, scope: WorkflowScope) -> List[ApprovalWorkflow]:
        await self._enter("get_workflows", scope.organization_id)
        return list(self.workflows)

    async def submit_for_approval(self, post_id: str) -> Optional[str]:
        await self._enter("submit_for_approval", post_id)
        return self.submitted_id

    async def approve_post(self, post_id: str, comment: Optional[str] = None) -> None:
        await self._enter("approve_post", post_id, comment)

    async def reject_post(self, post_id: str, reason: str) -> None:
        await self._enter("reject_post", post_id, reason)

    async def request_changes(self, post_id: str, feedback: str) -> None:
        await self._enter("request_changes", post_id, feedback)

    async def get_comments(self, post_id: str, *, internal_only: bool = True) -> List[RawComment]:
        await self._enter("get_comments", post_id, internal_only)
        return list(self.comments.get(post_id, []))

    async def create_comment(self, post_id: str, *, text: str, internal_only: bool = True) -> None:
        await self._enter("create_comment", post_id, text, internal_only)

    def mutation_calls(self) -> List[tuple]:
        return [call for call in self.calls if call[0] not in {"get_workflows", "get_comments"}]

    def fail(self, operation: str, error: Optional[Exception] = None) -> None:
        if error is None and operation.startswith("get_"):
            error = FetchError("forced_fetch_failure")
        elif error is None:
            error = RemoteMutationError("forced_mutation_failure")
        self.failures[operation] = error


def build_service(
    workflows: Optional[List[ApprovalWorkflow]] = None,
    *,
    remote: Optional[FakeRemote] = None,
    actor: Optional[TeamMember] = ADMIN,
    load: bool = True,
    clock: Callable[[], datetime] = fixed_clock,
) -> tuple[WorkflowService, FakeRemote]:
    remote = remote or FakeRemote(workflows)
    service = WorkflowService(
        scope=WorkflowScope(organization_id=ORG_ID),
        remote=remote,
        actor=actor,
        registry=TeamMemberRegistry([ADMIN, EDITOR, VIEWER]),
        clock=clock,
    )
    if load:
        asyncio.run(service.load())
    return service, remote
