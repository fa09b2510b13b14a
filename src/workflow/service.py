"""Per-session workflow facade wiring store, stats, engine and collaboration for one scope."""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from src.core.config import get_settings
from src.core.logger import get_logger
from src.core.metrics import record_workflow_submission
from src.integrations.content_api import get_content_api_client
from src.integrations.workflow_api import get_workflow_api_client
from src.workflow.activity import ActivityLog
from src.workflow.collaboration import CollaborationService
from src.workflow.engine import TransitionEngine
from src.workflow.errors import (
    ERROR_ALREADY_SUBMITTED,
    ERROR_INSUFFICIENT_ROLE,
    RemoteMutationError,
    RemoteTimeoutError,
)
from src.workflow.members import TeamMemberRegistry, load_member_directory
from src.workflow.models import (
    ApprovalWorkflow,
    PostSnapshot,
    TeamMember,
    WorkflowActivity,
    WorkflowComment,
    WorkflowScope,
    WorkflowStats,
)
from src.workflow.query import filter_workflows, overdue_workflows, sort_by_urgency
from src.workflow.remote import HttpWorkflowBoundary, RemoteWorkflowBoundary
from src.workflow.results import TransitionPrompt, WorkflowResult, failure, ok
from src.workflow.states import (
    ALL_TAB,
    EVENT_APPROVE,
    EVENT_REJECT,
    EVENT_REQUEST_CHANGES,
    STATUS_PENDING,
    SUBMIT_ROLES,
    Priority,
    is_open_status,
)
from src.workflow.store import WorkflowStore, utc_now


logger = get_logger("makeitsocial.workflow.service")


class WorkflowService:
    def __init__(
        self,
        *,
        scope: WorkflowScope,
        remote: RemoteWorkflowBoundary,
        actor: Optional[TeamMember] = None,
        registry: Optional[TeamMemberRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
        internal_only_comments: bool = True,
        default_comment_author_role: str = "editor",
    ) -> None:
        self.actor = actor
        self.registry = registry if registry is not None else TeamMemberRegistry()
        self._remote = remote
        self._clock = clock
        self.store = WorkflowStore(remote=remote, scope=scope, clock=clock)
        self.activity_log = ActivityLog()
        self.engine = TransitionEngine(
            store=self.store,
            remote=remote,
            activity_log=self.activity_log,
            clock=clock,
        )
        self.collaboration = CollaborationService(
            store=self.store,
            remote=remote,
            activity_log=self.activity_log,
            registry=self.registry,
            clock=clock,
            internal_only=internal_only_comments,
            default_author_role=default_comment_author_role,
        )

    @property
    def scope(self) -> WorkflowScope:
        return self.store.scope

    def _actor(self, actor: Optional[TeamMember]) -> TeamMember:
        resolved = actor or self.actor
        if resolved is None:
            raise ValueError("an acting team member is required")
        return resolved

    async def load(self, scope: WorkflowScope | None = None) -> List[ApprovalWorkflow]:
        workflows = await self.store.load(scope)
        if self.store.last_error is None:
            for workflow in workflows:
                self.registry.observe(workflow.submitted_by)
                if workflow.reviewed_by is not None:
                    self.registry.observe(workflow.reviewed_by)
            self.activity_log.sync(workflows)
        return workflows

    @property
    def workflows(self) -> List[ApprovalWorkflow]:
        return self.store.all()

    @property
    def stats(self) -> WorkflowStats:
        return self.store.stats

    def get(self, workflow_id: str) -> Optional[ApprovalWorkflow]:
        return self.store.get(workflow_id)

    def get_by_status(self, status: str) -> List[ApprovalWorkflow]:
        return self.store.get_by_status(status)

    def filtered(
        self,
        *,
        active_tab: str = ALL_TAB,
        search_query: str = "",
        priority_filter: str = ALL_TAB,
    ) -> List[ApprovalWorkflow]:
        return filter_workflows(
            self.store.all(),
            active_tab=active_tab,
            search_query=search_query,
            priority_filter=priority_filter,
        )

    def overdue(self) -> List[ApprovalWorkflow]:
        return overdue_workflows(self.store.all(), now=self._clock())

    def by_urgency(self) -> List[ApprovalWorkflow]:
        return sort_by_urgency(self.store.get_by_status(STATUS_PENDING))

    async def submit(
        self,
        post: PostSnapshot,
        *,
        priority: Priority = "normal",
        due_date: Optional[datetime] = None,
        actor: Optional[TeamMember] = None,
    ) -> WorkflowResult:
        submitter = self._actor(actor)
        organization_id = self.scope.organization_id
        if submitter.role not in SUBMIT_ROLES:
            record_workflow_submission(organization_id=organization_id, outcome=ERROR_INSUFFICIENT_ROLE)
            return failure(ERROR_INSUFFICIENT_ROLE, post_id=post.id)

        open_items = [workflow for workflow in self.store.find_by_post(post.id) if is_open_status(workflow.status)]
        if open_items:
            record_workflow_submission(organization_id=organization_id, outcome=ERROR_ALREADY_SUBMITTED)
            return failure(
                ERROR_ALREADY_SUBMITTED,
                workflow_id=open_items[0].id,
                status=open_items[0].status,
                post_id=post.id,
            )

        try:
            remote_id = await self._remote.submit_for_approval(post.id)
        except (RemoteTimeoutError, RemoteMutationError) as exc:
            logger.error("workflow_submit_failed", post_id=post.id, error_code=exc.code, error=str(exc))
            record_workflow_submission(organization_id=organization_id, outcome=exc.code)
            return failure(exc.code, post_id=post.id, message=str(exc))

        workflow = ApprovalWorkflow(
            id=remote_id or f"wf-{uuid4()}",
            post_id=post.id,
            post=post,
            status=STATUS_PENDING,
            submitted_by=submitter,
            submitted_at=self._clock(),
            priority=priority,
            due_date=due_date,
        )
        self.store.add(workflow)
        self.registry.observe(submitter)
        activity = self.activity_log.record_submission(workflow)
        record_workflow_submission(organization_id=organization_id, outcome="ok")
        logger.info("workflow_submitted", workflow_id=workflow.id, post_id=post.id, priority=priority)
        return ok("workflow_submitted", workflow_id=workflow.id, status=workflow.status, activity_id=activity.id)

    def begin_transition(self, workflow_id: str, event: str, *, actor: Optional[TeamMember] = None) -> TransitionPrompt:
        return self.engine.begin_transition(workflow_id, event, self._actor(actor))

    def begin_approve(self, workflow_id: str, *, actor: Optional[TeamMember] = None) -> TransitionPrompt:
        return self.begin_transition(workflow_id, EVENT_APPROVE, actor=actor)

    def begin_reject(self, workflow_id: str, *, actor: Optional[TeamMember] = None) -> TransitionPrompt:
        return self.begin_transition(workflow_id, EVENT_REJECT, actor=actor)

    def begin_request_changes(self, workflow_id: str, *, actor: Optional[TeamMember] = None) -> TransitionPrompt:
        return self.begin_transition(workflow_id, EVENT_REQUEST_CHANGES, actor=actor)

    async def approve(
        self,
        workflow_id: str,
        comment: Optional[str] = None,
        *,
        actor: Optional[TeamMember] = None,
    ) -> WorkflowResult:
        return await self.engine.approve(workflow_id, actor=self._actor(actor), comment=comment)

    async def reject(self, workflow_id: str, reason: str, *, actor: Optional[TeamMember] = None) -> WorkflowResult:
        return await self.engine.reject(workflow_id, actor=self._actor(actor), reason=reason)

    async def request_changes(
        self,
        workflow_id: str,
        feedback: str,
        *,
        actor: Optional[TeamMember] = None,
    ) -> WorkflowResult:
        return await self.engine.request_changes(workflow_id, actor=self._actor(actor), feedback=feedback)

    confirm_approve = approve
    confirm_reject = reject
    confirm_request_changes = request_changes

    async def get_comments(self, workflow_id: str) -> List[WorkflowComment]:
        return await self.collaboration.get_comments(workflow_id)

    async def add_comment(
        self,
        workflow_id: str,
        content: str,
        *,
        actor: Optional[TeamMember] = None,
    ) -> WorkflowResult:
        return await self.collaboration.add_comment(workflow_id, content, actor=self._actor(actor))

    def get_activities(self, workflow_id: str) -> List[WorkflowActivity]:
        return self.collaboration.get_activities(workflow_id)


class WorkflowServiceRegistry:
    """One service per scope for the lifetime of the process."""

    def __init__(self, factory: Callable[[WorkflowScope], WorkflowService]) -> None:
        self._factory = factory
        self._services: Dict[Tuple[str, str, str], WorkflowService] = {}

    def get(self, scope: WorkflowScope) -> WorkflowService:
        service = self._services.get(scope.key)
        if service is None:
            service = self._factory(scope)
            self._services[scope.key] = service
        return service

    def clear(self) -> None:
        self._services.clear()


def build_workflow_service(scope: WorkflowScope, *, actor: Optional[TeamMember] = None) -> WorkflowService:
    settings = get_settings()
    remote = HttpWorkflowBoundary(
        workflow_client=get_workflow_api_client(),
        content_client=get_content_api_client(),
    )
    return WorkflowService(
        scope=scope,
        remote=remote,
        actor=actor,
        registry=TeamMemberRegistry(load_member_directory().all()),
        internal_only_comments=settings.comments_internal_only,
        default_comment_author_role=settings.default_comment_author_role.strip().lower(),
    )


@lru_cache(maxsize=1)
def get_workflow_service_registry() -> WorkflowServiceRegistry:
    return WorkflowServiceRegistry(build_workflow_service)
