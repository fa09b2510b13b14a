"""Comment thread and activity timeline per workflow, independent of status."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, List, Optional

from src.core.logger import get_logger
from src.core.metrics import record_workflow_comment
from src.workflow.activity import ActivityLog
from src.workflow.errors import (
    ERROR_NOT_FOUND,
    ERROR_VALIDATION,
    FetchError,
    RemoteMutationError,
    RemoteTimeoutError,
)
from src.workflow.members import TeamMemberRegistry
from src.workflow.models import ApprovalWorkflow, RawComment, TeamMember, WorkflowActivity, WorkflowComment
from src.workflow.remote import RemoteWorkflowBoundary
from src.workflow.results import WorkflowResult, failure, ok
from src.workflow.store import WorkflowStore, utc_now


logger = get_logger("makeitsocial.workflow.collaboration")


class CollaborationService:
    def __init__(
        self,
        *,
        store: WorkflowStore,
        remote: RemoteWorkflowBoundary,
        activity_log: ActivityLog,
        registry: TeamMemberRegistry,
        clock: Callable[[], datetime] = utc_now,
        internal_only: bool = True,
        default_author_role: str = "editor",
    ) -> None:
        self._store = store
        self._remote = remote
        self._activity_log = activity_log
        self._registry = registry
        self._clock = clock
        self._internal_only = internal_only
        self._default_author_role = default_author_role
        self.last_comment_error: Dict[str, str] = {}

    def _organization_for(self, workflow: ApprovalWorkflow) -> str:
        return workflow.post.organization_id or self._store.scope.organization_id

    def _to_workflow_comment(self, workflow: ApprovalWorkflow, raw: RawComment) -> WorkflowComment:
        author = self._registry.resolve_comment_author(
            user_id=raw.user_id,
            email=raw.user_email,
            organization_id=self._organization_for(workflow),
            default_role=self._default_author_role,
        )
        return WorkflowComment(
            id=raw.id,
            workflow_id=workflow.id,
            author=author,
            content=raw.comment,
            created_at=raw.created_at,
            updated_at=raw.updated_at,
            type="comment",
        )

    async def get_comments(self, workflow_id: str) -> List[WorkflowComment]:
        workflow = self._store.get(workflow_id)
        if workflow is None:
            self.last_comment_error[workflow_id] = ERROR_NOT_FOUND
            return []

        try:
            raw_comments = await self._remote.get_comments(workflow.post_id, internal_only=self._internal_only)
        except FetchError as exc:
            self.last_comment_error[workflow_id] = exc.code
            logger.error(
                "workflow_comments_fetch_failed",
                workflow_id=workflow_id,
                post_id=workflow.post_id,
                error_code=exc.code,
                error=str(exc),
            )
            return []

        self.last_comment_error.pop(workflow_id, None)
        return [self._to_workflow_comment(workflow, raw) for raw in raw_comments]

    async def add_comment(self, workflow_id: str, content: str, *, actor: TeamMember) -> WorkflowResult:
        organization_id = self._store.scope.organization_id
        workflow = self._store.get(workflow_id)
        if workflow is None:
            logger.warning("workflow_comment_target_missing", workflow_id=workflow_id)
            record_workflow_comment(organization_id=organization_id, outcome=ERROR_NOT_FOUND)
            return failure(ERROR_NOT_FOUND, workflow_id=workflow_id)

        text = (content or "").strip()
        if not text:
            record_workflow_comment(organization_id=organization_id, outcome=ERROR_VALIDATION)
            return failure(ERROR_VALIDATION, workflow_id=workflow_id, status=workflow.status, message="comment_empty")

        try:
            await self._remote.create_comment(workflow.post_id, text=text, internal_only=self._internal_only)
        except (RemoteTimeoutError, RemoteMutationError) as exc:
            logger.error(
                "workflow_comment_create_failed",
                workflow_id=workflow_id,
                post_id=workflow.post_id,
                error_code=exc.code,
                error=str(exc),
            )
            record_workflow_comment(organization_id=organization_id, outcome=exc.code)
            return failure(exc.code, workflow_id=workflow_id, status=workflow.status, message=str(exc))

        activity = self._activity_log.record(
            workflow_id=workflow_id,
            actor=actor,
            action="commented",
            timestamp=self._clock(),
            comment=text,
        )
        record_workflow_comment(organization_id=organization_id, outcome="ok")
        logger.info("workflow_comment_created", workflow_id=workflow_id, author_id=actor.id)
        return ok("comment_created", workflow_id=workflow_id, status=workflow.status, activity_id=activity.id)

    def get_activities(self, workflow_id: str) -> List[WorkflowActivity]:
        return self._activity_log.activities(workflow_id)

    def comments_failed(self, workflow_id: str) -> Optional[str]:
        """Error code of the last comment fetch for the workflow, None when it succeeded."""

        return self.last_comment_error.get(workflow_id)
