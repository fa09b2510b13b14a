"""Transition engine: the only component allowed to change a workflow's status."""

from __future__ import annotations

from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional, Set

from src.core.logger import get_logger, workflow_log_context
from src.core.metrics import record_workflow_transition
from src.workflow.activity import ActivityLog
from src.workflow.errors import (
    ERROR_IN_FLIGHT,
    ERROR_INSUFFICIENT_ROLE,
    ERROR_NOT_FOUND,
    InvalidTransitionError,
    RemoteMutationError,
    RemoteTimeoutError,
    WorkflowError,
    WorkflowValidationError,
)
from src.workflow.models import ApprovalWorkflow, TeamMember
from src.workflow.remote import RemoteWorkflowBoundary
from src.workflow.results import TransitionPrompt, WorkflowResult, failure, ok
from src.workflow.states import (
    EVENT_ACTIVITY_ACTIONS,
    EVENT_APPROVE,
    EVENT_REJECT,
    EVENT_REQUEST_CHANGES,
    REASON_REQUIRED_EVENTS,
    REVIEW_ROLES,
    is_known_event,
    next_status,
)
from src.workflow.store import WorkflowStore, utc_now


logger = get_logger("makeitsocial.workflow.engine")


def validate_transition(workflow: ApprovalWorkflow, event: str, text: Optional[str]) -> str:
    """Return the target status or raise the matching taxonomy error."""

    target = next_status(workflow.status, event) if is_known_event(event) else None
    if target is None:
        raise InvalidTransitionError(status=workflow.status, event=event)
    if event in REASON_REQUIRED_EVENTS and not (text or "").strip():
        raise WorkflowValidationError(f"{event}_requires_text")
    return target


class TransitionEngine:
    def __init__(
        self,
        *,
        store: WorkflowStore,
        remote: RemoteWorkflowBoundary,
        activity_log: ActivityLog,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._remote = remote
        self._activity_log = activity_log
        self._clock = clock
        self._in_flight: Set[str] = set()
        self._remote_calls: Dict[str, Callable[[str, Optional[str]], Awaitable[None]]] = {
            EVENT_APPROVE: lambda post_id, text: self._remote.approve_post(post_id, (text or "").strip() or None),
            EVENT_REJECT: lambda post_id, text: self._remote.reject_post(post_id, (text or "").strip()),
            EVENT_REQUEST_CHANGES: lambda post_id, text: self._remote.request_changes(post_id, (text or "").strip()),
        }

    def in_flight(self, workflow_id: str) -> bool:
        return workflow_id in self._in_flight

    def begin_transition(self, workflow_id: str, event: str, actor: TeamMember) -> TransitionPrompt:
        workflow = self._store.get(workflow_id)
        reason_required = event in REASON_REQUIRED_EVENTS
        if workflow is None:
            return TransitionPrompt(
                workflow_id=workflow_id,
                event=event,
                allowed=False,
                reason_required=reason_required,
                error_code=ERROR_NOT_FOUND,
            )
        target = next_status(workflow.status, event) if is_known_event(event) else None
        error_code = None
        if actor.role not in REVIEW_ROLES:
            error_code = ERROR_INSUFFICIENT_ROLE
        elif target is None:
            error_code = InvalidTransitionError.code
        elif workflow_id in self._in_flight:
            error_code = ERROR_IN_FLIGHT
        return TransitionPrompt(
            workflow_id=workflow_id,
            event=event,
            allowed=error_code is None,
            reason_required=reason_required,
            current_status=workflow.status,
            target_status=target,
            error_code=error_code,
        )

    async def approve(self, workflow_id: str, *, actor: TeamMember, comment: Optional[str] = None) -> WorkflowResult:
        return await self.transition(workflow_id, EVENT_APPROVE, actor=actor, text=comment)

    async def reject(self, workflow_id: str, *, actor: TeamMember, reason: str) -> WorkflowResult:
        return await self.transition(workflow_id, EVENT_REJECT, actor=actor, text=reason)

    async def request_changes(self, workflow_id: str, *, actor: TeamMember, feedback: str) -> WorkflowResult:
        return await self.transition(workflow_id, EVENT_REQUEST_CHANGES, actor=actor, text=feedback)

    async def transition(
        self,
        workflow_id: str,
        event: str,
        *,
        actor: TeamMember,
        text: Optional[str] = None,
    ) -> WorkflowResult:
        with workflow_log_context(workflow_id=workflow_id, action=event):
            result = await self._transition(workflow_id, event, actor=actor, text=text)
        record_workflow_transition(
            organization_id=self._store.scope.organization_id,
            event=event,
            outcome="ok" if result.success else (result.error_code or "failed"),
        )
        return result

    async def _transition(
        self,
        workflow_id: str,
        event: str,
        *,
        actor: TeamMember,
        text: Optional[str],
    ) -> WorkflowResult:
        workflow = self._store.get(workflow_id)
        if workflow is None:
            logger.warning("workflow_transition_not_found")
            return failure(ERROR_NOT_FOUND, workflow_id=workflow_id)

        if actor.role not in REVIEW_ROLES:
            logger.warning("workflow_transition_forbidden", actor_id=actor.id, role=actor.role)
            return failure(ERROR_INSUFFICIENT_ROLE, workflow_id=workflow_id, status=workflow.status)

        try:
            validate_transition(workflow, event, text)
        except WorkflowError as exc:
            logger.warning("workflow_transition_rejected", status=workflow.status, error_code=exc.code)
            return failure(exc.code, workflow_id=workflow_id, status=workflow.status, message=str(exc))

        if workflow_id in self._in_flight:
            logger.warning("workflow_transition_in_flight")
            return failure(ERROR_IN_FLIGHT, workflow_id=workflow_id, status=workflow.status)

        generation = self._store.generation
        self._in_flight.add(workflow_id)
        try:
            await self._remote_calls[event](workflow.post_id, text)
        except (RemoteTimeoutError, RemoteMutationError) as exc:
            logger.error(
                "workflow_transition_remote_failed",
                post_id=workflow.post_id,
                error_code=exc.code,
                error=str(exc),
                exc_info=True,
            )
            return failure(exc.code, workflow_id=workflow_id, status=workflow.status, message=str(exc))
        finally:
            self._in_flight.discard(workflow_id)

        return self._apply(workflow_id, event, actor=actor, text=text, generation=generation)

    def _apply(
        self,
        workflow_id: str,
        event: str,
        *,
        actor: TeamMember,
        text: Optional[str],
        generation: int,
    ) -> WorkflowResult:
        current = self._store.get(workflow_id)
        target = next_status(current.status, event) if current is not None else None
        if current is None or target is None:
            logger.warning(
                "workflow_transition_stale_completion",
                generation_at_start=generation,
                generation_now=self._store.generation,
                current_status=current.status if current is not None else None,
            )
            return ok(
                "stale_completion_skipped",
                workflow_id=workflow_id,
                status=current.status if current is not None else None,
                applied_remotely=True,
            )

        now = self._clock()
        floor = current.reviewed_at or current.submitted_at
        reviewed_at = now if now >= floor else floor
        updated = current.model_copy(
            update={"status": target, "reviewed_by": actor, "reviewed_at": reviewed_at}
        )
        self._store.replace(updated)
        activity = self._activity_log.record_transition(
            before=current,
            after=updated,
            event=event,
            actor=actor,
            comment=(text or "").strip() or None,
        )
        logger.info(
            "workflow_transition_applied",
            previous_status=current.status,
            new_status=target,
            reviewer_id=actor.id,
            reloaded_in_flight=generation != self._store.generation,
        )
        return ok(
            f"workflow_{EVENT_ACTIVITY_ACTIONS[event]}",  # type: ignore[index]
            workflow_id=workflow_id,
            status=target,
            previous_status=current.status,
            activity_id=activity.id,
        )
