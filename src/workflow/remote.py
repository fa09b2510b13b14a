"""Remote persistence boundary used by the workflow engine."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from src.core.logger import get_logger
from src.core.metrics import record_remote_error
from src.integrations.content_api import ContentApiClient, ContentApiError, ContentApiTimeoutError
from src.integrations.workflow_api import WorkflowApiClient, WorkflowApiError, WorkflowApiTimeoutError
from src.workflow.errors import FetchError, RemoteMutationError, RemoteTimeoutError
from src.workflow.models import ApprovalWorkflow, RawComment, WorkflowScope


logger = get_logger("makeitsocial.workflow.remote")


class RemoteWorkflowBoundary(Protocol):
    async def get_workflows(self, scope: WorkflowScope) -> List[ApprovalWorkflow]:
        raise NotImplementedError

    async def submit_for_approval(self, post_id: str) -> Optional[str]:
        raise NotImplementedError

    async def approve_post(self, post_id: str, comment: Optional[str] = None) -> None:
        raise NotImplementedError

    async def reject_post(self, post_id: str, reason: str) -> None:
        raise NotImplementedError

    async def request_changes(self, post_id: str, feedback: str) -> None:
        raise NotImplementedError

    async def get_comments(self, post_id: str, *, internal_only: bool = True) -> List[RawComment]:
        raise NotImplementedError

    async def create_comment(self, post_id: str, *, text: str, internal_only: bool = True) -> None:
        raise NotImplementedError


def _parse_workflows(items: List[Dict[str, Any]]) -> List[ApprovalWorkflow]:
    workflows: List[ApprovalWorkflow] = []
    for item in items:
        try:
            workflows.append(ApprovalWorkflow.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "workflow_payload_invalid",
                workflow_id=str(item.get("id", "")),
                errors=exc.error_count(),
            )
    return workflows


def _parse_comments(items: List[Dict[str, Any]]) -> List[RawComment]:
    comments: List[RawComment] = []
    for item in items:
        try:
            comments.append(RawComment.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "comment_payload_invalid",
                comment_id=str(item.get("id", "")),
                errors=exc.error_count(),
            )
    return comments


class HttpWorkflowBoundary:
    """Adapts the workflow and content service clients to the engine's taxonomy."""

    def __init__(self, *, workflow_client: WorkflowApiClient, content_client: ContentApiClient) -> None:
        self._workflow_client = workflow_client
        self._content_client = content_client

    async def get_workflows(self, scope: WorkflowScope) -> List[ApprovalWorkflow]:
        try:
            items = await self._workflow_client.get_workflows(
                organization_id=scope.organization_id,
                company_id=scope.company_id,
                product_id=scope.product_id,
            )
        except WorkflowApiTimeoutError as exc:
            record_remote_error(operation="get_workflows", kind="timeout")
            raise RemoteTimeoutError(str(exc)) from exc
        except WorkflowApiError as exc:
            record_remote_error(operation="get_workflows", kind="fetch")
            raise FetchError(str(exc)) from exc
        return _parse_workflows(items)

    async def _mutate(self, operation: str, call) -> Dict[str, Any]:
        try:
            return await call()
        except (WorkflowApiTimeoutError, ContentApiTimeoutError) as exc:
            record_remote_error(operation=operation, kind="timeout")
            raise RemoteTimeoutError(str(exc)) from exc
        except (WorkflowApiError, ContentApiError) as exc:
            record_remote_error(operation=operation, kind="mutation")
            raise RemoteMutationError(str(exc)) from exc

    async def submit_for_approval(self, post_id: str) -> Optional[str]:
        """Return the workflow id assigned by the remote service, when it reports one."""

        body = await self._mutate(
            "submit_for_approval",
            lambda: self._workflow_client.submit_for_approval(post_id=post_id),
        )
        data = body.get("data") if isinstance(body, dict) else None
        if isinstance(data, dict) and str(data.get("id") or "").strip():
            return str(data["id"]).strip()
        return None

    async def approve_post(self, post_id: str, comment: Optional[str] = None) -> None:
        await self._mutate(
            "approve_post",
            lambda: self._workflow_client.approve_post(post_id=post_id, comment=comment),
        )

    async def reject_post(self, post_id: str, reason: str) -> None:
        await self._mutate(
            "reject_post",
            lambda: self._workflow_client.reject_post(post_id=post_id, reason=reason),
        )

    async def request_changes(self, post_id: str, feedback: str) -> None:
        await self._mutate(
            "request_changes",
            lambda: self._workflow_client.request_changes(post_id=post_id, feedback=feedback),
        )

    async def get_comments(self, post_id: str, *, internal_only: bool = True) -> List[RawComment]:
        try:
            items = await self._content_client.get_comments(post_id=post_id, internal_only=internal_only)
        except ContentApiTimeoutError as exc:
            record_remote_error(operation="get_comments", kind="timeout")
            raise RemoteTimeoutError(str(exc)) from exc
        except ContentApiError as exc:
            record_remote_error(operation="get_comments", kind="fetch")
            raise FetchError(str(exc)) from exc
        return _parse_comments(items)

    async def create_comment(self, post_id: str, *, text: str, internal_only: bool = True) -> None:
        await self._mutate(
            "create_comment",
            lambda: self._content_client.create_comment(post_id=post_id, text=text, internal_only=internal_only),
        )
