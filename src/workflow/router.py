"""Workflow API routes consumed by the dashboard."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import ValidationError

from src.schemas.workflow import (
    ActivityListResponse,
    ApproveRequest,
    CommentCreateRequest,
    CommentListResponse,
    RejectRequest,
    RequestChangesRequest,
    SubmitRequest,
    TransitionPromptResponse,
    WorkflowActionResponse,
    WorkflowListResponse,
)
from src.workflow.errors import (
    ERROR_ALREADY_SUBMITTED,
    ERROR_FETCH,
    ERROR_IN_FLIGHT,
    ERROR_INSUFFICIENT_ROLE,
    ERROR_INVALID_TRANSITION,
    ERROR_NOT_FOUND,
    ERROR_REMOTE_MUTATION,
    ERROR_TIMEOUT,
    ERROR_VALIDATION,
)
from src.workflow.models import TeamMember, WorkflowScope
from src.workflow.results import WorkflowResult
from src.workflow.service import WorkflowService, WorkflowServiceRegistry, get_workflow_service_registry
from src.workflow.states import ALL_TAB, normalize_event


router = APIRouter(prefix="/workflows", tags=["workflows"])


_ERROR_STATUS_CODES = {
    ERROR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ERROR_INSUFFICIENT_ROLE: status.HTTP_403_FORBIDDEN,
    ERROR_INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ERROR_IN_FLIGHT: status.HTTP_409_CONFLICT,
    ERROR_ALREADY_SUBMITTED: status.HTTP_409_CONFLICT,
    ERROR_VALIDATION: 422,
    ERROR_FETCH: status.HTTP_502_BAD_GATEWAY,
    ERROR_REMOTE_MUTATION: status.HTTP_502_BAD_GATEWAY,
    ERROR_TIMEOUT: status.HTTP_502_BAD_GATEWAY,
}


def get_scope(
    organization_id: str = Query(alias="organizationId"),
    company_id: Optional[str] = Query(default=None, alias="companyId"),
    product_id: Optional[str] = Query(default=None, alias="productId"),
) -> WorkflowScope:
    try:
        scope = WorkflowScope(organization_id=organization_id, company_id=company_id, product_id=product_id)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail="invalid_scope",
        ) from exc
    return scope


def get_service(
    scope: WorkflowScope = Depends(get_scope),
    registry: WorkflowServiceRegistry = Depends(get_workflow_service_registry),
) -> WorkflowService:
    return registry.get(scope)


def require_actor(
    service: WorkflowService = Depends(get_service),
    team_member_id: Optional[str] = Header(default=None, alias="X-Team-Member-Id"),
) -> TeamMember:
    actor = service.registry.resolve(team_member_id)
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown team member")
    if actor.organization_id and actor.organization_id != service.scope.organization_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Team member scope mismatch")
    return actor


def _raise_for_failure(result: WorkflowResult) -> None:
    if result.success:
        return
    raise HTTPException(
        status_code=_ERROR_STATUS_CODES.get(result.error_code or "", status.HTTP_400_BAD_REQUEST),
        detail=result.message,
    )


def _action_response(service: WorkflowService, result: WorkflowResult) -> WorkflowActionResponse:
    _raise_for_failure(result)
    return WorkflowActionResponse(
        workflow_id=result.workflow_id,
        status=result.status,
        message=result.message,
        workflow=service.get(result.workflow_id) if result.workflow_id else None,
        stats=service.stats,
    )


def _list_response(service: WorkflowService, workflows) -> WorkflowListResponse:
    return WorkflowListResponse(
        organization_id=service.scope.organization_id,
        workflows=workflows,
        stats=service.stats,
        total=len(service.store),
        loaded=service.store.loaded,
        load_error=service.store.last_error,
    )


@router.post("/load", response_model=WorkflowListResponse)
async def load_workflows_endpoint(service: WorkflowService = Depends(get_service)) -> WorkflowListResponse:
    await service.load()
    return _list_response(service, service.workflows)


@router.get("", response_model=WorkflowListResponse)
async def list_workflows_endpoint(
    service: WorkflowService = Depends(get_service),
    active_tab: str = Query(default=ALL_TAB, alias="status"),
    search_query: str = Query(default="", alias="search"),
    priority_filter: str = Query(default=ALL_TAB, alias="priority"),
) -> WorkflowListResponse:
    if not service.store.loaded:
        await service.load()
    workflows = service.filtered(
        active_tab=active_tab,
        search_query=search_query,
        priority_filter=priority_filter,
    )
    return _list_response(service, workflows)


@router.get("/stats")
async def workflow_stats_endpoint(service: WorkflowService = Depends(get_service)) -> dict:
    stats = service.stats
    payload = stats.model_dump(by_alias=True)
    payload["total"] = stats.total
    return payload


@router.post("/submit", response_model=WorkflowActionResponse, status_code=status.HTTP_201_CREATED)
async def submit_workflow_endpoint(
    payload: SubmitRequest,
    service: WorkflowService = Depends(get_service),
    actor: TeamMember = Depends(require_actor),
) -> WorkflowActionResponse:
    result = await service.submit(payload.post, priority=payload.priority, due_date=payload.due_date, actor=actor)
    return _action_response(service, result)


@router.get("/{workflow_id}")
async def get_workflow_endpoint(workflow_id: str, service: WorkflowService = Depends(get_service)) -> dict:
    workflow = service.get(workflow_id)
    if workflow is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="workflow_not_found")
    return workflow.model_dump(by_alias=True, mode="json")


@router.get("/{workflow_id}/transitions/{event}", response_model=TransitionPromptResponse)
async def begin_transition_endpoint(
    workflow_id: str,
    event: str,
    service: WorkflowService = Depends(get_service),
    actor: TeamMember = Depends(require_actor),
) -> TransitionPromptResponse:
    prompt = service.begin_transition(workflow_id, normalize_event(event), actor=actor)
    return TransitionPromptResponse(
        workflow_id=prompt.workflow_id,
        event=prompt.event,
        allowed=prompt.allowed,
        reason_required=prompt.reason_required,
        current_status=prompt.current_status,
        target_status=prompt.target_status,
        error_code=prompt.error_code,
    )


@router.post("/{workflow_id}/approve", response_model=WorkflowActionResponse)
async def approve_workflow_endpoint(
    workflow_id: str,
    payload: ApproveRequest,
    service: WorkflowService = Depends(get_service),
    actor: TeamMember = Depends(require_actor),
) -> WorkflowActionResponse:
    result = await service.approve(workflow_id, payload.comment, actor=actor)
    return _action_response(service, result)


@router.post("/{workflow_id}/reject", response_model=WorkflowActionResponse)
async def reject_workflow_endpoint(
    workflow_id: str,
    payload: RejectRequest,
    service: WorkflowService = Depends(get_service),
    actor: TeamMember = Depends(require_actor),
) -> WorkflowActionResponse:
    result = await service.reject(workflow_id, payload.reason, actor=actor)
    return _action_response(service, result)


@router.post("/{workflow_id}/request-changes", response_model=WorkflowActionResponse)
async def request_changes_endpoint(
    workflow_id: str,
    payload: RequestChangesRequest,
    service: WorkflowService = Depends(get_service),
    actor: TeamMember = Depends(require_actor),
) -> WorkflowActionResponse:
    result = await service.request_changes(workflow_id, payload.feedback, actor=actor)
    return _action_response(service, result)


@router.get("/{workflow_id}/comments", response_model=CommentListResponse)
async def list_comments_endpoint(
    workflow_id: str,
    service: WorkflowService = Depends(get_service),
) -> CommentListResponse:
    comments = await service.get_comments(workflow_id)
    load_error = service.collaboration.comments_failed(workflow_id)
    if load_error == ERROR_NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="workflow_not_found")
    return CommentListResponse(workflow_id=workflow_id, comments=comments, load_error=load_error)


@router.post("/{workflow_id}/comments", response_model=WorkflowActionResponse, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    workflow_id: str,
    payload: CommentCreateRequest,
    service: WorkflowService = Depends(get_service),
    actor: TeamMember = Depends(require_actor),
) -> WorkflowActionResponse:
    result = await service.add_comment(workflow_id, payload.content, actor=actor)
    return _action_response(service, result)


@router.get("/{workflow_id}/activities", response_model=ActivityListResponse)
async def list_activities_endpoint(
    workflow_id: str,
    service: WorkflowService = Depends(get_service),
) -> ActivityListResponse:
    if service.get(workflow_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="workflow_not_found")
    return ActivityListResponse(workflow_id=workflow_id, activities=service.get_activities(workflow_id))
