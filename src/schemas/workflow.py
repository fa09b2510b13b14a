"""Pydantic schemas for workflow endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.workflow.models import (
    ApprovalWorkflow,
    PostSnapshot,
    WorkflowActivity,
    WorkflowComment,
    WorkflowStats,
)
from src.workflow.states import Priority


class _CamelSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApproveRequest(_CamelSchema):
    comment: Optional[str] = Field(default=None, max_length=2000)


class RejectRequest(_CamelSchema):
    reason: str = Field(default="", max_length=2000)


class RequestChangesRequest(_CamelSchema):
    feedback: str = Field(default="", max_length=2000)


class CommentCreateRequest(_CamelSchema):
    content: str = Field(default="", max_length=5000)


class SubmitRequest(_CamelSchema):
    post: PostSnapshot
    priority: Priority = "normal"
    due_date: Optional[datetime] = None


class WorkflowListResponse(_CamelSchema):
    organization_id: str
    workflows: List[ApprovalWorkflow]
    stats: WorkflowStats
    total: int
    loaded: bool
    load_error: Optional[str] = None


class WorkflowActionResponse(_CamelSchema):
    workflow_id: Optional[str] = None
    status: Optional[str] = None
    message: str
    workflow: Optional[ApprovalWorkflow] = None
    stats: WorkflowStats


class TransitionPromptResponse(_CamelSchema):
    workflow_id: str
    event: str
    allowed: bool
    reason_required: bool
    current_status: Optional[str] = None
    target_status: Optional[str] = None
    error_code: Optional[str] = None


class CommentListResponse(_CamelSchema):
    workflow_id: str
    comments: List[WorkflowComment]
    load_error: Optional[str] = None


class ActivityListResponse(_CamelSchema):
    workflow_id: str
    activities: List[WorkflowActivity]
