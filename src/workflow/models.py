"""Workflow entities shared by the store, engine and collaboration layers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.workflow.states import (
    STATUS_PENDING,
    ActivityAction,
    CommentType,
    MemberRole,
    Priority,
    WorkflowStatus,
)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class TeamMember(_CamelModel):
    id: str = Field(min_length=1)
    user_id: str = ""
    name: str
    email: str = ""
    avatar: Optional[str] = None
    role: MemberRole = "editor"
    organization_id: str = ""
    joined_at: Optional[datetime] = None

    @field_validator("joined_at")
    @classmethod
    def _normalize_joined_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _default_user_id(self) -> "TeamMember":
        if not self.user_id:
            object.__setattr__(self, "user_id", self.id)
        return self


class PostSnapshot(_CamelModel):
    """Denormalized view of the content item under review."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    id: str = Field(min_length=1)
    content: str = ""
    organization_id: Optional[str] = None


class ApprovalWorkflow(_CamelModel):
    id: str = Field(min_length=1)
    post_id: str = Field(min_length=1)
    post: PostSnapshot
    status: WorkflowStatus = STATUS_PENDING
    submitted_by: TeamMember
    submitted_at: datetime
    reviewed_by: Optional[TeamMember] = None
    reviewed_at: Optional[datetime] = None
    priority: Priority = "normal"
    due_date: Optional[datetime] = None

    @field_validator("submitted_at", "reviewed_at", "due_date")
    @classmethod
    def _normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_review_pairing(self) -> "ApprovalWorkflow":
        if (self.reviewed_by is None) != (self.reviewed_at is None):
            raise ValueError("reviewed_by and reviewed_at must be set together")
        return self

    def is_overdue(self, now: datetime) -> bool:
        return self.due_date is not None and self.due_date < now and self.status == STATUS_PENDING

    def review_hours(self) -> Optional[float]:
        if self.reviewed_at is None:
            return None
        return (self.reviewed_at - self.submitted_at).total_seconds() / 3600.0


class WorkflowComment(_CamelModel):
    id: str
    workflow_id: str
    author: TeamMember
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    type: CommentType = "comment"

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class RawComment(BaseModel):
    """Comment as returned by the content service."""

    model_config = ConfigDict(extra="ignore")

    id: str
    scheduled_post_id: str = ""
    user_id: str = ""
    user_email: str = ""
    comment: str = ""
    is_internal: bool = True
    parent_comment_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class ActivityMetadata(_CamelModel):
    previous_status: Optional[WorkflowStatus] = None
    new_status: Optional[WorkflowStatus] = None
    comment: Optional[str] = None


class WorkflowActivity(_CamelModel):
    id: str
    workflow_id: str
    actor: TeamMember
    action: ActivityAction
    timestamp: datetime
    metadata: ActivityMetadata = Field(default_factory=ActivityMetadata)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)  # type: ignore[return-value]


class WorkflowStats(_CamelModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    changes_requested: int = 0
    avg_review_time: float = 0.0
    overdue_count: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.approved + self.rejected + self.changes_requested


class WorkflowScope(_CamelModel):
    organization_id: str
    company_id: Optional[str] = None
    product_id: Optional[str] = None

    @field_validator("organization_id")
    @classmethod
    def _require_organization(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("organization_id must not be blank")
        return normalized

    @field_validator("company_id", "product_id")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.organization_id, self.company_id or "", self.product_id or "")
