"""Result contracts returned by workflow operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class WorkflowResult:
    success: bool
    message: str
    workflow_id: Optional[str] = None
    status: Optional[str] = None
    error_code: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success


@dataclass(frozen=True)
class TransitionPrompt:
    """First step of a review action: tells the caller what input to collect."""

    workflow_id: str
    event: str
    allowed: bool
    reason_required: bool
    current_status: Optional[str] = None
    target_status: Optional[str] = None
    error_code: Optional[str] = None


def ok(message: str, *, workflow_id: str | None = None, status: str | None = None, **data: Any) -> WorkflowResult:
    return WorkflowResult(success=True, message=message, workflow_id=workflow_id, status=status, data=dict(data))


def failure(
    error_code: str,
    *,
    workflow_id: str | None = None,
    status: str | None = None,
    message: str | None = None,
    **data: Any,
) -> WorkflowResult:
    return WorkflowResult(
        success=False,
        message=message or error_code,
        workflow_id=workflow_id,
        status=status,
        error_code=error_code,
        data=dict(data),
    )
