"""Workflow engine error taxonomy and result codes."""

from __future__ import annotations


ERROR_NOT_FOUND = "not_found"
ERROR_FETCH = "fetch_error"
ERROR_TIMEOUT = "timeout"
ERROR_INVALID_TRANSITION = "invalid_transition"
ERROR_VALIDATION = "validation_error"
ERROR_REMOTE_MUTATION = "remote_mutation_error"
ERROR_INSUFFICIENT_ROLE = "insufficient_role"
ERROR_IN_FLIGHT = "transition_in_flight"
ERROR_ALREADY_SUBMITTED = "already_submitted"


class WorkflowError(RuntimeError):
    """Base class for workflow engine failures."""

    code = "workflow_error"


class FetchError(WorkflowError):
    """Raised when a remote load/read fails (network, auth, server error)."""

    code = ERROR_FETCH


class RemoteMutationError(WorkflowError):
    """Raised when the remote boundary rejects an approve/reject/comment call."""

    code = ERROR_REMOTE_MUTATION


class RemoteTimeoutError(FetchError):
    """Raised when a remote call exceeds its bounded timeout."""

    code = ERROR_TIMEOUT


class InvalidTransitionError(WorkflowError):
    """Raised when a status/event pair is not in the transition table."""

    code = ERROR_INVALID_TRANSITION

    def __init__(self, *, status: str, event: str) -> None:
        super().__init__(f"invalid_transition status={status} event={event}")
        self.status = status
        self.event = event


class WorkflowValidationError(WorkflowError):
    """Raised for blank reasons, feedback or comment content."""

    code = ERROR_VALIDATION
