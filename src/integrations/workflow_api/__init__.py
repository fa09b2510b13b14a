"""Remote workflow service integrations."""

from src.integrations.workflow_api.client import (
    WorkflowApiClient,
    WorkflowApiError,
    WorkflowApiTimeoutError,
    get_workflow_api_client,
)

__all__ = [
    "WorkflowApiClient",
    "WorkflowApiError",
    "WorkflowApiTimeoutError",
    "get_workflow_api_client",
]
