"""Remote content service integrations."""

from src.integrations.content_api.client import (
    ContentApiClient,
    ContentApiError,
    ContentApiTimeoutError,
    get_content_api_client,
)

__all__ = ["ContentApiClient", "ContentApiError", "ContentApiTimeoutError", "get_content_api_client"]
