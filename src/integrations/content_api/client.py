"""Async client for post comments on the remote content service."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx

from src.core.config import get_settings


class ContentApiError(RuntimeError):
    """Raised when a content service request fails."""


class ContentApiTimeoutError(ContentApiError):
    """Raised when a content service request exceeds its timeout."""


class ContentApiClient:
    def __init__(
        self,
        *,
        base_url: str,
        api_token: str = "",
        timeout_seconds: int = 20,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token.strip()
        self._timeout_seconds = max(1, timeout_seconds)
        self._client = client

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, headers=self._headers(), params=params, json=payload
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                    response = await client.request(
                        method, url, headers=self._headers(), params=params, json=payload
                    )
        except httpx.TimeoutException as exc:
            raise ContentApiTimeoutError(f"content_api_timeout path={path}") from exc
        except httpx.HTTPError as exc:
            raise ContentApiError(f"content_api_transport_error path={path} detail={exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            detail = response.text.strip()
            if len(detail) > 200:
                detail = detail[:200] + "..."
            raise ContentApiError(f"content_api_request_failed status={response.status_code} detail={detail}")

        try:
            body = response.json()
        except Exception as exc:  # pragma: no cover
            raise ContentApiError("content_api_invalid_json_response") from exc

        if not isinstance(body, dict):
            raise ContentApiError("content_api_invalid_payload")
        return body

    async def get_comments(self, *, post_id: str, internal_only: bool = True) -> List[Dict[str, Any]]:
        if not post_id.strip():
            raise ContentApiError("content_api_post_id_missing")

        body = await self._request(
            "GET",
            f"/api/v1/posts/{post_id}/comments",
            params={"is_internal": "true" if internal_only else "false"},
        )
        data = body.get("data")
        if not isinstance(data, list):
            raise ContentApiError("content_api_invalid_comment_list")
        return [item for item in data if isinstance(item, dict)]

    async def create_comment(self, *, post_id: str, text: str, internal_only: bool = True) -> Dict[str, Any]:
        if not post_id.strip():
            raise ContentApiError("content_api_post_id_missing")
        if not text.strip():
            raise ContentApiError("content_api_comment_missing")

        body = await self._request(
            "POST",
            f"/api/v1/posts/{post_id}/comments",
            payload={"comment": text, "is_internal": internal_only},
        )
        data = body.get("data")
        return data if isinstance(data, dict) else {}


@lru_cache(maxsize=1)
def get_content_api_client() -> ContentApiClient:
    settings = get_settings()
    return ContentApiClient(
        base_url=settings.content_api_base_url,
        api_token=settings.remote_api_token,
        timeout_seconds=settings.remote_api_timeout_seconds,
    )
