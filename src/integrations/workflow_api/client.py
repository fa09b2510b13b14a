"""Async client for the remote workflow/approvals service."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx

from src.core.config import get_settings


class WorkflowApiError(RuntimeError):
    """Raised when a workflow service request fails."""


class WorkflowApiTimeoutError(WorkflowApiError):
    """Raised when a workflow service request exceeds its timeout."""


class WorkflowApiClient:
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

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            if self._client is not None:
                return await self._client.request(
                    method, url, headers=self._headers(), params=params, json=payload
                )
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                return await client.request(method, url, headers=self._headers(), params=params, json=payload)
        except httpx.TimeoutException as exc:
            raise WorkflowApiTimeoutError(f"workflow_api_timeout path={path}") from exc
        except httpx.HTTPError as exc:
            raise WorkflowApiError(f"workflow_api_transport_error path={path} detail={exc}") from exc

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        response = await self._send(method, path, params=params, payload=payload)

        if response.status_code < 200 or response.status_code >= 300:
            detail = response.text.strip()
            if len(detail) > 240:
                detail = detail[:240] + "..."
            raise WorkflowApiError(
                f"workflow_api_request_failed status={response.status_code} detail={detail}"
            )

        if response.status_code == 204 or not response.content:
            return {}
        try:
            body = response.json()
        except Exception as exc:  # pragma: no cover
            raise WorkflowApiError("workflow_api_invalid_json_response") from exc

        if not isinstance(body, dict):
            raise WorkflowApiError("workflow_api_invalid_payload")
        return body

    async def get_workflows(
        self,
        *,
        organization_id: str,
        company_id: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if not organization_id.strip():
            raise WorkflowApiError("workflow_api_organization_id_missing")

        params = {"organizationId": organization_id.strip()}
        if company_id:
            params["companyId"] = company_id
        if product_id:
            params["productId"] = product_id

        body = await self._request("GET", "/api/v1/workflows", params=params)
        data = body.get("data")
        if not isinstance(data, list):
            raise WorkflowApiError("workflow_api_invalid_workflow_list")
        return [item for item in data if isinstance(item, dict)]

    async def submit_for_approval(self, *, post_id: str) -> Dict[str, Any]:
        if not post_id.strip():
            raise WorkflowApiError("workflow_api_post_id_missing")
        return await self._request("POST", "/api/v1/approvals/submit", payload={"postId": post_id})

    async def approve_post(self, *, post_id: str, comment: Optional[str] = None) -> Dict[str, Any]:
        if not post_id.strip():
            raise WorkflowApiError("workflow_api_post_id_missing")
        payload: Dict[str, Any] = {"postId": post_id}
        if comment:
            payload["comment"] = comment
        return await self._request("POST", "/api/v1/approvals/approve", payload=payload)

    async def reject_post(self, *, post_id: str, reason: str) -> Dict[str, Any]:
        if not post_id.strip():
            raise WorkflowApiError("workflow_api_post_id_missing")
        if not reason.strip():
            raise WorkflowApiError("workflow_api_reason_missing")
        return await self._request(
            "POST",
            "/api/v1/approvals/reject",
            payload={"postId": post_id, "reason": reason.strip()},
        )

    async def request_changes(self, *, post_id: str, feedback: str) -> Dict[str, Any]:
        if not post_id.strip():
            raise WorkflowApiError("workflow_api_post_id_missing")
        if not feedback.strip():
            raise WorkflowApiError("workflow_api_feedback_missing")
        return await self._request(
            "POST",
            "/api/v1/approvals/request-changes",
            payload={"postId": post_id, "feedback": feedback.strip()},
        )


@lru_cache(maxsize=1)
def get_workflow_api_client() -> WorkflowApiClient:
    settings = get_settings()
    return WorkflowApiClient(
        base_url=settings.workflow_api_base_url,
        api_token=settings.remote_api_token,
        timeout_seconds=settings.remote_api_timeout_seconds,
    )
