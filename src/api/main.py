"""FastAPI application entrypoint for the Make It Social approval workflow engine."""

from __future__ import annotations

from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from src.core.config import get_settings
from src.core.logger import bind_request_context, clear_request_context, get_logger
from src.core.metrics import record_http_request, render_prometheus_metrics
from src.workflow.members import load_member_directory
from src.workflow.router import router as workflow_router


settings = get_settings()
logger = get_logger("makeitsocial.api")

app = FastAPI(title=settings.app_name, version=settings.app_version)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    started_at = perf_counter()
    request_id = request.headers.get("x-request-id", str(uuid4()))
    organization_id = request.headers.get("x-organization-id") or request.query_params.get("organizationId")
    bind_request_context(request_id=request_id, organization_id=organization_id)

    status_code = 500
    try:
        response = await call_next(request)
        status_code = int(response.status_code)
    finally:
        duration = perf_counter() - started_at
        if settings.metrics_enabled:
            record_http_request(
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_seconds=duration,
            )
        clear_request_context()

    response.headers["x-request-id"] = request_id
    return response


@app.on_event("startup")
def on_startup() -> None:
    directory = load_member_directory()
    logger.info(
        "application_startup",
        env=settings.env,
        version=settings.app_version,
        metrics_enabled=settings.metrics_enabled,
        team_members_count=len(directory),
        workflow_api_base_url=settings.workflow_api_base_url,
        content_api_base_url=settings.content_api_base_url,
    )
    if len(directory) == 0:
        logger.warning("team_member_directory_empty", path=settings.team_members_file_path)


@app.get("/health")
def health() -> JSONResponse:
    directory = load_member_directory()
    remotes_configured = bool(settings.workflow_api_base_url.strip()) and bool(settings.content_api_base_url.strip())
    members_ok = len(directory) > 0

    healthy = remotes_configured and members_ok
    payload = {
        "status": "ok" if healthy else "degraded",
        "env": settings.env,
        "services": {
            "remote_apis": {
                "ok": remotes_configured,
                "workflow_api": settings.workflow_api_base_url,
                "content_api": settings.content_api_base_url,
            },
            "team_members": {"ok": members_ok, "count": len(directory)},
        },
    }
    return JSONResponse(content=payload, status_code=200 if healthy else 503)


@app.get("/version")
def version() -> dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "env": settings.env,
    }


@app.get("/metrics")
def metrics() -> PlainTextResponse:
    if not settings.metrics_enabled:
        return PlainTextResponse("metrics disabled\n", status_code=404)

    payload = render_prometheus_metrics(
        app_name=settings.app_name,
        app_version=settings.app_version,
        env=settings.env,
    )
    return PlainTextResponse(
        payload,
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


app.include_router(workflow_router)
