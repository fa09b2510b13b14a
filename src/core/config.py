"""Central runtime configuration for the Make It Social workflow engine."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    env: str = "development"
    log_level: str = "INFO"
    port: int = 8000
    app_name: str = "makeitsocial_workflow"
    app_version: str = "0.1.0"
    workflow_api_base_url: str = "http://localhost:3007"
    content_api_base_url: str = "http://localhost:3004"
    remote_api_token: str = ""
    remote_api_timeout_seconds: int = 20
    team_members_file_path: str = "config/team_members.yaml"
    comments_internal_only: bool = True
    default_comment_author_role: str = "editor"
    metrics_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def _validate(settings: Settings) -> Settings:
    is_production = settings.env.lower() in {"prod", "production"}
    if is_production:
        required_production_values = {
            "WORKFLOW_API_BASE_URL": settings.workflow_api_base_url,
            "CONTENT_API_BASE_URL": settings.content_api_base_url,
            "REMOTE_API_TOKEN": settings.remote_api_token,
        }
        missing = [name for name, value in required_production_values.items() if not str(value).strip()]
        if missing:
            joined = ", ".join(sorted(missing))
            raise ValueError(f"Missing required production secrets/config: {joined}.")
        for name, value in (
            ("WORKFLOW_API_BASE_URL", settings.workflow_api_base_url),
            ("CONTENT_API_BASE_URL", settings.content_api_base_url),
        ):
            if not value.strip().lower().startswith("https://"):
                raise ValueError(f"{name} must use https in production.")
    if settings.remote_api_timeout_seconds <= 0:
        raise ValueError("REMOTE_API_TIMEOUT_SECONDS must be positive.")
    if settings.default_comment_author_role.strip().lower() not in {"admin", "editor", "viewer"}:
        raise ValueError("DEFAULT_COMMENT_AUTHOR_ROLE must be one of: admin, editor, viewer.")
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return validated settings as a cached singleton."""

    return _validate(Settings())
