"""Team member directory used to attribute submissions, reviews and comments."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError

from src.core.config import get_settings
from src.core.logger import get_logger
from src.workflow.models import TeamMember


logger = get_logger("makeitsocial.workflow.members")


def display_name_from_email(email: str, *, fallback: str = "unknown") -> str:
    local_part = (email or "").split("@", 1)[0].strip()
    return local_part or fallback


class TeamMemberRegistry:
    """Read-only lookup of actors by member id or user id."""

    def __init__(self, members: Iterable[TeamMember] = ()) -> None:
        self._by_id: Dict[str, TeamMember] = {}
        self._by_user_id: Dict[str, TeamMember] = {}
        for member in members:
            self.observe(member)

    def __len__(self) -> int:
        return len(self._by_id)

    def all(self) -> List[TeamMember]:
        return list(self._by_id.values())

    def observe(self, member: TeamMember) -> None:
        """Remember a member seen on loaded data without overriding directory entries."""

        if member.id not in self._by_id:
            self._by_id[member.id] = member
        if member.user_id and member.user_id not in self._by_user_id:
            self._by_user_id[member.user_id] = member

    def resolve(self, member_id: str | None) -> Optional[TeamMember]:
        key = str(member_id or "").strip()
        if not key:
            return None
        return self._by_id.get(key) or self._by_user_id.get(key)

    def resolve_comment_author(
        self,
        *,
        user_id: str,
        email: str,
        organization_id: str,
        default_role: str = "editor",
    ) -> TeamMember:
        known = self.resolve(user_id)
        if known is not None:
            return known
        return TeamMember(
            id=user_id or email or "unknown",
            user_id=user_id,
            name=display_name_from_email(email, fallback=user_id or "unknown"),
            email=email,
            role=default_role,  # type: ignore[arg-type]
            organization_id=organization_id,
        )


def _resolve_members_path() -> Path:
    settings = get_settings()
    configured = Path(settings.team_members_file_path)
    if configured.is_absolute():
        return configured
    return Path.cwd() / configured


@lru_cache(maxsize=1)
def load_member_directory() -> TeamMemberRegistry:
    path = _resolve_members_path()
    if not path.exists():
        return TeamMemberRegistry()

    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        return TeamMemberRegistry()

    members: List[TeamMember] = []
    raw_members = payload.get("members", [])
    if isinstance(raw_members, list):
        for item in raw_members:
            if not isinstance(item, dict):
                continue
            try:
                members.append(TeamMember.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "team_member_entry_invalid",
                    path=str(path),
                    member_id=str(item.get("id", "")),
                    errors=exc.error_count(),
                )
    return TeamMemberRegistry(members)


def reset_member_directory_cache() -> None:
    load_member_directory.cache_clear()
