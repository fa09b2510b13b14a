from __future__ import annotations

import asyncio
from datetime import timedelta

from src.workflow.models import RawComment
from tests.workflow_support import ADMIN, EDITOR, NOW, VIEWER, build_service, make_workflow


def _raw_comment(comment_id: str, *, user_id: str, email: str, text: str, minutes_ago: int) -> RawComment:
    return RawComment(
        id=comment_id,
        scheduled_post_id="post-wf-1",
        user_id=user_id,
        user_email=email,
        comment=text,
        is_internal=True,
        created_at=NOW - timedelta(minutes=minutes_ago),
    )


def test_get_comments_maps_authors() -> None:
    service, remote = build_service([make_workflow("wf-1")])
    remote.comments["post-wf-1"] = [
        _raw_comment("c-1", user_id="user-tm-2", email="tm-2@example.com", text="Typo in line 2", minutes_ago=30),
        _raw_comment("c-2", user_id="user-77", email="guest@example.com", text="Love it", minutes_ago=10),
    ]

    comments = asyncio.run(service.get_comments("wf-1"))

    assert [comment.id for comment in comments] == ["c-1", "c-2"]
    assert comments[0].author == EDITOR
    assert comments[0].workflow_id == "wf-1"
    assert comments[1].author.name == "guest"
    assert comments[1].type == "comment"
    assert ("get_comments", "post-wf-1", True) in remote.calls
    assert service.collaboration.comments_failed("wf-1") is None


def test_comment_fetch_failure_returns_empty_and_flags_error() -> None:
    service, remote = build_service([make_workflow("wf-1")])
    remote.fail("get_comments")

    comments = asyncio.run(service.get_comments("wf-1"))

    assert comments == []
    assert service.collaboration.comments_failed("wf-1") == "fetch_error"


def test_comments_for_unknown_workflow_are_empty() -> None:
    service, remote = build_service([make_workflow("wf-1")])

    assert asyncio.run(service.get_comments("wf-404")) == []
    assert service.collaboration.comments_failed("wf-404") == "not_found"
    assert not any(call[0] == "get_comments" for call in remote.calls)


def test_add_comment_records_activity_without_touching_status() -> None:
    service, remote = build_service([make_workflow("wf-1")])
    stats_before = service.stats

    result = asyncio.run(service.add_comment("wf-1", "  Please add alt text  ", actor=VIEWER))

    assert result.success is True
    assert result.message == "comment_created"
    assert ("create_comment", "post-wf-1", "Please add alt text", True) in remote.calls
    activities = service.get_activities("wf-1")
    assert activities[-1].action == "commented"
    assert activities[-1].actor == VIEWER
    assert activities[-1].metadata.comment == "Please add alt text"
    assert service.get("wf-1").status == "pending"
    assert service.stats == stats_before


def test_blank_comment_is_rejected_locally() -> None:
    service, remote = build_service([make_workflow("wf-1")])

    result = asyncio.run(service.add_comment("wf-1", "   ", actor=ADMIN))

    assert result.success is False
    assert result.error_code == "validation_error"
    assert result.message == "comment_empty"
    assert remote.mutation_calls() == []


def test_comment_remote_failure_records_nothing() -> None:
    service, remote = build_service([make_workflow("wf-1")])
    remote.fail("create_comment")
    activities_before = service.get_activities("wf-1")

    result = asyncio.run(service.add_comment("wf-1", "hello", actor=ADMIN))

    assert result.success is False
    assert result.error_code == "remote_mutation_error"
    assert service.get_activities("wf-1") == activities_before


def test_comments_allowed_on_terminal_workflows() -> None:
    service, _ = build_service([make_workflow("wf-1", status="approved")])

    result = asyncio.run(service.add_comment("wf-1", "Scheduled for Monday", actor=EDITOR))

    assert result.success is True
    assert result.status == "approved"
