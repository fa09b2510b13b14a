from __future__ import annotations

from datetime import timedelta
from itertools import count

from src.workflow.activity import ActivityLog, replay_status
from tests.workflow_support import ADMIN, EDITOR, NOW, make_workflow


def _log() -> ActivityLog:
    counter = count(1)
    return ActivityLog(id_factory=lambda: f"wa-{next(counter)}")


def test_sync_seeds_trail_that_replays_loaded_status() -> None:
    log = _log()
    workflows = [
        make_workflow("wf-1"),
        make_workflow("wf-2", status="approved", reviewed_by=ADMIN),
        make_workflow("wf-3", status="changes_requested"),
    ]

    log.sync(workflows)

    for workflow in workflows:
        assert replay_status(log.activities(workflow.id)) == workflow.status
    approved_trail = log.activities("wf-2")
    assert [activity.action for activity in approved_trail] == ["submitted", "approved"]
    assert approved_trail[0].actor == EDITOR
    assert approved_trail[1].actor == ADMIN


def test_sync_keeps_matching_trail_and_comments() -> None:
    log = _log()
    pending = make_workflow("wf-1")
    log.sync([pending])
    log.record(workflow_id="wf-1", actor=ADMIN, action="commented", timestamp=NOW, comment="nice")
    original_ids = [activity.id for activity in log.activities("wf-1")]

    log.sync([pending])
    assert [activity.id for activity in log.activities("wf-1")] == original_ids

    log.sync([make_workflow("wf-1", status="rejected")])
    actions = [activity.action for activity in log.activities("wf-1")]
    assert actions.count("commented") == 1
    assert replay_status(log.activities("wf-1")) == "rejected"


def test_activities_are_ordered_oldest_first() -> None:
    log = _log()
    log.record(workflow_id="wf-1", actor=ADMIN, action="commented", timestamp=NOW, comment="late")
    log.record(workflow_id="wf-1", actor=EDITOR, action="submitted", timestamp=NOW - timedelta(hours=1))

    actions = [activity.action for activity in log.activities("wf-1")]

    assert actions == ["submitted", "commented"]


def test_replay_of_empty_trail_is_none() -> None:
    assert replay_status([]) is None
    assert _log().activities("wf-unknown") == []
