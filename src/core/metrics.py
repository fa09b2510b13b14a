"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_workflow_loads_total: Dict[Tuple[str, str], int] = defaultdict(int)
_workflow_transitions_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_workflow_submissions_total: Dict[Tuple[str, str], int] = defaultdict(int)
_workflow_comments_total: Dict[Tuple[str, str], int] = defaultdict(int)
_remote_errors_total: Dict[Tuple[str, str], int] = defaultdict(int)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_workflow_load(*, organization_id: str, outcome: str) -> None:
    with _lock:
        key = (_normalize_label(organization_id), _normalize_label(outcome))
        _workflow_loads_total[key] += 1


def record_workflow_transition(*, organization_id: str, event: str, outcome: str) -> None:
    with _lock:
        key = (_normalize_label(organization_id), _normalize_label(event), _normalize_label(outcome))
        _workflow_transitions_total[key] += 1


def record_workflow_submission(*, organization_id: str, outcome: str) -> None:
    with _lock:
        key = (_normalize_label(organization_id), _normalize_label(outcome))
        _workflow_submissions_total[key] += 1


def record_workflow_comment(*, organization_id: str, outcome: str) -> None:
    with _lock:
        key = (_normalize_label(organization_id), _normalize_label(outcome))
        _workflow_comments_total[key] += 1


def record_remote_error(*, operation: str, kind: str, count: int = 1) -> None:
    if count <= 0:
        return
    with _lock:
        key = (_normalize_label(operation), _normalize_label(kind))
        _remote_errors_total[key] += int(count)


def _render_counter(
    lines: list[str],
    *,
    name: str,
    help_text: str,
    label_names: Tuple[str, ...],
    values: Dict[Tuple[str, ...], int],
) -> None:
    lines.extend(
        [
            f"# HELP {name} {help_text}",
            f"# TYPE {name} counter",
        ]
    )
    for labels, value in sorted(values.items()):
        rendered = ",".join(
            f'{label_name}="{_escape_label(label_value)}"'
            for label_name, label_value in zip(label_names, labels)
        )
        lines.append(f"{name}{{{rendered}}} {value}")


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        loads_total = dict(_workflow_loads_total)
        transitions_total = dict(_workflow_transitions_total)
        submissions_total = dict(_workflow_submissions_total)
        comments_total = dict(_workflow_comments_total)
        remote_errors_total = dict(_remote_errors_total)

    lines = [
        "# HELP makeitsocial_build_info Build metadata.",
        "# TYPE makeitsocial_build_info gauge",
        (
            f'makeitsocial_build_info{{app_name="{_escape_label(app_name)}",'
            f'version="{_escape_label(app_version)}",env="{_escape_label(env)}"}} 1'
        ),
        "# HELP makeitsocial_process_uptime_seconds Process uptime in seconds.",
        "# TYPE makeitsocial_process_uptime_seconds gauge",
        f"makeitsocial_process_uptime_seconds {uptime:.6f}",
    ]

    _render_counter(
        lines,
        name="makeitsocial_http_requests_total",
        help_text="Total HTTP requests.",
        label_names=("method", "path", "status"),
        values=http_total,
    )

    lines.extend(
        [
            "# HELP makeitsocial_http_request_duration_seconds Request duration summary.",
            "# TYPE makeitsocial_http_request_duration_seconds summary",
        ]
    )
    for (method, path), value in sorted(duration_sum.items()):
        lines.append(
            (
                f'makeitsocial_http_request_duration_seconds_sum{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value:.6f}'
            )
        )
    for (method, path), value in sorted(duration_count.items()):
        lines.append(
            (
                f'makeitsocial_http_request_duration_seconds_count{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value}'
            )
        )

    _render_counter(
        lines,
        name="makeitsocial_workflow_loads_total",
        help_text="Workflow store loads by outcome.",
        label_names=("organization_id", "outcome"),
        values=loads_total,
    )
    _render_counter(
        lines,
        name="makeitsocial_workflow_transitions_total",
        help_text="Workflow transitions attempted by event and outcome.",
        label_names=("organization_id", "event", "outcome"),
        values=transitions_total,
    )
    _render_counter(
        lines,
        name="makeitsocial_workflow_submissions_total",
        help_text="Content submissions for review by outcome.",
        label_names=("organization_id", "outcome"),
        values=submissions_total,
    )
    _render_counter(
        lines,
        name="makeitsocial_workflow_comments_total",
        help_text="Workflow comments created by outcome.",
        label_names=("organization_id", "outcome"),
        values=comments_total,
    )
    _render_counter(
        lines,
        name="makeitsocial_remote_errors_total",
        help_text="Remote boundary failures by operation and kind.",
        label_names=("operation", "kind"),
        values=remote_errors_total,
    )

    lines.append("")
    return "\n".join(lines)


def reset_metrics_for_tests() -> None:
    global _started_at
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _workflow_loads_total.clear()
        _workflow_transitions_total.clear()
        _workflow_submissions_total.clear()
        _workflow_comments_total.clear()
        _remote_errors_total.clear()
    _started_at = time.time()
