from __future__ import annotations

import csv
import json
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from schedlens.errors import TraceDecodeError
from schedlens.metrics import primary_reason
from schedlens.reasons import parse_state
from schedlens.report import summary_to_dict
from schedlens.types import ResourceKind, StateTransition, Summary, TaskRecord

_RESOURCES = {r.value: r for r in ResourceKind}


def _decode_line(obj: Any) -> StateTransition:
    if not isinstance(obj, dict):
        raise TypeError("event must be a JSON object")
    resource = str(obj.get("resource", "task"))
    if resource not in _RESOURCES:
        raise ValueError(f"unknown resource kind {resource!r}")
    return StateTransition(
        task_id=int(obj["task"]),
        timestamp=int(obj["ts"]),
        from_state=parse_state(obj["from"]),
        to_state=parse_state(obj["to"]),
        reason=str(obj.get("reason") or ""),
        resource=_RESOURCES[resource],
        terminal=bool(obj.get("terminal", False)),
    )


def read_events_jsonl(path: Path) -> Iterator[StateTransition]:
    """Lazily decode a JSON-lines trace.

    A malformed line raises TraceDecodeError from inside the iteration, after
    every preceding event has been yielded.
    """

    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                ev = _decode_line(json.loads(line))
            except (ValueError, KeyError, TypeError) as e:
                raise TraceDecodeError(str(e), line=lineno) from e
            yield ev


def _encode_event(ev: StateTransition) -> dict[str, Any]:
    obj: dict[str, Any] = {
        "task": ev.task_id,
        "ts": ev.timestamp,
        "from": ev.from_state.value,
        "to": ev.to_state.value,
    }
    if ev.reason:
        obj["reason"] = ev.reason
    if ev.resource is not ResourceKind.TASK:
        obj["resource"] = ev.resource.value
    if ev.terminal:
        obj["terminal"] = True
    return obj


def write_events_jsonl(path: Path, events: Iterable[StateTransition]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    n = 0
    with path.open("w", encoding="utf-8") as f:
        for ev in events:
            f.write(json.dumps(_encode_event(ev), separators=(",", ":")))
            f.write("\n")
            n += 1
    return n


def write_summary_json(path: Path, summary: Summary) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(summary_to_dict(summary), indent=2, sort_keys=True),
        encoding="utf-8",
    )


def write_tasks_csv(path: Path, tasks: dict[int, TaskRecord]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(
            [
                "task_id",
                "created_at_ns",
                "terminated_at_ns",
                "current_state",
                "total_runtime_ns",
                "total_runnable_ns",
                "total_blocked_ns",
                "blocking_intervals",
                "primary_reason",
                "open_block",
                "anomalies",
            ]
        )
        for task_id in sorted(tasks):
            t = tasks[task_id]
            w.writerow(
                [
                    t.task_id,
                    t.created_at,
                    "" if t.terminated_at is None else t.terminated_at,
                    t.current_state.value,
                    t.total_runtime,
                    t.total_runnable,
                    t.total_blocked,
                    len(t.blocking_intervals),
                    primary_reason(t).value,
                    int(t.pending_block is not None),
                    t.anomalies,
                ]
            )
