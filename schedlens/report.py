from __future__ import annotations

"""Plain-text and JSON-ready renderings of analysis output.

Kept free of any terminal styling so the CLI, exports and the desktop
explorer can share it.
"""

from typing import Any

from schedlens.insights import Insight
from schedlens.metrics import primary_reason
from schedlens.types import RankedTask, Summary, TaskRecord

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000


def format_duration(ns: int) -> str:
    if ns == 0:
        return "0s"
    if abs(ns) < _NS_PER_US:
        return f"{ns}ns"
    if abs(ns) < _NS_PER_MS:
        return f"{ns / _NS_PER_US:.1f}us"
    if abs(ns) < _NS_PER_S:
        return f"{ns / _NS_PER_MS:.1f}ms"
    return f"{ns / _NS_PER_S:.2f}s"


def _ranked_to_dict(r: RankedTask) -> dict[str, Any]:
    return {
        "id": r.task_id,
        "total_blocked_ns": r.total_blocked,
        "total_runtime_ns": r.total_runtime,
        "total_runnable_ns": r.total_runnable,
        "primary_blocking_reason": r.primary_reason.value,
        "blocking_events_count": r.interval_count,
    }


def summary_to_dict(summary: Summary) -> dict[str, Any]:
    return {
        "total_tasks": summary.total_tasks,
        "peak_tasks": summary.peak_tasks,
        "total_blocked_time_ns": summary.total_blocked_time,
        "total_runtime_ns": summary.total_runtime,
        "blocking_breakdown": {
            reason.value: {
                "duration_ns": duration,
                "percentage": summary.blocking_percent.get(reason),
            }
            for reason, duration in summary.blocking_breakdown.items()
        },
        "top_blocked_tasks": [_ranked_to_dict(r) for r in summary.top_blocked],
        "has_performance_issues": summary.has_performance_issues,
        "issues": list(summary.issues),
    }


def task_to_dict(task: TaskRecord, *, include_details: bool = False) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": task.task_id,
        "created_at_ns": task.created_at,
        "terminated_at_ns": task.terminated_at,
        "current_state": task.current_state.value,
        "total_blocked_ns": task.total_blocked,
        "total_runtime_ns": task.total_runtime,
        "total_runnable_ns": task.total_runnable,
        "primary_blocking_reason": primary_reason(task).value,
        "blocking_events_count": len(task.blocking_intervals),
        "anomalies": task.anomalies,
    }
    if include_details:
        out["blocking_by_reason_ns"] = {
            reason.value: duration
            for reason, duration in task.blocking_by_reason.items()
            if duration > 0
        }
        out["blocking_events"] = [
            {"start_ns": b.start, "end_ns": b.end, "reason": b.reason.value}
            for b in task.blocking_intervals
        ]
    return out


def format_summary_text(summary: Summary) -> str:
    lines: list[str] = [
        f"Total tasks: {summary.total_tasks}  peak: {summary.peak_tasks}",
        f"Total blocked: {format_duration(summary.total_blocked_time)}",
        f"Total runtime: {format_duration(summary.total_runtime)}",
        "",
        "Blocking by category:",
    ]

    ordered = sorted(
        summary.blocking_percent.items(), key=lambda kv: (-kv[1], kv[0].value)
    )
    if not ordered:
        lines.append("- (no completed blocking intervals)")
    for reason, pct in ordered:
        duration = summary.blocking_breakdown.get(reason, 0)
        lines.append(f"- {reason.label}: {pct:5.1f}% ({format_duration(duration)})")

    if summary.top_blocked:
        lines.append("")
        lines.append("Top blocked tasks:")
        for r in summary.top_blocked:
            lines.append(
                f"- #{r.task_id}: {format_duration(r.total_blocked)} ({r.primary_reason.label})"
            )

    lines.append("")
    if summary.has_performance_issues:
        lines.append("Performance alerts:")
        for i, issue in enumerate(summary.issues, start=1):
            lines.append(f"{i}. {issue}")
    else:
        lines.append("No performance issues detected.")

    return "\n".join(lines)


def format_task_detail(task: TaskRecord, *, limit: int = 10) -> str:
    lines: list[str] = [
        f"Task #{task.task_id}",
        f"Created at: {format_duration(task.created_at)}",
        f"Current state: {task.current_state.value}",
        f"Total runtime: {format_duration(task.total_runtime)}",
        f"Total runnable: {format_duration(task.total_runnable)}",
        f"Total blocked: {format_duration(task.total_blocked)}",
    ]
    if task.terminated_at is not None:
        lines.append(f"Terminated at: {format_duration(task.terminated_at)}")
    if task.pending_block is not None:
        lines.append(
            f"Still blocked ({task.pending_block.reason.label}) since "
            f"{format_duration(task.pending_block.start)}"
        )
    if task.anomalies:
        lines.append(f"Anomalous transitions: {task.anomalies}")

    lines.append("")
    lines.append("Blocking events:")
    shown = task.blocking_intervals[:limit]
    if not shown:
        lines.append("- (none)")
    for i, b in enumerate(shown, start=1):
        lines.append(
            f"{i:>3}. {b.reason.label:<16} {format_duration(b.duration):>10} @ {format_duration(b.start)}"
        )
    hidden = len(task.blocking_intervals) - len(shown)
    if hidden > 0:
        lines.append(f"... and {hidden} more events")
    return "\n".join(lines)


def format_insights(insights: list[Insight]) -> str:
    if not insights:
        return "No insights: the trace contained no tasks."

    blocks: list[str] = []
    for ins in insights:
        blocks.append(
            f"[{ins.severity.upper()}] {ins.title}\n"
            f"{ins.observation}\n"
            f"Suggestion: {ins.suggestion}"
        )
    return "\n\n".join(blocks)
