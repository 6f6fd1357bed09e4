from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from schedlens.config import DEFAULT_CONFIG, AnalysisConfig, RuleThresholds
from schedlens.types import BlockReason, RankedTask, Summary, TaskRecord

logger = logging.getLogger(__name__)


def primary_reason(task: TaskRecord) -> BlockReason:
    """Reason with the most accumulated blocked time (NONE if never blocked)."""

    best = BlockReason.NONE
    best_duration = 0
    # Enum declaration order breaks ties deterministically.
    for reason in BlockReason:
        duration = task.blocking_by_reason.get(reason, 0)
        if duration > best_duration:
            best, best_duration = reason, duration
    return best


def tasks_by_reason(
    tasks: Mapping[int, TaskRecord], reason: BlockReason, n: int
) -> list[TaskRecord]:
    hits = [t for t in tasks.values() if t.blocking_by_reason.get(reason, 0) > 0]
    hits.sort(key=lambda t: (-t.blocking_by_reason[reason], t.task_id))
    return hits[:n]


TASK_SORTS = ("blocked", "runtime", "id")


def filter_tasks(
    tasks: Mapping[int, TaskRecord],
    *,
    reason: BlockReason | None = None,
    sort: str = "blocked",
) -> list[TaskRecord]:
    """Tasks whose primary blocking reason is `reason` (all tasks when None).

    `sort` is one of TASK_SORTS: blocked and runtime descending, id ascending.
    Ties always fall back to ascending id.
    """

    if sort == "blocked":
        key = lambda t: (-t.total_blocked, t.task_id)  # noqa: E731
    elif sort == "runtime":
        key = lambda t: (-t.total_runtime, t.task_id)  # noqa: E731
    elif sort == "id":
        key = lambda t: t.task_id  # noqa: E731
    else:
        raise ValueError(f"unknown sort {sort!r} (expected one of {', '.join(TASK_SORTS)})")

    if reason is None:
        selected = list(tasks.values())
    else:
        candidates = tasks_by_reason(tasks, reason, len(tasks))
        selected = [t for t in candidates if primary_reason(t) is reason]
    return sorted(selected, key=key)


def _rank(task: TaskRecord) -> RankedTask:
    return RankedTask(
        task_id=task.task_id,
        total_blocked=task.total_blocked,
        total_runtime=task.total_runtime,
        total_runnable=task.total_runnable,
        primary_reason=primary_reason(task),
        interval_count=len(task.blocking_intervals),
    )


def top_blocked(tasks: Mapping[int, TaskRecord], n: int) -> list[TaskRecord]:
    blocked = [t for t in tasks.values() if t.total_blocked > 0]
    blocked.sort(key=lambda t: (-t.total_blocked, t.task_id))
    return blocked[:n]


def starvation_ratio(task: TaskRecord) -> float | None:
    """Share of scheduled-or-ready time spent runnable.

    None unless the task was both runnable and running at some point.
    """

    if task.total_runnable <= 0 or task.total_runtime <= 0:
        return None
    return task.total_runnable / (task.total_runnable + task.total_runtime)


def detect_issues(
    *,
    tasks: Mapping[int, TaskRecord],
    percent: Mapping[BlockReason, float],
    top: list[TaskRecord],
    total_blocked: int,
    thresholds: RuleThresholds,
) -> list[str]:
    issues: list[str] = []

    share_rules = (
        (BlockReason.CHANNEL_RECV, thresholds.channel_recv_pct, "excessive channel receive blocking"),
        (BlockReason.CHANNEL_SEND, thresholds.channel_send_pct, "excessive channel send blocking"),
        (BlockReason.LOCK_ACQUIRE, thresholds.lock_pct, "high contention on a shared lock"),
        (BlockReason.GC, thresholds.gc_pct, "high GC pressure"),
    )
    for reason, limit, text in share_rules:
        pct = percent.get(reason)
        if pct is not None and pct > limit:
            issues.append(f"{text} ({pct:.1f}% of blocked time)")

    if top and total_blocked > 0:
        share = 100.0 * top[0].total_blocked / total_blocked
        if share > thresholds.dominance_pct:
            issues.append(
                f"single task dominates blocking (task {top[0].task_id}: {share:.1f}% of blocked time)"
            )

    for task_id in sorted(tasks):
        ratio = starvation_ratio(tasks[task_id])
        if ratio is not None and ratio > thresholds.starvation_ratio:
            issues.append(
                f"starvation detected (task {task_id} runnable {100.0 * ratio:.1f}% of the time)"
            )
            break

    return issues


def analyze(
    tasks: Mapping[int, TaskRecord], config: AnalysisConfig = DEFAULT_CONFIG
) -> Summary:
    if tasks is None:
        raise TypeError("analyze() requires a task map; ingestion has not produced one")

    total_blocked = 0
    total_runtime = 0
    breakdown: dict[BlockReason, int] = {}
    # Fixed iteration order keeps repeated analyses identical.
    for task_id in sorted(tasks):
        task = tasks[task_id]
        total_blocked += task.total_blocked
        total_runtime += task.total_runtime
        for reason, duration in task.blocking_by_reason.items():
            breakdown[reason] = breakdown.get(reason, 0) + duration

    breakdown = {r: breakdown[r] for r in BlockReason if r in breakdown}
    percent: dict[BlockReason, float] = {}
    if total_blocked > 0:
        percent = {r: 100.0 * d / total_blocked for r, d in breakdown.items()}

    top = top_blocked(tasks, config.top_n)
    issues = detect_issues(
        tasks=tasks,
        percent=percent,
        top=top,
        total_blocked=total_blocked,
        thresholds=config.thresholds,
    )
    for issue in issues:
        logger.info("bottleneck: %s", issue)

    return Summary(
        total_tasks=len(tasks),
        peak_tasks=len(tasks),
        total_blocked_time=total_blocked,
        total_runtime=total_runtime,
        blocking_breakdown=MappingProxyType(breakdown),
        blocking_percent=MappingProxyType(percent),
        top_blocked=tuple(_rank(t) for t in top),
        has_performance_issues=bool(issues),
        issues=tuple(issues),
    )
