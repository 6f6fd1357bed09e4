from __future__ import annotations

from dataclasses import dataclass

from schedlens.config import DEFAULT_CONFIG, AnalysisConfig
from schedlens.types import BlockReason, Summary


@dataclass(frozen=True)
class Insight:
    title: str
    observation: str
    suggestion: str
    severity: str  # info, warning, critical


def generate_insights(
    summary: Summary, config: AnalysisConfig = DEFAULT_CONFIG
) -> list[Insight]:
    t = config.thresholds
    pct = summary.blocking_percent
    insights: list[Insight] = []

    recv = pct.get(BlockReason.CHANNEL_RECV, 0.0)
    if recv > t.channel_recv_pct:
        insights.append(
            Insight(
                title="Channel bottleneck",
                observation=(
                    f"{recv:.1f}% of all blocked time is spent waiting on channel receives."
                ),
                suggestion=(
                    "Consumers are outpacing producers, or channels are unbuffered. "
                    "Consider larger buffers or rebalancing work between stages."
                ),
                severity="critical",
            )
        )

    if any(issue.startswith("starvation detected") for issue in summary.issues):
        insights.append(
            Insight(
                title="CPU starvation",
                observation=(
                    "Some tasks are ready to run for long stretches without getting a processor."
                ),
                suggestion=(
                    "Check the processor limit and look for tasks spinning in tight, "
                    "non-preemptible loops."
                ),
                severity="warning",
            )
        )

    lock = pct.get(BlockReason.LOCK_ACQUIRE, 0.0)
    if lock > t.lock_pct:
        insights.append(
            Insight(
                title="Lock contention",
                observation=f"{lock:.1f}% of blocked time is spent acquiring locks.",
                suggestion=(
                    "Shorten critical sections, shard the protected state, or switch "
                    "read-heavy paths to a reader/writer lock."
                ),
                severity="warning",
            )
        )

    gc = pct.get(BlockReason.GC, 0.0)
    if gc > t.gc_pct:
        insights.append(
            Insight(
                title="High GC pressure",
                observation=f"Garbage collection accounts for {gc:.1f}% of blocked time.",
                suggestion=(
                    "Reduce short-lived allocations and reuse buffers on hot paths; "
                    "profile allocation sites."
                ),
                severity="warning",
            )
        )

    if not summary.has_performance_issues and summary.total_tasks > 0:
        insights.append(
            Insight(
                title="Healthy scheduler state",
                observation="No significant contention or starvation was detected.",
                suggestion="Keep monitoring as load grows.",
                severity="info",
            )
        )

    return insights
