from __future__ import annotations

"""Reproducible synthetic scheduler traces (NumPy-backed).

Each task cycles running -> blocked(reason) -> runnable -> running with
exponentially distributed phase lengths. Useful for demos, benchmarks and
for exercising the sharded pipeline against known workloads.
"""

from collections import deque
from collections.abc import Mapping

import numpy as np

from schedlens.types import BlockReason, StateTransition, TaskState

# Reason tags in the form a runtime tracer emits them.
REASON_TAGS: dict[BlockReason, str] = {
    BlockReason.CHANNEL_SEND: "chan send",
    BlockReason.CHANNEL_RECV: "chan receive",
    BlockReason.LOCK_ACQUIRE: "sync.Mutex.Lock",
    BlockReason.SYSCALL: "syscall",
    BlockReason.GC: "GC assist wait",
    BlockReason.NETWORK: "network",
    BlockReason.SELECT: "select",
    BlockReason.SLEEP: "sleep",
    BlockReason.SYNC: "sync.WaitGroup.Wait",
}

DEFAULT_WEIGHTS: dict[BlockReason, float] = {
    BlockReason.CHANNEL_RECV: 1.0,
    BlockReason.CHANNEL_SEND: 1.0,
    BlockReason.LOCK_ACQUIRE: 1.0,
    BlockReason.NETWORK: 1.0,
    BlockReason.SLEEP: 1.0,
}

_MS = 1_000_000


def _phase(rng: np.random.Generator, mean_ns: float) -> int:
    return max(1, int(rng.exponential(mean_ns)))


def generate_workload(
    *,
    tasks: int,
    seed: int,
    duration_ns: int = 100 * _MS,
    reason_weights: Mapping[BlockReason, float] | None = None,
    mean_run_ns: float = 0.5 * _MS,
    mean_block_ns: float = 2.0 * _MS,
    mean_wait_ns: float = 0.2 * _MS,
    terminate: bool = True,
) -> list[StateTransition]:
    """Build a trace in global timestamp order (ties by task id)."""

    if tasks < 0:
        raise ValueError(f"tasks must be >= 0 (got {tasks})")

    weights = dict(reason_weights or DEFAULT_WEIGHTS)
    reasons = [r for r in weights if weights[r] > 0 and r is not BlockReason.NONE]
    if not reasons:
        raise ValueError("reason_weights must contain at least one positive weight")
    p = np.array([weights[r] for r in reasons], dtype=float)
    p = p / p.sum()

    rng = np.random.default_rng(seed)
    out: list[StateTransition] = []

    for task_id in range(1, tasks + 1):
        t = int(rng.integers(0, max(1, duration_ns // 10)))
        out.append(StateTransition(task_id, t, TaskState.RUNNABLE, TaskState.RUNNING))

        while True:
            t += _phase(rng, mean_run_ns)
            if t >= duration_ns:
                break
            reason = reasons[int(rng.choice(len(reasons), p=p))]
            out.append(
                StateTransition(
                    task_id, t, TaskState.RUNNING, TaskState.BLOCKED, REASON_TAGS[reason]
                )
            )
            t += _phase(rng, mean_block_ns)
            out.append(StateTransition(task_id, t, TaskState.BLOCKED, TaskState.RUNNABLE))
            t += _phase(rng, mean_wait_ns)
            out.append(StateTransition(task_id, t, TaskState.RUNNABLE, TaskState.RUNNING))

        if terminate:
            end = max(t, out[-1].timestamp)
            out.append(
                StateTransition(
                    task_id, end, TaskState.RUNNING, TaskState.RUNNABLE, terminal=True
                )
            )

    # Stable sort keeps each task's own order for equal timestamps.
    out.sort(key=lambda ev: (ev.timestamp, ev.task_id))
    return out


def interleave(events: list[StateTransition], seed: int) -> list[StateTransition]:
    """Shuffle globally while preserving every task's relative event order."""

    per_task: dict[int, deque[StateTransition]] = {}
    for ev in events:
        per_task.setdefault(ev.task_id, deque()).append(ev)

    labels = np.array([ev.task_id for ev in events], dtype=np.int64)
    np.random.default_rng(seed).shuffle(labels)
    return [per_task[int(task_id)].popleft() for task_id in labels]
