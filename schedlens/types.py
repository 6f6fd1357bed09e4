from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


class TaskState(Enum):
    RUNNING = "running"
    RUNNABLE = "runnable"
    BLOCKED = "blocked"


class BlockReason(Enum):
    NONE = "none"
    CHANNEL_SEND = "channel_send"
    CHANNEL_RECV = "channel_recv"
    LOCK_ACQUIRE = "lock_acquire"
    SYSCALL = "syscall"
    GC = "gc"
    NETWORK = "network"
    SELECT = "select"
    SLEEP = "sleep"
    SYNC = "sync"

    @property
    def label(self) -> str:
        return _REASON_LABELS[self]


_REASON_LABELS = {
    BlockReason.NONE: "none",
    BlockReason.CHANNEL_SEND: "channel send",
    BlockReason.CHANNEL_RECV: "channel receive",
    BlockReason.LOCK_ACQUIRE: "lock acquire",
    BlockReason.SYSCALL: "syscall",
    BlockReason.GC: "GC",
    BlockReason.NETWORK: "network I/O",
    BlockReason.SELECT: "multiplexed wait",
    BlockReason.SLEEP: "timed sleep",
    BlockReason.SYNC: "sync",
}


class ResourceKind(Enum):
    TASK = "task"
    PROC = "proc"
    THREAD = "thread"


@dataclass(frozen=True)
class StateTransition:
    task_id: int
    timestamp: int  # ns
    from_state: TaskState
    to_state: TaskState
    reason: str = ""
    resource: ResourceKind = ResourceKind.TASK
    terminal: bool = False


@dataclass(frozen=True)
class BlockingInterval:
    start: int
    end: int
    reason: BlockReason

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class PendingBlock:
    start: int
    reason: BlockReason

    def close(self, end: int) -> BlockingInterval:
        return BlockingInterval(start=self.start, end=end, reason=self.reason)


@dataclass
class TaskRecord:
    task_id: int
    created_at: int
    terminated_at: int | None = None
    total_runtime: int = 0
    total_runnable: int = 0
    total_blocked: int = 0
    blocking_intervals: list[BlockingInterval] = field(default_factory=list)
    blocking_by_reason: dict[BlockReason, int] = field(default_factory=dict)
    current_state: TaskState = TaskState.RUNNABLE
    last_state_change: int = 0
    pending_block: PendingBlock | None = None
    anomalies: int = 0

    @staticmethod
    def new(task_id: int, created_at: int) -> "TaskRecord":
        return TaskRecord(
            task_id=task_id,
            created_at=created_at,
            last_state_change=created_at,
        )

    def add_blocking_interval(self, interval: BlockingInterval) -> None:
        self.blocking_intervals.append(interval)
        self.total_blocked += interval.duration
        self.blocking_by_reason[interval.reason] = (
            self.blocking_by_reason.get(interval.reason, 0) + interval.duration
        )

    @property
    def is_terminated(self) -> bool:
        return self.terminated_at is not None

    @property
    def lifetime(self) -> int:
        end = self.terminated_at if self.terminated_at is not None else self.last_state_change
        return end - self.created_at


@dataclass(frozen=True)
class RankedTask:
    task_id: int
    total_blocked: int
    total_runtime: int
    total_runnable: int
    primary_reason: BlockReason
    interval_count: int


@dataclass(frozen=True)
class Summary:
    total_tasks: int
    peak_tasks: int
    total_blocked_time: int
    total_runtime: int
    # Read-only views; analyze() wraps them in MappingProxyType.
    blocking_breakdown: Mapping[BlockReason, int]
    blocking_percent: Mapping[BlockReason, float]
    top_blocked: tuple[RankedTask, ...]
    has_performance_issues: bool
    issues: tuple[str, ...]

    def __hash__(self) -> int:
        return hash(
            (
                self.total_tasks,
                self.peak_tasks,
                self.total_blocked_time,
                self.total_runtime,
                tuple(self.blocking_breakdown.items()),
                tuple(self.blocking_percent.items()),
                self.top_blocked,
                self.has_performance_issues,
                self.issues,
            )
        )
