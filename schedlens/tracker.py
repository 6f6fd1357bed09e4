from __future__ import annotations

from schedlens.types import BlockReason, PendingBlock, TaskRecord, TaskState


class StateTracker:
    """Folds ordered state transitions into per-task timing buckets.

    Not thread-safe: one tracker per ingestion shard, so each task has exactly
    one writer.
    """

    def __init__(self) -> None:
        self._tasks: dict[int, TaskRecord] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: int) -> TaskRecord | None:
        return self._tasks.get(task_id)

    def tasks(self) -> dict[int, TaskRecord]:
        return self._tasks

    def record_transition(
        self,
        task_id: int,
        timestamp: int,
        from_state: TaskState,
        to_state: TaskState,
        reason: BlockReason,
        *,
        terminal: bool = False,
    ) -> TaskRecord:
        task = self._tasks.get(task_id)
        if task is None:
            task = TaskRecord.new(task_id, timestamp)
            self._tasks[task_id] = task
        elif task.is_terminated:
            task.anomalies += 1
            return task
        elif from_state is not task.current_state:
            # Accounting follows the recorded state, not the decoder's view.
            task.anomalies += 1

        elapsed = timestamp - task.last_state_change
        if task.current_state is TaskState.RUNNING:
            task.total_runtime += elapsed
        elif task.current_state is TaskState.RUNNABLE:
            task.total_runnable += elapsed

        # Blocked time is counted once, when its interval closes. Re-blocking
        # closes the previous interval so intervals never overlap.
        leaving_blocked = to_state is not TaskState.BLOCKED or terminal
        if task.current_state is TaskState.BLOCKED:
            if task.pending_block is not None:
                task.add_blocking_interval(task.pending_block.close(timestamp))
                task.pending_block = None
            elif leaving_blocked:
                task.anomalies += 1

        if not leaving_blocked:
            task.pending_block = PendingBlock(start=timestamp, reason=reason)

        task.current_state = to_state
        task.last_state_change = timestamp
        if terminal:
            task.terminated_at = timestamp
        return task
