from __future__ import annotations

# Sharded ingestion: one reader thread, W worker threads, one bounded queue and
# one StateTracker per worker. Events are routed by task id, never by arrival
# order, so each task's transitions are applied by a single worker in
# decoder-emission order.

import logging
import queue
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field

from schedlens.errors import TraceDecodeError
from schedlens.reasons import classify_reason
from schedlens.tracker import StateTracker
from schedlens.types import BlockReason, ResourceKind, StateTransition, TaskRecord, TaskState

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_CAPACITY = 1000

_END = object()


@dataclass
class IngestResult:
    tasks: dict[int, TaskRecord]
    errors: list[Exception] = field(default_factory=list)
    events_read: int = 0
    events_discarded: int = 0


def apply_event(tracker: StateTracker, ev: StateTransition) -> None:
    reason = classify_reason(ev.reason) if ev.to_state is TaskState.BLOCKED else BlockReason.NONE
    tracker.record_transition(
        ev.task_id,
        ev.timestamp,
        ev.from_state,
        ev.to_state,
        reason,
        terminal=ev.terminal,
    )


def as_decode_error(exc: Exception) -> TraceDecodeError:
    if isinstance(exc, TraceDecodeError):
        return exc
    err = TraceDecodeError(f"read event error: {exc}")
    err.__cause__ = exc
    return err


def merge_shards(trackers: Iterable[StateTracker]) -> dict[int, TaskRecord]:
    # Shards own disjoint task ids.
    merged: dict[int, TaskRecord] = {}
    for tracker in trackers:
        merged.update(tracker.tasks())
    return dict(sorted(merged.items()))


def ingest_serial(events: Iterable[StateTransition]) -> IngestResult:
    tracker = StateTracker()
    result = IngestResult(tasks={})

    for ev in _pull(events, result):
        if ev.resource is not ResourceKind.TASK:
            result.events_discarded += 1
            continue
        apply_event(tracker, ev)

    result.tasks = merge_shards([tracker])
    return result


def _pull(events: Iterable[StateTransition], result: IngestResult):
    """Yield events until end-of-stream or the first decode error.

    Only failures raised by the event source are recorded; errors raised while
    applying an event propagate to the caller.
    """

    try:
        it = iter(events)
        while True:
            ev = next(it)
            result.events_read += 1
            yield ev
    except StopIteration:
        return
    except Exception as e:  # noqa: BLE001 - decoder failures are recorded
        logger.warning("trace decode failed after %d events: %s", result.events_read, e)
        result.errors.append(as_decode_error(e))


class _Shard:
    def __init__(self, index: int, capacity: int) -> None:
        self.index = index
        self.queue: queue.Queue[object] = queue.Queue(maxsize=capacity)
        self.tracker = StateTracker()
        self.failure: BaseException | None = None
        self.thread = threading.Thread(
            target=self._run, name=f"schedlens-worker-{index}", daemon=True
        )

    def _run(self) -> None:
        while True:
            item = self.queue.get()
            if item is _END:
                return
            if self.failure is not None:
                # Keep draining so the reader never blocks on a dead shard.
                continue
            try:
                apply_event(self.tracker, item)  # type: ignore[arg-type]
            except BaseException as e:  # noqa: BLE001 - re-raised by the caller
                self.failure = e


def ingest_sharded(
    events: Iterable[StateTransition],
    *,
    workers: int,
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
) -> IngestResult:
    if workers < 1:
        raise ValueError(f"workers must be >= 1 (got {workers})")

    shards = [_Shard(i, queue_capacity) for i in range(workers)]
    # Written only by the reader thread until it is joined.
    result = IngestResult(tasks={})
    reader_failure: list[BaseException] = []

    def _read() -> None:
        try:
            for ev in _pull(events, result):
                if ev.resource is not ResourceKind.TASK:
                    result.events_discarded += 1
                    continue
                # Blocks when the shard's queue is full.
                shards[ev.task_id % workers].queue.put(ev)
        except BaseException as e:  # noqa: BLE001 - re-raised by the caller
            reader_failure.append(e)
        finally:
            for shard in shards:
                shard.queue.put(_END)

    for shard in shards:
        shard.thread.start()
    reader = threading.Thread(target=_read, name="schedlens-reader", daemon=True)
    reader.start()

    reader.join()
    for shard in shards:
        shard.thread.join()

    if reader_failure:
        raise reader_failure[0]
    for shard in shards:
        if shard.failure is not None:
            raise shard.failure

    result.tasks = merge_shards(s.tracker for s in shards)
    if result.events_discarded:
        logger.debug("discarded %d non-task events", result.events_discarded)
    logger.info(
        "ingested %d events into %d tasks across %d workers",
        result.events_read,
        len(result.tasks),
        workers,
    )
    return result
