from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from schedlens.config import AnalysisConfig
from schedlens.ingest import DEFAULT_QUEUE_CAPACITY, IngestResult
from schedlens.types import StateTransition


class Ingestor(Protocol):
    def ingest(self, events: Iterable[StateTransition]) -> IngestResult:
        raise NotImplementedError


@dataclass(frozen=True)
class SerialIngestor:
    """Single-threaded reference ingestion, same semantics as the sharded pool."""

    def ingest(self, events: Iterable[StateTransition]) -> IngestResult:
        from schedlens.ingest import ingest_serial

        return ingest_serial(events)


@dataclass(frozen=True)
class ThreadedIngestor:
    workers: int
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY

    def ingest(self, events: Iterable[StateTransition]) -> IngestResult:
        from schedlens.ingest import ingest_sharded

        return ingest_sharded(
            events,
            workers=self.workers,
            queue_capacity=self.queue_capacity,
        )


def default_worker_count() -> int:
    return os.cpu_count() or 1


def default_ingestor(config: AnalysisConfig) -> Ingestor:
    workers = config.workers if config.workers is not None else default_worker_count()
    if workers == 1:
        return SerialIngestor()
    if workers > 1:
        return ThreadedIngestor(workers=workers, queue_capacity=config.queue_capacity)
    raise ValueError(f"Unsupported worker count: {workers}")
