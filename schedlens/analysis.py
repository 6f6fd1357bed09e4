from __future__ import annotations

# Public analysis entrypoint: ingest (via the executor chosen for the config),
# then aggregate once every worker has been joined.

from collections.abc import Iterable
from dataclasses import dataclass

from schedlens.config import DEFAULT_CONFIG, AnalysisConfig
from schedlens.executors import default_ingestor
from schedlens.metrics import analyze
from schedlens.types import StateTransition, Summary, TaskRecord


@dataclass(frozen=True)
class AnalysisResult:
    summary: Summary
    tasks: dict[int, TaskRecord]
    errors: list[Exception]


def analyze_events(
    events: Iterable[StateTransition],
    *,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> AnalysisResult:
    ingested = default_ingestor(config).ingest(events)
    summary = analyze(ingested.tasks, config)
    return AnalysisResult(summary=summary, tasks=ingested.tasks, errors=ingested.errors)
