from __future__ import annotations

from schedlens.analysis import analyze_events
from schedlens.config import AnalysisConfig
from schedlens.ingest import ingest_serial, ingest_sharded
from schedlens.metrics import analyze
from schedlens.synth import generate_workload, interleave


def test_interleaving_does_not_change_results() -> None:
    events = generate_workload(tasks=30, seed=19, duration_ns=15_000_000)
    baseline = ingest_serial(events).tasks

    for seed in (0, 1, 2, 99):
        shuffled = interleave(events, seed)
        assert shuffled != events
        assert ingest_sharded(shuffled, workers=5, queue_capacity=4).tasks == baseline


def test_worker_count_does_not_change_summary() -> None:
    events = generate_workload(tasks=24, seed=23, duration_ns=10_000_000)

    summaries = [
        analyze_events(events, config=AnalysisConfig(workers=w)).summary
        for w in (1, 2, 3, 8)
    ]

    assert all(s == summaries[0] for s in summaries[1:])


def test_analyze_is_idempotent() -> None:
    tasks = ingest_serial(generate_workload(tasks=15, seed=4, duration_ns=8_000_000)).tasks

    first = analyze(tasks)
    second = analyze(tasks)

    assert first == second
    assert list(first.blocking_breakdown) == list(second.blocking_breakdown)


def test_same_seed_produces_same_trace() -> None:
    a = generate_workload(tasks=8, seed=42, duration_ns=3_000_000)
    b = generate_workload(tasks=8, seed=42, duration_ns=3_000_000)
    c = generate_workload(tasks=8, seed=43, duration_ns=3_000_000)

    assert a == b
    assert a != c
