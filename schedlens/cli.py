from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from collections.abc import Callable
from pathlib import Path

from schedlens import __version__
from schedlens.analysis import AnalysisResult, analyze_events
from schedlens.config import DEFAULT_CONFIG, AnalysisConfig
from schedlens.insights import generate_insights
from schedlens.io import read_events_jsonl, write_events_jsonl, write_summary_json, write_tasks_csv
from schedlens.report import (
    format_insights,
    format_summary_text,
    format_task_detail,
    summary_to_dict,
    task_to_dict,
)
from schedlens.synth import generate_workload
from schedlens.types import BlockReason
from schedlens.validate import ConfigValidationError, validate_config

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_ISSUES = 2


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="schedlens", description="Scheduler trace bottleneck analyzer"
    )
    p.add_argument("-v", "--verbose", action="count", default=0)
    sub = p.add_subparsers(dest="cmd", required=True)

    an = sub.add_parser("analyze", help="Summary metrics and performance alerts")
    an.add_argument("trace", type=Path)
    an.add_argument("--json", action="store_true", help="Print the summary as JSON")
    an.add_argument("--top", action="store_true", help="Only list the top blocked tasks")
    an.add_argument("--config", type=Path)
    an.add_argument("--workers", type=int)
    an.add_argument("--out-summary", type=Path)
    an.add_argument("--out-tasks", type=Path)
    an.add_argument(
        "-w", "--watch", action="store_true", help="Re-analyze whenever the trace changes"
    )

    ins = sub.add_parser("insights", help="Narrative findings and suggestions")
    ins.add_argument("trace", type=Path)
    ins.add_argument("--config", type=Path)
    ins.add_argument("--workers", type=int)
    ins.add_argument(
        "-w", "--watch", action="store_true", help="Re-run whenever the trace changes"
    )

    insp = sub.add_parser("inspect", help="Timeline of a single task")
    insp.add_argument("trace", type=Path)
    insp.add_argument("--task", required=True, type=int)
    insp.add_argument("--json", action="store_true")
    insp.add_argument("--limit", type=int, default=10)
    insp.add_argument("--config", type=Path)
    insp.add_argument("--workers", type=int)

    syn = sub.add_parser("synth", help="Write a synthetic trace (JSON lines)")
    syn.add_argument("out", type=Path)
    syn.add_argument("--tasks", required=True, type=int)
    syn.add_argument("--seed", required=True, type=int)
    syn.add_argument("--duration-ms", type=float, default=100.0)
    syn.add_argument(
        "--reason",
        action="append",
        default=[],
        metavar="NAME=WEIGHT",
        help="Blocking reason mix, e.g. channel_recv=3 (repeatable)",
    )

    sub.add_parser("version", help="Print the version")
    return p


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_config(path: Path | None, workers: int | None) -> AnalysisConfig:
    config = DEFAULT_CONFIG
    if path is not None:
        config = AnalysisConfig.from_json(json.loads(path.read_text(encoding="utf-8")))
    config = config.with_workers(workers)
    validate_config(config)
    return config


def _run(trace: Path, config: AnalysisConfig) -> AnalysisResult:
    # The decoder is lazy; fail fast here rather than as a mid-stream error.
    if not trace.is_file():
        raise FileNotFoundError(f"trace file not found: {trace}")
    result = analyze_events(read_events_jsonl(trace), config=config)
    for err in result.errors:
        sys.stderr.write(f"warning: {err}\n")
    return result


def _parse_weights(items: list[str]) -> dict[BlockReason, float] | None:
    if not items:
        return None
    by_name = {r.value: r for r in BlockReason}
    weights: dict[BlockReason, float] = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or name not in by_name:
            raise ValueError(f"invalid --reason {item!r} (expected NAME=WEIGHT)")
        weights[by_name[name]] = float(value)
    return weights


def watch_file(
    path: Path,
    action: Callable[[], object],
    *,
    interval_s: float = 0.5,
    max_polls: int | None = None,
) -> None:
    last_mtime: float | None = None
    polls = 0
    sys.stdout.write(f"Watching {path} for changes (Ctrl+C to stop)\n")
    while max_polls is None or polls < max_polls:
        polls += 1
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            mtime = None
        if mtime is not None and mtime != last_mtime:
            last_mtime = mtime
            try:
                action()
            except OSError as e:
                # Keep polling after I/O failures.
                sys.stderr.write(f"error: {e}\n")
            sys.stdout.write(f"\nLast updated: {time.strftime('%H:%M:%S')}\n")
        time.sleep(interval_s)


def _cmd_analyze(args: argparse.Namespace) -> int:
    config = _load_config(args.config, args.workers)

    def action() -> int:
        result = _run(args.trace, config)
        summary = result.summary
        if args.json:
            sys.stdout.write(json.dumps(summary_to_dict(summary), indent=2) + "\n")
        elif args.top:
            for r in summary.top_blocked:
                sys.stdout.write(f"{r.task_id}\t{r.total_blocked}\t{r.primary_reason.value}\n")
        else:
            sys.stdout.write(format_summary_text(summary) + "\n")
        if args.out_summary:
            write_summary_json(args.out_summary, summary)
        if args.out_tasks:
            write_tasks_csv(args.out_tasks, result.tasks)
        return EXIT_ISSUES if summary.has_performance_issues else EXIT_OK

    return _run_or_watch(args, action)


def _run_or_watch(args: argparse.Namespace, action: Callable[[], int]) -> int:
    if not args.watch:
        return action()
    try:
        watch_file(args.trace, action)
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def _cmd_insights(args: argparse.Namespace) -> int:
    config = _load_config(args.config, args.workers)

    def action() -> int:
        result = _run(args.trace, config)
        sys.stdout.write(format_insights(generate_insights(result.summary, config)) + "\n")
        return EXIT_OK

    return _run_or_watch(args, action)


def _cmd_inspect(args: argparse.Namespace) -> int:
    result = _run(args.trace, _load_config(args.config, args.workers))
    task = result.tasks.get(args.task)
    if task is None:
        sys.stderr.write(f"error: task #{args.task} not found\n")
        return EXIT_ERROR
    if args.json:
        sys.stdout.write(json.dumps(task_to_dict(task, include_details=True), indent=2) + "\n")
    else:
        sys.stdout.write(format_task_detail(task, limit=args.limit) + "\n")
    return EXIT_OK


def _cmd_synth(args: argparse.Namespace) -> int:
    events = generate_workload(
        tasks=args.tasks,
        seed=args.seed,
        duration_ns=int(args.duration_ms * 1_000_000),
        reason_weights=_parse_weights(args.reason),
    )
    n = write_events_jsonl(args.out, events)
    logger.info("wrote %d events to %s", n, args.out)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.cmd == "analyze":
            return _cmd_analyze(args)
        if args.cmd == "insights":
            return _cmd_insights(args)
        if args.cmd == "inspect":
            return _cmd_inspect(args)
        if args.cmd == "synth":
            return _cmd_synth(args)
        if args.cmd == "version":
            sys.stdout.write(f"schedlens {__version__}\n")
            return EXIT_OK
    except (OSError, ConfigValidationError, ValueError) as e:
        sys.stderr.write(f"error: {e}\n")
        return EXIT_ERROR

    raise AssertionError(f"Unhandled command: {args.cmd}")
