from __future__ import annotations

import json
import time
import traceback
from dataclasses import dataclass
from pathlib import Path

from PySide6.QtCore import QObject, QThread, Signal, Slot

from schedlens.analysis import analyze_events
from schedlens.config import DEFAULT_CONFIG, AnalysisConfig
from schedlens.insights import Insight, generate_insights
from schedlens.io import read_events_jsonl
from schedlens.types import Summary, TaskRecord
from schedlens.validate import ConfigValidationError, validate_config


@dataclass(frozen=True)
class RunRequest:
    trace_path: Path
    workers: int | None = None
    config_path: Path | None = None


@dataclass(frozen=True)
class RunOutputs:
    trace_path: Path
    summary: Summary
    tasks: dict[int, TaskRecord]
    errors: list[str]
    insights: list[Insight]


class RunWorker(QObject):
    succeeded = Signal(int, object)  # (run_token, RunOutputs)
    failed = Signal(int, str)  # (run_token, error_text)
    finished = Signal(int)  # (run_token)

    def __init__(self, *, run_token: int, request: RunRequest) -> None:
        super().__init__()
        self._run_token = run_token
        self._request = request

    def _config(self) -> AnalysisConfig:
        config = DEFAULT_CONFIG
        path = self._request.config_path
        if path is not None:
            try:
                config = AnalysisConfig.from_json(json.loads(path.read_text(encoding="utf-8")))
            except ValueError as e:
                raise ConfigValidationError(f"invalid config {path}: {e}") from e
        config = config.with_workers(self._request.workers)
        validate_config(config)
        return config

    @Slot()
    def run(self) -> None:
        try:
            config = self._config()
            result = analyze_events(
                read_events_jsonl(self._request.trace_path), config=config
            )
            outputs = RunOutputs(
                trace_path=self._request.trace_path,
                summary=result.summary,
                tasks=result.tasks,
                errors=[str(e) for e in result.errors],
                insights=generate_insights(result.summary, config),
            )
            self.succeeded.emit(self._run_token, outputs)
        except ConfigValidationError as e:
            self.failed.emit(self._run_token, str(e))
        except Exception:  # noqa: BLE001 - show traceback for unexpected failures
            self.failed.emit(self._run_token, traceback.format_exc())
        finally:
            self.finished.emit(self._run_token)


class RunController(QObject):
    """Owns the background-analysis lifecycle.

    Cancel does not interrupt ingestion (the core has no cancellation hook);
    it marks the run token so results are discarded on completion.
    """

    started = Signal(int)  # run_token
    succeeded = Signal(int, object)  # (run_token, RunOutputs)
    failed = Signal(int, str)  # (run_token, error_text)
    finished = Signal(int, float)  # (run_token, elapsed_seconds)

    def __init__(self) -> None:
        super().__init__()
        self._next_token = 1
        self._active_token: int | None = None
        self._cancelled_tokens: set[int] = set()

        # Strong refs until the QThread has actually stopped; dropping them
        # earlier triggers "QThread: Destroyed while thread is still running".
        self._thread: QThread | None = None
        self._worker: RunWorker | None = None
        self._started_at: float | None = None

    def is_running(self) -> bool:
        return self._active_token is not None

    def is_cancelled(self, run_token: int) -> bool:
        return run_token in self._cancelled_tokens

    def active_token(self) -> int | None:
        return self._active_token

    def start(self, request: RunRequest) -> int:
        if self._thread is not None:
            raise RuntimeError("Analysis already active")

        run_token = self._next_token
        self._next_token += 1
        self._active_token = run_token
        self._started_at = time.monotonic()

        thread = QThread()
        worker = RunWorker(run_token=run_token, request=request)
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.succeeded.connect(self.succeeded)
        worker.failed.connect(self.failed)
        worker.finished.connect(self._on_worker_finished)
        worker.finished.connect(thread.quit)

        thread.finished.connect(worker.deleteLater)
        thread.finished.connect(self._on_thread_finished)
        thread.finished.connect(thread.deleteLater)

        self._thread = thread
        self._worker = worker

        self.started.emit(run_token)
        thread.start()
        return run_token

    def cancel_active(self) -> None:
        if self._active_token is None:
            return
        self._cancelled_tokens.add(self._active_token)

    @Slot()
    def shutdown(self) -> None:
        """Mark any active run cancelled and wait for its thread to stop."""

        if self._thread is None:
            return

        self.cancel_active()
        try:
            self._thread.wait()
        except RuntimeError:
            # Can happen during interpreter teardown.
            pass

    @Slot(int)
    def _on_worker_finished(self, run_token: int) -> None:
        elapsed = 0.0
        if self._started_at is not None:
            elapsed = max(0.0, time.monotonic() - self._started_at)
        # Refs are cleared in _on_thread_finished: the worker reports before
        # its QThread has fully stopped.
        self.finished.emit(run_token, elapsed)

    @Slot()
    def _on_thread_finished(self) -> None:
        self._thread = None
        self._worker = None
        self._active_token = None
        self._started_at = None
