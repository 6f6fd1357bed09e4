from __future__ import annotations

import time
from pathlib import Path

from PySide6.QtCore import QTimer
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QLabel,
    QMainWindow,
    QMessageBox,
    QProgressBar,
    QStatusBar,
)

from schedlens_ui.main_window_file_io import export_results, open_trace_dialog
from schedlens_ui.main_window_panels import build_main_panel
from schedlens_ui.run_controller import RunController, RunOutputs, RunRequest


class MainWindow(QMainWindow):
    def __init__(self, *, run_controller: RunController) -> None:
        super().__init__()
        self._controller = run_controller

        self._trace_path: Path | None = None
        self._active_run_token: int | None = None
        self._active_cancelled = False

        # Last successful, non-cancelled outputs. Used by export.
        self._last_outputs: RunOutputs | None = None

        self._elapsed_timer = QTimer(self)
        self._elapsed_timer.setInterval(200)
        self._elapsed_timer.timeout.connect(self._update_elapsed)
        self._elapsed_started_at: float | None = None

        self._build_actions()
        self._build_ui()
        self._wire_controller()

        self.setWindowTitle("schedlens")
        self._set_running(False)

    def _build_actions(self) -> None:
        file_menu = self.menuBar().addMenu("&File")

        open_action = QAction("&Open trace…", self)
        open_action.setShortcut("Ctrl+O")
        open_action.triggered.connect(self._open_trace_dialog)
        file_menu.addAction(open_action)

        self._export_action = QAction("&Export summary…", self)
        self._export_action.triggered.connect(self._on_export_clicked)
        file_menu.addAction(self._export_action)

        file_menu.addSeparator()
        exit_action = QAction("E&xit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

    def _build_ui(self) -> None:
        self.setCentralWidget(build_main_panel(self))

        status = QStatusBar()
        self.setStatusBar(status)
        self._busy_bar = QProgressBar()
        self._busy_bar.setFixedWidth(160)
        self._busy_bar.setTextVisible(False)
        self._busy_bar.setRange(0, 0)
        status.addPermanentWidget(self._busy_bar)

        self._status_label = QLabel("Ready")
        status.addWidget(self._status_label, 1)

        self._elapsed_label = QLabel("")
        status.addPermanentWidget(self._elapsed_label)

    def _wire_controller(self) -> None:
        self._controller.started.connect(self._on_run_started)
        self._controller.succeeded.connect(self._on_run_succeeded)
        self._controller.failed.connect(self._on_run_failed)
        self._controller.finished.connect(self._on_run_finished)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._controller.shutdown()
        super().closeEvent(event)

    def _open_trace_dialog(self) -> None:
        open_trace_dialog(self)

    def _on_export_clicked(self) -> None:
        export_results(self)

    def _set_trace(self, path: Path) -> None:
        self._trace_path = path
        self._trace_path_label.setText(str(path))
        self._status_label.setText("Trace selected")

    def _on_run_clicked(self) -> None:
        if self._trace_path is None:
            QMessageBox.warning(self, "No trace", "Open a trace file first.")
            return
        if self._controller.is_running():
            return

        req = RunRequest(
            trace_path=self._trace_path,
            workers=int(self._workers_spin.value()),
        )
        self._active_cancelled = False
        self._active_run_token = self._controller.start(req)

    def _on_cancel_clicked(self) -> None:
        if not self._controller.is_running():
            return
        self._active_cancelled = True
        self._controller.cancel_active()
        self._status_label.setText("Cancelling (will discard results when finished)…")

    def _on_run_started(self, run_token: int) -> None:
        self._active_run_token = run_token
        self._set_running(True)
        self._status_label.setText("Analyzing…")
        self._elapsed_started_at = time.monotonic()
        self._elapsed_label.setText("0.0s")
        self._elapsed_timer.start()

    def _on_run_succeeded(self, run_token: int, outputs_obj: object) -> None:
        if self._controller.is_cancelled(run_token) or self._active_cancelled:
            return
        if isinstance(outputs_obj, RunOutputs):
            self._last_outputs = outputs_obj
            self._outputs_view.render(outputs_obj)
            self._task_select.setEnabled(True)
            self._reason_select.setEnabled(True)
            self._sort_select.setEnabled(True)
            if outputs_obj.summary.has_performance_issues:
                self._status_label.setText(
                    f"Completed: {len(outputs_obj.summary.issues)} issue(s) detected"
                )
                return
        self._status_label.setText("Completed")

    def _on_run_failed(self, run_token: int, error_text: str) -> None:
        if self._controller.is_cancelled(run_token) or self._active_cancelled:
            self._status_label.setText("Cancelled")
            return
        self._status_label.setText("Failed")
        QMessageBox.critical(self, "Analysis failed", error_text)

    def _on_run_finished(self, run_token: int, elapsed_seconds: float) -> None:
        self._elapsed_timer.stop()
        self._elapsed_label.setText(f"{elapsed_seconds:0.2f}s")
        self._elapsed_started_at = None
        self._set_running(False)
        if self._controller.is_cancelled(run_token) or self._active_cancelled:
            self._status_label.setText("Cancelled (results discarded)")

    def _set_running(self, running: bool) -> None:
        self._busy_bar.setVisible(running)
        self._run_btn.setEnabled(not running)
        self._cancel_btn.setEnabled(running)
        self._workers_spin.setEnabled(not running)
        # Export is available only with results and no active run.
        self._export_action.setEnabled(self._last_outputs is not None and not running)

    def _update_elapsed(self) -> None:
        if not self._controller.is_running() or self._elapsed_started_at is None:
            return
        elapsed = max(0.0, time.monotonic() - self._elapsed_started_at)
        self._elapsed_label.setText(f"{elapsed:0.1f}s")
