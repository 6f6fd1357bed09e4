from __future__ import annotations

from pathlib import Path

from PySide6.QtWidgets import QFileDialog, QMessageBox

from schedlens.io import write_summary_json, write_tasks_csv


def open_trace_dialog(window) -> None:
    path_str, _ = QFileDialog.getOpenFileName(
        window,
        "Open scheduler trace",
        "",
        "JSON lines (*.jsonl *.ndjson);;All files (*)",
    )
    if not path_str:
        return
    # Go through the window method so tests can monkeypatch it.
    window._set_trace(Path(path_str))  # noqa: SLF001


def export_results(window) -> None:
    outputs = getattr(window, "_last_outputs", None)  # noqa: SLF001
    if outputs is None:
        QMessageBox.information(window, "Nothing to export", "Analyze a trace first.")
        return

    path_str, _ = QFileDialog.getSaveFileName(
        window,
        "Export summary",
        "",
        "JSON files (*.json);;All files (*)",
    )
    if not path_str:
        return

    out_path = Path(path_str)
    if out_path.suffix.lower() != ".json":
        out_path = out_path.with_suffix(".json")

    try:
        write_summary_json(out_path, outputs.summary)
        write_tasks_csv(out_path.with_name(f"{out_path.stem}_tasks.csv"), outputs.tasks)
    except OSError as e:
        QMessageBox.critical(window, "Export failed", f"Could not export results: {e}")
