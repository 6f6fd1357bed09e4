from __future__ import annotations

import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from schedlens_ui.main_window import MainWindow
from schedlens_ui.run_controller import RunController


def run_app(argv: list[str] | None = None) -> int:
    argv = list(argv if argv is not None else sys.argv)
    app = QApplication(argv)
    app.setApplicationName("schedlens")
    app.setOrganizationName("schedlens")

    controller = RunController()
    # Don't tear down while an analysis worker thread is still running.
    app.aboutToQuit.connect(controller.shutdown)
    window = MainWindow(run_controller=controller)
    window.resize(1100, 720)

    # `python -m schedlens_ui trace.jsonl` preselects a trace.
    if len(argv) > 1:
        window._set_trace(Path(argv[1]))  # noqa: SLF001
    window.show()

    return app.exec()
