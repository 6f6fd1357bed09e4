"""PySide6 desktop explorer for schedlens analyses.

A client of the headless core: `schedlens/` never imports Qt. Traces are
analyzed on a background thread and rendered as a summary plus a per-task
timeline view.

Run from source:

    python -m schedlens_ui [trace.jsonl]
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
