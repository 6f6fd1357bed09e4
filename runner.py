from __future__ import annotations

"""Repo-root convenience shim for launching the schedlens explorer.

    python runner.py [trace.jsonl]

It delegates to the canonical UI entry point:

    python -m schedlens_ui
"""

import sys


def main() -> int:
    """Launch the explorer; arguments are forwarded as in `python -m schedlens_ui`."""

    # `schedlens_ui.__main__.main()` prints the friendly PySide6-missing message.
    from schedlens_ui.__main__ import main as ui_main

    sys.argv = ["schedlens_ui", *sys.argv[1:]]

    return ui_main()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
