from __future__ import annotations


class SchedlensError(Exception):
    pass


class TraceDecodeError(SchedlensError):
    """The event source failed mid-stream.

    Non-fatal for ingestion: the pipeline records it and stops reading.
    """

    def __init__(self, message: str, *, line: int | None = None) -> None:
        super().__init__(message if line is None else f"line {line}: {message}")
        self.line = line
