from __future__ import annotations

import json
from pathlib import Path

import pytest


def _ensure_qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


def _write_trace(tmp_path: Path) -> Path:
    rows = [
        {"task": 1, "ts": 0, "from": "runnable", "to": "running"},
        {"task": 1, "ts": 10, "from": "running", "to": "blocked", "reason": "chan receive"},
        {"task": 1, "ts": 40, "from": "blocked", "to": "runnable"},
    ]
    p = tmp_path / "t.jsonl"
    p.write_text("\n".join(json.dumps(r) for r in rows) + "\n", encoding="utf-8")
    return p


def test_run_worker_success_and_error_paths(monkeypatch, tmp_path: Path) -> None:
    _ensure_qapp()

    import schedlens_ui.run_controller as rc
    from schedlens.validate import ConfigValidationError

    req = rc.RunRequest(trace_path=_write_trace(tmp_path), workers=2)

    # Success path: real analysis end to end.
    w = rc.RunWorker(run_token=7, request=req)
    got: dict[str, object] = {}
    w.succeeded.connect(lambda tok, obj: got.__setitem__("outputs", (tok, obj)))
    w.failed.connect(lambda *_a: got.__setitem__("failed", True))
    w.finished.connect(lambda tok: got.__setitem__("finished", tok))
    w.run()
    assert "failed" not in got
    assert got["finished"] == 7
    tok, outputs = got["outputs"]  # type: ignore[misc]
    assert tok == 7
    assert isinstance(outputs, rc.RunOutputs)
    assert outputs.summary.total_blocked_time == 30
    assert list(outputs.tasks) == [1]
    assert outputs.errors == []
    assert [i.title for i in outputs.insights] == ["Channel bottleneck"]

    # Config file is honoured and validated.
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"top_n": 0}), encoding="utf-8")
    w2 = rc.RunWorker(
        run_token=8, request=rc.RunRequest(trace_path=req.trace_path, config_path=cfg)
    )
    out2 = {"failed": "", "finished": False}
    w2.failed.connect(lambda tok, txt: out2.__setitem__("failed", txt if tok == 8 else ""))
    w2.finished.connect(lambda tok: out2.__setitem__("finished", tok == 8))
    w2.run()
    assert out2["failed"].startswith("top_n must be >= 1")
    assert "Traceback" not in out2["failed"]
    assert out2["finished"] is True

    # Validation error raised from the config step.
    monkeypatch.setattr(
        rc,
        "validate_config",
        lambda _c: (_ for _ in ()).throw(ConfigValidationError("bad")),
    )
    w3 = rc.RunWorker(run_token=9, request=req)
    out3 = {"failed": False}
    w3.failed.connect(lambda tok, txt: out3.__setitem__("failed", tok == 9 and txt == "bad"))
    w3.run()
    assert out3 == {"failed": True}

    # Unexpected exception path.
    monkeypatch.setattr(rc, "validate_config", lambda _c: None)
    monkeypatch.setattr(
        rc,
        "analyze_events",
        lambda *_a, **_k: (_ for _ in ()).throw(RuntimeError("boom")),
    )
    w4 = rc.RunWorker(run_token=10, request=req)
    out4 = {"failed": False, "finished": False}
    w4.failed.connect(
        lambda tok, txt: out4.__setitem__("failed", tok == 10 and "RuntimeError" in txt)
    )
    w4.finished.connect(lambda tok: out4.__setitem__("finished", tok == 10))
    w4.run()
    assert out4 == {"failed": True, "finished": True}


def test_run_worker_reports_decode_warnings(tmp_path: Path) -> None:
    _ensure_qapp()

    import schedlens_ui.run_controller as rc

    trace = _write_trace(tmp_path)
    with trace.open("a", encoding="utf-8") as f:
        f.write("{truncated\n")

    w = rc.RunWorker(run_token=1, request=rc.RunRequest(trace_path=trace, workers=1))
    got: list[object] = []
    w.succeeded.connect(lambda _tok, obj: got.append(obj))
    w.run()

    assert len(got) == 1
    assert got[0].errors and got[0].errors[0].startswith("line 4:")  # type: ignore[attr-defined]


@pytest.mark.parametrize("raw", ["[]", '{"top_n": null}', '{"thresholds": [1]}', "{not json"])
def test_run_worker_reports_bad_config_without_traceback(tmp_path: Path, raw: str) -> None:
    _ensure_qapp()

    import schedlens_ui.run_controller as rc

    cfg = tmp_path / "cfg.json"
    cfg.write_text(raw, encoding="utf-8")
    w = rc.RunWorker(
        run_token=3, request=rc.RunRequest(trace_path=_write_trace(tmp_path), config_path=cfg)
    )
    failed: list[str] = []
    w.failed.connect(lambda _tok, txt: failed.append(txt))
    w.run()

    assert len(failed) == 1
    assert failed[0].startswith(f"invalid config {cfg}: ")
    assert "Traceback" not in failed[0]


def test_run_controller_lifecycle_paths(monkeypatch, tmp_path: Path) -> None:
    _ensure_qapp()
    import schedlens_ui.run_controller as rc

    req = rc.RunRequest(trace_path=_write_trace(tmp_path))

    class _Sig:
        def __init__(self) -> None:
            self._subs: list[object] = []

        def connect(self, fn) -> None:
            self._subs.append(fn)

        def emit(self, *a):
            for fn in list(self._subs):
                if hasattr(fn, "emit"):
                    fn.emit(*a)
                else:
                    try:
                        fn(*a)
                    except TypeError:
                        # thread.quit takes no positional args.
                        fn()

    class _FakeThread:
        def __init__(self) -> None:
            self.started = _Sig()
            self.finished = _Sig()

        def start(self) -> None:
            self.started.emit()

        def quit(self, *_a) -> None:
            self.finished.emit()

        def wait(self) -> None:
            return None

        def deleteLater(self) -> None:  # noqa: N802
            return None

    class _FakeWorker:
        def __init__(self, *, run_token: int, request) -> None:
            self.succeeded = _Sig()
            self.failed = _Sig()
            self.finished = _Sig()
            self._run_token = run_token

        def moveToThread(self, _t) -> None:  # noqa: N802
            return None

        def run(self) -> None:
            self.succeeded.emit(self._run_token, object())
            self.finished.emit(self._run_token)

        def deleteLater(self) -> None:  # noqa: N802
            return None

    monkeypatch.setattr(rc, "QThread", _FakeThread)
    monkeypatch.setattr(rc, "RunWorker", _FakeWorker)

    c = rc.RunController()
    finished: list[tuple[int, float]] = []
    c.finished.connect(lambda tok, secs: finished.append((tok, secs)))

    tok = c.start(req)
    assert tok == 1
    assert c.active_token() is None
    assert not c.is_running()
    assert finished and finished[0][0] == 1 and finished[0][1] >= 0.0

    tok2 = c.start(req)
    assert tok2 == 2

    c._thread = object()  # type: ignore[assignment]
    with pytest.raises(RuntimeError, match="Analysis already active"):
        c.start(req)
    c._thread = None

    # Cancel.
    c._active_token = None
    c.cancel_active()
    c._active_token = 42
    c.cancel_active()
    assert c.is_cancelled(42)
    assert not c.is_cancelled(2)

    # Shutdown: no thread.
    c._thread = None
    c.shutdown()

    # Shutdown: wait raises RuntimeError branch.
    class _BadThread(_FakeThread):
        def wait(self) -> None:
            raise RuntimeError("teardown")

    c._thread = _BadThread()  # type: ignore[assignment]
    c._active_token = 99
    c.shutdown()
    assert c.is_cancelled(99)

    c._started_at = None
    c._on_worker_finished(123)
    assert finished[-1] == (123, 0.0)

    c._on_thread_finished()
    assert c.active_token() is None
