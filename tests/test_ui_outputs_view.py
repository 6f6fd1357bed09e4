from __future__ import annotations

from pathlib import Path


def _ensure_qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


def _outputs(*, errors: list[str] | None = None):
    from schedlens.insights import generate_insights
    from schedlens.metrics import analyze
    from schedlens.tracker import StateTracker
    from schedlens.types import BlockReason, TaskState
    from schedlens_ui.run_controller import RunOutputs

    ready, run, blk = TaskState.RUNNABLE, TaskState.RUNNING, TaskState.BLOCKED
    tr = StateTracker()
    for task_id, blocked in ((4, 10), (2, 50)):
        tr.record_transition(task_id, 0, ready, run, BlockReason.NONE)
        tr.record_transition(task_id, 5, run, blk, BlockReason.LOCK_ACQUIRE)
        tr.record_transition(task_id, 5 + blocked, blk, ready, BlockReason.NONE)
    tr.record_transition(1, 0, ready, run, BlockReason.NONE)

    summary = analyze(tr.tasks())
    return RunOutputs(
        trace_path=Path("trace.jsonl"),
        summary=summary,
        tasks=dict(sorted(tr.tasks().items())),
        errors=errors or [],
        insights=generate_insights(summary),
    )


def test_outputs_view_render_and_switch() -> None:
    _ensure_qapp()

    from PySide6.QtWidgets import QComboBox, QPlainTextEdit

    from schedlens_ui.outputs_view import OutputsView

    summary = QPlainTextEdit()
    task_select = QComboBox()
    detail = QPlainTextEdit()

    view = OutputsView(
        summary_text=summary,
        task_select=task_select,
        task_detail_text=detail,
        reason_select=QComboBox(),
        sort_select=QComboBox(),
    )
    view.render(_outputs())

    assert "Trace: trace.jsonl" in summary.toPlainText()
    assert "Lock contention" in summary.toPlainText()
    assert [task_select.itemText(i) for i in range(task_select.count())] == [
        "Task #2 *",
        "Task #4 *",
        "Task #1",
    ]
    assert detail.toPlainText().startswith("Task #2")

    view.on_task_selected(2)
    assert detail.toPlainText().startswith("Task #1")
    assert "- (none)" in detail.toPlainText()

    # Out-of-range and negative indices are ignored.
    view.on_task_selected(-1)
    view.show_task(99)
    assert detail.toPlainText().startswith("Task #1")


def test_outputs_view_empty_trace() -> None:
    _ensure_qapp()

    from PySide6.QtWidgets import QComboBox, QPlainTextEdit

    from schedlens.metrics import analyze
    from schedlens_ui.outputs_view import OutputsView
    from schedlens_ui.run_controller import RunOutputs

    detail = QPlainTextEdit()
    task_select = QComboBox()
    view = OutputsView(
        summary_text=QPlainTextEdit(),
        task_select=task_select,
        task_detail_text=detail,
        reason_select=QComboBox(),
        sort_select=QComboBox(),
    )
    view.show_task(0)

    view.render(
        RunOutputs(
            trace_path=Path("empty.jsonl"),
            summary=analyze({}),
            tasks={},
            errors=[],
            insights=[],
        )
    )

    assert task_select.count() == 0
    assert detail.toPlainText() == "(no tasks in trace)"


def test_format_outputs_text_lists_decode_warnings() -> None:
    from schedlens_ui.outputs_view import format_outputs_text

    text = format_outputs_text(_outputs(errors=["line 9: Expecting value"]))

    assert "Insights:" in text
    assert text.endswith("Decode warnings (partial results):\n- line 9: Expecting value")


def _mixed_outputs():
    from schedlens.metrics import analyze
    from schedlens.tracker import StateTracker
    from schedlens.types import BlockReason, TaskState
    from schedlens_ui.run_controller import RunOutputs

    ready, run, blk = TaskState.RUNNABLE, TaskState.RUNNING, TaskState.BLOCKED
    none = BlockReason.NONE
    tr = StateTracker()
    for task_id, ran, blocked in ((2, 5, 50), (4, 7, 10)):
        tr.record_transition(task_id, 0, ready, run, none)
        tr.record_transition(task_id, ran, run, blk, BlockReason.LOCK_ACQUIRE)
        tr.record_transition(task_id, ran + blocked, blk, ready, none)
    # Task 3: a short syscall, then a longer GC pause.
    tr.record_transition(3, 0, ready, run, none)
    tr.record_transition(3, 4, run, blk, BlockReason.SYSCALL)
    tr.record_transition(3, 6, blk, ready, none)
    tr.record_transition(3, 6, ready, run, none)
    tr.record_transition(3, 11, run, blk, BlockReason.GC)
    tr.record_transition(3, 31, blk, ready, none)
    tr.record_transition(1, 0, ready, run, none)

    return RunOutputs(
        trace_path=Path("mixed.jsonl"),
        summary=analyze(tr.tasks()),
        tasks=dict(tr.tasks()),
        errors=[],
        insights=[],
    )


def test_outputs_view_reason_filter_and_sort() -> None:
    _ensure_qapp()

    from PySide6.QtWidgets import QComboBox, QPlainTextEdit

    from schedlens.types import BlockReason
    from schedlens_ui.outputs_view import OutputsView

    task_select = QComboBox()
    reason_select = QComboBox()
    sort_select = QComboBox()
    detail = QPlainTextEdit()
    view = OutputsView(
        summary_text=QPlainTextEdit(),
        task_select=task_select,
        task_detail_text=detail,
        reason_select=reason_select,
        sort_select=sort_select,
    )
    reason_select.currentIndexChanged.connect(view.refresh_tasks)
    sort_select.currentIndexChanged.connect(view.refresh_tasks)

    def listed() -> list[str]:
        return [task_select.itemText(i) for i in range(task_select.count())]

    assert [sort_select.itemData(i) for i in range(sort_select.count())] == [
        "blocked",
        "runtime",
        "id",
    ]

    view.render(_mixed_outputs())

    assert reason_select.itemText(0) == "All reasons"
    assert [reason_select.itemData(i) for i in range(1, reason_select.count())] == [
        BlockReason.LOCK_ACQUIRE.value,
        BlockReason.SYSCALL.value,
        BlockReason.GC.value,
    ]
    assert listed() == ["Task #2 *", "Task #3 *", "Task #4 *", "Task #1"]

    reason_select.setCurrentIndex(reason_select.findData(BlockReason.LOCK_ACQUIRE.value))
    assert listed() == ["Task #2 *", "Task #4 *"]
    assert detail.toPlainText().startswith("Task #2")

    sort_select.setCurrentIndex(sort_select.findData("runtime"))
    assert listed() == ["Task #4 *", "Task #2 *"]
    assert detail.toPlainText().startswith("Task #4")

    # Task 3 waited on a syscall, but GC is its primary reason.
    reason_select.setCurrentIndex(reason_select.findData(BlockReason.SYSCALL.value))
    assert listed() == []
    assert detail.toPlainText() == "(no tasks match the filter)"

    reason_select.setCurrentIndex(0)
    sort_select.setCurrentIndex(sort_select.findData("id"))
    assert listed() == ["Task #1", "Task #2 *", "Task #3 *", "Task #4 *"]
