from __future__ import annotations

from PySide6.QtWidgets import QComboBox, QPlainTextEdit

from schedlens.metrics import filter_tasks
from schedlens.report import format_insights, format_summary_text, format_task_detail
from schedlens.types import BlockReason
from schedlens_ui.run_controller import RunOutputs

_SORTS = (("Blocked time", "blocked"), ("Runtime", "runtime"), ("Task id", "id"))


class OutputsView:
    """Binds analysis outputs to the summary, task list and task-detail widgets.

    The task list follows the reason filter and sort selectors; top-ranked
    tasks are marked with `*`.
    """

    def __init__(
        self,
        *,
        summary_text: QPlainTextEdit,
        task_select: QComboBox,
        task_detail_text: QPlainTextEdit,
        reason_select: QComboBox,
        sort_select: QComboBox,
    ) -> None:
        self._summary_text = summary_text
        self._task_select = task_select
        self._task_detail_text = task_detail_text
        self._reason_select = reason_select
        self._sort_select = sort_select
        self._outputs: RunOutputs | None = None
        self._task_ids: list[int] = []

        self._sort_select.blockSignals(True)
        self._sort_select.clear()
        for label, key in _SORTS:
            self._sort_select.addItem(label, key)
        self._sort_select.blockSignals(False)

    def render(self, outputs: RunOutputs) -> None:
        self._outputs = outputs
        self._summary_text.setPlainText(format_outputs_text(outputs))

        # Enum values, not members, so Qt stores plain strings.
        self._reason_select.blockSignals(True)
        self._reason_select.clear()
        self._reason_select.addItem("All reasons", "")
        for reason in outputs.summary.blocking_breakdown:
            self._reason_select.addItem(reason.label, reason.value)
        self._reason_select.blockSignals(False)

        self.refresh_tasks()

    def refresh_tasks(self, *_args: object) -> None:
        if self._outputs is None:
            return

        reason_value = self._reason_select.currentData()
        reason = BlockReason(reason_value) if reason_value else None
        sort = self._sort_select.currentData() or "blocked"

        ranked = {r.task_id for r in self._outputs.summary.top_blocked}
        tasks = filter_tasks(self._outputs.tasks, reason=reason, sort=sort)
        self._task_ids = [t.task_id for t in tasks]

        self._task_select.blockSignals(True)
        self._task_select.clear()
        for tid in self._task_ids:
            marker = " *" if tid in ranked else ""
            self._task_select.addItem(f"Task #{tid}{marker}", tid)
        self._task_select.blockSignals(False)

        if self._task_ids:
            self._task_select.setCurrentIndex(0)
            self.show_task(0)
        elif self._outputs.tasks:
            self._task_detail_text.setPlainText("(no tasks match the filter)")
        else:
            self._task_detail_text.setPlainText("(no tasks in trace)")

    def on_task_selected(self, idx: int) -> None:
        if idx < 0:
            return
        self.show_task(idx)

    def show_task(self, idx: int) -> None:
        if self._outputs is None or idx >= len(self._task_ids):
            return
        task = self._outputs.tasks.get(self._task_ids[idx])
        if task is None:
            return
        self._task_detail_text.setPlainText(format_task_detail(task, limit=50))


def format_outputs_text(outputs: RunOutputs) -> str:
    """Summary panel text: metrics, alerts, insights and decode warnings.

    Qt-free so export code can reuse it.
    """

    parts = [f"Trace: {outputs.trace_path}", "", format_summary_text(outputs.summary)]
    if outputs.insights:
        parts += ["", "Insights:", format_insights(outputs.insights)]
    if outputs.errors:
        parts += ["", "Decode warnings (partial results):"]
        parts += [f"- {e}" for e in outputs.errors]
    return "\n".join(parts)
