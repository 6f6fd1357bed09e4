from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from schedlens.executors import default_worker_count
from schedlens_ui.outputs_view import OutputsView


def _read_only_text(placeholder: str) -> QPlainTextEdit:
    text = QPlainTextEdit()
    text.setReadOnly(True)
    text.setPlaceholderText(placeholder)
    text.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
    return text


def build_main_panel(window) -> QWidget:
    root = QWidget()
    layout = QVBoxLayout(root)
    layout.setContentsMargins(10, 10, 10, 10)

    trace_box = QGroupBox("Trace")
    trace_form = QFormLayout(trace_box)
    trace_form.setFieldGrowthPolicy(QFormLayout.FieldGrowthPolicy.AllNonFixedFieldsGrow)

    window._trace_path_label = QLabel("(none)")
    window._trace_path_label.setWordWrap(True)
    trace_form.addRow("Path", window._trace_path_label)

    open_btn = QPushButton("Open trace…")
    open_btn.clicked.connect(window._open_trace_dialog)
    trace_form.addRow("", open_btn)

    run_box = QGroupBox("Analysis")
    run_form = QFormLayout(run_box)
    run_form.setFieldGrowthPolicy(QFormLayout.FieldGrowthPolicy.AllNonFixedFieldsGrow)

    window._workers_spin = QSpinBox()
    window._workers_spin.setRange(1, 256)
    window._workers_spin.setValue(default_worker_count())
    run_form.addRow("Workers", window._workers_spin)

    btn_row = QWidget()
    btn_row_layout = QHBoxLayout(btn_row)
    btn_row_layout.setContentsMargins(0, 0, 0, 0)

    window._run_btn = QPushButton("Analyze")
    window._run_btn.clicked.connect(window._on_run_clicked)
    btn_row_layout.addWidget(window._run_btn)

    window._cancel_btn = QPushButton("Cancel")
    window._cancel_btn.setToolTip(
        "Cancel does not interrupt ingestion. Results are discarded when it finishes."
    )
    window._cancel_btn.clicked.connect(window._on_cancel_clicked)
    btn_row_layout.addWidget(window._cancel_btn)
    run_form.addRow("", btn_row)

    summary_box = QGroupBox("Summary")
    summary_layout = QVBoxLayout(summary_box)
    window._summary_text = _read_only_text("Analyze a trace to see summary metrics.")
    summary_layout.addWidget(window._summary_text)

    task_box = QGroupBox("Task timeline")
    task_layout = QVBoxLayout(task_box)

    top_row = QWidget()
    top_row_layout = QHBoxLayout(top_row)
    top_row_layout.setContentsMargins(0, 0, 0, 0)
    top_row_layout.addWidget(QLabel("Task"))

    window._task_select = QComboBox()
    window._task_select.setEnabled(False)
    window._task_select.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
    top_row_layout.addWidget(window._task_select, 1)
    task_layout.addWidget(top_row)

    filter_row = QWidget()
    filter_row_layout = QHBoxLayout(filter_row)
    filter_row_layout.setContentsMargins(0, 0, 0, 0)
    filter_row_layout.addWidget(QLabel("Reason"))
    window._reason_select = QComboBox()
    window._reason_select.setEnabled(False)
    filter_row_layout.addWidget(window._reason_select, 1)
    filter_row_layout.addWidget(QLabel("Sort"))
    window._sort_select = QComboBox()
    window._sort_select.setEnabled(False)
    filter_row_layout.addWidget(window._sort_select)
    task_layout.addWidget(filter_row)

    window._task_detail_text = _read_only_text("No task selected.")
    task_layout.addWidget(window._task_detail_text)

    window._outputs_view = OutputsView(
        summary_text=window._summary_text,
        task_select=window._task_select,
        task_detail_text=window._task_detail_text,
        reason_select=window._reason_select,
        sort_select=window._sort_select,
    )
    window._task_select.currentIndexChanged.connect(window._outputs_view.on_task_selected)
    window._reason_select.currentIndexChanged.connect(window._outputs_view.refresh_tasks)
    window._sort_select.currentIndexChanged.connect(window._outputs_view.refresh_tasks)

    outputs_row = QWidget()
    outputs_layout = QHBoxLayout(outputs_row)
    outputs_layout.setContentsMargins(0, 0, 0, 0)
    outputs_layout.setSpacing(10)
    outputs_layout.addWidget(summary_box, 1)
    outputs_layout.addWidget(task_box, 1)

    layout.addWidget(trace_box)
    layout.addWidget(run_box)
    layout.addWidget(outputs_row, 1)
    return root
