"""
Request tab (engine-backed).

Purpose
-------
- Let a project admin publish a contribution request.
- Populate project, request type, payment type and payment source choices
  from the engine form's remote reads as they arrive.
- Show field errors from the engine's validation pass beside each field.

Notes
-----
- Choices stay empty while their read is outstanding or if it failed; the
  rest of the form remains usable.
"""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from contrib_engine.form_state import FormState
from contrib_engine.forms.request import TAG_OPTIONS
from gui.adapters.form_session_adapter import FormSessionAdapter

_ERROR_STYLE = "color: #c0392b; font-size: 11px;"

# field name -> option list key
_SELECTS = {
    "project_id": "projects",
    "request_type": "request_types",
    "payment_type": "payment_types",
    "payment_source": "payment_sources",
}


class RequestTab(QWidget):
    """
    Contribution request tab for the contribforms GUI.

    Responsibilities
    ----------------
    - Forward edits to the engine form.
    - Re-render options and errors from state snapshots.
    - Submit once per click and report the outcome.
    """

    def __init__(self, session: FormSessionAdapter) -> None:
        super().__init__()
        self._session = session
        self._option_cache: dict[str, tuple[object, ...]] = {}
        self._errors: dict[str, QLabel] = {}
        self._combos: dict[str, QComboBox] = {}

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)

        header = QLabel("Create new contribution request")
        f = header.font()
        f.setPointSize(14)
        f.setBold(True)
        header.setFont(f)
        layout.addWidget(header)

        box = QGroupBox("Request details")
        form = QFormLayout(box)
        layout.addWidget(box, 1)

        self._add_select(form, "Request as *", "project_id")

        self.title_edit = QLineEdit()
        self.title_edit.setPlaceholderText("Looking for Rust developer to create smart contracts")
        self.title_edit.textChanged.connect(lambda t: session.set_field("title", t))
        self._add_row(form, "Title", self.title_edit, "title")

        self.description_edit = QPlainTextEdit()
        self.description_edit.textChanged.connect(
            lambda: session.set_field("description", self.description_edit.toPlainText())
        )
        self._add_row(form, "Description", self.description_edit, "description")

        self.tags_list = QListWidget()
        self.tags_list.setMaximumHeight(70)
        for tag in TAG_OPTIONS:
            item = QListWidgetItem(tag)
            item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Unchecked)
            self.tags_list.addItem(item)
        self.tags_list.itemChanged.connect(self._on_tags_changed)
        self._add_row(form, "Tags", self.tags_list, "tags")

        self._add_select(form, "Request type *", "request_type")
        self._add_select(form, "Payment type *", "payment_type")
        self._add_select(form, "Payment source *", "payment_source")

        self.budget_edit = QLineEdit()
        self.budget_edit.setPlaceholderText("1500")
        self.budget_edit.textChanged.connect(
            lambda t: session.set_field("budget", t.strip() or None)
        )
        self._add_row(form, "Budget *", self.budget_edit, "budget")

        self.deadline_edit = QLineEdit()
        self.deadline_edit.setPlaceholderText("YYYY-MM-DD")
        self.deadline_edit.textChanged.connect(
            lambda t: session.set_field("deadline", t.strip() or None)
        )
        self._add_row(form, "Deadline *", self.deadline_edit, "deadline")

        footer = QHBoxLayout()
        self.status_label = QLabel("Ready.")
        footer.addWidget(self.status_label, 1)
        self.btn_publish = QPushButton("Publish request")
        self.btn_publish.clicked.connect(self._publish)
        footer.addWidget(self.btn_publish)
        layout.addLayout(footer)

        session.state_changed.connect(self._render)
        session.submitted.connect(self._on_submitted)
        session.rejected.connect(self._on_rejected)
        session.failed.connect(self._on_failed)

        self._render(session.state)
        session.activate()

    def _add_row(self, form: QFormLayout, label: str, widget: QWidget, field: str) -> None:
        box = QWidget()
        inner = QVBoxLayout(box)
        inner.setContentsMargins(0, 0, 0, 0)
        inner.setSpacing(2)
        inner.addWidget(widget)
        error = QLabel("")
        error.setStyleSheet(_ERROR_STYLE)
        error.setVisible(False)
        inner.addWidget(error)
        self._errors[field] = error
        form.addRow(label, box)

    def _add_select(self, form: QFormLayout, label: str, field: str) -> None:
        combo = QComboBox()
        combo.setPlaceholderText("Loading…")
        combo.currentIndexChanged.connect(
            lambda index, f=field, c=combo: self._session.set_field(
                f, c.itemData(index) if index >= 0 else None
            )
        )
        self._combos[field] = combo
        self._add_row(form, label, combo, field)

    # ---------------- Rendering ----------------

    def _render(self, state_obj: object) -> None:
        state: FormState = state_obj  # engine type

        for field, key in _SELECTS.items():
            options = tuple(state.option_list(key))
            if self._option_cache.get(key) == options:
                continue
            self._option_cache[key] = options
            combo = self._combos[field]
            combo.blockSignals(True)
            try:
                combo.clear()
                for option in options:
                    combo.addItem(option.text, option.value)
                combo.setCurrentIndex(-1)
                combo.setPlaceholderText("Select…" if options else "Unavailable")
            finally:
                combo.blockSignals(False)

        for name, label in self._errors.items():
            message = state.errors.get(name, "")
            label.setText(message)
            label.setVisible(bool(message))

    # ---------------- Behavior ----------------

    def _on_tags_changed(self, _item: QListWidgetItem) -> None:
        tags = tuple(
            self.tags_list.item(i).text()
            for i in range(self.tags_list.count())
            if self.tags_list.item(i).checkState() == Qt.Checked
        )
        self._session.set_field("tags", tags)

    def _publish(self) -> None:
        self.btn_publish.setEnabled(False)
        self.status_label.setText("Publishing…")
        self._session.submit()

    def _on_submitted(self, _outcome: object) -> None:
        self.btn_publish.setEnabled(True)
        self.status_label.setText("Request published.")

    def _on_rejected(self, _errors: object) -> None:
        self.btn_publish.setEnabled(True)
        self.status_label.setText("Please fix the highlighted fields.")

    def _on_failed(self, message: str) -> None:
        self.btn_publish.setEnabled(True)
        self.status_label.setText("Error")
        QMessageBox.critical(self, "Publish failed", message)

    def shutdown(self) -> None:
        """Stop receiving state updates. Safe to call multiple times."""
        self._session.close()
