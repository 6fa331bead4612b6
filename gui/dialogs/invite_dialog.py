"""
Invite contributor dialog.

Purpose
-------
- Collect an invitation (entity, contributor, contribution type, start date,
  permissions, details) from the user.
- Render options, field errors and already-invited accounts from engine form
  state snapshots.

Notes
-----
- All engine calls go through ``FormSessionAdapter``; nothing here blocks on I/O.
- The send button is disabled while a submission is outstanding.
"""

from __future__ import annotations

from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from contrib_engine.data_models import Permission, SelectOption
from contrib_engine.form_state import FormState
from gui.adapters.form_session_adapter import FormSessionAdapter

_ERROR_STYLE = "color: #c0392b; font-size: 11px;"


def _error_label() -> QLabel:
    label = QLabel("")
    label.setStyleSheet(_ERROR_STYLE)
    label.setVisible(False)
    return label


class InviteDialog(QDialog):
    """
    Dialog for inviting a contributor to an entity.

    Responsibilities
    ----------------
    - Forward user edits to the engine form.
    - Re-render options and errors when the form state changes.
    - Submit once per click and report the outcome.
    """

    def __init__(self, session: FormSessionAdapter, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Invite to contribute")
        self.setModal(True)
        self.resize(560, 480)

        self._session = session
        self._entity_values: tuple[SelectOption, ...] = ()
        self._type_values: tuple[str, ...] = ()
        self._errors: dict[str, QLabel] = {}

        root = QVBoxLayout(self)
        root.setContentsMargins(12, 12, 12, 12)

        form = QFormLayout()
        root.addLayout(form)

        state = session.state

        self.entity_combo = QComboBox()
        self.entity_combo.setPlaceholderText("Loading entities…")
        self.entity_combo.currentIndexChanged.connect(self._on_entity_changed)
        self._add_row(form, "Inviting as:", self.entity_combo, "entity_id")

        self.account_edit = QLineEdit(str(state.field("account_id") or ""))
        self.account_edit.setPlaceholderText("contributor.near")
        self.account_edit.setReadOnly(bool(state.field("account_id")))
        self.account_edit.textChanged.connect(lambda t: session.set_field("account_id", t.strip()))
        self._add_row(form, "Account ID of contributor:", self.account_edit, "account_id")

        self.type_combo = QComboBox()
        self.type_combo.setEditable(True)
        self.type_combo.setEditText(str(state.field("contribution_type") or ""))
        self.type_combo.editTextChanged.connect(
            lambda t: session.set_field("contribution_type", t.strip() or None)
        )
        self._add_row(form, "Contribution type:", self.type_combo, "contribution_type")

        self.start_date_edit = QLineEdit(str(state.field("start_date") or ""))
        self.start_date_edit.setPlaceholderText("YYYY-MM-DD")
        self.start_date_edit.textChanged.connect(
            lambda t: session.set_field("start_date", t.strip())
        )
        self._add_row(form, "Start date of contribution:", self.start_date_edit, "start_date")

        self.admin_check = QCheckBox(Permission.ADMIN.value)
        self.admin_check.toggled.connect(
            lambda on: session.set_field("permissions", (Permission.ADMIN.value,) if on else ())
        )
        self._add_row(form, "Permissions for contributor:", self.admin_check, "permissions")

        self.description_edit = QPlainTextEdit(str(state.field("description") or ""))
        self.description_edit.textChanged.connect(
            lambda: session.set_field("description", self.description_edit.toPlainText())
        )
        self._add_row(form, "Details:", self.description_edit, "description")

        self.status_label = QLabel("")
        self.status_label.setWordWrap(True)
        root.addWidget(self.status_label)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Cancel)
        self.btn_send = self.buttons.addButton("Send invitation", QDialogButtonBox.AcceptRole)
        self.buttons.rejected.connect(self.reject)
        self.btn_send.clicked.connect(self._on_send)
        root.addWidget(self.buttons)

        session.state_changed.connect(self._render)
        session.submitted.connect(self._on_submitted)
        session.rejected.connect(self._on_rejected)
        session.failed.connect(self._on_failed)

        self._render(state)
        session.activate()

    def _add_row(self, form: QFormLayout, label: str, widget: QWidget, field: str) -> None:
        box = QWidget()
        layout = QVBoxLayout(box)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(2)
        layout.addWidget(widget)
        error = _error_label()
        layout.addWidget(error)
        self._errors[field] = error
        form.addRow(label, box)

    # ---------------- Rendering ----------------

    def _render(self, state_obj: object) -> None:
        state: FormState = state_obj  # engine type

        entities = tuple(state.option_list("admin_entities"))
        if entities != self._entity_values:
            self._entity_values = entities
            self.entity_combo.blockSignals(True)
            try:
                self.entity_combo.clear()
                for option in entities:
                    self.entity_combo.addItem(option.text, option.value)
                self.entity_combo.setCurrentIndex(-1)
                self.entity_combo.setPlaceholderText(
                    "Select an entity" if entities else "No entities you administer"
                )
            finally:
                self.entity_combo.blockSignals(False)

        types = tuple(state.option_list("contribution_types"))
        if types != self._type_values:
            self._type_values = types
            current = self.type_combo.currentText()
            self.type_combo.blockSignals(True)
            try:
                self.type_combo.clear()
                self.type_combo.addItems(list(types))
                self.type_combo.setEditText(current)
            finally:
                self.type_combo.blockSignals(False)

        for name, label in self._errors.items():
            message = state.errors.get(name, "")
            label.setText(message)
            label.setVisible(bool(message))

        if state.exclusion_set:
            self.status_label.setText(
                f"{len(state.exclusion_set)} account(s) already invited by this entity."
            )
        else:
            self.status_label.setText("")

    # ---------------- Behavior ----------------

    def _on_entity_changed(self, index: int) -> None:
        value = self.entity_combo.itemData(index) if index >= 0 else None
        self._session.select(value)

    def _on_send(self) -> None:
        self.btn_send.setEnabled(False)
        self.status_label.setText("Sending invitation…")
        self._session.submit()

    def _on_submitted(self, _outcome: object) -> None:
        self.btn_send.setEnabled(True)
        self.accept()

    def _on_rejected(self, _errors: object) -> None:
        self.btn_send.setEnabled(True)
        self.status_label.setText("Please fix the highlighted fields.")

    def _on_failed(self, message: str) -> None:
        self.btn_send.setEnabled(True)
        self.status_label.setText("Error")
        QMessageBox.critical(self, "Invitation failed", message)

    def done(self, result: int) -> None:  # type: ignore[override]
        self._session.close()
        super().done(result)
