from __future__ import annotations

import re
from typing import Callable, Optional

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
)

from days import DAY_LABELS
from generator.cells import SPLIT_SEPARATOR, has_digit, parse_segment, shift_hours


class EditShiftDialog(QDialog):
    """Edit one day cell; each line is one time range, two lines make a split shift."""

    def __init__(
        self,
        *,
        employee_name: str,
        day: str,
        current_text: str = "",
        on_save: Optional[Callable[[str], None]] = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self.setModal(True)
        self.employee_name = employee_name
        self.day = day
        self.on_save = on_save
        self.setWindowTitle(f"{employee_name} - {DAY_LABELS.get(day, day)}")
        self._build_ui()
        self.shift_input.setPlainText(re.sub(r"\s*/\s*", "\n", current_text or ""))

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        self.feedback_label = QLabel()
        self.feedback_label.setStyleSheet("color:#ff7a7a;")

        form = QFormLayout()
        self.shift_input = QPlainTextEdit()
        self.shift_input.setPlaceholderText("09:00 - 13:00\n17:00 - 21:00\n\nor a leave code such as FER")
        self.shift_input.textChanged.connect(self._update_hours_preview)
        form.addRow("Shift", self.shift_input)
        self.hours_label = QLabel("0h")
        form.addRow("Hours", self.hours_label)
        layout.addLayout(form)
        layout.addWidget(self.feedback_label)

        button_box = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        button_box.accepted.connect(self._handle_save)
        button_box.rejected.connect(self.reject)

        self.clear_button = QPushButton("Clear")
        self.clear_button.clicked.connect(self._handle_clear)

        action_row = QHBoxLayout()
        action_row.addWidget(button_box)
        action_row.addWidget(self.clear_button)
        action_row.addStretch()
        layout.addLayout(action_row)

    def _lines(self):
        return [line.strip() for line in self.shift_input.toPlainText().splitlines() if line.strip()]

    def _update_hours_preview(self) -> None:
        self.hours_label.setText(f"{shift_hours(SPLIT_SEPARATOR.join(self._lines()))}h")

    def _handle_save(self) -> None:
        lines = self._lines()
        bad = [line for line in lines if has_digit(line) and parse_segment(line) is None]
        if bad:
            self.feedback_label.setText(f"Use HH:MM - HH:MM for time ranges (got '{bad[0]}').")
            return
        if any(has_digit(line) for line in lines) and not all(has_digit(line) for line in lines):
            proceed = QMessageBox.question(
                self,
                "Mixed cell",
                "This cell mixes time ranges and text, so it will be kept as text.\n\nContinue anyway?",
                QMessageBox.Yes | QMessageBox.No,
                QMessageBox.No,
            )
            if proceed != QMessageBox.Yes:
                return
        if self.on_save:
            self.on_save("\n".join(lines))
        self.accept()

    def _handle_clear(self) -> None:
        if self.on_save:
            self.on_save("")
        self.accept()
