from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QAbstractItemView,
    QFileDialog,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from data_exchange import EXPORT_DIR, export_schedule_csv
from database import record_audit_log
from days import WEEKDAY_TOKENS, palette_for_day
from generator.cells import Closed, Locked, format_cell
from generator.entries import ScheduleEntry, contract_status
from ui.edit_shift import EditShiftDialog

FIXED_COLUMNS = ["Employee", "Contract", "Hours"]
STATUS_COLORS = {
    "met": "#66d9a6",
    "over": "#f5b942",
    "under": "#ff7a7a",
}


class WeekSchedulePage(QWidget):
    """Weekly grid of generated shifts; double-click a cell to edit it."""

    def __init__(
        self,
        session_factory,
        user: Dict[str, str],
        *,
        on_reset: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__()
        self.session_factory = session_factory
        self.user = user
        self.on_reset = on_reset
        self.entries: List[ScheduleEntry] = []
        self.summary_data: Dict = {}
        self.closed_day: Optional[str] = None
        self._build_ui()

    # ------------------------------------------------------------------
    # Layout

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setSpacing(10)

        self.table = QTableWidget(0, len(FIXED_COLUMNS) + len(WEEKDAY_TOKENS))
        self.table.setHorizontalHeaderLabels(FIXED_COLUMNS + WEEKDAY_TOKENS)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.table.verticalHeader().setVisible(False)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.cellDoubleClicked.connect(self._handle_cell_double_clicked)
        layout.addWidget(self.table, 1)
        layout.addLayout(self._build_footer())

    def _build_footer(self) -> QVBoxLayout:
        footer = QVBoxLayout()
        footer.setSpacing(8)

        summary_box = QGroupBox("Coverage")
        summary_layout = QGridLayout(summary_box)
        summary_layout.setSpacing(6)
        self.day_labels: List[QLabel] = []
        for idx, day in enumerate(WEEKDAY_TOKENS):
            label = QLabel(f"{day}\nShifts: 0\nHours: 0")
            label.setAlignment(Qt.AlignCenter)
            self.day_labels.append(label)
            summary_layout.addWidget(label, 0, idx)
        footer.addWidget(summary_box)

        self.summary_label = QLabel("Generate a schedule to see the week summary.")
        self.summary_label.setWordWrap(True)
        footer.addWidget(self.summary_label)

        controls = QHBoxLayout()
        controls.setSpacing(10)
        self.export_button = QPushButton("Export CSV")
        self.export_button.clicked.connect(self._handle_export)
        controls.addWidget(self.export_button)

        self.reset_button = QPushButton("Reset")
        self.reset_button.setToolTip("Discard the generated week and start over.")
        self.reset_button.clicked.connect(self._handle_reset)
        controls.addWidget(self.reset_button)
        controls.addStretch()
        footer.addLayout(controls)
        return footer

    # ------------------------------------------------------------------
    # Data

    def set_schedule(self, entries: List[ScheduleEntry], summary: Optional[Dict] = None) -> None:
        self.entries = list(entries)
        self.summary_data = dict(summary or {})
        self.closed_day = self.summary_data.get("closed_day")
        self.refresh()

    def clear(self) -> None:
        self.set_schedule([], {})

    def refresh(self) -> None:
        self.table.setRowCount(len(self.entries))
        for row, entry in enumerate(self.entries):
            self._populate_row(row, entry)
        self.table.resizeColumnsToContents()
        self._refresh_day_labels()
        self._refresh_summary()
        self.export_button.setEnabled(bool(self.entries))

    def _populate_row(self, row: int, entry: ScheduleEntry) -> None:
        self.table.setItem(row, 0, self._item(entry.name))
        self.table.setItem(row, 1, self._item(f"{entry.contract_hours}h"))
        status = contract_status(entry)
        hours_item = self._item(f"{entry.assigned_hours}h")
        hours_item.setForeground(QColor(STATUS_COLORS[status]))
        hours_item.setToolTip(f"Contract {status}")
        self.table.setItem(row, 2, hours_item)
        for offset, day in enumerate(WEEKDAY_TOKENS):
            cell = entry.cell(day)
            item = self._item(format_cell(cell))
            item.setBackground(QColor(palette_for_day(day, closed=isinstance(cell, Closed))))
            if isinstance(cell, Locked):
                item.setToolTip("Kept from the input file")
            self.table.setItem(row, len(FIXED_COLUMNS) + offset, item)

    @staticmethod
    def _item(text: str) -> QTableWidgetItem:
        item = QTableWidgetItem(text)
        item.setTextAlignment(Qt.AlignCenter)
        return item

    def _refresh_day_labels(self) -> None:
        reports = {report.get("day"): report for report in self.summary_data.get("days", [])}
        for label, day in zip(self.day_labels, WEEKDAY_TOKENS):
            if day == self.closed_day:
                label.setText(f"{day}\nClosed")
                continue
            report = reports.get(day, {})
            label.setText(
                f"{day}\nShifts: {report.get('assigned', 0)}\n"
                f"Open {report.get('opening', 0)} / Close {report.get('closing', 0)}"
            )

    def _refresh_summary(self) -> None:
        if not self.entries:
            self.summary_label.setText("Generate a schedule to see the week summary.")
            return
        counts = {"met": 0, "over": 0, "under": 0}
        for entry in self.entries:
            counts[contract_status(entry)] += 1
        total = sum(entry.assigned_hours for entry in self.entries)
        self.summary_label.setText(
            f"{len(self.entries)} employees - {total}h assigned - "
            f"{counts['met']} on contract, {counts['under']} under, {counts['over']} over"
        )

    # ------------------------------------------------------------------
    # Actions

    def _handle_cell_double_clicked(self, row: int, column: int) -> None:
        day_offset = column - len(FIXED_COLUMNS)
        if day_offset < 0 or row >= len(self.entries):
            return
        entry = self.entries[row]
        day = WEEKDAY_TOKENS[day_offset]
        previous = format_cell(entry.cell(day))

        def _save(text: str) -> None:
            entry.set_shift(day, text)
            with self.session_factory() as session:
                record_audit_log(
                    session,
                    self.user.get("username", "system"),
                    "shift_edit",
                    payload={
                        "employee": entry.name,
                        "day": day,
                        "before": previous,
                        "after": format_cell(entry.cell(day)),
                    },
                )

        dialog = EditShiftDialog(
            employee_name=entry.name,
            day=day,
            current_text=previous,
            on_save=_save,
            parent=self,
        )
        if dialog.exec():
            self.refresh()

    def _handle_export(self) -> None:
        if not self.entries:
            QMessageBox.information(self, "Nothing to export", "Generate a schedule first.")
            return
        path, _ = QFileDialog.getSaveFileName(
            self,
            "Export schedule",
            str(EXPORT_DIR / "schedule.csv"),
            "CSV files (*.csv)",
        )
        if not path:
            return
        try:
            target = export_schedule_csv(self.entries, Path(path))
        except OSError as exc:
            QMessageBox.critical(self, "Export failed", str(exc))
            return
        with self.session_factory() as session:
            record_audit_log(
                session,
                self.user.get("username", "system"),
                "schedule_export",
                payload={"rows": len(self.entries), "path": str(target)},
            )
        QMessageBox.information(self, "Export complete", f"Schedule written to\n{target}")

    def _handle_reset(self) -> None:
        if self.entries:
            confirm = QMessageBox.question(
                self,
                "Reset schedule",
                "Discard the generated week? Manual edits will be lost.",
            )
            if confirm != QMessageBox.Yes:
                return
        self.clear()
        if self.on_reset:
            self.on_reset()
