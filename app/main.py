from __future__ import annotations

import getpass
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from PySide6.QtCore import Qt, QTime
from PySide6.QtGui import QColor, QIntValidator
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QTimeEdit,
    QVBoxLayout,
    QWidget,
)

from data_exchange import import_employees_csv
from database import SessionLocal, init_database, record_audit_log
from days import DAY_LABELS, WEEKDAY_TOKENS
from generator.api import generate_schedule
from store_settings import ensure_default_settings, load_active_settings, parse_time_label, save_settings
from ui.week_view import WeekSchedulePage

CLOSED_DAY_NONE_LABEL = "None (open 7/7)"
SUCCESS_COLOR = "#66d9a6"
WARNING_COLOR = "#f5b942"
INFO_COLOR = "#a8aec6"
ERROR_COLOR = "#ff7a7a"

THEME_STYLESHEET = """
QWidget {
    background-color: #090a0e;
    color: #f5f6fa;
    font-family: 'Segoe UI', sans-serif;
    font-size: 14px;
}

QGroupBox {
    background-color: #111217;
    border: 1px solid #1c1d23;
    border-radius: 12px;
    margin-top: 20px;
    padding: 16px;
}

QGroupBox::title {
    color: #f9d24a;
    font-weight: 600;
    subcontrol-origin: margin;
    subcontrol-position: top left;
    margin-left: 14px;
    padding: 2px 10px;
}

QPushButton {
    background-color: #f5b942;
    color: #0b0b0f;
    border-radius: 10px;
    padding: 8px 18px;
    font-weight: 600;
    border: none;
}

QPushButton:hover {
    background-color: #ffd36a;
}

QPushButton:disabled {
    background-color: #262730;
    color: #7d7f8f;
}

QLineEdit,
QComboBox,
QTimeEdit,
QPlainTextEdit {
    background-color: #15161c;
    border: 1px solid #25262d;
    border-radius: 10px;
    padding: 6px 12px;
}

QTableWidget,
QListWidget {
    background-color: #14151c;
    border: 1px solid #1c1d23;
    border-radius: 12px;
    gridline-color: #26272f;
    selection-background-color: #f5b942;
    selection-color: #0b0b0f;
}

QHeaderView::section {
    background-color: #0d0e13;
    color: #f5f6fa;
    padding: 8px 12px;
    border: none;
    font-weight: 600;
}
"""


class MainWindow(QMainWindow):
    def __init__(self, user: Dict[str, str], session_factory) -> None:
        super().__init__()
        self.user = user
        self.session_factory = session_factory
        self.records: List[Dict[str, str]] = []
        self.source_path: Optional[Path] = None
        self.settings: Dict[str, Any] = load_active_settings(session_factory)
        self.setWindowTitle("Shift Scheduler")
        self.setMinimumSize(1100, 720)
        self._build_ui()
        self._load_settings_into_form()

    def _build_ui(self) -> None:
        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setAlignment(Qt.AlignTop)

        header = QLabel("<h1 style='color:#f5b942;'>Weekly shift planner</h1>")
        layout.addWidget(header)

        top_row = QHBoxLayout()
        top_row.addWidget(self._build_settings_box(), 1)
        top_row.addWidget(self._build_input_box(), 1)
        layout.addLayout(top_row)

        self.week_page = WeekSchedulePage(self.session_factory, self.user, on_reset=self._clear_validation)
        layout.addWidget(self.week_page, 1)

        validation_box = QGroupBox("Validation")
        validation_layout = QVBoxLayout(validation_box)
        self.validation_list = QListWidget()
        self.validation_list.setMaximumHeight(160)
        validation_layout.addWidget(self.validation_list)
        layout.addWidget(validation_box)

        self.setCentralWidget(central)

    def _build_settings_box(self) -> QGroupBox:
        box = QGroupBox("Store settings")
        form = QFormLayout(box)

        self.closed_day_combo = QComboBox()
        self.closed_day_combo.addItem(CLOSED_DAY_NONE_LABEL, None)
        for day in WEEKDAY_TOKENS:
            self.closed_day_combo.addItem(DAY_LABELS[day], day)
        form.addRow("Closed day", self.closed_day_combo)

        self.open_time_edit = QTimeEdit()
        self.open_time_edit.setDisplayFormat("HH:mm")
        form.addRow("Opens", self.open_time_edit)

        self.close_time_edit = QTimeEdit()
        self.close_time_edit.setDisplayFormat("HH:mm")
        form.addRow("Closes", self.close_time_edit)

        self.save_settings_button = QPushButton("Save settings")
        self.save_settings_button.clicked.connect(self._handle_save_settings)
        form.addRow(self.save_settings_button)
        self.settings_status = QLabel()
        form.addRow(self.settings_status)
        return box

    def _build_input_box(self) -> QGroupBox:
        box = QGroupBox("Employees")
        layout = QVBoxLayout(box)

        self.source_label = QLabel("No file loaded.")
        self.source_label.setStyleSheet(f"color:{INFO_COLOR};")
        self.source_label.setWordWrap(True)
        layout.addWidget(self.source_label)

        seed_row = QHBoxLayout()
        seed_row.addWidget(QLabel("Seed"))
        self.seed_input = QLineEdit()
        self.seed_input.setPlaceholderText("random")
        self.seed_input.setValidator(QIntValidator())
        seed_row.addWidget(self.seed_input)
        layout.addLayout(seed_row)

        buttons = QHBoxLayout()
        self.import_button = QPushButton("Import CSV")
        self.import_button.clicked.connect(self._handle_import)
        buttons.addWidget(self.import_button)
        self.generate_button = QPushButton("Generate week")
        self.generate_button.setEnabled(False)
        self.generate_button.clicked.connect(self._handle_generate)
        buttons.addWidget(self.generate_button)
        buttons.addStretch()
        layout.addLayout(buttons)
        return box

    # ------------------------------------------------------------------
    # Settings

    def _load_settings_into_form(self) -> None:
        index = self.closed_day_combo.findData(self.settings.get("closed_day"))
        self.closed_day_combo.setCurrentIndex(max(index, 0))
        self.open_time_edit.setTime(self._qtime(self.settings.get("open_time")))
        self.close_time_edit.setTime(self._qtime(self.settings.get("close_time")))

    @staticmethod
    def _qtime(label: Optional[str]) -> QTime:
        minutes = parse_time_label(label) or 0
        return QTime(min(minutes // 60, 23), minutes % 60)

    def _collect_settings(self) -> Dict[str, Any]:
        settings = dict(self.settings)
        settings["closed_day"] = self.closed_day_combo.currentData()
        settings["open_time"] = self.open_time_edit.time().toString("HH:mm")
        settings["close_time"] = self.close_time_edit.time().toString("HH:mm")
        return settings

    def _handle_save_settings(self) -> None:
        settings = self._collect_settings()
        if parse_time_label(settings["close_time"]) <= parse_time_label(settings["open_time"]):
            self.settings_status.setStyleSheet(f"color:{ERROR_COLOR};")
            self.settings_status.setText("Closing time must be after opening time.")
            return
        with self.session_factory() as session:
            self.settings = save_settings(session, settings, edited_by=self.user["username"])
            record_audit_log(session, self.user["username"], "settings_update", target_type="Settings", payload=self.settings)
        self.settings_status.setStyleSheet(f"color:{SUCCESS_COLOR};")
        self.settings_status.setText("Settings saved.")

    # ------------------------------------------------------------------
    # Import / generate

    def _handle_import(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Import employees", str(APP_DIR), "CSV files (*.csv)")
        if not path:
            return
        try:
            records = import_employees_csv(Path(path))
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            QMessageBox.critical(self, "Import failed", str(exc))
            return
        self.records = records
        self.source_path = Path(path)
        self.source_label.setText(f"{self.source_path.name}: {len(records)} employee(s) loaded.")
        self.generate_button.setEnabled(True)
        with self.session_factory() as session:
            record_audit_log(
                session,
                self.user["username"],
                "employees_import",
                target_type="Employees",
                payload={"file": self.source_path.name, "rows": len(records)},
            )

    def _handle_generate(self) -> None:
        if not self.records:
            QMessageBox.information(self, "No employees", "Import an employee CSV before generating.")
            return
        if self.week_page.entries:
            confirm = QMessageBox.question(
                self,
                "Generate schedule",
                "Generate a new week? The current grid and any manual edits will be replaced.",
            )
            if confirm != QMessageBox.Yes:
                return
        seed_text = self.seed_input.text().strip()
        result = generate_schedule(
            self.records,
            self._collect_settings(),
            seed=int(seed_text) if seed_text else None,
            session_factory=self.session_factory,
            actor=self.user["username"],
        )
        self.week_page.set_schedule(result["entries"], result["summary"])
        self._show_validation(result["validation"], result["summary"].get("warnings", []))

    def _show_validation(self, report: Dict[str, Any], warnings: List[str]) -> None:
        self.validation_list.clear()
        colors = {"pass": SUCCESS_COLOR, "warn": WARNING_COLOR, "fail": ERROR_COLOR}
        for check in report.get("checks", []):
            item = QListWidgetItem(f"{check['label']} {check['status'].upper()} - {check['details']}")
            item.setData(Qt.ToolTipRole, check["details"])
            item.setForeground(QColor(colors.get(check["status"], INFO_COLOR)))
            self.validation_list.addItem(item)
        for issue in report.get("issues", []):
            item = QListWidgetItem(f"• {issue['message']}")
            item.setForeground(QColor(ERROR_COLOR))
            self.validation_list.addItem(item)
        for message in warnings:
            item = QListWidgetItem(f"• {message}")
            item.setForeground(QColor(WARNING_COLOR))
            self.validation_list.addItem(item)

    def _clear_validation(self) -> None:
        self.validation_list.clear()


def launch_app() -> int:
    app = QApplication(sys.argv)
    app.setStyleSheet(THEME_STYLESHEET)

    init_database()
    ensure_default_settings(SessionLocal)

    window = MainWindow({"username": getpass.getuser() or "local"}, SessionLocal)
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(launch_app())
