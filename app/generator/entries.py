from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from days import WEEKDAY_TOKENS, normalize_day
from .cells import (
    CLOSED,
    SPLIT_SEPARATOR,
    UNSET,
    Closed,
    ShiftCell,
    Unset,
    cell_hours,
    format_cell,
    has_digit,
    parse_cell,
)
from .history import HistoryAnalysis, analyze_history
from .preferences import ParsedPreferences, parse_preferences

NAME_COLUMN = "Name"
CONTRACT_COLUMN = "Contract Hours"
PREFERENCES_COLUMN = "Needs/Preferences"
HISTORY_WEEKS = 3
REQUIRED_COLUMNS = (NAME_COLUMN, CONTRACT_COLUMN)
HEADER_ALIASES = {
    "name": NAME_COLUMN,
    "nome": NAME_COLUMN,
    "employee": NAME_COLUMN,
    "contract hours": CONTRACT_COLUMN,
    "contract": CONTRACT_COLUMN,
    "ore contratto": CONTRACT_COLUMN,
    "needs/preferences": PREFERENCES_COLUMN,
    "preferences": PREFERENCES_COLUMN,
    "esigenze/preferenze": PREFERENCES_COLUMN,
}
_DAY_HEADER = re.compile(r"^([a-zà-ù]+)(?:\s*(?:w-|w|_)\s*([1-3]))?$")
_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def history_column(day: str, weeks_back: int) -> str:
    return f"{day} W-{weeks_back}"


def normalize_header(header: Any) -> str:
    """Map a CSV header (English or legacy Italian) to its canonical column name."""
    label = str(header or "").strip()
    lowered = label.lower()
    if lowered in HEADER_ALIASES:
        return HEADER_ALIASES[lowered]
    match = _DAY_HEADER.match(lowered)
    if match:
        day = normalize_day(match.group(1))
        if day:
            return history_column(day, int(match.group(2))) if match.group(2) else day
    return label


def normalize_record(record: Mapping[str, Any]) -> Dict[str, str]:
    normalized: Dict[str, str] = {}
    for key, value in (record or {}).items():
        column = normalize_header(key)
        if column and column not in normalized:
            normalized[column] = "" if value is None else str(value)
    return normalized


def parse_contract_hours(value: Any) -> int:
    """Leading integer of the value ("38h" -> 38, "7.5" -> 7); 0 when unparsable."""
    match = _LEADING_INT.match(str(value if value is not None else ""))
    if not match:
        return 0
    return int(match.group(1))


@dataclass
class EmployeeInput:
    name: str
    contract_hours: int
    preferences: str
    current: Dict[str, str]
    history: List[Dict[str, str]]
    extra: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "EmployeeInput":
        data = normalize_record(record)
        known = {NAME_COLUMN, CONTRACT_COLUMN, PREFERENCES_COLUMN}
        current = {day: data.get(day, "") for day in WEEKDAY_TOKENS}
        history = []
        for weeks_back in range(1, HISTORY_WEEKS + 1):
            history.append({day: data.get(history_column(day, weeks_back), "") for day in WEEKDAY_TOKENS})
            known.update(history_column(day, weeks_back) for day in WEEKDAY_TOKENS)
        known.update(WEEKDAY_TOKENS)
        return cls(
            name=data.get(NAME_COLUMN, "").strip(),
            contract_hours=parse_contract_hours(data.get(CONTRACT_COLUMN)),
            preferences=data.get(PREFERENCES_COLUMN, ""),
            current=current,
            history=history,
            extra={key: value for key, value in data.items() if key not in known},
        )


@dataclass
class ScheduleEntry:
    employee: EmployeeInput
    preferences: ParsedPreferences
    history: HistoryAnalysis
    shifts: Dict[str, ShiftCell] = field(default_factory=dict)
    assigned_hours: int = 0

    @property
    def name(self) -> str:
        return self.employee.name

    @property
    def contract_hours(self) -> int:
        return self.employee.contract_hours

    @property
    def remaining_hours(self) -> int:
        return self.contract_hours - self.assigned_hours

    def cell(self, day: str) -> ShiftCell:
        return self.shifts.get(day, UNSET)

    def has_cell(self, day: str) -> bool:
        return not isinstance(self.cell(day), Unset)

    def assign(self, day: str, cell: ShiftCell) -> int:
        hours = cell_hours(cell)
        self.shifts[day] = cell
        self.assigned_hours += hours
        return hours

    def close(self, day: str) -> None:
        self.assigned_hours -= cell_hours(self.cell(day))
        self.shifts[day] = CLOSED

    def set_shift(self, day: str, text: Optional[str]) -> None:
        """Manual edit of one cell; one range per line becomes a split shift."""
        lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
        self.shifts[day] = parse_cell(SPLIT_SEPARATOR.join(lines))
        self.recompute_hours()

    def recompute_hours(self) -> int:
        self.assigned_hours = sum(
            cell_hours(cell) for cell in self.shifts.values() if not isinstance(cell, Closed)
        )
        return self.assigned_hours

    def shift_labels(self) -> Dict[str, str]:
        return {day: format_cell(self.cell(day)) for day in WEEKDAY_TOKENS}

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            NAME_COLUMN: self.name,
            CONTRACT_COLUMN: self.contract_hours,
            PREFERENCES_COLUMN: self.employee.preferences,
        }
        record.update(self.shift_labels())
        return record


def build_entry(employee: EmployeeInput) -> ScheduleEntry:
    """Parse preferences and history, then lock non-time cells of the current week.

    Current-week cells holding a digit are stale generated times and start empty;
    anything else (leave codes, notes) is kept as-is and counted toward the
    initial assigned hours.
    """
    entry = ScheduleEntry(
        employee=employee,
        preferences=parse_preferences(employee.preferences),
        history=analyze_history([employee.current] + list(employee.history)),
    )
    for day in WEEKDAY_TOKENS:
        raw = employee.current.get(day, "")
        if has_digit(raw):
            entry.shifts[day] = UNSET
        else:
            entry.assign(day, parse_cell(raw))
    return entry


def restore_entry(record: Mapping[str, Any]) -> ScheduleEntry:
    """Rebuild an already generated row as-is (every current-week cell kept)."""
    employee = EmployeeInput.from_record(record)
    entry = ScheduleEntry(
        employee=employee,
        preferences=parse_preferences(employee.preferences),
        history=HistoryAnalysis(),
        shifts={day: parse_cell(employee.current.get(day, "")) for day in WEEKDAY_TOKENS},
    )
    entry.recompute_hours()
    return entry


def contract_status(entry: ScheduleEntry) -> str:
    if entry.assigned_hours > entry.contract_hours:
        return "over"
    if entry.assigned_hours == entry.contract_hours:
        return "met"
    return "under"
