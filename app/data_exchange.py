from __future__ import annotations

import csv
import datetime
import io
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from days import sort_days
from generator.entries import (
    CONTRACT_COLUMN,
    NAME_COLUMN,
    PREFERENCES_COLUMN,
    REQUIRED_COLUMNS,
    ScheduleEntry,
    normalize_header,
    normalize_record,
)

EXPORT_DIR = Path(__file__).resolve().parent / "data" / "exports"
EXPORT_DIR.mkdir(parents=True, exist_ok=True)
EXPORT_DELIMITER = ";"


def _timestamp() -> str:
    return datetime.datetime.now().strftime("%Y%m%d_%H%M%S")


def _detect_delimiter(text: str) -> str:
    header = text.splitlines()[0] if text else ""
    return ";" if header.count(";") > header.count(",") else ","


# ---------------------------------------------------------------------------
# Employee import


def parse_employees_csv(text: str) -> List[Dict[str, str]]:
    """Parse employee rows; headers are normalized to the canonical column names."""
    text = (text or "").lstrip("\ufeff")
    if not text.strip():
        raise ValueError("CSV file is empty.")
    reader = csv.DictReader(io.StringIO(text), delimiter=_detect_delimiter(text))
    headers = {normalize_header(name) for name in (reader.fieldnames or [])}
    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise ValueError(f"CSV is missing required column(s): {', '.join(missing)}.")
    rows: List[Dict[str, str]] = []
    for row in reader:
        values = {key: value for key, value in row.items() if key is not None}
        if not any((value or "").strip() for value in values.values()):
            continue
        rows.append(normalize_record(values))
    if not rows:
        raise ValueError("CSV does not contain any employee rows.")
    return rows


def import_employees_csv(file_path: Path) -> List[Dict[str, str]]:
    return parse_employees_csv(Path(file_path).read_text(encoding="utf-8-sig"))


# ---------------------------------------------------------------------------
# Schedule export


def schedule_rows(entries: Iterable[ScheduleEntry]) -> List[Dict[str, Any]]:
    return [entry.to_record() for entry in entries]


def _export_columns(rows: List[Mapping[str, Any]]) -> List[str]:
    days = sort_days(
        key for row in rows for key in row.keys() if key not in {NAME_COLUMN, CONTRACT_COLUMN, PREFERENCES_COLUMN}
    )
    return [NAME_COLUMN, CONTRACT_COLUMN, PREFERENCES_COLUMN] + days


def schedule_to_csv(entries: Iterable[ScheduleEntry], *, delimiter: str = EXPORT_DELIMITER) -> str:
    rows = schedule_rows(entries)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=_export_columns(rows), delimiter=delimiter, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def export_schedule_csv(
    entries: Iterable[ScheduleEntry],
    target: Optional[Path] = None,
    *,
    delimiter: str = EXPORT_DELIMITER,
) -> Path:
    filename = Path(target) if target else EXPORT_DIR / f"schedule_{_timestamp()}.csv"
    filename.write_text(schedule_to_csv(entries, delimiter=delimiter), encoding="utf-8")
    return filename
