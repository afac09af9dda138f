from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from days import WEEKDAY_TOKENS, is_weekend, normalize_day
from generator.cells import Closed, Worked, cell_hours
from generator.entries import ScheduleEntry, contract_status
from store_settings import normalize_settings


def _issue(kind: str, message: str, *, employee: str, day: Optional[str] = None, severity: str = "error") -> Dict[str, Any]:
    payload: Dict[str, Any] = {"type": kind, "severity": severity, "message": message, "employee": employee}
    if day:
        payload["day"] = day
    return payload


def _constraint_problem(entry: ScheduleEntry, day: str) -> Optional[str]:
    prefs = entry.preferences
    if day in prefs.blocked_days:
        return f"{entry.name} is scheduled on blocked day {day}."
    if prefs.required_days and day not in prefs.required_days:
        return f"{entry.name} is scheduled on {day}, outside required days {sorted(prefs.required_days)}."
    if prefs.no_weekend and is_weekend(day):
        return f"{entry.name} asked for no weekends but works {day}."
    if prefs.weekend_only and not is_weekend(day):
        return f"{entry.name} works weekends only but is scheduled on {day}."
    return None


def validate_schedule(entries: Iterable[ScheduleEntry], settings: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Return validation findings for a generated (or hand-edited) week."""
    entries = list(entries)
    settings = normalize_settings(dict(settings or {}))
    closed_day = normalize_day(settings.get("closed_day"))
    issues: List[Dict[str, Any]] = []
    warnings: List[Dict[str, Any]] = []

    for entry in entries:
        expected = sum(
            cell_hours(entry.cell(day)) for day in WEEKDAY_TOKENS if not isinstance(entry.cell(day), Closed)
        )
        if expected != entry.assigned_hours:
            issues.append(
                _issue(
                    "hours_mismatch",
                    f"{entry.name} shows {entry.assigned_hours}h but the grid adds up to {expected}h.",
                    employee=entry.name,
                )
            )
        if closed_day and not isinstance(entry.cell(closed_day), Closed):
            issues.append(
                _issue(
                    "closed_day_open",
                    f"{entry.name} has a shift on {closed_day} while the store is closed.",
                    employee=entry.name,
                    day=closed_day,
                )
            )
        for day in WEEKDAY_TOKENS:
            if not isinstance(entry.cell(day), Worked):
                continue
            problem = _constraint_problem(entry, day)
            if problem:
                issues.append(_issue("constraint_violation", problem, employee=entry.name, day=day))

        status = contract_status(entry)
        if status == "under":
            warnings.append(
                _issue(
                    "under_contract",
                    f"{entry.name} has {entry.assigned_hours}h of {entry.contract_hours}h contracted.",
                    employee=entry.name,
                    severity="warning",
                )
            )
        elif status == "over":
            warnings.append(
                _issue(
                    "over_contract",
                    f"{entry.name} has {entry.assigned_hours}h, above the {entry.contract_hours}h contract.",
                    employee=entry.name,
                    severity="warning",
                )
            )

    def _status(kind: str) -> str:
        return "fail" if any(item["type"] == kind for item in issues) else "pass"

    checks = [
        {"label": "Hours match grid?", "status": _status("hours_mismatch"), "details": "Assigned hours equal the sum of the cells."},
        {"label": "Closed day respected?", "status": _status("closed_day_open"), "details": closed_day or "No closed day configured."},
        {"label": "Preferences respected?", "status": _status("constraint_violation"), "details": "Blocked, required and weekend rules."},
        {
            "label": "Contracts met?",
            "status": "warn" if warnings else "pass",
            "details": f"{len(warnings)} employee(s) off their contracted hours.",
        },
    ]
    return {"checks": checks, "issues": issues, "warnings": warnings}
