from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple


WEEKDAY_TOKENS: List[str] = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
WEEKEND_TOKENS = frozenset({"Sat", "Sun"})
DAY_LABELS: Dict[str, str] = {
    "Mon": "Monday",
    "Tue": "Tuesday",
    "Wed": "Wednesday",
    "Thu": "Thursday",
    "Fri": "Friday",
    "Sat": "Saturday",
    "Sun": "Sunday",
}

# Spellings accepted in preference text and legacy CSV headers. The first
# group are abbreviations, the second full names.
DAY_ALIASES: Dict[str, Tuple[List[str], List[str]]] = {
    "Mon": (["mon", "lun"], ["monday", "lunedi", "lunedì"]),
    "Tue": (["tue", "tues", "mar"], ["tuesday", "martedi", "martedì"]),
    "Wed": (["wed", "mer"], ["wednesday", "mercoledi", "mercoledì"]),
    "Thu": (["thu", "thur", "thurs", "gio"], ["thursday", "giovedi", "giovedì"]),
    "Fri": (["fri", "ven"], ["friday", "venerdi", "venerdì"]),
    "Sat": (["sat", "sab"], ["saturday", "sabato"]),
    "Sun": (["sun", "dom"], ["sunday", "domenica"]),
}

DAY_COLORS: Dict[str, str] = {
    "weekday": "#2f3a4f",
    "weekend": "#4a1f43",
    "closed": "#4a3a1f",
}


def normalize_day(value: Optional[str]) -> Optional[str]:
    """Return the canonical weekday token for any accepted spelling, else None."""
    label = (value or "").strip().lower()
    if not label or label in {"none", "nessuno"}:
        return None
    for token, (short, full) in DAY_ALIASES.items():
        if label == token.lower() or label in short or label in full:
            return token
    return None


def is_weekend(day: str) -> bool:
    return day in WEEKEND_TOKENS


def day_index(day: str) -> int:
    try:
        return WEEKDAY_TOKENS.index(day)
    except ValueError:
        return len(WEEKDAY_TOKENS)


def sort_days(days: Iterable[str]) -> List[str]:
    """Return the given day tokens in calendar week order."""
    return sorted({day for day in days if day}, key=day_index)


def palette_for_day(day: str, *, closed: bool = False) -> str:
    if closed:
        return DAY_COLORS["closed"]
    return DAY_COLORS["weekend" if is_weekend(day) else "weekday"]
