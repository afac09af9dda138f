from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Optional

from database import get_active_store_settings, upsert_store_settings
from days import normalize_day, sort_days


DEFAULT_SETTINGS_NAME = "Store Settings"
DEFAULT_OPEN_TIME = "09:00"
DEFAULT_CLOSE_TIME = "21:00"
BASELINE_SETTINGS: Dict[str, Any] = {
    "name": DEFAULT_SETTINGS_NAME,
    "closed_day": None,
    "open_time": DEFAULT_OPEN_TIME,
    "close_time": DEFAULT_CLOSE_TIME,
    # Collected by the settings form but not consumed by the generator yet.
    "closed_days": [],
    "departments": [],
}


def build_default_settings() -> Dict[str, Any]:
    """Return a deepcopy so callers can mutate the settings safely."""
    return copy.deepcopy(BASELINE_SETTINGS)


def parse_time_label(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    label = str(value).strip()
    if not label or ":" not in label:
        return None
    hour_str, minute_str = label.split(":", 1)
    try:
        hours = int(hour_str)
        minutes = int(minute_str)
    except ValueError:
        return None
    if not 0 <= hours <= 24 or not 0 <= minutes < 60:
        return None
    return hours * 60 + minutes


def format_time_label(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _normalize_time(value: Any, default: str) -> str:
    minutes = parse_time_label(value)
    if minutes is None:
        return default
    return format_time_label(minutes)


def _string_list(values: Any) -> List[str]:
    if isinstance(values, str):
        values = values.split(",")
    if not isinstance(values, Iterable):
        return []
    cleaned: List[str] = []
    for value in values:
        label = str(value or "").strip()
        if label and label not in cleaned:
            cleaned.append(label)
    return cleaned


def normalize_settings(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Apply defaults and coerce bad values so the generator never sees junk."""
    if not isinstance(settings, dict):
        settings = {}
    normalized = build_default_settings()
    normalized.update({key: copy.deepcopy(value) for key, value in settings.items() if key in normalized})
    normalized["name"] = str(normalized.get("name") or DEFAULT_SETTINGS_NAME)
    normalized["closed_day"] = normalize_day(normalized.get("closed_day"))
    normalized["open_time"] = _normalize_time(normalized.get("open_time"), DEFAULT_OPEN_TIME)
    normalized["close_time"] = _normalize_time(normalized.get("close_time"), DEFAULT_CLOSE_TIME)
    closed_days = [normalize_day(day) for day in _string_list(normalized.get("closed_days"))]
    normalized["closed_days"] = sort_days(day for day in closed_days if day)
    normalized["departments"] = _string_list(normalized.get("departments"))
    return normalized


def load_active_settings(conn) -> Dict[str, Any]:
    """Return the active store settings as a normalized dict.

    Accepts an open session or a session factory; None yields the baseline.
    """
    if conn is None:
        return build_default_settings()
    if callable(conn):
        with conn() as session:
            return _settings_from_row(get_active_store_settings(session))
    return _settings_from_row(get_active_store_settings(conn))


def _settings_from_row(row) -> Dict[str, Any]:
    if row is None:
        return build_default_settings()
    stored = row.settings_dict()
    stored.setdefault("name", row.name)
    return normalize_settings(stored)


def save_settings(session, settings: Dict[str, Any], *, edited_by: str = "system") -> Dict[str, Any]:
    normalized = normalize_settings(settings)
    stored = {key: value for key, value in normalized.items() if key != "name"}
    upsert_store_settings(session, normalized["name"], stored, edited_by=edited_by)
    return normalized


def ensure_default_settings(session_factory) -> None:
    """Seed the baseline settings exactly once so the generator can run end-to-end."""

    with session_factory() as session:
        if get_active_store_settings(session):
            return
        save_settings(session, build_default_settings(), edited_by="system")
