from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from store_settings import DEFAULT_CLOSE_TIME, DEFAULT_OPEN_TIME
from .cells import Worked, format_segments

FULL_DAY_MAX_HOURS = 9
SPLIT_BLOCK_HOURS = 4
PEAK_MARGIN_RATIO = 0.25


def hour_of(label: Any, default: int) -> int:
    """Hour component of an "HH:MM" label; minutes are discarded."""
    try:
        return int(str(label).strip().split(":", 1)[0])
    except (TypeError, ValueError):
        return default


def _window(*segments) -> Worked:
    segments = tuple(segments)
    return Worked(segments, label=format_segments(segments))


@dataclass(frozen=True)
class ShiftWindows:
    open_hour: int
    close_hour: int
    total_hours: int
    mid_point: int
    half_shift_hours: int
    morning: Worked
    afternoon: Worked
    mid_day: Worked
    split: Worked
    full_day: Optional[Worked]

    @property
    def can_do_full_day(self) -> bool:
        return self.full_day is not None


def compute_windows(open_time: Any = DEFAULT_OPEN_TIME, close_time: Any = DEFAULT_CLOSE_TIME) -> ShiftWindows:
    open_hour = hour_of(open_time, hour_of(DEFAULT_OPEN_TIME, 9))
    close_hour = hour_of(close_time, hour_of(DEFAULT_CLOSE_TIME, 21))
    total = close_hour - open_hour
    mid_point = open_hour + math.floor(total / 2)
    peak_start = math.floor(open_hour + total * PEAK_MARGIN_RATIO)
    peak_end = math.floor(close_hour - total * PEAK_MARGIN_RATIO)
    return ShiftWindows(
        open_hour=open_hour,
        close_hour=close_hour,
        total_hours=total,
        mid_point=mid_point,
        half_shift_hours=math.floor(total / 2),
        morning=_window((open_hour, mid_point)),
        afternoon=_window((mid_point, close_hour)),
        mid_day=_window((peak_start, peak_end)),
        split=_window(
            (open_hour, open_hour + SPLIT_BLOCK_HOURS),
            (close_hour - SPLIT_BLOCK_HOURS, close_hour),
        ),
        full_day=_window((open_hour, close_hour)) if total <= FULL_DAY_MAX_HOURS else None,
    )


def windows_for_settings(settings: Optional[Mapping[str, Any]]) -> ShiftWindows:
    settings = settings or {}
    return compute_windows(
        settings.get("open_time") or DEFAULT_OPEN_TIME,
        settings.get("close_time") or DEFAULT_CLOSE_TIME,
    )
