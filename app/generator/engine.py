from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from days import WEEKDAY_TOKENS, is_weekend, normalize_day
from store_settings import normalize_settings
from .cells import Worked, parse_cell
from .entries import EmployeeInput, ScheduleEntry, build_entry
from .preferences import ShiftFlags
from .windows import ShiftWindows, windows_for_settings

CRITICAL_COVERAGE = 2
MIN_GAP_FILL_HOURS = 3


@dataclass
class DayCoverage:
    morning: int = 0
    afternoon: int = 0
    opening: int = 0
    closing: int = 0

    def record(self, shift: Worked, windows: ShiftWindows) -> None:
        if shift.start_hour < windows.mid_point:
            self.morning += 1
        if shift.end_hour > windows.mid_point:
            self.afternoon += 1
        if shift.start_hour == windows.open_hour:
            self.opening += 1
        if shift.end_hour >= windows.close_hour:
            self.closing += 1

    @property
    def needs_morning(self) -> bool:
        return self.morning <= self.afternoon

    @property
    def critical_met(self) -> bool:
        return self.opening >= CRITICAL_COVERAGE and self.closing >= CRITICAL_COVERAGE


class ScheduleGenerator:
    """Greedy, day-by-day shift assignment.

    Employees are shuffled once with the injected random source, then for every
    open day they are stably re-sorted by priority and offered shifts in two
    passes: a preference-aware pass and an aggressive fill pass. Cells are only
    ever written once per run.
    """

    def __init__(
        self,
        settings: Optional[Mapping[str, Any]] = None,
        *,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.settings = normalize_settings(settings or {})
        self.closed_day: Optional[str] = normalize_day(self.settings.get("closed_day"))
        self.windows: ShiftWindows = windows_for_settings(self.settings)
        self.random = rng if rng is not None else random.Random(seed)
        self.entries: List[ScheduleEntry] = []
        self.order: List[int] = []
        self.warnings: List[str] = []
        self.day_reports: List[Dict[str, Any]] = []

    def generate(self, records: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        self.entries = [build_entry(EmployeeInput.from_record(record)) for record in records]
        self.order = list(range(len(self.entries)))
        self.random.shuffle(self.order)
        self.warnings = []
        self.day_reports = []
        for day in WEEKDAY_TOKENS:
            self.day_reports.append(self._run_day(day))
        return self._build_summary()

    def _run_day(self, day: str) -> Dict[str, Any]:
        if day == self.closed_day:
            for entry in self.entries:
                entry.close(day)
            return {"day": day, "closed": True, "assigned": 0, "hours": 0}

        weekend = is_weekend(day)
        self.order.sort(key=lambda idx: self._priority_key(self.entries[idx], day, weekend))
        coverage = DayCoverage()
        assigned, hours = self._preference_pass(day, weekend, coverage)
        filled, fill_hours = self._fill_pass(day, weekend, coverage)
        return {
            "day": day,
            "closed": False,
            "assigned": assigned + filled,
            "hours": hours + fill_hours,
            "opening": coverage.opening,
            "closing": coverage.closing,
            "morning": coverage.morning,
            "afternoon": coverage.afternoon,
        }

    @staticmethod
    def _priority_key(entry: ScheduleEntry, day: str, weekend: bool) -> Tuple[int, int, int, int]:
        prefs = entry.preferences
        if weekend:
            weekend_rank = 0 if prefs.weekend_only else 1
        else:
            weekend_rank = 1 if prefs.weekend_only else 0
        return (
            0 if day in prefs.required_days else 1,
            weekend_rank,
            0 if prefs.has_time_preference(day) else 1,
            -entry.remaining_hours,
        )

    def _eligible(self, entry: ScheduleEntry, day: str, weekend: bool) -> bool:
        if entry.remaining_hours <= 0 or entry.has_cell(day):
            return False
        return entry.preferences.allows(day, weekend)

    def _has_alternate(self, current: int, day: str, weekend: bool) -> bool:
        return any(
            idx != current and self._eligible(self.entries[idx], day, weekend)
            for idx in self.order
        )

    # ------------------------------------------------------------------
    # Pass 1: coverage, preferences, history, balance

    def _preference_pass(self, day: str, weekend: bool, coverage: DayCoverage) -> Tuple[int, int]:
        assigned = 0
        hours = 0
        for idx in self.order:
            entry = self.entries[idx]
            if not self._eligible(entry, day, weekend):
                continue
            rest_day = day in entry.history.rest_days and day not in entry.preferences.required_days
            if rest_day and coverage.critical_met and self._has_alternate(idx, day, weekend):
                continue
            shift = self._choose_preferred_shift(entry, day, coverage)
            if shift is None:
                continue
            hours += self._assign(entry, day, shift, coverage)
            assigned += 1
            if rest_day:
                self.warnings.append(f"{entry.name}: scheduled on usual rest day {day} to keep coverage.")
        return assigned, hours

    def _choose_preferred_shift(self, entry: ScheduleEntry, day: str, coverage: DayCoverage) -> Optional[Worked]:
        flags = entry.preferences.effective(day)
        remaining = entry.remaining_hours
        return (
            self._coverage_shift(flags, remaining, coverage)
            or self._explicit_shift(flags, remaining)
            or self._history_shift(entry, day, flags, remaining)
            or self._balance_shift(flags, remaining, coverage)
        )

    def _coverage_shift(self, flags: ShiftFlags, remaining: int, coverage: DayCoverage) -> Optional[Worked]:
        if flags.mid_day_only or flags.split_shift:
            return None
        if remaining < self.windows.half_shift_hours:
            return None
        if coverage.opening < CRITICAL_COVERAGE and not flags.afternoon_only:
            return self.windows.morning
        if coverage.closing < CRITICAL_COVERAGE and not flags.morning_only:
            return self.windows.afternoon
        return None

    def _explicit_shift(self, flags: ShiftFlags, remaining: int) -> Optional[Worked]:
        windows = self.windows
        if flags.split_shift and remaining >= windows.split.hours:
            return windows.split
        if flags.mid_day_only and remaining >= windows.mid_day.hours:
            return windows.mid_day
        if flags.morning_only and remaining >= windows.morning.hours:
            return windows.morning
        if flags.afternoon_only and remaining >= windows.afternoon.hours:
            return windows.afternoon
        return None

    def _history_shift(self, entry: ScheduleEntry, day: str, flags: ShiftFlags, remaining: int) -> Optional[Worked]:
        label = entry.history.preferred_for(day)
        if not label:
            return None
        shift = parse_cell(label)
        if not isinstance(shift, Worked):
            return None
        if flags.morning_only and shift.start_hour >= self.windows.mid_point:
            return None
        if flags.afternoon_only and shift.start_hour < self.windows.mid_point:
            return None
        if flags.split_shift and not shift.is_split:
            return None
        if shift.hours <= 0 or shift.hours > remaining:
            return None
        return shift

    def _balance_shift(self, flags: ShiftFlags, remaining: int, coverage: DayCoverage) -> Optional[Worked]:
        windows = self.windows
        half = windows.half_shift_hours
        if flags.morning_only:
            return windows.morning if remaining >= half else None
        if flags.afternoon_only:
            return windows.afternoon if remaining >= half else None
        if windows.can_do_full_day and remaining >= windows.total_hours:
            return windows.full_day
        if remaining >= half:
            return self._less_covered_half(coverage)
        return None

    # ------------------------------------------------------------------
    # Pass 2: aggressive fill, hard constraints only

    def _fill_pass(self, day: str, weekend: bool, coverage: DayCoverage) -> Tuple[int, int]:
        assigned = 0
        hours = 0
        for idx in self.order:
            entry = self.entries[idx]
            if not self._eligible(entry, day, weekend):
                continue
            shift = self._fill_shift(entry.preferences.effective(day), entry.remaining_hours, coverage)
            if shift is None:
                continue
            hours += self._assign(entry, day, shift, coverage)
            assigned += 1
        return assigned, hours

    def _fill_shift(self, flags: ShiftFlags, remaining: int, coverage: DayCoverage) -> Optional[Worked]:
        windows = self.windows
        if windows.can_do_full_day and remaining >= windows.total_hours and not flags.half_day():
            return windows.full_day
        if remaining >= windows.half_shift_hours:
            if flags.morning_only:
                return windows.morning
            if flags.afternoon_only:
                return windows.afternoon
            return self._less_covered_half(coverage)
        if remaining >= MIN_GAP_FILL_HOURS:
            # Gap fill ignores the half-day flags and balances coverage.
            return self._less_covered_half(coverage)
        return None

    def _less_covered_half(self, coverage: DayCoverage) -> Worked:
        return self.windows.morning if coverage.needs_morning else self.windows.afternoon

    def _assign(self, entry: ScheduleEntry, day: str, shift: Worked, coverage: DayCoverage) -> int:
        # Hours always come from the chosen string itself (split segments summed).
        if shift.hours <= 0:
            return 0
        hours = entry.assign(day, shift)
        coverage.record(shift, self.windows)
        return hours

    def _build_summary(self) -> Dict[str, Any]:
        under = []
        for entry in self.entries:
            if entry.assigned_hours < entry.contract_hours:
                under.append(entry.name)
                self.warnings.append(
                    f"{entry.name}: {entry.assigned_hours}h assigned of {entry.contract_hours}h contract."
                )
        return {
            "entries": self.entries,
            "days": list(self.day_reports),
            "closed_day": self.closed_day,
            "cells_filled": sum(report["assigned"] for report in self.day_reports),
            "total_hours": sum(entry.assigned_hours for entry in self.entries),
            "employees_under_contract": under,
            "warnings": list(self.warnings),
        }
