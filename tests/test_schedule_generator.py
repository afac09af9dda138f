from __future__ import annotations

import random
import sys
import unittest
from pathlib import Path
from typing import Dict, List

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from days import WEEKDAY_TOKENS  # noqa: E402
from generator.api import generate_schedule  # noqa: E402
from generator.cells import CLOSED, Closed, Locked, Unset, Worked, cell_hours  # noqa: E402
from generator.engine import DayCoverage, ScheduleGenerator  # noqa: E402
from generator.entries import EmployeeInput, build_entry  # noqa: E402
from generator.preferences import ShiftFlags  # noqa: E402

SHORT_DAY = {"open_time": "09:00", "close_time": "17:00"}
LONG_DAY = {"open_time": "09:00", "close_time": "21:00"}


def _employee(name: str, hours: int, preferences: str = "", **cells: str) -> Dict[str, str]:
    record = {"Name": name, "Contract Hours": str(hours), "Needs/Preferences": preferences}
    record.update(cells)
    return record


def _roster() -> List[Dict[str, str]]:
    return [
        _employee("Anna", 40, "morning only"),
        _employee("Marco", 38, "no weekends"),
        _employee("Giulia", 24, "weekends only"),
        _employee("Luca", 30, "split shift", Thu="FER"),
        _employee("Sara", 20, "afternoons, never Monday"),
        _employee("Paolo", 36, "tuesday only, thursday only"),
        _employee("Elena", 16),
        _employee("Dario", 3),
    ]


class ScheduleScenarioTests(unittest.TestCase):
    def test_opening_coverage_fills_first_two_days(self) -> None:
        result = generate_schedule([_employee("Solo", 8)], dict(SHORT_DAY, closed_day="Sun"), seed=1)
        entry = result["entries"][0]
        labels = entry.shift_labels()
        self.assertEqual(labels["Mon"], "09:00 - 13:00")
        self.assertEqual(labels["Tue"], "09:00 - 13:00")
        for day in ("Wed", "Thu", "Fri", "Sat"):
            self.assertEqual(labels[day], "")
        self.assertEqual(labels["Sun"], "CLOSED")
        self.assertEqual(entry.assigned_hours, 8)

    def test_no_weekend_keeps_weekend_cells_empty(self) -> None:
        result = generate_schedule([_employee("Solo", 16, "no weekend")], SHORT_DAY, seed=1)
        entry = result["entries"][0]
        labels = entry.shift_labels()
        for day in ("Mon", "Tue", "Wed", "Thu"):
            self.assertEqual(labels[day], "09:00 - 13:00")
        self.assertEqual(labels["Fri"], "")
        self.assertIsInstance(entry.cell("Sat"), Unset)
        self.assertIsInstance(entry.cell("Sun"), Unset)
        self.assertEqual(entry.assigned_hours, 16)

    def test_split_preference_bypasses_coverage_forcing(self) -> None:
        result = generate_schedule([_employee("Solo", 40, "split shift")], LONG_DAY, seed=1)
        entry = result["entries"][0]
        self.assertEqual(entry.shift_labels()["Mon"], "09:00 - 13:00 / 17:00 - 21:00")
        self.assertEqual(cell_hours(entry.cell("Mon")), 8)
        self.assertEqual(entry.assigned_hours, 40)

    def test_only_saturday_assigns_saturday_alone(self) -> None:
        result = generate_schedule([_employee("Solo", 40, "only Saturday")], LONG_DAY, seed=1)
        entry = result["entries"][0]
        for day in WEEKDAY_TOKENS:
            if day == "Sat":
                self.assertIsInstance(entry.cell(day), Worked)
            else:
                self.assertIsInstance(entry.cell(day), Unset)
        self.assertEqual(entry.shift_labels()["Sat"], "09:00 - 15:00")

    def test_gap_fill_may_exceed_small_contract(self) -> None:
        result = generate_schedule([_employee("Solo", 3)], SHORT_DAY, seed=1)
        entry = result["entries"][0]
        self.assertEqual(entry.shift_labels()["Mon"], "09:00 - 13:00")
        self.assertEqual(entry.assigned_hours, 4)
        self.assertTrue(all(isinstance(entry.cell(day), Unset) for day in WEEKDAY_TOKENS[1:]))


class ScheduleInvariantTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = dict(LONG_DAY, closed_day="Wed")
        self.result = generate_schedule(_roster(), self.settings, seed=11)
        self.entries = {entry.name: entry for entry in self.result["entries"]}

    def test_assigned_hours_match_grid(self) -> None:
        for entry in self.entries.values():
            expected = sum(
                cell_hours(entry.cell(day)) for day in WEEKDAY_TOKENS if not isinstance(entry.cell(day), Closed)
            )
            self.assertEqual(entry.assigned_hours, expected, entry.name)

    def test_closed_day_is_closed_for_everyone(self) -> None:
        for entry in self.entries.values():
            self.assertEqual(entry.cell("Wed"), CLOSED)
        wed_report = next(report for report in self.result["summary"]["days"] if report["day"] == "Wed")
        self.assertTrue(wed_report["closed"])

    def test_hard_constraints_are_respected(self) -> None:
        for entry in self.entries.values():
            prefs = entry.preferences
            for day in WEEKDAY_TOKENS:
                if not isinstance(entry.cell(day), Worked):
                    continue
                self.assertNotIn(day, prefs.blocked_days, entry.name)
                if prefs.required_days:
                    self.assertIn(day, prefs.required_days, entry.name)
        sara = self.entries["Sara"]
        self.assertNotIsInstance(sara.cell("Mon"), Worked)
        for day in ("Sat", "Sun"):
            self.assertNotIsInstance(self.entries["Marco"].cell(day), Worked)
        for day in ("Mon", "Tue", "Thu", "Fri"):
            self.assertNotIsInstance(self.entries["Giulia"].cell(day), Worked)

    def test_locked_cells_are_kept(self) -> None:
        self.assertEqual(self.entries["Luca"].cell("Thu"), Locked("FER"))

    def test_validation_report_is_clean(self) -> None:
        validation = self.result["validation"]
        self.assertEqual(validation["issues"], [])
        labels = {check["label"]: check["status"] for check in validation["checks"]}
        self.assertEqual(labels["Hours match grid?"], "pass")
        self.assertEqual(labels["Closed day respected?"], "pass")


class ScheduleDeterminismTests(unittest.TestCase):
    def _labels(self, result):
        return [(entry.name, entry.shift_labels()) for entry in result["entries"]]

    def test_same_seed_same_schedule(self) -> None:
        first = generate_schedule(_roster(), LONG_DAY, seed=42)
        second = generate_schedule(_roster(), LONG_DAY, seed=42)
        self.assertEqual(self._labels(first), self._labels(second))
        self.assertEqual(first["summary"]["seed"], 42)

    def test_injected_random_source_matches_seed(self) -> None:
        seeded = ScheduleGenerator(LONG_DAY, seed=5).generate(_roster())
        injected = ScheduleGenerator(LONG_DAY, rng=random.Random(5)).generate(_roster())
        self.assertEqual(
            [entry.shift_labels() for entry in seeded["entries"]],
            [entry.shift_labels() for entry in injected["entries"]],
        )

    def test_current_week_times_are_regenerated(self) -> None:
        record = _employee("Solo", 8, Mon="10:00 - 12:00", Tue="MAL")
        entry = generate_schedule([record], SHORT_DAY, seed=3)["entries"][0]
        self.assertEqual(entry.shift_labels()["Mon"], "09:00 - 13:00")
        self.assertEqual(entry.cell("Tue"), Locked("MAL"))
        self.assertEqual(entry.shift_labels()["Wed"], "09:00 - 13:00")

    def test_missing_records_raise(self) -> None:
        with self.assertRaises(ValueError):
            generate_schedule(None)

    def test_unparsable_contract_hours_default_to_zero(self) -> None:
        record = _employee("Ghost", 0)
        record["Contract Hours"] = "n/a"
        entry = generate_schedule([record], SHORT_DAY, seed=1)["entries"][0]
        self.assertEqual(entry.contract_hours, 0)
        self.assertEqual(entry.assigned_hours, 0)
        self.assertTrue(all(isinstance(entry.cell(day), Unset) for day in WEEKDAY_TOKENS))


class RestDayTests(unittest.TestCase):
    HISTORY_SHIFT = "09:00 - 17:00"

    def _rested(self, name: str, hours: int) -> Dict[str, str]:
        record = _employee(name, hours)
        for weeks_back in (1, 2, 3):
            for day in WEEKDAY_TOKENS[1:]:
                record[f"{day} W-{weeks_back}"] = self.HISTORY_SHIFT
        return record

    def _team(self) -> List[Dict[str, str]]:
        return [_employee(name, 40) for name in ("A", "B", "C", "D")]

    def test_rest_day_defers_to_spare_in_preference_pass_only(self) -> None:
        records = self._team() + [self._rested("Rested", 20), _employee("Spare", 10)]
        result = generate_schedule(records, SHORT_DAY, seed=9)
        entries = {entry.name: entry for entry in result["entries"]}
        rested = entries["Rested"]
        self.assertEqual(rested.history.rest_days, frozenset({"Mon"}))
        # Spare takes the full day ahead of Rested, then the fill pass still books Rested.
        self.assertEqual(entries["Spare"].shift_labels()["Mon"], "09:00 - 17:00")
        self.assertEqual(rested.shift_labels()["Mon"], "09:00 - 17:00")
        monday = result["summary"]["days"][0]
        self.assertEqual(monday["assigned"], 6)
        warnings = result["summary"]["warnings"]
        self.assertFalse(any("usual rest day Mon" in message for message in warnings))

    def test_rest_day_is_worked_when_nobody_else_is_left(self) -> None:
        records = self._team() + [self._rested("Rested", 20)]
        result = generate_schedule(records, SHORT_DAY, seed=9)
        rested = next(entry for entry in result["entries"] if entry.name == "Rested")
        self.assertEqual(rested.shift_labels()["Mon"], self.HISTORY_SHIFT)
        warnings = result["summary"]["warnings"]
        self.assertTrue(any("Rested: scheduled on usual rest day Mon" in message for message in warnings))


def _monday(result, name: str) -> str:
    entry = next(entry for entry in result["entries"] if entry.name == name)
    return entry.shift_labels()["Mon"]


def _with_history(record: Dict[str, str], day: str, label: str) -> Dict[str, str]:
    for weeks_back in (1, 2, 3):
        record[f"{day} W-{weeks_back}"] = label
    return record


class PriorityOrderTests(unittest.TestCase):
    """The first employees of the day take the opening slots, so slots reveal the order."""

    def test_required_day_goes_first(self) -> None:
        staff = [_employee(f"P{n}", 40) for n in range(3)]
        result = generate_schedule(staff + [_employee("Monday", 8, "monday only")], SHORT_DAY, seed=2)
        self.assertEqual(_monday(result, "Monday"), "09:00 - 13:00")

    def test_weekend_only_goes_first_on_weekends(self) -> None:
        staff = [_employee(f"P{n}", 40) for n in range(3)]
        result = generate_schedule(staff + [_employee("Weekender", 8, "weekends only")], SHORT_DAY, seed=2)
        weekender = next(entry for entry in result["entries"] if entry.name == "Weekender")
        self.assertEqual(weekender.shift_labels()["Sat"], "09:00 - 13:00")
        self.assertEqual(weekender.shift_labels()["Sun"], "09:00 - 13:00")

    def test_weekend_only_goes_last_on_weekdays(self) -> None:
        flex = build_entry(EmployeeInput.from_record(_employee("Flex", 10)))
        weekender = build_entry(EmployeeInput.from_record(_employee("Weekender", 40, "weekends only")))
        entries = [weekender, flex]

        def ordered(day: str, weekend: bool) -> List[str]:
            ranked = sorted(entries, key=lambda entry: ScheduleGenerator._priority_key(entry, day, weekend))
            return [entry.name for entry in ranked]

        self.assertEqual(ordered("Mon", False), ["Flex", "Weekender"])
        self.assertEqual(ordered("Sat", True), ["Weekender", "Flex"])

    def test_time_preference_goes_before_flexible(self) -> None:
        staff = [_employee(f"P{n}", 40) for n in range(4)]
        result = generate_schedule(staff + [_employee("Early", 8, "morning")], SHORT_DAY, seed=2)
        self.assertEqual(_monday(result, "Early"), "09:00 - 13:00")
        staff_labels = sorted(_monday(result, f"P{n}") for n in range(4))
        # Early took an opening slot, so the last flexible one gets the full day.
        self.assertEqual(staff_labels, ["09:00 - 13:00", "09:00 - 17:00", "13:00 - 17:00", "13:00 - 17:00"])

    def test_larger_gap_goes_first_whatever_the_shuffle(self) -> None:
        records = [_employee("Small", 8), _employee("Big", 40), _employee("Mid", 20)]
        for seed in range(5):
            result = generate_schedule(records, SHORT_DAY, seed=seed)
            self.assertEqual(_monday(result, "Big"), "09:00 - 13:00", seed)
            self.assertEqual(_monday(result, "Mid"), "09:00 - 13:00", seed)
            self.assertEqual(_monday(result, "Small"), "13:00 - 17:00", seed)


class ShiftChoiceTests(unittest.TestCase):
    def test_history_shift_is_used_when_it_fits_the_flags(self) -> None:
        record = _with_history(_employee("Late", 3, "afternoon only"), "Mon", "14:00 - 17:00")
        self.assertEqual(_monday(generate_schedule([record], SHORT_DAY, seed=1), "Late"), "14:00 - 17:00")

    def test_history_afternoon_rejected_for_morning_only(self) -> None:
        record = _with_history(_employee("Early", 3, "morning only"), "Mon", "14:00 - 17:00")
        self.assertEqual(_monday(generate_schedule([record], SHORT_DAY, seed=1), "Early"), "09:00 - 13:00")

    def test_history_morning_rejected_for_afternoon_only(self) -> None:
        record = _with_history(_employee("Late", 3, "afternoon only"), "Mon", "09:00 - 12:00")
        # The 3h gap fill then balances coverage instead of following the flag.
        self.assertEqual(_monday(generate_schedule([record], SHORT_DAY, seed=1), "Late"), "09:00 - 13:00")

    def test_history_single_block_rejected_for_split(self) -> None:
        record = _with_history(_employee("Split", 6, "split shift"), "Mon", "10:00 - 14:00")
        self.assertEqual(_monday(generate_schedule([record], SHORT_DAY, seed=1), "Split"), "09:00 - 13:00")

        record = _with_history(_employee("Split", 6, "split shift"), "Mon", "09:00 - 11:00 / 15:00 - 17:00")
        self.assertEqual(
            _monday(generate_schedule([record], SHORT_DAY, seed=1), "Split"), "09:00 - 11:00 / 15:00 - 17:00"
        )

    def test_day_override_changes_that_day_only(self) -> None:
        entry = generate_schedule([_employee("Solo", 8, "monday afternoon")], SHORT_DAY, seed=1)["entries"][0]
        labels = entry.shift_labels()
        self.assertEqual(labels["Mon"], "13:00 - 17:00")
        self.assertEqual(labels["Tue"], "09:00 - 13:00")

    def test_mid_day_preference_gets_the_peak_window(self) -> None:
        entry = generate_schedule([_employee("Solo", 8, "mid-day")], LONG_DAY, seed=1)["entries"][0]
        labels = entry.shift_labels()
        self.assertEqual(labels["Mon"], "12:00 - 18:00")
        self.assertEqual(labels["Tue"], "")
        self.assertEqual(entry.assigned_hours, 6)

    def test_full_day_offered_once_coverage_is_met_on_short_days(self) -> None:
        staff = [_employee(f"P{n}", 40) for n in range(4)]
        short = generate_schedule(staff + [_employee("Flex", 8)], SHORT_DAY, seed=4)
        self.assertEqual(_monday(short, "Flex"), "09:00 - 17:00")
        long = generate_schedule(staff + [_employee("Flex", 12)], LONG_DAY, seed=4)
        self.assertEqual(_monday(long, "Flex"), "09:00 - 15:00")

    def test_balance_step_prefers_full_day_only_when_store_day_is_short(self) -> None:
        covered = DayCoverage(morning=2, afternoon=2, opening=2, closing=2)
        short = ScheduleGenerator(SHORT_DAY)
        self.assertEqual(short._balance_shift(ShiftFlags(), 8, covered), short.windows.full_day)
        long = ScheduleGenerator(LONG_DAY)
        self.assertEqual(long._balance_shift(ShiftFlags(), 12, covered), long.windows.morning)

    def test_gap_fill_ignores_half_day_flag(self) -> None:
        generator = ScheduleGenerator(SHORT_DAY)
        coverage = DayCoverage(morning=0, afternoon=1)
        morning_only = ShiftFlags(morning_only=True)
        self.assertEqual(generator._fill_shift(morning_only, 3, coverage), generator.windows.morning)
        self.assertEqual(generator._fill_shift(morning_only, 4, DayCoverage(morning=2)), generator.windows.morning)
        self.assertEqual(generator._fill_shift(morning_only, 3, DayCoverage(morning=2)), generator.windows.afternoon)
        self.assertIsNone(generator._fill_shift(morning_only, 2, coverage))


if __name__ == "__main__":
    unittest.main()
