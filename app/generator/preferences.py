"""Rule-based parsing of the free-text "Needs/Preferences" column.

Text is lower-cased and split into clauses on commas, semicolons and the
standalone word "and". Each clause is scanned on its own:

* day names block the day when the clause is negated ("no", "not", "never",
  "mai", "non"), or make it a required day when the clause says "only"/"solo";
* "long weekend" / "weekend lungo" pulls Friday in with Saturday and Sunday;
* shift words (morning, afternoon, mid, split and their synonyms) attach to the
  days named in the same clause as a per-day override, or to the general flags
  when the clause names no day. Negated clauses never set shift words.

The weekend flags are computed from the whole string. Unrecognized text never
raises; it simply yields an empty (fully flexible) preference set.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set

from days import DAY_ALIASES

CLAUSE_SPLIT = re.compile(r"[,;]|\band\b")
NEGATION = re.compile(r"\b(?:no|not|never|mai|non)\b")
ONLY = re.compile(r"\b(?:only|solo)\b")
LONG = re.compile(r"\b(?:long|lungo)\b")
WEEKEND_WORD = re.compile(r"\bweekends?\b")
MORNING = re.compile(r"\bmornings?\b|(?<![a-z])am\b|\bopening\b|\bmattin[ao]\b")
AFTERNOON = re.compile(r"\bafternoons?\b|(?<![a-z])pm\b|\bevenings?\b|\bclosing\b|\bpomeriggio\b|\bsera\b")
MID_DAY = re.compile(r"\bmid|\bcentral|\bintermedio\b")
SPLIT = re.compile(r"\bsplit|\bspezzat[oi]\b")
LONG_WEEKEND_DAYS = ("Fri", "Sat", "Sun")
WEEKEND_NAMES = ("Sat", "Sun")


def _day_pattern(names: List[str]) -> re.Pattern:
    alternatives = "|".join(sorted((re.escape(name) for name in names), key=len, reverse=True))
    return re.compile(rf"(?<![a-zà-ù])(?:{alternatives})(?![a-zà-ù])")


DAY_PATTERNS: Dict[str, re.Pattern] = {
    day: _day_pattern(short + full) for day, (short, full) in DAY_ALIASES.items()
}
WEEKEND_NAME_PATTERNS: Dict[str, re.Pattern] = {
    day: _day_pattern(DAY_ALIASES[day][1]) for day in WEEKEND_NAMES
}


@dataclass(frozen=True)
class ShiftFlags:
    morning_only: bool = False
    afternoon_only: bool = False
    mid_day_only: bool = False
    split_shift: bool = False

    def any(self) -> bool:
        return self.morning_only or self.afternoon_only or self.mid_day_only or self.split_shift

    def half_day(self) -> bool:
        return self.morning_only or self.afternoon_only

    def merge(self, other: "ShiftFlags") -> "ShiftFlags":
        return ShiftFlags(
            morning_only=self.morning_only or other.morning_only,
            afternoon_only=self.afternoon_only or other.afternoon_only,
            mid_day_only=self.mid_day_only or other.mid_day_only,
            split_shift=self.split_shift or other.split_shift,
        )


NO_FLAGS = ShiftFlags()


@dataclass(frozen=True)
class ParsedPreferences:
    flags: ShiftFlags = NO_FLAGS
    no_weekend: bool = False
    weekend_only: bool = False
    blocked_days: FrozenSet[str] = frozenset()
    required_days: FrozenSet[str] = frozenset()
    overrides: Dict[str, ShiftFlags] = field(default_factory=dict)

    @property
    def morning_only(self) -> bool:
        return self.flags.morning_only

    @property
    def afternoon_only(self) -> bool:
        return self.flags.afternoon_only

    @property
    def mid_day_only(self) -> bool:
        return self.flags.mid_day_only

    @property
    def split_shift(self) -> bool:
        return self.flags.split_shift

    def effective(self, day: str) -> ShiftFlags:
        """Day-specific override when one exists, else the general flags."""
        return self.overrides.get(day, self.flags)

    def has_time_preference(self, day: str) -> bool:
        return self.effective(day).any()

    def allows(self, day: str, weekend: bool) -> bool:
        """Hard constraints only: blocked, required-day mismatch, weekend flags."""
        if day in self.blocked_days:
            return False
        if self.required_days and day not in self.required_days:
            return False
        if self.no_weekend and weekend:
            return False
        if self.weekend_only and not weekend:
            return False
        return True


def split_clauses(text: str) -> List[str]:
    return [clause.strip() for clause in CLAUSE_SPLIT.split(text or "") if clause.strip()]


def days_in(clause: str) -> Set[str]:
    return {day for day, pattern in DAY_PATTERNS.items() if pattern.search(clause)}


def mentions_weekend(text: str) -> bool:
    if WEEKEND_WORD.search(text):
        return True
    return any(pattern.search(text) for pattern in WEEKEND_NAME_PATTERNS.values())


def shift_flags(clause: str) -> ShiftFlags:
    return ShiftFlags(
        morning_only=bool(MORNING.search(clause)),
        afternoon_only=bool(AFTERNOON.search(clause)),
        mid_day_only=bool(MID_DAY.search(clause)),
        split_shift=bool(SPLIT.search(clause)),
    )


def parse_preferences(text: Optional[str]) -> ParsedPreferences:
    lowered = (text or "").lower()
    blocked: Set[str] = set()
    required: Set[str] = set()
    overrides: Dict[str, ShiftFlags] = {}
    general = NO_FLAGS

    for clause in split_clauses(lowered):
        negated = bool(NEGATION.search(clause))
        only = bool(ONLY.search(clause))
        days = days_in(clause)
        if LONG.search(clause) and WEEKEND_WORD.search(clause):
            days.update(LONG_WEEKEND_DAYS)
        flags = shift_flags(clause)
        if not days:
            if not negated:
                general = general.merge(flags)
            continue
        for day in days:
            if negated:
                blocked.add(day)
            elif only:
                required.add(day)
        if flags.any() and not negated:
            for day in days:
                overrides[day] = overrides.get(day, NO_FLAGS).merge(flags)

    weekend = mentions_weekend(lowered)
    negated = bool(NEGATION.search(lowered))
    long_weekend = weekend and bool(LONG.search(lowered))
    no_weekend = negated and weekend and not long_weekend
    weekend_only = (
        (bool(ONLY.search(lowered)) or lowered.strip() in {"weekend", "weekends"})
        and weekend
        and not negated
        and not long_weekend
    )
    return ParsedPreferences(
        flags=general,
        no_weekend=no_weekend,
        weekend_only=weekend_only,
        blocked_days=frozenset(blocked),
        required_days=frozenset(required - blocked),
        overrides=overrides,
    )
