from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional, Sequence

from days import WEEKDAY_TOKENS
from .cells import is_closed_label

# Current week first, then one, two and three weeks back.
HISTORY_WEIGHTS = (1.0, 0.5, 0.3, 0.2)
MAX_DAY_WEIGHT = sum(HISTORY_WEIGHTS)
REST_DAY_RATIO = 0.7
REST_DAY_THRESHOLD = round(MAX_DAY_WEIGHT * REST_DAY_RATIO, 6)


@dataclass(frozen=True)
class HistoryAnalysis:
    most_common: Optional[str] = None
    preferred_by_day: Dict[str, str] = field(default_factory=dict)
    rest_days: FrozenSet[str] = frozenset()
    absence_scores: Dict[str, float] = field(default_factory=dict)

    def preferred_for(self, day: str) -> Optional[str]:
        return self.preferred_by_day.get(day) or self.most_common


def _top(table: Dict[str, float]) -> Optional[str]:
    # max() keeps the first maximal key, so ties go to the earliest insertion.
    if not table:
        return None
    return max(table.items(), key=lambda item: item[1])[0]


def analyze_history(weeks: Sequence[Mapping[str, Optional[str]]]) -> HistoryAnalysis:
    """Weight up to four weeks of day cells into shift preferences and rest days."""
    weeks = list(weeks)[: len(HISTORY_WEIGHTS)]
    has_data = any((week.get(day) or "").strip() for week in weeks for day in WEEKDAY_TOKENS)
    if not has_data:
        return HistoryAnalysis()

    day_tables: Dict[str, Dict[str, float]] = {}
    global_table: Dict[str, float] = {}
    absence: Dict[str, float] = {}
    for day in WEEKDAY_TOKENS:
        absence[day] = 0.0
        for weight, week in zip(HISTORY_WEIGHTS, weeks):
            value = (week.get(day) or "").strip()
            if not value or is_closed_label(value):
                absence[day] += weight
                continue
            if "-" in value:
                table = day_tables.setdefault(day, {})
                table[value] = table.get(value, 0.0) + weight
                global_table[value] = global_table.get(value, 0.0) + weight

    scores = {day: round(score, 6) for day, score in absence.items()}
    preferred = {day: _top(table) for day, table in day_tables.items() if table}
    return HistoryAnalysis(
        most_common=_top(global_table),
        preferred_by_day=preferred,
        rest_days=frozenset(day for day, score in scores.items() if score >= REST_DAY_THRESHOLD),
        absence_scores=scores,
    )
