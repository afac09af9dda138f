from __future__ import annotations

import random
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from .engine import ScheduleGenerator
from database import record_audit_log
from validation import validate_schedule


def generate_schedule(
    records: Iterable[Mapping[str, Any]],
    settings: Optional[Mapping[str, Any]] = None,
    *,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    session_factory: Optional[Callable] = None,
    actor: str = "system",
    validate: bool = True,
) -> Dict[str, Any]:
    """Run the generator over raw employee records and return entries plus reports."""
    if records is None:
        raise ValueError("records are required.")
    records = list(records)
    generator = ScheduleGenerator(settings, rng=rng, seed=seed)
    summary = generator.generate(records)
    entries = summary.pop("entries")
    validation_report = (
        validate_schedule(entries, generator.settings) if validate else {"checks": [], "issues": [], "warnings": []}
    )
    summary["seed"] = seed
    summary["settings"] = generator.settings
    if session_factory is not None:
        with session_factory() as session:
            record_audit_log(
                session,
                actor or "system",
                "schedule_generate",
                target_type="Schedule",
                payload={
                    "employees": len(entries),
                    "cells_filled": summary["cells_filled"],
                    "total_hours": summary["total_hours"],
                    "seed": seed,
                },
            )
    return {"entries": entries, "summary": summary, "validation": validation_report}
