from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from data_exchange import export_schedule_csv, import_employees_csv, parse_employees_csv  # noqa: E402
from database import SessionLocal, init_database  # noqa: E402
from generator.api import generate_schedule  # noqa: E402
from store_settings import ensure_default_settings, load_active_settings  # noqa: E402

SAMPLE_ROSTER = """Name;Contract Hours;Needs/Preferences;Mon;Tue;Wed;Thu;Fri;Sat;Sun;Mon W-1;Tue W-1;Wed W-1;Thu W-1;Fri W-1;Sat W-1;Sun W-1
Anna;40;morning only;;;;;;;;09:00 - 15:00;09:00 - 15:00;09:00 - 15:00;;09:00 - 15:00;;
Marco;38;no weekends;;;;;;;;;;;;;;
Giulia;24;weekends only, long weekend;;;;;;;;;;;;;;
Luca;30;split shift;;;;FER;;;;;;;;;;
Sara;20;afternoons, never Monday;;;;;;;;;;;;;;
Paolo;36;;;;;;;;;;;;;;;
"""


def _load_records(csv_path: Optional[str]) -> List[Dict[str, str]]:
    if csv_path:
        return import_employees_csv(Path(csv_path))
    return parse_employees_csv(SAMPLE_ROSTER)


def run_workflow(csv_path: Optional[str], *, seed: Optional[int], actor: str, output: Optional[str]) -> int:
    ensure_default_settings(SessionLocal)
    settings = load_active_settings(SessionLocal)
    records = _load_records(csv_path)
    print(f"[workflow] Loaded {len(records)} employee(s) from {csv_path or 'built-in sample roster'}.")

    result = generate_schedule(records, settings, seed=seed, session_factory=SessionLocal, actor=actor)
    summary = result["summary"]
    print(
        f"[workflow] Filled {summary['cells_filled']} cells, {summary['total_hours']}h total "
        f"(closed day: {summary['closed_day'] or 'none'})."
    )
    for warning in summary.get("warnings", []):
        print(f"[workflow][warning] {warning}")

    validation = result["validation"]
    for issue in validation["issues"]:
        print(f"[workflow][validation-error] {issue['message']}")

    target = export_schedule_csv(result["entries"], Path(output) if output else None)
    print(f"[workflow] Exported schedule -> {target}")
    for entry in result["entries"]:
        print(f"[workflow] {entry.name:<12} {entry.assigned_hours:>3}h / {entry.contract_hours}h")
    return 1 if validation["issues"] else 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Run an end-to-end smoke test that imports employees, ensures store settings exist, "
            "generates a week, validates it and exports the CSV."
        )
    )
    parser.add_argument("--csv", help="Employee CSV to import. Defaults to a built-in sample roster.")
    parser.add_argument("--seed", type=int, help="Seed for the employee shuffle (reproducible runs).")
    parser.add_argument("--actor", default="workflow_smoke", help="Audit trail actor name.")
    parser.add_argument("--output", help="Where to write the exported CSV. Defaults to data/exports/.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    init_database()
    args = parse_args(argv)
    try:
        code = run_workflow(args.csv, seed=args.seed, actor=args.actor, output=args.output)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"[workflow] {exc}") from exc
    raise SystemExit(code)


if __name__ == "__main__":
    main()
