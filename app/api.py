"""Lightweight FastAPI wrapper around the shift generator.

The HTTP surface is thin glue: it turns JSON or CSV payloads into employee
records, runs the generator and hands back the filled weekly grid.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse

# Ensure legacy absolute imports (e.g., "import database") still resolve.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from database import SessionLocal, init_database, record_audit_log  # noqa: E402
from data_exchange import parse_employees_csv, schedule_to_csv  # noqa: E402
from generator.api import generate_schedule  # noqa: E402
from generator.entries import ScheduleEntry, contract_status, restore_entry  # noqa: E402
from store_settings import ensure_default_settings, load_active_settings, save_settings  # noqa: E402


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    ensure_default_settings(SessionLocal)
    yield


app = FastAPI(title="Shift Scheduler API", version="0.1", lifespan=lifespan)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _records_from_payload(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    if isinstance(payload.get("csv"), str):
        try:
            return parse_employees_csv(payload["csv"])
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    records = payload.get("records")
    if not isinstance(records, list) or not all(isinstance(item, dict) for item in records):
        raise HTTPException(status_code=400, detail="Provide 'records' (list of objects) or 'csv' text.")
    return records


def _parse_seed(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="seed must be an integer")


def _serialize_entry(entry: ScheduleEntry) -> Dict[str, Any]:
    return {
        "name": entry.name,
        "contract_hours": entry.contract_hours,
        "preferences": entry.employee.preferences,
        "assigned_hours": entry.assigned_hours,
        "status": contract_status(entry),
        "shifts": entry.shift_labels(),
    }


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/settings")
def read_settings(db=Depends(get_db)) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder(load_active_settings(db)))


@app.put("/api/v1/settings")
def update_settings(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    actor = str(payload.pop("actor", "") or "api")
    current = load_active_settings(db)
    current.update(payload)
    saved = save_settings(db, current, edited_by=actor)
    record_audit_log(db, actor, "settings_update", target_type="Settings", payload=saved)
    return JSONResponse(content=jsonable_encoder(saved))


@app.post("/api/v1/schedule/generate")
def generate(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    records = _records_from_payload(payload)
    seed = _parse_seed(payload.get("seed"))
    settings = payload.get("settings") if isinstance(payload.get("settings"), dict) else load_active_settings(db)
    result = generate_schedule(records, settings, seed=seed)
    record_audit_log(
        db,
        str(payload.get("actor") or "api"),
        "schedule_generate",
        payload={
            "employees": len(result["entries"]),
            "cells_filled": result["summary"]["cells_filled"],
            "seed": seed,
        },
    )
    return JSONResponse(
        content=jsonable_encoder(
            {
                "rows": [_serialize_entry(entry) for entry in result["entries"]],
                "summary": result["summary"],
                "validation": result["validation"],
            }
        )
    )


@app.post("/api/v1/schedule/export")
def export(payload: Dict[str, Any], db=Depends(get_db)) -> PlainTextResponse:
    records = _records_from_payload(payload)
    delimiter = payload.get("delimiter") or ";"
    if delimiter not in {";", ","}:
        raise HTTPException(status_code=400, detail="delimiter must be ';' or ','")
    entries = [restore_entry(record) for record in records]
    record_audit_log(db, str(payload.get("actor") or "api"), "schedule_export", payload={"rows": len(entries)})
    return PlainTextResponse(schedule_to_csv(entries, delimiter=delimiter), media_type="text/csv")
