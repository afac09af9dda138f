from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker


DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)
SCHEDULER_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'scheduler.db').as_posix()}"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _load_json_object(raw: Optional[str]) -> Dict[str, Any]:
    try:
        value = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


class Base(DeclarativeBase):
    """Metadata for the store settings and audit tables."""

    pass


class StoreSettingsRow(Base):
    __tablename__ = "store_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    settings_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    edited_by: Mapped[str] = mapped_column(String(60), nullable=False, default="system")
    edited_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (UniqueConstraint("name", name="uq_store_settings_name"),)

    def settings_dict(self) -> Dict[str, Any]:
        return _load_json_object(self.settings_json)


class AuditLog(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(60), nullable=False)
    action: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Schedule")
    target_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    details_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def payload_dict(self) -> Dict[str, Any]:
        return _load_json_object(self.details_json)


engine = create_engine(SCHEDULER_DATABASE_URL, echo=False, future=True)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)


def init_database() -> None:
    Base.metadata.create_all(engine)


def upsert_store_settings(session, name: str, settings: Dict[str, Any], *, edited_by: str = "system") -> StoreSettingsRow:
    """Insert or overwrite the named settings row and make it the most recently edited one."""
    row = session.scalars(select(StoreSettingsRow).where(StoreSettingsRow.name == name)).first()
    if row is None:
        row = StoreSettingsRow(name=name)
        session.add(row)
    row.settings_json = json.dumps(settings if isinstance(settings, dict) else {})
    row.edited_by = edited_by
    row.edited_at = _utcnow()
    session.commit()
    session.refresh(row)
    return row


def get_active_store_settings(session) -> Optional[StoreSettingsRow]:
    stmt = select(StoreSettingsRow).order_by(StoreSettingsRow.edited_at.desc(), StoreSettingsRow.id.desc())
    return session.scalars(stmt).first()


def record_audit_log(
    session,
    user_id: str,
    action: str,
    target_type: str = "Schedule",
    target_id: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    event = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details_json=json.dumps(payload or {}, default=str),
    )
    session.add(event)
    session.commit()
    return event


def list_audit_log(session, *, action: Optional[str] = None, limit: int = 100) -> List[AuditLog]:
    stmt = select(AuditLog)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    return list(session.scalars(stmt.order_by(AuditLog.id.desc()).limit(limit)))
