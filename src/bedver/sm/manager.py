"""Transition ledger backed by SQLite via SQLAlchemy."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Engine, String, Text, UniqueConstraint, create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column


class Base(DeclarativeBase):
    """Declarative base for SQLite models."""


class TransitionRecord(Base):
    """Append-only record of one state-transition request issued for a bed."""

    __tablename__ = "transition_record"
    __table_args__ = (UniqueConstraint("session_id", "bed_id", name="uq_transition_session_bed"),)

    record_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    robot_id: Mapped[str] = mapped_column(String(100), nullable=False)
    bed_id: Mapped[str] = mapped_column(String(100), nullable=False)
    labware_barcode: Mapped[str] = mapped_column(String(100), nullable=False)
    target_state: Mapped[str] = mapped_column(String(64), nullable=False)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="issued")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )


class TransitionLedger:
    """Gateway guaranteeing one transition request per bed per confirmed session."""

    def __init__(self, db_url: str) -> None:
        self._engine: Engine = create_engine(db_url, future=True)
        Base.metadata.create_all(self._engine)

    def claim(
        self,
        *,
        record_id: str,
        session_id: str,
        robot_id: str,
        bed_id: str,
        labware_barcode: str,
        target_state: str,
        actor: str,
    ) -> bool:
        """Reserve the (session, bed) slot before issuing; False when already taken."""
        with Session(self._engine) as session:
            session.add(
                TransitionRecord(
                    record_id=record_id,
                    session_id=session_id,
                    robot_id=robot_id,
                    bed_id=bed_id,
                    labware_barcode=labware_barcode,
                    target_state=target_state,
                    actor=actor,
                    status="issued",
                )
            )
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                return False
        return True

    def resolve(self, record_id: str, *, status: str, notes: str = "") -> None:
        """Record the final outcome of a claimed transition."""
        with Session(self._engine) as session:
            record = session.get(TransitionRecord, record_id)
            if record is None:
                raise ValueError(f"Transition record '{record_id}' not found")
            record.status = status
            record.notes = notes
            record.updated_at = datetime.now(UTC)
            session.commit()

    def already_issued(self, session_id: str, bed_id: str) -> bool:
        with Session(self._engine) as session:
            row = session.execute(
                select(TransitionRecord.record_id).where(
                    TransitionRecord.session_id == session_id,
                    TransitionRecord.bed_id == bed_id,
                )
            ).first()
            return row is not None

    def list_transitions(self, session_id: str) -> list[dict[str, Any]]:
        """Return every record of one session ordered by creation time."""
        with Session(self._engine) as session:
            rows = session.execute(
                select(TransitionRecord)
                .where(TransitionRecord.session_id == session_id)
                .order_by(TransitionRecord.created_at)
            ).scalars()
            return [
                {
                    "record_id": row.record_id,
                    "session_id": row.session_id,
                    "robot_id": row.robot_id,
                    "bed_id": row.bed_id,
                    "labware_barcode": row.labware_barcode,
                    "target_state": row.target_state,
                    "actor": row.actor,
                    "status": row.status,
                    "notes": row.notes,
                    "created_at": row.created_at.isoformat(),
                }
                for row in rows
            ]
