"""
Audit log model.

Records ledger events for traceability. Rows are written in the
same transaction as the change they describe, so a rolled-back
transfer leaves no audit trace and a committed one always does.
"""

import json
from datetime import datetime

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from chronos_ledger.models.base import Base, utcnow
from chronos_ledger.models.enums import AuditEvent


class AuditLog(Base):
    """
    Immutable record of a ledger event.

    Append-only: an audit record is never updated or deleted.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )


def record_event(db, event_type: AuditEvent, **details) -> AuditLog:
    """Add an audit row to the session's current transaction."""
    entry = AuditLog(
        event_type=event_type.value,
        details=json.dumps(details, default=str, sort_keys=True),
    )
    db.add(entry)
    return entry
