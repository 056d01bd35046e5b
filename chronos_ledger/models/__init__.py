"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from chronos_ledger.models.base import Base
from chronos_ledger.models.enums import MovimientoTipo, AuditEvent
from chronos_ledger.models.audit_log import AuditLog
from chronos_ledger.models.banco import Banco
from chronos_ledger.models.movimiento import Movimiento

__all__ = [
    "Base",
    "MovimientoTipo",
    "AuditEvent",
    "AuditLog",
    "Banco",
    "Movimiento",
]
