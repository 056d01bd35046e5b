"""
Shared enumerations for database models.

Mapped to database enums so only valid values can be stored.
"""

import enum


class MovimientoTipo(str, enum.Enum):
    """Direction of a movement relative to its banco."""
    INGRESO = "INGRESO"
    GASTO = "GASTO"


class AuditEvent(str, enum.Enum):
    BANCO_CREATED = "BANCO_CREATED"
    BANCO_UPDATED = "BANCO_UPDATED"
    BANCO_DEACTIVATED = "BANCO_DEACTIVATED"
    MOVIMIENTO_CREATED = "MOVIMIENTO_CREATED"
    MOVIMIENTO_UPDATED = "MOVIMIENTO_UPDATED"
    MOVIMIENTO_DELETED = "MOVIMIENTO_DELETED"
    TRANSFERENCIA_COMPLETED = "TRANSFERENCIA_COMPLETED"
