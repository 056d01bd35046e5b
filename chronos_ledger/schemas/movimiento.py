"""
Pydantic schemas for income and expense movements.

Amounts carry at most two decimals, matching the precision
the business books in. Dates may not lie in the future.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from chronos_ledger.models.base import utcnow
from chronos_ledger.models.enums import MovimientoTipo


def _to_naive_utc(v: datetime | None) -> datetime | None:
    if v is not None and v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


def _not_in_future(v: datetime | None) -> datetime | None:
    v = _to_naive_utc(v)
    if v is not None and v > utcnow():
        raise ValueError("fecha cannot be in the future")
    return v


def _strip_concepto(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if len(v) < 3:
        raise ValueError("concepto must have at least 3 characters")
    return v


class MovimientoCreate(BaseModel):
    monto: Decimal = Field(gt=0, max_digits=17, decimal_places=2)
    concepto: str = Field(min_length=3, max_length=200)
    fecha: datetime | None = None
    referencia: str | None = Field(default=None, max_length=100)
    categoria: str | None = Field(default=None, max_length=50)
    notas: str | None = Field(default=None, max_length=500)

    @field_validator("concepto")
    @classmethod
    def strip_concepto(cls, v: str) -> str:
        return _strip_concepto(v)

    @field_validator("fecha")
    @classmethod
    def fecha_not_in_future(cls, v: datetime | None) -> datetime | None:
        return _not_in_future(v)


class MovimientoUpdate(BaseModel):
    """Partial update; only the fields that are set are written."""
    monto: Decimal | None = Field(
        default=None, gt=0, max_digits=17, decimal_places=2
    )
    concepto: str | None = Field(default=None, min_length=3, max_length=200)
    fecha: datetime | None = None
    referencia: str | None = Field(default=None, max_length=100)
    categoria: str | None = Field(default=None, max_length=50)
    notas: str | None = Field(default=None, max_length=500)

    @field_validator("concepto")
    @classmethod
    def strip_concepto(cls, v: str | None) -> str | None:
        return _strip_concepto(v)

    @field_validator("fecha")
    @classmethod
    def fecha_not_in_future(cls, v: datetime | None) -> datetime | None:
        return _not_in_future(v)


class MovimientoResponse(BaseModel):
    id: str
    banco_id: str
    tipo: MovimientoTipo
    monto: Decimal
    concepto: str
    fecha: datetime
    referencia: str | None
    categoria: str | None
    notas: str | None
    transferencia_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
