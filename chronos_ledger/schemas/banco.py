"""
Pydantic schemas for banco operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class BancoCreate(BaseModel):
    """
    Request to open a new banco.

    capital_actual is accepted so that callers migrating old
    records can send it, but it is ignored: every banco starts
    at zero and receives capital only through movements.
    """
    id: str | None = Field(
        default=None, min_length=2, max_length=50, pattern=r"^[a-z0-9_]+$"
    )
    nombre: str = Field(min_length=1, max_length=100)
    capital_actual: Decimal | None = None


class BancoUpdate(BaseModel):
    nombre: str = Field(min_length=1, max_length=100)


class BancoResponse(BaseModel):
    id: str
    nombre: str
    capital_actual: Decimal
    activo: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SaldoTotalResponse(BaseModel):
    saldo_total: Decimal
    cantidad_bancos: int


class BancoNombreResponse(BaseModel):
    id: str
    nombre: str


class TotalesBanco(BaseModel):
    """Aggregate of a banco's movements."""
    total_ingresos: Decimal = Decimal("0")
    total_gastos: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    cantidad_ingresos: int = 0
    cantidad_gastos: int = 0
