"""
Pydantic schemas for transfers between bancos.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from chronos_ledger.schemas.movimiento import _not_in_future


class TransferenciaRequest(BaseModel):
    origen_id: str = Field(min_length=1, max_length=50)
    destino_id: str = Field(min_length=1, max_length=50)
    monto: Decimal = Field(gt=0, max_digits=17, decimal_places=2)
    concepto: str | None = Field(default=None, min_length=3, max_length=200)
    fecha: datetime | None = None
    notas: str | None = Field(default=None, max_length=500)

    @field_validator("fecha")
    @classmethod
    def fecha_not_in_future(cls, v: datetime | None) -> datetime | None:
        return _not_in_future(v)

    @model_validator(mode="after")
    def different_bancos(self) -> "TransferenciaRequest":
        if self.origen_id == self.destino_id:
            raise ValueError("Cannot transfer to the same banco")
        return self


class TransferenciaResponse(BaseModel):
    """Result of a committed transfer."""
    transferencia_id: uuid.UUID
    salida_id: str
    entrada_id: str
    origen_id: str
    destino_id: str
    monto: Decimal
    concepto: str
    fecha: datetime
