"""
Movimiento model.

One income (INGRESO) or expense (GASTO) against a banco.
Amounts are always stored positive; the tipo says which way
the money moved.

The two legs of a transfer share a transferencia_id. That
pairing is the only record of the transfer, so transfer legs
are never edited or deleted individually.

Like Banco, a Movimiento carries a version column, so an edit or
delete issued from a stale read fails instead of applying twice.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Integer, Numeric, ForeignKey,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chronos_ledger.models.base import Base, utcnow
from chronos_ledger.models.enums import MovimientoTipo


def new_id() -> str:
    return str(uuid.uuid4())


class Movimiento(Base):
    __tablename__ = "movimientos"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_id
    )
    banco_id: Mapped[str] = mapped_column(
        ForeignKey("bancos.id"), nullable=False, index=True
    )
    tipo: Mapped[MovimientoTipo] = mapped_column(
        SAEnum(
            MovimientoTipo,
            name="movimiento_tipo_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    monto: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    concepto: Mapped[str] = mapped_column(String(200), nullable=False)
    fecha: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )
    referencia: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    categoria: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    notas: Mapped[str | None] = mapped_column(String(500), nullable=True)
    transferencia_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    banco: Mapped["Banco"] = relationship(back_populates="movimientos")

    __mapper_args__ = {"version_id_col": version}

    @property
    def signed_monto(self) -> Decimal:
        """Effect of this movement on its banco's capital."""
        if self.tipo == MovimientoTipo.GASTO:
            return -self.monto
        return self.monto

    def __repr__(self) -> str:
        return (
            f"<Movimiento {self.tipo.value} {self.monto} "
            f"banco={self.banco_id}>"
        )
