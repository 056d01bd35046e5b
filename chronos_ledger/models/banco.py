"""
Banco model.

A named bank account or cash vault with a running capital.
Capital is stored, not derived, so it must only ever change in
the same transaction that writes the movement explaining it.

The version column turns every capital write into a
compare-and-set: an UPDATE issued from a stale read matches no
row and SQLAlchemy raises StaleDataError instead of silently
overwriting a concurrent transfer.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chronos_ledger.models.base import Base, utcnow


class Banco(Base):
    __tablename__ = "bancos"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    nombre: Mapped[str] = mapped_column(String(100), nullable=False)
    capital_actual: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    activo: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    movimientos: Mapped[list["Movimiento"]] = relationship(
        back_populates="banco"
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Banco {self.id} capital={self.capital_actual}>"
