"""
Ledger service: income and expense movements and the totals
derived from them.

This service enforces the rules every movement must obey:
1. A movement and the capital change it causes commit together
2. No operation may leave a banco with negative capital
3. Transfer legs are only written by TransferService and are
   never edited or deleted one at a time

Each mutating method is one unit of work: it commits on success
and rolls back on any error.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from chronos_ledger.config import get_settings
from chronos_ledger.exceptions import (
    InsufficientFundsError,
    LedgerValidationError,
    MovimientoNotFoundError,
)
from chronos_ledger.logging_config import get_logger
from chronos_ledger.models.audit_log import record_event
from chronos_ledger.models.banco import Banco
from chronos_ledger.models.base import utcnow
from chronos_ledger.models.enums import AuditEvent, MovimientoTipo
from chronos_ledger.models.movimiento import Movimiento
from chronos_ledger.realtime import BANCO, GASTOS, INGRESOS, mark_changed
from chronos_ledger.schemas.banco import TotalesBanco
from chronos_ledger.schemas.movimiento import MovimientoCreate, MovimientoUpdate
from chronos_ledger.services.banco_service import BancoService, lock_banco
from chronos_ledger.services.unit_of_work import run_transaction

logger = get_logger("ledger")

COLLECTION_BY_TIPO = {
    MovimientoTipo.INGRESO: INGRESOS,
    MovimientoTipo.GASTO: GASTOS,
}


def apply_to_capital(db: Session, banco: Banco, delta: Decimal, solicitado: Decimal) -> None:
    """
    Add `delta` to a locked banco's capital, refusing to go negative.

    `solicitado` is the amount reported in the error when funds
    are insufficient.
    """
    nuevo = banco.capital_actual + delta
    if nuevo < 0:
        raise InsufficientFundsError(
            banco.id, banco.capital_actual, solicitado
        )
    banco.capital_actual = nuevo
    mark_changed(db, BANCO, banco.id)


class LedgerService:
    """
    All movement operations pass through this service.

    The service takes a database session as a constructor
    argument and commits through run_transaction, so each
    public mutating call is atomic on its own.
    """

    def __init__(self, db: Session, max_retries: int | None = None):
        settings = get_settings()
        self.db = db
        self.max_retries = (
            settings.LEDGER_MAX_RETRIES if max_retries is None else max_retries
        )
        self.backoff_seconds = settings.LEDGER_RETRY_BACKOFF_SECONDS
        self.bancos = BancoService(db, max_retries=self.max_retries)

    def _run(self, work):
        return run_transaction(
            self.db, work, self.max_retries, self.backoff_seconds
        )

    # --- Mutations ---

    def crear_ingreso(self, banco_id: str, request: MovimientoCreate) -> Movimiento:
        """Record income and credit it to the banco's capital."""
        return self._crear(banco_id, MovimientoTipo.INGRESO, request)

    def crear_gasto(self, banco_id: str, request: MovimientoCreate) -> Movimiento:
        """
        Record an expense and debit it from the banco's capital.

        Raises InsufficientFundsError if the banco cannot cover it.
        """
        return self._crear(banco_id, MovimientoTipo.GASTO, request)

    def _crear(
        self, banco_id: str, tipo: MovimientoTipo, request: MovimientoCreate
    ) -> Movimiento:

        def work() -> Movimiento:
            banco = lock_banco(self.db, banco_id)
            movimiento = Movimiento(
                banco_id=banco.id,
                tipo=tipo,
                monto=request.monto,
                concepto=request.concepto,
                fecha=request.fecha or utcnow(),
                referencia=request.referencia,
                categoria=request.categoria,
                notas=request.notas,
            )
            apply_to_capital(
                self.db, banco, movimiento.signed_monto, request.monto
            )
            self.db.add(movimiento)
            self.db.flush()
            record_event(
                self.db, AuditEvent.MOVIMIENTO_CREATED,
                movimiento_id=movimiento.id, banco_id=banco.id,
                tipo=tipo.value, monto=request.monto,
            )
            mark_changed(self.db, COLLECTION_BY_TIPO[tipo], banco.id)
            self.db.flush()
            return movimiento

        movimiento = self._run(work)
        logger.info(
            "%s recorded", tipo.value,
            extra={
                "banco_id": banco_id,
                "movimiento_id": movimiento.id,
                "action": "create",
            },
        )
        return movimiento

    def _lock_editable(self, movimiento_id: str) -> tuple[Movimiento, Banco]:
        """
        Lock the movement's banco, then read the movement again.

        The second read happens under the banco lock, so an edit or
        delete committed after the first read is seen here instead
        of being applied on top of a stale monto.
        """
        found = self.db.get(Movimiento, movimiento_id, populate_existing=True)
        if found is None:
            raise MovimientoNotFoundError(movimiento_id)
        banco = lock_banco(self.db, found.banco_id)

        movimiento = self.db.get(
            Movimiento, movimiento_id,
            populate_existing=True, with_for_update=True,
        )
        if movimiento is None:
            raise MovimientoNotFoundError(movimiento_id)
        if movimiento.transferencia_id is not None:
            raise LedgerValidationError(
                f"Movimiento '{movimiento_id}' is part of transfer "
                f"{movimiento.transferencia_id} and cannot be changed alone"
            )
        return movimiento, banco

    def actualizar_movimiento(
        self, movimiento_id: str, request: MovimientoUpdate
    ) -> Movimiento:
        """
        Overwrite the fields set in `request`.

        A new monto moves the banco's capital by the difference,
        under the same non-negative rule as a new movement.
        """

        def work() -> Movimiento:
            movimiento, banco = self._lock_editable(movimiento_id)

            changes = request.model_dump(exclude_unset=True)
            if changes.get("monto") is not None and changes["monto"] != movimiento.monto:
                old_effect = movimiento.signed_monto
                movimiento.monto = changes["monto"]
                apply_to_capital(
                    self.db, banco,
                    movimiento.signed_monto - old_effect,
                    changes["monto"],
                )
            for field in ("concepto", "fecha", "referencia", "categoria", "notas"):
                if field in changes:
                    if field in ("concepto", "fecha") and changes[field] is None:
                        raise LedgerValidationError(f"{field} cannot be empty")
                    setattr(movimiento, field, changes[field])

            record_event(
                self.db, AuditEvent.MOVIMIENTO_UPDATED,
                movimiento_id=movimiento.id, banco_id=banco.id,
                fields=sorted(changes),
            )
            mark_changed(
                self.db, COLLECTION_BY_TIPO[movimiento.tipo], banco.id
            )
            self.db.flush()
            return movimiento

        return self._run(work)

    def eliminar_movimiento(self, movimiento_id: str) -> None:
        """
        Delete a movement and undo its effect on capital.

        Deleting income the banco has already spent is refused
        with InsufficientFundsError.
        """

        def work() -> None:
            movimiento, banco = self._lock_editable(movimiento_id)
            apply_to_capital(
                self.db, banco, -movimiento.signed_monto, movimiento.monto
            )
            record_event(
                self.db, AuditEvent.MOVIMIENTO_DELETED,
                movimiento_id=movimiento.id, banco_id=banco.id,
                tipo=movimiento.tipo.value, monto=movimiento.monto,
            )
            mark_changed(
                self.db, COLLECTION_BY_TIPO[movimiento.tipo], banco.id
            )
            self.db.delete(movimiento)
            self.db.flush()

        self._run(work)
        logger.info(
            "Movimiento deleted",
            extra={"movimiento_id": movimiento_id, "action": "delete"},
        )

    # --- Queries ---

    def get_movimiento(self, movimiento_id: str) -> Movimiento | None:
        return self.db.get(Movimiento, movimiento_id)

    def get_ingresos(self, banco_id: str, limit: int | None = None) -> list[Movimiento]:
        """Income of a banco, newest first."""
        return self.get_movimientos_bancarios(
            banco_id, tipo=MovimientoTipo.INGRESO, limit=limit
        )

    def get_gastos(self, banco_id: str, limit: int | None = None) -> list[Movimiento]:
        """Expenses of a banco, newest first."""
        return self.get_movimientos_bancarios(
            banco_id, tipo=MovimientoTipo.GASTO, limit=limit
        )

    def get_movimientos_bancarios(
        self,
        banco_id: str,
        tipo: MovimientoTipo | None = None,
        fecha_inicio: datetime | None = None,
        fecha_fin: datetime | None = None,
        monto_min: Decimal | None = None,
        monto_max: Decimal | None = None,
        limit: int | None = None,
    ) -> list[Movimiento]:
        """Movements of a banco matching every given filter, newest first."""
        self.bancos.require_banco(banco_id)

        stmt = select(Movimiento).where(Movimiento.banco_id == banco_id)
        if tipo is not None:
            stmt = stmt.where(Movimiento.tipo == tipo)
        if fecha_inicio is not None:
            stmt = stmt.where(Movimiento.fecha >= fecha_inicio)
        if fecha_fin is not None:
            stmt = stmt.where(Movimiento.fecha <= fecha_fin)
        if monto_min is not None:
            stmt = stmt.where(Movimiento.monto >= monto_min)
        if monto_max is not None:
            stmt = stmt.where(Movimiento.monto <= monto_max)
        stmt = stmt.order_by(Movimiento.fecha.desc(), Movimiento.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)

        return list(self.db.execute(stmt).scalars().all())

    def calcular_totales_banco(self, banco_id: str) -> TotalesBanco:
        """
        Totals of a banco's movements.

        balance = total_ingresos - total_gastos. A banco without
        movements yields all zeros.
        """
        self.bancos.require_banco(banco_id)

        rows = self.db.execute(
            select(
                Movimiento.tipo,
                func.count(Movimiento.id),
                func.coalesce(func.sum(Movimiento.monto), 0),
            )
            .where(Movimiento.banco_id == banco_id)
            .group_by(Movimiento.tipo)
        ).all()

        sums = {tipo: (count, Decimal(str(total))) for tipo, count, total in rows}
        cantidad_ingresos, total_ingresos = sums.get(
            MovimientoTipo.INGRESO, (0, Decimal("0"))
        )
        cantidad_gastos, total_gastos = sums.get(
            MovimientoTipo.GASTO, (0, Decimal("0"))
        )
        total_gastos = abs(total_gastos)

        return TotalesBanco(
            total_ingresos=total_ingresos,
            total_gastos=total_gastos,
            balance=total_ingresos - total_gastos,
            cantidad_ingresos=cantidad_ingresos,
            cantidad_gastos=cantidad_gastos,
        )

    def check_integrity(self) -> dict:
        """
        Compare every banco's stored capital with its movements.

        Returns {"is_balanced": bool, "discrepancies": [...]}.
        A discrepancy means capital was written without the
        movement that explains it.
        """
        discrepancies = []
        for banco in self.bancos.get_todos_bancos(include_inactive=True):
            totales = self.calcular_totales_banco(banco.id)
            capital = Decimal(str(banco.capital_actual))
            if capital != totales.balance:
                discrepancies.append({
                    "banco_id": banco.id,
                    "capital_actual": capital,
                    "balance_movimientos": totales.balance,
                })
        return {
            "is_balanced": not discrepancies,
            "discrepancies": discrepancies,
        }
