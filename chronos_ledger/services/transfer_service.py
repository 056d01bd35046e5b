"""
Transfer service: moves money between two bancos.

A transfer is not stored on its own. It is a GASTO on the origin
and an INGRESO on the destination, linked by a shared
transferencia_id, plus the two capital updates. All four writes
commit together or not at all.

The invariant this service exists to protect: no transfer may
commit if it would leave the origin with negative capital, even
when several transfers race against the same origin.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from chronos_ledger.config import get_settings
from chronos_ledger.exceptions import (
    InsufficientFundsError,
    LedgerValidationError,
)
from chronos_ledger.logging_config import get_logger
from chronos_ledger.models.audit_log import record_event
from chronos_ledger.models.base import utcnow
from chronos_ledger.models.enums import AuditEvent, MovimientoTipo
from chronos_ledger.models.movimiento import Movimiento
from chronos_ledger.realtime import BANCO, GASTOS, INGRESOS, mark_changed
from chronos_ledger.schemas.transferencia import (
    TransferenciaRequest,
    TransferenciaResponse,
)
from chronos_ledger.services.banco_service import BancoService, lock_banco
from chronos_ledger.services.unit_of_work import run_transaction

logger = get_logger("transfers")

TRANSFER_CATEGORY = "Transferencia"


class TransferService:

    def __init__(self, db: Session, max_retries: int | None = None):
        settings = get_settings()
        self.db = db
        self.max_retries = (
            settings.LEDGER_MAX_RETRIES if max_retries is None else max_retries
        )
        self.backoff_seconds = settings.LEDGER_RETRY_BACKOFF_SECONDS
        self.bancos = BancoService(db, max_retries=self.max_retries)

    def crear_transferencia(
        self, request: TransferenciaRequest
    ) -> TransferenciaResponse:
        """
        Transfer `monto` from origen to destino.

        Both bancos are locked in id order (so two opposite
        transfers cannot deadlock) and re-read from the database
        before the funds check. If a concurrent transfer commits
        first, our write fails the version check, the unit of
        work is retried, and the check runs again against the
        new balance.
        """
        if request.origen_id == request.destino_id:
            raise LedgerValidationError("Cannot transfer to the same banco")

        result = run_transaction(
            self.db,
            lambda: self._transferir(request),
            self.max_retries,
            self.backoff_seconds,
        )
        logger.info(
            "Transfer of %s from %s to %s committed",
            request.monto, request.origen_id, request.destino_id,
            extra={
                "transferencia_id": result.transferencia_id,
                "action": "transfer",
            },
        )
        return result

    def _transferir(self, request: TransferenciaRequest) -> TransferenciaResponse:
        locked = {
            banco_id: lock_banco(self.db, banco_id)
            for banco_id in sorted((request.origen_id, request.destino_id))
        }
        origen = locked[request.origen_id]
        destino = locked[request.destino_id]

        if request.monto > origen.capital_actual:
            raise InsufficientFundsError(
                origen.id, origen.capital_actual, request.monto
            )

        origen.capital_actual = origen.capital_actual - request.monto
        destino.capital_actual = destino.capital_actual + request.monto

        transferencia_id = uuid.uuid4()
        fecha = request.fecha or utcnow()

        salida = Movimiento(
            banco_id=origen.id,
            tipo=MovimientoTipo.GASTO,
            monto=request.monto,
            concepto=request.concepto or f"Transferencia a {destino.nombre}",
            fecha=fecha,
            referencia=f"TRANSFER_TO_{destino.id}",
            categoria=TRANSFER_CATEGORY,
            notas=request.notas,
            transferencia_id=transferencia_id,
        )
        entrada = Movimiento(
            banco_id=destino.id,
            tipo=MovimientoTipo.INGRESO,
            monto=request.monto,
            concepto=request.concepto or f"Transferencia desde {origen.nombre}",
            fecha=fecha,
            referencia=f"TRANSFER_FROM_{origen.id}",
            categoria=TRANSFER_CATEGORY,
            notas=request.notas,
            transferencia_id=transferencia_id,
        )
        self.db.add_all([salida, entrada])
        self.db.flush()

        record_event(
            self.db, AuditEvent.TRANSFERENCIA_COMPLETED,
            transferencia_id=transferencia_id,
            origen_id=origen.id, destino_id=destino.id,
            monto=request.monto,
            salida_id=salida.id, entrada_id=entrada.id,
        )
        mark_changed(self.db, GASTOS, origen.id)
        mark_changed(self.db, INGRESOS, destino.id)
        mark_changed(self.db, BANCO, origen.id)
        mark_changed(self.db, BANCO, destino.id)
        self.db.flush()

        return TransferenciaResponse(
            transferencia_id=transferencia_id,
            salida_id=salida.id,
            entrada_id=entrada.id,
            origen_id=origen.id,
            destino_id=destino.id,
            monto=request.monto,
            concepto=salida.concepto,
            fecha=fecha,
        )

    def get_transferencias(self, banco_id: str) -> list[Movimiento]:
        """Transfer legs touching a banco, newest first."""
        self.bancos.require_banco(banco_id)
        movimientos = self.db.execute(
            select(Movimiento)
            .where(
                Movimiento.banco_id == banco_id,
                Movimiento.transferencia_id.is_not(None),
            )
            .order_by(Movimiento.fecha.desc(), Movimiento.created_at.desc())
        ).scalars().all()
        return list(movimientos)

    def get_movimientos_de_transferencia(
        self, transferencia_id: uuid.UUID
    ) -> list[Movimiento]:
        """Both legs of one transfer, salida first."""
        movimientos = self.db.execute(
            select(Movimiento)
            .where(Movimiento.transferencia_id == transferencia_id)
        ).scalars().all()
        return sorted(movimientos, key=lambda m: m.tipo != MovimientoTipo.GASTO)
