"""
Banco service: opens, renames and deactivates bancos and
answers balance queries across them.

Capital is never written here except to initialize it to zero.
Movements and transfers are the only way money enters or
leaves a banco.
"""

import uuid
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chronos_ledger.config import get_settings
from chronos_ledger.exceptions import (
    AccountNotFoundError,
    LedgerValidationError,
)
from chronos_ledger.logging_config import get_logger
from chronos_ledger.models.audit_log import record_event
from chronos_ledger.models.banco import Banco
from chronos_ledger.models.enums import AuditEvent
from chronos_ledger.realtime import BANCO, mark_changed
from chronos_ledger.schemas.banco import BancoCreate, BancoUpdate
from chronos_ledger.services.unit_of_work import run_transaction

logger = get_logger("bancos")


# The bancos the business operates with, in display order
BANCO_NAMES = {
    "almacen_monte": "Almacén Monte",
    "boveda_monte": "Bóveda Monte",
    "boveda_usa": "Bóveda USA",
    "azteca": "Azteca",
    "utilidades": "Utilidades",
    "flete_sur": "Flete Sur",
    "leftie": "Leftie",
    "profit": "Profit",
}


def get_banco_name(banco_id: str) -> str:
    """Display name for a banco id; unknown ids come back unchanged."""
    return BANCO_NAMES.get(banco_id, banco_id)


def get_all_bancos_ids() -> list[str]:
    return list(BANCO_NAMES)


def lock_banco(db: Session, banco_id: str) -> Banco:
    """
    Load an active banco for writing inside the current transaction.

    populate_existing discards whatever the identity map holds so
    the caller always checks funds against the committed row, and
    with_for_update takes a row lock on databases that have them.
    """
    banco = db.get(
        Banco, banco_id, populate_existing=True, with_for_update=True
    )
    if banco is None:
        raise AccountNotFoundError(banco_id)
    if not banco.activo:
        raise LedgerValidationError(f"Banco '{banco_id}' is not active")
    return banco


class BancoService:

    def __init__(self, db: Session, max_retries: int | None = None):
        settings = get_settings()
        self.db = db
        self.max_retries = (
            settings.LEDGER_MAX_RETRIES if max_retries is None else max_retries
        )
        self.backoff_seconds = settings.LEDGER_RETRY_BACKOFF_SECONDS

    def _run(self, work):
        return run_transaction(
            self.db, work, self.max_retries, self.backoff_seconds
        )

    # --- Queries ---

    def get_banco(self, banco_id: str) -> Banco | None:
        """Return the banco, or None if it does not exist."""
        return self.db.get(Banco, banco_id)

    def require_banco(self, banco_id: str) -> Banco:
        banco = self.get_banco(banco_id)
        if banco is None:
            raise AccountNotFoundError(banco_id)
        return banco

    def get_todos_bancos(self, include_inactive: bool = False) -> list[Banco]:
        stmt = select(Banco).order_by(Banco.id)
        if not include_inactive:
            stmt = stmt.where(Banco.activo.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def get_saldo_total_bancos(self, include_inactive: bool = False) -> Decimal:
        """
        Sum of capital over the same bancos get_todos_bancos returns.

        A banco with no recorded capital contributes zero instead of
        failing the whole sum.
        """
        stmt = select(
            func.coalesce(func.sum(func.coalesce(Banco.capital_actual, 0)), 0)
        )
        if not include_inactive:
            stmt = stmt.where(Banco.activo.is_(True))
        total = self.db.execute(stmt).scalar()
        return Decimal(str(total))

    # --- Mutations ---

    def create_cuenta_bancaria(self, request: BancoCreate) -> Banco:
        """
        Open a new banco with zero capital.

        Any capital_actual in the request is ignored on purpose.
        """
        banco_id = request.id or uuid.uuid4().hex

        def work() -> Banco:
            if self.db.get(Banco, banco_id) is not None:
                raise LedgerValidationError(
                    f"Banco '{banco_id}' already exists"
                )
            banco = Banco(
                id=banco_id,
                nombre=request.nombre,
                capital_actual=Decimal("0"),
            )
            self.db.add(banco)
            record_event(
                self.db, AuditEvent.BANCO_CREATED,
                banco_id=banco_id, nombre=request.nombre,
            )
            mark_changed(self.db, BANCO, banco_id)
            try:
                self.db.flush()
            except IntegrityError as exc:
                # Another request created the same id after our check
                raise LedgerValidationError(
                    f"Banco '{banco_id}' already exists"
                ) from exc
            return banco

        banco = self._run(work)
        logger.info(
            "Banco created", extra={"banco_id": banco_id, "action": "create"}
        )
        return banco

    def update_cuenta_bancaria(
        self, banco_id: str, request: BancoUpdate
    ) -> Banco:
        """Rename a banco. Capital is not touched."""

        def work() -> Banco:
            banco = lock_banco(self.db, banco_id)
            banco.nombre = request.nombre
            record_event(
                self.db, AuditEvent.BANCO_UPDATED,
                banco_id=banco_id, nombre=request.nombre,
            )
            mark_changed(self.db, BANCO, banco_id)
            self.db.flush()
            return banco

        return self._run(work)

    def delete_cuenta_bancaria(self, banco_id: str) -> Banco:
        """
        Deactivate a banco.

        Bancos are never physically deleted; their movements stay
        readable. Only an empty banco can be deactivated, otherwise
        its capital would silently drop out of the total.
        """

        def work() -> Banco:
            banco = lock_banco(self.db, banco_id)
            if banco.capital_actual != 0:
                raise LedgerValidationError(
                    f"Banco '{banco_id}' still holds capital "
                    f"{banco.capital_actual}; transfer it out first"
                )
            banco.activo = False
            record_event(
                self.db, AuditEvent.BANCO_DEACTIVATED, banco_id=banco_id
            )
            mark_changed(self.db, BANCO, banco_id)
            self.db.flush()
            return banco

        banco = self._run(work)
        logger.info(
            "Banco deactivated",
            extra={"banco_id": banco_id, "action": "deactivate"},
        )
        return banco

    def ensure_default_bancos(self) -> list[Banco]:
        """Create any of the standard bancos that do not exist yet."""
        created = []
        for banco_id, nombre in BANCO_NAMES.items():
            if self.get_banco(banco_id) is None:
                created.append(self.create_cuenta_bancaria(
                    BancoCreate(id=banco_id, nombre=nombre)
                ))
        return created
