"""
Tests for the LedgerService.

Tests cover:
- Income and expense movements and their capital effect
- Expense rejection when funds are insufficient
- Totals per banco
- Editing and deleting movements
- Movement filters
- Capital/movement integrity check
"""

from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from chronos_ledger.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    LedgerValidationError,
    MovimientoNotFoundError,
)
from chronos_ledger.models.banco import Banco
from chronos_ledger.models.enums import MovimientoTipo
from chronos_ledger.schemas.banco import BancoCreate
from chronos_ledger.schemas.movimiento import MovimientoCreate, MovimientoUpdate
from chronos_ledger.schemas.transferencia import TransferenciaRequest
from chronos_ledger.services.banco_service import BancoService, lock_banco
from chronos_ledger.services.ledger_service import LedgerService
from chronos_ledger.services.transfer_service import TransferService


# --- Helpers to reduce repetition ---

def make_banco(db_session, banco_id):
    return BancoService(db_session).create_cuenta_bancaria(
        BancoCreate(id=banco_id, nombre=banco_id.title())
    )


def movimiento(monto, concepto="Movimiento", fecha=None, **kwargs):
    return MovimientoCreate(
        monto=Decimal(monto), concepto=concepto, fecha=fecha, **kwargs
    )


def capital(db_session, banco_id):
    db_session.expire_all()
    return db_session.get(Banco, banco_id).capital_actual


# --- Ingresos and Gastos ---

class TestCrearMovimientos:

    def test_ingreso_credits_capital(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)

        mov = service.crear_ingreso("azteca", movimiento("1000.00", "Venta"))

        assert mov.id is not None
        assert mov.tipo == MovimientoTipo.INGRESO
        assert mov.monto == Decimal("1000.00")
        assert mov.transferencia_id is None
        assert capital(db_session, "azteca") == Decimal("1000.00")

    def test_gasto_debits_capital(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento("1000"))

        mov = service.crear_gasto("azteca", movimiento("250.50", "Flete"))

        assert mov.tipo == MovimientoTipo.GASTO
        assert capital(db_session, "azteca") == Decimal("749.50")

    def test_gasto_may_empty_the_banco(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento("100"))

        service.crear_gasto("azteca", movimiento("100"))

        assert capital(db_session, "azteca") == Decimal("0")

    def test_gasto_exceeding_capital_rejected(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento("100"))

        with pytest.raises(InsufficientFundsError) as exc_info:
            service.crear_gasto("azteca", movimiento("100.01"))

        assert exc_info.value.banco_id == "azteca"
        assert capital(db_session, "azteca") == Decimal("100")
        assert len(service.get_gastos("azteca")) == 0

    def test_unknown_banco_rejected(self, db_session):
        with pytest.raises(AccountNotFoundError):
            LedgerService(db_session).crear_ingreso("nope", movimiento("10"))

    def test_fecha_defaults_to_now(self, db_session):
        make_banco(db_session, "azteca")
        mov = LedgerService(db_session).crear_ingreso(
            "azteca", movimiento("10")
        )
        assert mov.fecha is not None

    def test_optional_fields_stored(self, db_session):
        make_banco(db_session, "azteca")
        mov = LedgerService(db_session).crear_ingreso(
            "azteca",
            movimiento(
                "10", "Pago cliente",
                referencia="FAC-001", categoria="Ventas", notas="Contado",
            ),
        )
        assert mov.referencia == "FAC-001"
        assert mov.categoria == "Ventas"
        assert mov.notas == "Contado"


# --- Totals ---

class TestCalcularTotales:

    def test_mixed_movements(self, db_session):
        make_banco(db_session, "profit")
        service = LedgerService(db_session)
        for monto in ("1000", "500", "300"):
            service.crear_ingreso("profit", movimiento(monto))
        for monto in ("200", "150"):
            service.crear_gasto("profit", movimiento(monto))

        totales = service.calcular_totales_banco("profit")

        assert totales.total_ingresos == Decimal("1800")
        assert totales.total_gastos == Decimal("350")
        assert totales.balance == Decimal("1450")
        assert totales.cantidad_ingresos == 3
        assert totales.cantidad_gastos == 2
        assert capital(db_session, "profit") == totales.balance

    def test_banco_without_movements(self, db_session):
        make_banco(db_session, "profit")

        totales = LedgerService(db_session).calcular_totales_banco("profit")

        assert totales.total_ingresos == Decimal("0")
        assert totales.total_gastos == Decimal("0")
        assert totales.balance == Decimal("0")
        assert totales.cantidad_ingresos == 0
        assert totales.cantidad_gastos == 0

    def test_unknown_banco(self, db_session):
        with pytest.raises(AccountNotFoundError):
            LedgerService(db_session).calcular_totales_banco("nope")


# --- Update and delete ---

class TestActualizarMovimiento:

    def test_raising_ingreso_monto_adjusts_capital(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        mov = service.crear_ingreso("azteca", movimiento("100"))

        service.actualizar_movimiento(
            mov.id, MovimientoUpdate(monto=Decimal("150"))
        )

        assert capital(db_session, "azteca") == Decimal("150")

    def test_raising_gasto_monto_checks_funds(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento("100"))
        gasto = service.crear_gasto("azteca", movimiento("80"))

        with pytest.raises(InsufficientFundsError):
            service.actualizar_movimiento(
                gasto.id, MovimientoUpdate(monto=Decimal("120"))
            )

        assert capital(db_session, "azteca") == Decimal("20")

    def test_text_fields_only(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        mov = service.crear_ingreso("azteca", movimiento("100", "Venta"))

        updated = service.actualizar_movimiento(
            mov.id, MovimientoUpdate(concepto="Venta mayoreo", notas="x")
        )

        assert updated.concepto == "Venta mayoreo"
        assert updated.notas == "x"
        assert capital(db_session, "azteca") == Decimal("100")

    def test_clearing_concepto_rejected(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        mov = service.crear_ingreso("azteca", movimiento("100"))

        with pytest.raises(LedgerValidationError, match="concepto"):
            service.actualizar_movimiento(
                mov.id, MovimientoUpdate(concepto=None)
            )

    def test_missing_movimiento(self, db_session):
        with pytest.raises(MovimientoNotFoundError):
            LedgerService(db_session).actualizar_movimiento(
                "nope", MovimientoUpdate(notas="x")
            )


class TestEliminarMovimiento:

    def test_deleting_gasto_restores_capital(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento("100"))
        gasto = service.crear_gasto("azteca", movimiento("40"))

        service.eliminar_movimiento(gasto.id)

        assert capital(db_session, "azteca") == Decimal("100")
        assert service.get_movimiento(gasto.id) is None

    def test_deleting_spent_ingreso_rejected(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        ingreso = service.crear_ingreso("azteca", movimiento("100"))
        service.crear_gasto("azteca", movimiento("60"))

        with pytest.raises(InsufficientFundsError):
            service.eliminar_movimiento(ingreso.id)

        assert capital(db_session, "azteca") == Decimal("40")
        assert service.get_movimiento(ingreso.id) is not None

    def test_transfer_legs_cannot_be_deleted(self, db_session):
        make_banco(db_session, "azteca")
        make_banco(db_session, "profit")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento("100"))
        result = TransferService(db_session).crear_transferencia(
            TransferenciaRequest(
                origen_id="azteca", destino_id="profit", monto=Decimal("30")
            )
        )

        with pytest.raises(LedgerValidationError, match="part of transfer"):
            service.eliminar_movimiento(result.entrada_id)
        with pytest.raises(LedgerValidationError, match="part of transfer"):
            service.actualizar_movimiento(
                result.salida_id, MovimientoUpdate(monto=Decimal("1"))
            )


# --- Queries ---

class TestGetMovimientos:

    def _seed(self, db_session):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento(
            "100", "Enero", fecha=datetime(2024, 1, 10)
        ))
        service.crear_ingreso("azteca", movimiento(
            "500", "Febrero", fecha=datetime(2024, 2, 10)
        ))
        service.crear_gasto("azteca", movimiento(
            "50", "Marzo", fecha=datetime(2024, 3, 10)
        ))
        return service

    def test_newest_first(self, db_session):
        service = self._seed(db_session)
        conceptos = [m.concepto for m in service.get_movimientos_bancarios("azteca")]
        assert conceptos == ["Marzo", "Febrero", "Enero"]

    def test_ingresos_and_gastos(self, db_session):
        service = self._seed(db_session)
        assert [m.concepto for m in service.get_ingresos("azteca")] == [
            "Febrero", "Enero",
        ]
        assert [m.concepto for m in service.get_gastos("azteca")] == ["Marzo"]

    def test_limit(self, db_session):
        service = self._seed(db_session)
        assert len(service.get_ingresos("azteca", limit=1)) == 1

    def test_date_range(self, db_session):
        service = self._seed(db_session)
        result = service.get_movimientos_bancarios(
            "azteca",
            fecha_inicio=datetime(2024, 2, 1),
            fecha_fin=datetime(2024, 3, 31),
        )
        assert [m.concepto for m in result] == ["Marzo", "Febrero"]

    def test_amount_range(self, db_session):
        service = self._seed(db_session)
        result = service.get_movimientos_bancarios(
            "azteca", monto_min=Decimal("60"), monto_max=Decimal("200"),
        )
        assert [m.concepto for m in result] == ["Enero"]

    def test_unknown_banco(self, db_session):
        with pytest.raises(AccountNotFoundError):
            LedgerService(db_session).get_ingresos("nope")


class TestIntegrity:

    def test_balanced_ledger(self, db_session):
        make_banco(db_session, "azteca")
        make_banco(db_session, "profit")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento("100"))
        service.crear_gasto("azteca", movimiento("30"))
        TransferService(db_session).crear_transferencia(TransferenciaRequest(
            origen_id="azteca", destino_id="profit", monto=Decimal("50"),
        ))

        report = service.check_integrity()

        assert report["is_balanced"] is True
        assert report["discrepancies"] == []

    def test_capital_written_without_movimiento(self, db_session):
        make_banco(db_session, "azteca")
        banco = db_session.get(Banco, "azteca")
        banco.capital_actual = Decimal("999")
        db_session.commit()

        report = LedgerService(db_session).check_integrity()

        assert report["is_balanced"] is False
        assert report["discrepancies"][0]["banco_id"] == "azteca"


class TestConcurrentEdits:
    """
    Another session commits a change to the same movement while
    ours is between reading the movement and locking its banco.
    """

    def _interleave(self, monkeypatch, session_factory, competing):
        done = []

        def lock_after_competing(db, banco_id):
            if not done:
                done.append(True)
                with session_factory() as other:
                    competing(LedgerService(other))
            return lock_banco(db, banco_id)

        monkeypatch.setattr(
            "chronos_ledger.services.ledger_service.lock_banco",
            lock_after_competing,
        )

    def test_overlapping_edits_keep_capital_in_step(
        self, db_session, session_factory, monkeypatch
    ):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        mov = service.crear_ingreso("azteca", movimiento("100"))

        self._interleave(
            monkeypatch, session_factory,
            lambda other: other.actualizar_movimiento(
                mov.id, MovimientoUpdate(monto=Decimal("200"))
            ),
        )
        service.actualizar_movimiento(
            mov.id, MovimientoUpdate(monto=Decimal("300"))
        )

        assert capital(db_session, "azteca") == Decimal("300")
        assert service.check_integrity()["is_balanced"] is True

    def test_overlapping_deletes_undo_once(
        self, db_session, session_factory, monkeypatch
    ):
        make_banco(db_session, "azteca")
        service = LedgerService(db_session)
        service.crear_ingreso("azteca", movimiento("500"))
        mov = service.crear_ingreso("azteca", movimiento("100"))

        self._interleave(
            monkeypatch, session_factory,
            lambda other: other.eliminar_movimiento(mov.id),
        )
        with pytest.raises(MovimientoNotFoundError):
            service.eliminar_movimiento(mov.id)

        assert capital(db_session, "azteca") == Decimal("500")
        assert service.check_integrity()["is_balanced"] is True


class TestMovimientoUpdateSchema:

    def test_concepto_is_stripped(self):
        assert MovimientoUpdate(concepto="  Venta  ").concepto == "Venta"

    def test_blank_padded_concepto_rejected(self):
        with pytest.raises(ValidationError, match="at least 3 characters"):
            MovimientoUpdate(concepto="   x ")
