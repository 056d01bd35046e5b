"""
Banco API endpoints.

The API layer is thin: it maps HTTP to service calls and ledger
errors to status codes. Services own every commit.
"""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chronos_ledger.api.errors import http_error
from chronos_ledger.exceptions import LedgerError
from chronos_ledger.models.base import get_db
from chronos_ledger.models.enums import MovimientoTipo
from chronos_ledger.schemas.banco import (
    BancoCreate,
    BancoNombreResponse,
    BancoResponse,
    BancoUpdate,
    SaldoTotalResponse,
    TotalesBanco,
)
from chronos_ledger.schemas.movimiento import MovimientoCreate, MovimientoResponse
from chronos_ledger.services.banco_service import BancoService, get_banco_name
from chronos_ledger.services.ledger_service import LedgerService
from chronos_ledger.services.transfer_service import TransferService

router = APIRouter(prefix="/bancos", tags=["Bancos"])


@router.get("", response_model=list[BancoResponse])
def list_bancos(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    return BancoService(db).get_todos_bancos(include_inactive)


@router.post("", response_model=BancoResponse, status_code=201)
def create_banco(
    request: BancoCreate,
    db: Session = Depends(get_db),
):
    """Open a banco. Capital always starts at zero."""
    try:
        return BancoService(db).create_cuenta_bancaria(request)
    except LedgerError as e:
        raise http_error(e)


@router.get("/saldo-total", response_model=SaldoTotalResponse)
def saldo_total(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    service = BancoService(db)
    return SaldoTotalResponse(
        saldo_total=service.get_saldo_total_bancos(include_inactive),
        cantidad_bancos=len(service.get_todos_bancos(include_inactive)),
    )


@router.get("/nombres/{banco_id}", response_model=BancoNombreResponse)
def banco_nombre(banco_id: str):
    """Display name from the static table; unknown ids echo back."""
    return BancoNombreResponse(id=banco_id, nombre=get_banco_name(banco_id))


@router.get("/{banco_id}", response_model=BancoResponse)
def get_banco(
    banco_id: str,
    db: Session = Depends(get_db),
):
    banco = BancoService(db).get_banco(banco_id)
    if banco is None:
        raise HTTPException(
            status_code=404, detail=f"Banco '{banco_id}' not found"
        )
    return banco


@router.patch("/{banco_id}", response_model=BancoResponse)
def update_banco(
    banco_id: str,
    request: BancoUpdate,
    db: Session = Depends(get_db),
):
    try:
        return BancoService(db).update_cuenta_bancaria(banco_id, request)
    except LedgerError as e:
        raise http_error(e)


@router.delete("/{banco_id}", response_model=BancoResponse)
def deactivate_banco(
    banco_id: str,
    db: Session = Depends(get_db),
):
    """Deactivate an empty banco. Its history stays readable."""
    try:
        return BancoService(db).delete_cuenta_bancaria(banco_id)
    except LedgerError as e:
        raise http_error(e)


@router.get("/{banco_id}/totales", response_model=TotalesBanco)
def totales_banco(
    banco_id: str,
    db: Session = Depends(get_db),
):
    try:
        return LedgerService(db).calcular_totales_banco(banco_id)
    except LedgerError as e:
        raise http_error(e)


# --- Movements ---

@router.get("/{banco_id}/ingresos", response_model=list[MovimientoResponse])
def list_ingresos(
    banco_id: str,
    limit: int | None = None,
    db: Session = Depends(get_db),
):
    try:
        return LedgerService(db).get_ingresos(banco_id, limit)
    except LedgerError as e:
        raise http_error(e)


@router.post(
    "/{banco_id}/ingresos",
    response_model=MovimientoResponse,
    status_code=201,
)
def create_ingreso(
    banco_id: str,
    request: MovimientoCreate,
    db: Session = Depends(get_db),
):
    """Record income; the banco's capital grows by the same amount."""
    try:
        return LedgerService(db).crear_ingreso(banco_id, request)
    except LedgerError as e:
        raise http_error(e)


@router.get("/{banco_id}/gastos", response_model=list[MovimientoResponse])
def list_gastos(
    banco_id: str,
    limit: int | None = None,
    db: Session = Depends(get_db),
):
    try:
        return LedgerService(db).get_gastos(banco_id, limit)
    except LedgerError as e:
        raise http_error(e)


@router.post(
    "/{banco_id}/gastos",
    response_model=MovimientoResponse,
    status_code=201,
)
def create_gasto(
    banco_id: str,
    request: MovimientoCreate,
    db: Session = Depends(get_db),
):
    """Record an expense; rejected if the banco cannot cover it."""
    try:
        return LedgerService(db).crear_gasto(banco_id, request)
    except LedgerError as e:
        raise http_error(e)


@router.get("/{banco_id}/movimientos", response_model=list[MovimientoResponse])
def list_movimientos(
    banco_id: str,
    tipo: MovimientoTipo | None = None,
    fecha_inicio: datetime | None = None,
    fecha_fin: datetime | None = None,
    monto_min: Decimal | None = None,
    monto_max: Decimal | None = None,
    db: Session = Depends(get_db),
):
    try:
        return LedgerService(db).get_movimientos_bancarios(
            banco_id,
            tipo=tipo,
            fecha_inicio=fecha_inicio,
            fecha_fin=fecha_fin,
            monto_min=monto_min,
            monto_max=monto_max,
        )
    except LedgerError as e:
        raise http_error(e)


@router.get(
    "/{banco_id}/transferencias",
    response_model=list[MovimientoResponse],
)
def list_transferencias(
    banco_id: str,
    db: Session = Depends(get_db),
):
    try:
        return TransferService(db).get_transferencias(banco_id)
    except LedgerError as e:
        raise http_error(e)
