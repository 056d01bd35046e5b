"""
Movement API endpoints for editing and deleting single movements.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from chronos_ledger.api.errors import http_error
from chronos_ledger.exceptions import LedgerError
from chronos_ledger.models.base import get_db
from chronos_ledger.schemas.movimiento import MovimientoResponse, MovimientoUpdate
from chronos_ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/movimientos", tags=["Movimientos"])


@router.patch("/{movimiento_id}", response_model=MovimientoResponse)
def update_movimiento(
    movimiento_id: str,
    request: MovimientoUpdate,
    db: Session = Depends(get_db),
):
    """
    Overwrite fields of a movement.

    Changing monto adjusts the banco's capital by the difference.
    Transfer legs are rejected.
    """
    try:
        return LedgerService(db).actualizar_movimiento(movimiento_id, request)
    except LedgerError as e:
        raise http_error(e)


@router.delete("/{movimiento_id}", status_code=204)
def delete_movimiento(
    movimiento_id: str,
    db: Session = Depends(get_db),
):
    try:
        LedgerService(db).eliminar_movimiento(movimiento_id)
    except LedgerError as e:
        raise http_error(e)
    return Response(status_code=204)
