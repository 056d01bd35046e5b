"""
Transfer and ledger-integrity API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chronos_ledger.api.errors import http_error
from chronos_ledger.exceptions import LedgerError
from chronos_ledger.models.base import get_db
from chronos_ledger.schemas.transferencia import (
    TransferenciaRequest,
    TransferenciaResponse,
)
from chronos_ledger.services.ledger_service import LedgerService
from chronos_ledger.services.transfer_service import TransferService

router = APIRouter(tags=["Transferencias"])


@router.post(
    "/transferencias",
    response_model=TransferenciaResponse,
    status_code=201,
)
def create_transferencia(
    request: TransferenciaRequest,
    db: Session = Depends(get_db),
):
    """
    Move money between two bancos atomically.

    Returns 400 with nothing written when the origin lacks funds.
    """
    try:
        return TransferService(db).crear_transferencia(request)
    except LedgerError as e:
        raise http_error(e)


@router.get("/ledger/integrity")
def ledger_integrity(db: Session = Depends(get_db)):
    """Check that every banco's capital matches its movements."""
    return LedgerService(db).check_integrity()
