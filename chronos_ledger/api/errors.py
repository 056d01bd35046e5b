"""
Translate ledger errors into HTTP errors.
"""

from fastapi import HTTPException

from chronos_ledger.exceptions import (
    AccountNotFoundError,
    LedgerError,
    MovimientoNotFoundError,
    TransactionConflictError,
)


def http_error(exc: LedgerError) -> HTTPException:
    if isinstance(exc, (AccountNotFoundError, MovimientoNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, TransactionConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
