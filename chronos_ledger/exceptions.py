"""
Ledger exceptions.

Every error the ledger raises on purpose derives from LedgerError,
which is itself a ValueError: callers that only care about "the
request was rejected" can catch ValueError, while the API layer
distinguishes "not found" from "insufficient funds" from
"conflict" to pick a status code.

Hierarchy:
    LedgerError (ValueError)
    ├── AccountNotFoundError      → banco does not exist
    ├── MovimientoNotFoundError   → movement does not exist
    ├── InsufficientFundsError    → operation would make capital negative
    ├── LedgerValidationError     → business-rule or decode failure
    └── TransactionConflictError  → concurrent writes, retries exhausted
"""

from decimal import Decimal


class LedgerError(ValueError):
    """Base class for all ledger errors."""


class AccountNotFoundError(LedgerError):

    def __init__(self, banco_id: str):
        self.banco_id = banco_id
        super().__init__(f"Banco '{banco_id}' not found")


class MovimientoNotFoundError(LedgerError):

    def __init__(self, movimiento_id: str):
        self.movimiento_id = movimiento_id
        super().__init__(f"Movimiento '{movimiento_id}' not found")


class InsufficientFundsError(LedgerError):
    """
    Raised when an operation would drive a banco's capital below zero.

    The check is made against capital read inside the same
    transaction that would write it, so the reported
    "available" figure is the committed balance at that moment.
    """

    def __init__(self, banco_id: str, disponible: Decimal, solicitado: Decimal):
        self.banco_id = banco_id
        self.disponible = disponible
        self.solicitado = solicitado
        super().__init__(
            f"Insufficient funds in banco '{banco_id}': "
            f"available={disponible}, requested={solicitado}"
        )


class LedgerValidationError(LedgerError):
    """Input is well-formed but breaks a ledger rule."""


class TransactionConflictError(LedgerError):

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Transaction aborted after {attempts} attempts "
            f"due to concurrent modification"
        )
