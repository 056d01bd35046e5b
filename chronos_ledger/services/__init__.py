"""Business logic services."""

from chronos_ledger.services.banco_service import BancoService
from chronos_ledger.services.ledger_service import LedgerService
from chronos_ledger.services.transfer_service import TransferService
from chronos_ledger.services.subscription_service import SubscriptionService

__all__ = [
    "BancoService",
    "LedgerService",
    "TransferService",
    "SubscriptionService",
]
