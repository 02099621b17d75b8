"""Credit accounting for GererTales."""

from .exceptions import InsufficientCreditsError, LedgerError, ProfileNotFoundError
from .ledger import CreditLedger, LocalLedger, deduct, ensure_credits, has_credits
from .postgres import PostgresLedger

__all__ = [
    "CreditLedger",
    "InsufficientCreditsError",
    "LedgerError",
    "LocalLedger",
    "PostgresLedger",
    "ProfileNotFoundError",
    "deduct",
    "ensure_credits",
    "has_credits",
]
