"""Errors raised by credit ledgers."""

from __future__ import annotations


class LedgerError(RuntimeError):
    """Base error for credit accounting failures."""


class InsufficientCreditsError(LedgerError):
    """Raised when a balance cannot cover an operation."""

    def __init__(self, balance: float, required: float | None = None) -> None:
        if required is None:
            message = "Insufficient credits. Please top up your balance."
        else:
            message = f"Insufficient credits for this operation ({balance} available, {required} required)"
        super().__init__(message)
        self.balance = balance
        self.required = required


class ProfileNotFoundError(LedgerError):
    """Raised when a ledger operation references an unknown profile."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(f"Profile not found: {profile_id}")
        self.profile_id = profile_id
