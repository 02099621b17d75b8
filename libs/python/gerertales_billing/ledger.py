"""Credit arithmetic and the in-process ledger used in guest mode."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from gerertales_observability import record_credit_debit
from gerertales_providers.pricing import round2
from gerertales_schemas import UserProfile

from .exceptions import InsufficientCreditsError

logger = logging.getLogger(__name__)


def deduct(balance: float, cost: float) -> float:
    """New balance after charging ``cost``; never negative.

    A charge larger than the balance drains it to zero instead of failing.
    """

    return max(0.0, round2(balance - cost))


def has_credits(balance: float) -> bool:
    return balance > 0


def ensure_credits(balance: float) -> None:
    """Pre-flight gate run before any paid generation."""

    if not has_credits(balance):
        raise InsufficientCreditsError(balance)


class CreditLedger(ABC):
    """Balance bound to one profile."""

    name: str

    @abstractmethod
    def balance(self) -> float:
        """Current balance in credits."""

    @abstractmethod
    def debit(self, amount: float, feature: str) -> float:
        """Charge ``amount`` for ``feature`` and return the new balance."""

    def ensure_available(self) -> None:
        ensure_credits(self.balance())


class LocalLedger(CreditLedger):
    """Ledger over a locally stored profile.

    Charges clamp at zero (grace clamp): the final operation may cost more
    than what was left.
    """

    name = "local"

    def __init__(
        self,
        profile: UserProfile,
        persist: Optional[Callable[[UserProfile], None]] = None,
    ) -> None:
        self._profile = profile
        self._persist = persist

    @property
    def profile(self) -> UserProfile:
        return self._profile

    def balance(self) -> float:
        return self._profile.credits

    def debit(self, amount: float, feature: str) -> float:
        previous = self._profile.credits
        new_balance = deduct(previous, amount)
        self._profile = self._profile.model_copy(update={"credits": new_balance})
        if self._persist is not None:
            self._persist(self._profile)
        charged = round2(previous - new_balance)
        record_credit_debit(feature, charged, ledger=self.name)
        logger.info(
            "Credits debited",
            extra={
                "feature": feature,
                "cost_credits": amount,
                "balance": new_balance,
                "profile_id": self._profile.id,
            },
        )
        return new_balance

    def grant(self, amount: float, reason: str) -> float:
        new_balance = round2(self._profile.credits + max(amount, 0.0))
        self._profile = self._profile.model_copy(update={"credits": new_balance})
        if self._persist is not None:
            self._persist(self._profile)
        logger.info("Credits granted", extra={"reason": reason, "balance": new_balance})
        return new_balance
