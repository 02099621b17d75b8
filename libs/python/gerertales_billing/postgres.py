"""PostgreSQL-backed ledger with atomic debits and an audit trail."""

from __future__ import annotations

import json
import logging

from psycopg_pool import ConnectionPool

from gerertales_observability import record_credit_debit
from gerertales_providers.pricing import round2

from .exceptions import InsufficientCreditsError, ProfileNotFoundError
from .ledger import CreditLedger

logger = logging.getLogger(__name__)

DEBIT_SQL = """
    UPDATE profiles
    SET credits = GREATEST(0, ROUND((credits - %(amount)s)::numeric, 2))
    WHERE id = %(profile_id)s AND credits >= %(amount)s
    RETURNING credits
"""

GRANT_SQL = """
    UPDATE profiles
    SET credits = ROUND((credits + %(amount)s)::numeric, 2)
    WHERE id = %(profile_id)s
    RETURNING credits
"""

AUDIT_SQL = """
    INSERT INTO audit_logs (user_id, type, message, metadata)
    VALUES (%s, %s, %s, %s::jsonb)
"""


class PostgresLedger(CreditLedger):
    """Ledger over the ``profiles`` table.

    A debit is one conditional ``UPDATE``: concurrent requests cannot both
    spend the same credits. Unlike :class:`LocalLedger` it rejects a charge
    larger than the balance.
    """

    name = "postgres"

    def __init__(self, pool: ConnectionPool, profile_id: str) -> None:
        self._pool = pool
        self._profile_id = profile_id

    def balance(self) -> float:
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute("SELECT credits FROM profiles WHERE id = %s", (self._profile_id,))
            row = cur.fetchone()
        if row is None:
            raise ProfileNotFoundError(self._profile_id)
        return float(row[0])

    def debit(self, amount: float, feature: str) -> float:
        amount = round2(amount)
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(DEBIT_SQL, {"amount": amount, "profile_id": self._profile_id})
            row = cur.fetchone()
            if row is None:
                cur.execute("SELECT credits FROM profiles WHERE id = %s", (self._profile_id,))
                existing = cur.fetchone()
                conn.rollback()
                if existing is None:
                    raise ProfileNotFoundError(self._profile_id)
                raise InsufficientCreditsError(float(existing[0]), amount)
            new_balance = float(row[0])
            cur.execute(
                AUDIT_SQL,
                (
                    self._profile_id,
                    "billing",
                    f"Deducted {amount} credits for {feature}",
                    json.dumps({"amount": amount, "feature": feature, "newBalance": new_balance}),
                ),
            )
            conn.commit()

        record_credit_debit(feature, amount, ledger=self.name)
        logger.info(
            "Credits debited",
            extra={
                "feature": feature,
                "cost_credits": amount,
                "balance": new_balance,
                "profile_id": self._profile_id,
            },
        )
        return new_balance

    def grant(self, amount: float, reason: str) -> float:
        amount = round2(max(amount, 0.0))
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(GRANT_SQL, {"amount": amount, "profile_id": self._profile_id})
            row = cur.fetchone()
            if row is None:
                conn.rollback()
                raise ProfileNotFoundError(self._profile_id)
            new_balance = float(row[0])
            cur.execute(
                AUDIT_SQL,
                (
                    self._profile_id,
                    "billing",
                    f"Granted {amount} credits: {reason}",
                    json.dumps({"amount": amount, "reason": reason, "newBalance": new_balance}),
                ),
            )
            conn.commit()
        logger.info("Credits granted", extra={"reason": reason, "balance": new_balance})
        return new_balance
