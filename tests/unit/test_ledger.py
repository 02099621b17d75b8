"""Tests for credit arithmetic and both ledgers."""

from __future__ import annotations

import json
from contextlib import contextmanager

import pytest

from gerertales_billing import (
    InsufficientCreditsError,
    LocalLedger,
    PostgresLedger,
    ProfileNotFoundError,
    deduct,
    ensure_credits,
    has_credits,
)
from gerertales_schemas import UserProfile


def test_deduct_clamps_at_zero() -> None:
    assert deduct(50, 25) == 25
    assert deduct(0, 10) == 0
    assert deduct(3, 4.5) == 0
    assert deduct(10, 0.333) == 9.67


def test_credit_gate() -> None:
    assert has_credits(0.01)
    assert not has_credits(0)
    ensure_credits(1)
    with pytest.raises(InsufficientCreditsError):
        ensure_credits(0)


def test_local_ledger_debits_and_persists() -> None:
    saved: list[UserProfile] = []
    ledger = LocalLedger(UserProfile(credits=10), persist=saved.append)

    assert ledger.debit(2.5, "Chat") == 7.5
    assert ledger.balance() == 7.5
    assert saved[-1].credits == 7.5

    # The last operation may cost more than what is left.
    assert ledger.debit(20, "Cover Image") == 0
    assert ledger.profile.credits == 0
    with pytest.raises(InsufficientCreditsError):
        ledger.ensure_available()


def test_local_ledger_grant() -> None:
    ledger = LocalLedger(UserProfile(credits=0))
    assert ledger.grant(100, "top-up") == 100
    assert ledger.grant(-5, "ignored") == 100


class _FakeCursor:
    def __init__(self, conn: "_FakeConnection") -> None:
        self._conn = conn
        self._result = None

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def execute(self, query, params=None) -> None:
        self._conn.executed.append((query, params))
        credits = self._conn.credits
        if query.lstrip().startswith("SELECT credits"):
            self._result = None if credits is None else (credits,)
        elif "credits >=" in query:
            amount = params["amount"]
            if credits is None or credits < amount:
                self._result = None
            else:
                self._conn.credits = round(max(0.0, credits - amount), 2)
                self._result = (self._conn.credits,)
        elif query.lstrip().startswith("UPDATE profiles"):
            if credits is None:
                self._result = None
            else:
                self._conn.credits = round(credits + params["amount"], 2)
                self._result = (self._conn.credits,)
        else:
            self._result = None

    def fetchone(self):
        return self._result


class _FakeConnection:
    def __init__(self, credits: float | None) -> None:
        self.credits = credits
        self.executed: list[tuple[str, object]] = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self) -> _FakeCursor:
        return _FakeCursor(self)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def __enter__(self) -> "_FakeConnection":
        return self

    def __exit__(self, *exc) -> None:
        return None


class _FakePool:
    def __init__(self, credits: float | None) -> None:
        self.conn = _FakeConnection(credits)

    @contextmanager
    def connection(self):
        yield self.conn


def test_postgres_ledger_debit_writes_audit_row() -> None:
    pool = _FakePool(credits=40.0)
    ledger = PostgresLedger(pool, "profile-1")

    assert ledger.balance() == 40.0
    assert ledger.debit(12.345, "Prose Generation") == 27.65
    assert pool.conn.commits == 1

    audit_query, audit_params = pool.conn.executed[-1]
    assert "INSERT INTO audit_logs" in audit_query
    assert audit_params[0] == "profile-1"
    assert audit_params[2] == "Deducted 12.35 credits for Prose Generation"
    assert json.loads(audit_params[3])["feature"] == "Prose Generation"


def test_postgres_ledger_rejects_overdraft() -> None:
    pool = _FakePool(credits=5.0)
    ledger = PostgresLedger(pool, "profile-1")

    with pytest.raises(InsufficientCreditsError) as info:
        ledger.debit(20, "Cover Image")
    assert info.value.balance == 5.0
    assert info.value.required == 20
    assert pool.conn.credits == 5.0
    assert pool.conn.rollbacks == 1
    assert pool.conn.commits == 0


def test_postgres_ledger_unknown_profile() -> None:
    ledger = PostgresLedger(_FakePool(credits=None), "ghost")
    with pytest.raises(ProfileNotFoundError):
        ledger.balance()
    with pytest.raises(ProfileNotFoundError):
        ledger.debit(1, "Chat")
    with pytest.raises(ProfileNotFoundError):
        ledger.grant(1, "top-up")


def test_postgres_ledger_grant() -> None:
    pool = _FakePool(credits=1.0)
    assert PostgresLedger(pool, "profile-1").grant(49, "welcome") == 50.0
    assert pool.conn.commits == 1
