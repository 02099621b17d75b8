"""In-memory stand-ins for a psycopg connection pool."""

from __future__ import annotations

from contextlib import contextmanager


class FakeCursor:
    def __init__(self, conn: "FakeConnection") -> None:
        self._conn = conn
        self.rowcount = 0

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def execute(self, query, params=None) -> None:
        self._conn.executed.append((" ".join(query.split()), params))
        self.rowcount = self._conn.rowcount

    def fetchone(self):
        return self._conn.rows[0] if self._conn.rows else None

    def fetchall(self):
        return list(self._conn.rows)


class FakeConnection:
    """Records every statement; replays ``rows`` for each fetch."""

    def __init__(self, rows=None, rowcount: int = 1) -> None:
        self.rows = rows or []
        self.rowcount = rowcount
        self.executed: list[tuple[str, object]] = []
        self.commits = 0

    def cursor(self, row_factory=None) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.commits += 1


class FakePool:
    def __init__(self, **kwargs) -> None:
        self.conn = FakeConnection(**kwargs)

    @contextmanager
    def connection(self):
        yield self.conn
