"""
Table store abstraction for Postgres and an in-memory test implementation.

Handlers only need generic row access: equality/IN filters, ordering,
limits and an atomic counter increment. Rows travel as plain dicts.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from marketplace.errors import BackendError
from marketplace.tables import TABLES, Base, column_defaults, unique_keys

Filters = Mapping[str, Any]

UNIQUE_VIOLATION = "23505"


class StoreError(BackendError):
    """A read or write against the store failed."""


class UniqueViolation(StoreError):
    def __init__(self, message: str):
        super().__init__(message, code=UNIQUE_VIOLATION)


class Store(Protocol):
    """Interface for table access."""

    def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[dict]:
        ...

    def first(self, table: str, filters: Filters) -> Optional[dict]:
        ...

    def count(self, table: str, filters: Optional[Filters] = None) -> int:
        ...

    def insert(self, table: str, values: Mapping[str, Any]) -> dict:
        ...

    def update(
        self, table: str, values: Mapping[str, Any], filters: Filters
    ) -> List[dict]:
        ...

    def delete(self, table: str, filters: Filters) -> List[dict]:
        ...

    def increment(
        self, table: str, row_id: str, column: str, amount: int = 1
    ) -> Optional[int]:
        ...


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_many(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _sort_key(value: Any) -> tuple:
    return (value is not None, value if value is not None else 0)


class InMemoryStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.tables: Dict[str, List[dict]] = {name: [] for name in TABLES}
        # (operation, table) pairs that raise StoreError, for failure tests.
        self.fail_on: set[tuple[str, str]] = set()
        self._lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None

    def reset(self) -> None:
        """Clear all stored rows (useful in tests)."""
        with self._lock:
            for rows in self.tables.values():
                rows.clear()
            self.fail_on.clear()
            self._last_timestamp = None

    def _now(self) -> str:
        # Strictly increasing so ordering by created_at is deterministic.
        now = datetime.now(timezone.utc)
        if self._last_timestamp and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now.isoformat()

    def _rows(self, operation: str, table: str) -> List[dict]:
        if (operation, table) in self.fail_on:
            raise StoreError(f"{operation} on {table} failed")
        if table not in self.tables:
            raise StoreError(f"Unknown table {table}")
        return self.tables[table]

    @staticmethod
    def _matches(row: Mapping[str, Any], filters: Optional[Filters]) -> bool:
        for name, value in (filters or {}).items():
            if _is_many(value):
                if row.get(name) not in value:
                    return False
            elif row.get(name) != value:
                return False
        return True

    @staticmethod
    def _check_columns(table: str, values: Iterable[str]) -> None:
        known = TABLES[table].columns
        for name in values:
            if name not in known:
                raise StoreError(f"Unknown column {name} on {table}")

    def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[dict]:
        with self._lock:
            rows = [
                dict(row)
                for row in self._rows("select", table)
                if self._matches(row, filters)
            ]
        if order_by:
            rows.sort(
                key=lambda row: _sort_key(row.get(order_by)), reverse=descending
            )
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def first(self, table: str, filters: Filters) -> Optional[dict]:
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None

    def count(self, table: str, filters: Optional[Filters] = None) -> int:
        return len(self.select(table, filters))

    def insert(self, table: str, values: Mapping[str, Any]) -> dict:
        with self._lock:
            rows = self._rows("insert", table)
            self._check_columns(table, values)
            now = self._now()
            row = column_defaults(table)
            row["id"] = str(uuid.uuid4())
            row["created_at"] = row["updated_at"] = now
            row.update(values)
            for key in unique_keys(table):
                if any(
                    all(existing.get(col) == row.get(col) for col in key)
                    for existing in rows
                ):
                    raise UniqueViolation(
                        f"duplicate key on {table} ({', '.join(key)})"
                    )
            rows.append(row)
            return dict(row)

    def update(
        self, table: str, values: Mapping[str, Any], filters: Filters
    ) -> List[dict]:
        with self._lock:
            rows = self._rows("update", table)
            self._check_columns(table, values)
            updated = []
            now = self._now()
            for row in rows:
                if self._matches(row, filters):
                    row.update(values)
                    row["updated_at"] = now
                    updated.append(dict(row))
            return updated

    def delete(self, table: str, filters: Filters) -> List[dict]:
        with self._lock:
            rows = self._rows("delete", table)
            removed = [row for row in rows if self._matches(row, filters)]
            self.tables[table] = [
                row for row in rows if not self._matches(row, filters)
            ]
            return [dict(row) for row in removed]

    def increment(
        self, table: str, row_id: str, column: str, amount: int = 1
    ) -> Optional[int]:
        with self._lock:
            for row in self._rows("update", table):
                if row.get("id") == row_id:
                    row[column] = (row.get(column) or 0) + amount
                    row["updated_at"] = self._now()
                    return row[column]
            return None


class PostgresStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., the
    managed Postgres connection string, or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresStore")
        options: Dict[str, Any] = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            options.update(
                poolclass=StaticPool, connect_args={"check_same_thread": False}
            )
        else:
            options["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **options)
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _table(name: str):
        try:
            return TABLES[name]
        except KeyError:
            raise StoreError(f"Unknown table {name}") from None

    @staticmethod
    def _where(table, filters: Optional[Filters]) -> list:
        clauses = []
        for name, value in (filters or {}).items():
            if name not in table.c:
                raise StoreError(f"Unknown column {name} on {table.name}")
            column = table.c[name]
            if _is_many(value):
                clauses.append(column.in_(list(value)))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)
        return clauses

    @staticmethod
    def _translate(exc: SQLAlchemyError) -> StoreError:
        if isinstance(exc, IntegrityError):
            pgcode = getattr(exc.orig, "pgcode", None)
            if pgcode == UNIQUE_VIOLATION or "unique" in str(exc.orig).lower():
                return UniqueViolation("duplicate key")
            return StoreError("integrity error", code=pgcode)
        return StoreError(type(exc).__name__)

    def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[dict]:
        t = self._table(table)
        stmt = select(t).where(*self._where(t, filters))
        if order_by:
            column = t.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            with self.engine.connect() as conn:
                return [dict(row._mapping) for row in conn.execute(stmt)]
        except SQLAlchemyError as exc:
            raise self._translate(exc) from exc

    def first(self, table: str, filters: Filters) -> Optional[dict]:
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None

    def count(self, table: str, filters: Optional[Filters] = None) -> int:
        t = self._table(table)
        stmt = select(func.count()).select_from(t).where(*self._where(t, filters))
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise self._translate(exc) from exc

    def insert(self, table: str, values: Mapping[str, Any]) -> dict:
        t = self._table(table)
        now = utc_now()
        row = {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
        row.update(values)
        try:
            with self.engine.begin() as conn:
                conn.execute(t.insert().values(**row))
                created = conn.execute(select(t).where(t.c.id == row["id"])).one()
                return dict(created._mapping)
        except SQLAlchemyError as exc:
            raise self._translate(exc) from exc

    def update(
        self, table: str, values: Mapping[str, Any], filters: Filters
    ) -> List[dict]:
        t = self._table(table)
        changes = dict(values)
        changes["updated_at"] = utc_now()
        try:
            with self.engine.begin() as conn:
                ids = [
                    row.id
                    for row in conn.execute(
                        select(t.c.id).where(*self._where(t, filters))
                    )
                ]
                if not ids:
                    return []
                conn.execute(t.update().where(t.c.id.in_(ids)).values(**changes))
                rows = conn.execute(select(t).where(t.c.id.in_(ids)))
                return [dict(row._mapping) for row in rows]
        except SQLAlchemyError as exc:
            raise self._translate(exc) from exc

    def delete(self, table: str, filters: Filters) -> List[dict]:
        t = self._table(table)
        try:
            with self.engine.begin() as conn:
                clauses = self._where(t, filters)
                rows = [
                    dict(row._mapping)
                    for row in conn.execute(select(t).where(*clauses))
                ]
                if rows:
                    conn.execute(t.delete().where(*clauses))
                return rows
        except SQLAlchemyError as exc:
            raise self._translate(exc) from exc

    def increment(
        self, table: str, row_id: str, column: str, amount: int = 1
    ) -> Optional[int]:
        t = self._table(table)
        target = t.c[column]
        # Single UPDATE so concurrent increments never lose a count.
        stmt = (
            t.update()
            .where(t.c.id == row_id)
            .values(
                {target: func.coalesce(target, 0) + amount, t.c.updated_at: utc_now()}
            )
        )
        try:
            with self.engine.begin() as conn:
                if conn.execute(stmt).rowcount == 0:
                    return None
                return conn.execute(
                    select(target).where(t.c.id == row_id)
                ).scalar_one()
        except SQLAlchemyError as exc:
            raise self._translate(exc) from exc
