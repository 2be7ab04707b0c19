"""
Data-store abstraction over the hosted Postgres tables, with an in-memory
implementation for development and tests.

Handlers describe reads with a :class:`Query` and the store applies it.
The base handle runs as the public ``anon`` role; ``for_caller`` returns a
handle whose statements run under the caller's identity so the platform's
row-level policies apply.
"""

from __future__ import annotations

import copy
import itertools
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from sqlalchemy import (
    String,
    Table,
    and_,
    cast,
    create_engine,
    delete,
    event,
    func,
    insert,
    or_,
    select,
    text,
    update,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cityhub.tables import TABLES, Base

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

# Database roles the platform's row-level policies are written against.
SESSION_ROLES = frozenset({"anon", "authenticated"})


class StoreError(Exception):
    """A data-store call failed; ``message`` is safe to surface to clients."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class UniqueViolation(StoreError):
    def __init__(self, message: str):
        super().__init__(message, code=UNIQUE_VIOLATION)


@dataclass(frozen=True)
class Filter:
    column: str
    op: str  # eq | ilike | contains | in
    value: Any


@dataclass
class Query:
    """A filtered, ordered window over one table."""

    table: str
    columns: Optional[Sequence[str]] = None
    filters: List[Filter] = field(default_factory=list)
    search: Optional[tuple[tuple[str, ...], str]] = None
    order: List[tuple[str, bool]] = field(default_factory=list)
    offset: int = 0
    limit: Optional[int] = None
    count: bool = False

    def eq(self, column: str, value: Any) -> "Query":
        self.filters.append(Filter(column, "eq", value))
        return self

    def ilike(self, column: str, value: str) -> "Query":
        self.filters.append(Filter(column, "ilike", value))
        return self

    def contains(self, column: str, values: Sequence[Any]) -> "Query":
        self.filters.append(Filter(column, "contains", list(values)))
        return self

    def in_(self, column: str, values: Sequence[Any]) -> "Query":
        self.filters.append(Filter(column, "in", list(values)))
        return self

    def search_any(self, columns: Sequence[str], term: str) -> "Query":
        """Case-insensitive substring match against any of ``columns``."""
        self.search = (tuple(columns), term)
        return self

    def order_by(self, column: str, ascending: bool = True) -> "Query":
        self.order.append((column, ascending))
        return self

    def range(self, offset: int, limit: int) -> "Query":
        self.offset = offset
        self.limit = limit
        return self


@dataclass
class QueryResult:
    rows: List[dict]
    total: Optional[int] = None

    def first(self) -> Optional[dict]:
        return self.rows[0] if self.rows else None


class DataStore(Protocol):
    """Interface for table access."""

    def for_caller(self, user_id: str, email: str | None = None) -> "DataStore":
        ...

    def select(self, query: Query) -> QueryResult:
        ...

    def get_one(
        self,
        table: str,
        column: str,
        value: Any,
        columns: Optional[Sequence[str]] = None,
    ) -> Optional[dict]:
        ...

    def insert(self, table: str, values: dict) -> dict:
        ...

    def update(self, table: str, values: dict, match: dict) -> List[dict]:
        ...

    def delete(self, table: str, match: dict) -> int:
        ...


def _project(row: dict, columns: Optional[Sequence[str]]) -> dict:
    if not columns:
        return dict(row)
    return {c: row.get(c) for c in columns}


def _nulls_key(value: Any) -> tuple:
    # Postgres ordering: NULLS LAST ascending, NULLS FIRST descending.
    return (value is None, value)


class InMemoryDataStore:
    """Simple in-memory table store for development and tests."""

    def __init__(self, tables: Dict[str, List[dict]] | None = None, caller_id: str | None = None):
        self.tables: Dict[str, List[dict]] = (
            tables if tables is not None else {name: [] for name in TABLES}
        )
        self.caller_id = caller_id
        self._serials: Dict[str, Iterator[int]] = {}

    def for_caller(self, user_id: str, email: str | None = None) -> "InMemoryDataStore":
        scoped = InMemoryDataStore(self.tables, caller_id=user_id)
        scoped._serials = self._serials
        return scoped

    def reset(self) -> None:
        """Clear all stored rows (useful in tests)."""
        for rows in self.tables.values():
            rows.clear()

    def seed(self, table: str, *rows: dict) -> List[dict]:
        return [self.insert(table, row) for row in rows]

    # -- reads -----------------------------------------------------------

    def _matches(self, row: dict, flt: Filter) -> bool:
        value = row.get(flt.column)
        if flt.op == "eq":
            return value == flt.value
        if flt.op == "ilike":
            return value is not None and str(flt.value).lower() in str(value).lower()
        if flt.op == "contains":
            return all(v in (value or []) for v in flt.value)
        if flt.op == "in":
            return value in flt.value
        raise ValueError(f"Unsupported filter op: {flt.op}")

    def select(self, query: Query) -> QueryResult:
        rows = [r for r in self._rows(query.table) if all(self._matches(r, f) for f in query.filters)]
        if query.search:
            columns, term = query.search
            needle = term.lower()
            rows = [
                r
                for r in rows
                if any(needle in str(r.get(c) or "").lower() for c in columns)
            ]
        for column, ascending in reversed(query.order):
            rows.sort(key=lambda r: _nulls_key(r.get(column)), reverse=not ascending)
        total = len(rows) if query.count else None
        if query.limit is not None:
            rows = rows[query.offset : query.offset + query.limit]
        elif query.offset:
            rows = rows[query.offset :]
        return QueryResult(
            rows=[copy.deepcopy(_project(r, query.columns)) for r in rows],
            total=total,
        )

    def get_one(self, table, column, value, columns=None):
        return self.select(Query(table, columns=columns).eq(column, value).range(0, 1)).first()

    # -- writes ----------------------------------------------------------

    def _rows(self, table: str) -> List[dict]:
        if table not in self.tables:
            raise StoreError(f'relation "{table}" does not exist', code="42P01")
        return self.tables[table]

    def _with_defaults(self, table: Table, values: dict) -> dict:
        row: dict = {}
        for column in table.columns:
            if column.name in values:
                row[column.name] = values[column.name]
            elif column.primary_key and column.autoincrement is True:
                serial = self._serials.setdefault(table.name, itertools.count(1))
                row[column.name] = next(serial)
            elif column.default is not None:
                default = column.default
                row[column.name] = default.arg(None) if default.is_callable else default.arg
            else:
                row[column.name] = None
        unknown = set(values) - set(row)
        if unknown:
            raise StoreError(
                f"Could not find the '{sorted(unknown)[0]}' column of '{table.name}'",
                code="PGRST204",
            )
        return row

    def _check_unique(self, table: Table, row: dict, ignore: Optional[dict] = None) -> None:
        rows = self._rows(table.name)
        for column in table.columns:
            if not (column.unique or column.primary_key):
                continue
            value = row.get(column.name)
            if value is None:
                continue
            for existing in rows:
                if existing is ignore:
                    continue
                if existing.get(column.name) == value:
                    raise UniqueViolation(
                        f'duplicate key value violates unique constraint "{table.name}_{column.name}_key"'
                    )

    def insert(self, table: str, values: dict) -> dict:
        rows = self._rows(table)
        row = self._with_defaults(TABLES[table], copy.deepcopy(values))
        self._check_unique(TABLES[table], row)
        rows.append(row)
        return copy.deepcopy(row)

    def update(self, table: str, values: dict, match: dict) -> List[dict]:
        target = TABLES[table]
        unknown = set(values) - {c.name for c in target.columns}
        if unknown:
            raise StoreError(
                f"Could not find the '{sorted(unknown)[0]}' column of '{table}'",
                code="PGRST204",
            )
        updated = []
        for row in self._rows(table):
            if all(row.get(k) == v for k, v in match.items()):
                candidate = {**row, **copy.deepcopy(values)}
                self._check_unique(target, candidate, ignore=row)
                row.update(candidate)
                updated.append(copy.deepcopy(row))
        return updated

    def delete(self, table: str, match: dict) -> int:
        rows = self._rows(table)
        doomed = [r for r in rows if all(r.get(k) == v for k, v in match.items())]
        for row in doomed:
            rows.remove(row)
            self._cascade(table, row)
        return len(doomed)

    def _cascade(self, table: str, row: dict) -> None:
        for child in TABLES.values():
            for fk in child.foreign_keys:
                if fk.column.table.name != table:
                    continue
                match = {fk.parent.name: row.get(fk.column.name)}
                if fk.ondelete == "CASCADE":
                    self.delete(child.name, match)
                elif fk.ondelete == "SET NULL":
                    self.update(child.name, {fk.parent.name: None}, match)


class SqlDataStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (the
    platform's Postgres, or SQLite for tests).
    """

    def __init__(
        self,
        database_url: str | None = None,
        *,
        engine: Engine | None = None,
        claims: Optional[dict] = None,
        role: Optional[str] = None,
        create_tables: bool = False,
    ):
        if engine is None:
            if not database_url:
                raise ValueError("DATABASE_URL is required for SqlDataStore")
            engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
            if engine.dialect.name == "sqlite":
                event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        if role and claims is None:
            # Unauthenticated requests evaluate policies as the public role.
            claims = {"role": role}
        if claims is not None:
            session_statements(claims)
        self.engine = engine
        self.claims = claims
        if create_tables:
            Base.metadata.create_all(self.engine)

    def for_caller(self, user_id: str, email: str | None = None) -> "SqlDataStore":
        claims = {"sub": user_id, "role": "authenticated"}
        if email:
            claims["email"] = email
        return SqlDataStore(engine=self.engine, claims=claims)

    @contextmanager
    def _begin(self):
        try:
            with self.engine.begin() as conn:
                if self.claims is not None and conn.dialect.name == "postgresql":
                    for statement, params in session_statements(self.claims):
                        conn.execute(text(statement), params)
                yield conn
        except IntegrityError as exc:
            code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
            message = str(exc.orig)
            if code == UNIQUE_VIOLATION or "UNIQUE constraint failed" in message:
                raise UniqueViolation(message) from exc
            raise StoreError(message, code=code) from exc
        except SQLAlchemyError as exc:
            logger.exception("Data store call failed")
            orig = getattr(exc, "orig", None)
            raise StoreError(str(orig or exc)) from exc

    def _table(self, name: str) -> Table:
        try:
            return TABLES[name]
        except KeyError:
            raise StoreError(f'relation "{name}" does not exist', code="42P01")

    def _condition(self, table: Table, flt: Filter, dialect: str):
        column = table.c[flt.column]
        if flt.op == "eq":
            return column.is_(None) if flt.value is None else column == flt.value
        if flt.op == "ilike":
            return column.icontains(flt.value, autoescape=True)
        if flt.op == "in":
            return column.in_(flt.value)
        if flt.op == "contains":
            if dialect == "postgresql":
                return column.op("@>")(postgresql.array(flt.value))
            # JSON-encoded arrays on other engines
            return and_(
                *[cast(column, String).like(f"%{json.dumps(v)}%") for v in flt.value]
            )
        raise ValueError(f"Unsupported filter op: {flt.op}")

    def select(self, query: Query) -> QueryResult:
        table = self._table(query.table)
        dialect = self.engine.dialect.name
        conditions = [self._condition(table, f, dialect) for f in query.filters]
        if query.search:
            columns, term = query.search
            conditions.append(
                or_(*[table.c[c].icontains(term, autoescape=True) for c in columns])
            )
        cols = [table.c[c] for c in query.columns] if query.columns else [table]
        stmt = select(*cols).where(*conditions)
        with self._begin() as conn:
            total = None
            if query.count:
                total = conn.execute(
                    select(func.count()).select_from(stmt.subquery())
                ).scalar_one()
            for column, ascending in query.order:
                stmt = stmt.order_by(
                    table.c[column].asc() if ascending else table.c[column].desc()
                )
            if query.offset:
                stmt = stmt.offset(query.offset)
            if query.limit is not None:
                stmt = stmt.limit(query.limit)
            rows = [dict(r._mapping) for r in conn.execute(stmt)]
        return QueryResult(rows=rows, total=total)

    def get_one(self, table, column, value, columns=None):
        return self.select(Query(table, columns=columns).eq(column, value).range(0, 1)).first()

    def insert(self, table: str, values: dict) -> dict:
        target = self._table(table)
        with self._begin() as conn:
            row = conn.execute(insert(target).values(**values).returning(target)).one()
            return dict(row._mapping)

    def update(self, table: str, values: dict, match: dict) -> List[dict]:
        target = self._table(table)
        stmt = (
            update(target)
            .where(*[target.c[k] == v for k, v in match.items()])
            .values(**values)
            .returning(target)
        )
        with self._begin() as conn:
            return [dict(r._mapping) for r in conn.execute(stmt)]

    def delete(self, table: str, match: dict) -> int:
        target = self._table(table)
        stmt = delete(target).where(*[target.c[k] == v for k, v in match.items()])
        with self._begin() as conn:
            return conn.execute(stmt).rowcount or 0


def session_statements(claims: dict) -> List[tuple[str, dict]]:
    """Statements that make a transaction evaluate row-level policies as ``claims``."""
    role = claims.get("role")
    if role not in SESSION_ROLES:
        raise ValueError(f"Unsupported session role: {role!r}")
    return [
        (
            "select set_config('request.jwt.claims', :claims, true)",
            {"claims": json.dumps(claims)},
        ),
        (f"set local role {role}", {}),
    ]


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
