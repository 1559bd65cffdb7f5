"""
Source collaborators: where the mirrored Tally rows come from.

The only contract the sync engine relies on is

    fetch(table, filters, limit) -> list[dict]

returning loosely-typed rows. Equality filters are applied only to columns
the table actually has, so a tenant filter is silently ignored by tables
that are not tenant-partitioned in the mirror.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from loguru import logger
from sqlalchemy import MetaData, Table, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from tally_sync.etl.errors import SourceReadError


class SourceStore(Protocol):
    def fetch(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...


def _split(table: str) -> tuple[Optional[str], str]:
    """'tally.ledger' → ('tally', 'ledger'); 'companies' → (None, 'companies')."""
    if "." in table:
        schema, name = table.split(".", 1)
        return schema, name
    return None, table


class SqlSource:
    """Reads source tables through SQLAlchemy Core, reflecting each table once."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._metadata = MetaData()
        self._tables: dict[str, Table] = {}

    def _table(self, table: str) -> Table:
        if table not in self._tables:
            schema, name = _split(table)
            self._tables[table] = Table(
                name, self._metadata, schema=schema, autoload_with=self.engine
            )
        return self._tables[table]

    def fetch(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        try:
            tbl = self._table(table)
            stmt = select(tbl)
            for column, value in (filters or {}).items():
                if value is None:
                    continue
                if column in tbl.c:
                    stmt = stmt.where(tbl.c[column] == value)
                else:
                    logger.debug(f"{table}: no {column} column, filter ignored")
            if limit:
                stmt = stmt.limit(limit)
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise SourceReadError(table, str(exc)) from exc
        return [dict(r) for r in rows]


class StaticSource:
    """In-memory source: ``{table: [row, ...]}``. Used for fixtures and tests."""

    def __init__(self, tables: Optional[Mapping[str, list[dict]]] = None):
        self.tables: dict[str, list[dict]] = {k: list(v) for k, v in (tables or {}).items()}

    def fetch(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        if table not in self.tables:
            raise SourceReadError(table, "table does not exist")
        rows = self.tables[table]
        for column, value in (filters or {}).items():
            if value is None:
                continue
            rows = [r for r in rows if column not in r or r[column] == value]
        if limit:
            rows = rows[:limit]
        return [dict(r) for r in rows]
