"""
Table syncers: pull source rows, resolve references, upsert into the warehouse.

Every table goes through the same row loop (``TableSyncer.sync``):

  1. fetch the source rows for the table
  2. for each row, independently: resolve tenant, resolve parent links,
     cast fields, upsert keyed by (company_id, division_id, tally_guid),
     commit
  3. a failing row is rolled back, counted and described, and the loop
     moves on
  4. a timeout ends the table early: rows already committed stay counted
     and the timeout is added as one error

Entity tables are driven entirely by their ``EntitySpec``. Tables whose
parent is a row of the same table (groups, stock groups, voucher types) get
a second pass once every row of the batch has a warehouse id.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Type, Union

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, col, select

from tally_sync.etl.casting import to_text
from tally_sync.etl.entities import ENTITY_SPECS, MODELS_BY_TABLE, EntitySpec, pick
from tally_sync.etl.errors import RecordError, SyncTimeoutError
from tally_sync.etl.resolver import ReferenceResolver, scoped
from tally_sync.etl.sources import SourceStore
from tally_sync.etl.tenants import TenantResolver, TenantScope
from tally_sync.models.tenant import Company, Division, utcnow
from tally_sync.schemas.responses import SyncResult

GUID_KEYS = ("tally_guid", "guid", "id")


class Deadline:
    """Wall-clock budget for one sync run. ``None`` means unlimited."""

    def __init__(self, seconds: Optional[float] = None):
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds if seconds else None

    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self, table: str) -> None:
        if self.expired():
            raise SyncTimeoutError(f"Run deadline of {self.seconds}s exceeded while syncing {table}")


@dataclass
class SyncContext:
    session: Session
    source: SourceStore
    tenants: TenantResolver
    refs: ReferenceResolver
    deadline: Deadline
    batch_size: Optional[int] = None
    company_id: Union[int, str, None] = None
    division_id: Union[int, str, None] = None
    default_division: Optional[str] = None

    def tenant_filters(self) -> dict[str, Any]:
        return {"company_id": self.company_id, "division_id": self.division_id}

    def resolve_scope(self, row: Mapping[str, Any]) -> TenantScope:
        return self.tenants.resolve(
            to_text(row.get("company_name")),
            to_text(row.get("division_name")) or self.default_division,
        )


@dataclass(frozen=True)
class WrittenRow:
    """What pass 1 remembers about a row it upserted."""

    id: int
    scope: TenantScope
    guid: str
    name: Optional[str]


def describe(exc: BaseException) -> str:
    """Short human message; DBAPI errors are unwrapped so the SQL is not echoed."""
    if isinstance(exc, SQLAlchemyError) and getattr(exc, "orig", None) is not None:
        return str(exc.orig)
    return str(exc) or exc.__class__.__name__


def map_fields(spec: EntitySpec, row: Mapping[str, Any]) -> dict[str, Any]:
    """Cast source values onto warehouse columns; values that cast to None are left out."""
    values: dict[str, Any] = {}
    for fm in spec.fields:
        value = fm.cast(pick(row, fm.source))
        if value is not None:
            values[fm.column] = value
    return values


def upsert(
    session: Session,
    model: Type[SQLModel],
    scope: TenantScope,
    guid: str,
    values: Mapping[str, Any],
) -> SQLModel:
    """Insert or update the row keyed by (company_id, division_id, tally_guid)."""
    stmt = scoped(select(model), model, scope).where(model.tally_guid == guid)
    existing = session.exec(stmt).first()
    if existing is not None:
        for k, v in values.items():
            setattr(existing, k, v)
        existing.updated_at = utcnow()
        session.add(existing)
        session.flush()
        return existing
    record = model(
        company_id=scope.company_id,
        division_id=scope.division_id,
        tally_guid=guid,
        **values,
    )
    session.add(record)
    session.flush()
    return record


# ── two-pass self reference ──────────────────────────────────────────────────

IdMap = dict[tuple[TenantScope, str, str], int]


def build_id_map(written: list[WrittenRow]) -> IdMap:
    """Pass-1 output: (scope, "guid"|"name", value) → warehouse id. First row wins per name."""
    id_map: IdMap = {}
    for w in written:
        id_map.setdefault((w.scope, "guid", w.guid), w.id)
        if w.name:
            id_map.setdefault((w.scope, "name", w.name), w.id)
    return id_map


def build_parent_links(
    rows: list[tuple[TenantScope, Mapping[str, Any]]],
    id_map: IdMap,
    spec: EntitySpec,
) -> tuple[list[tuple[int, Optional[int]]], list[tuple[int, TenantScope, str]]]:
    """
    Pass 2, pure: work out each written row's parent link from the pass-1 map.

    A parent reference is tried as a GUID first, then as a name. Returns
    ``(links, unresolved)``: links are ``(child_id, parent_id or None)``,
    unresolved are references to parents outside this batch, to be looked
    up in the warehouse by the caller.
    """
    links: list[tuple[int, Optional[int]]] = []
    unresolved: list[tuple[int, TenantScope, str]] = []
    for scope, row in rows:
        guid = to_text(pick(row, spec.guid_keys))
        child_id = id_map.get((scope, "guid", guid)) if guid else None
        if child_id is None:
            continue  # failed or skipped in pass 1
        parent_key = to_text(pick(row, spec.self_parent.source))
        if not parent_key:
            links.append((child_id, None))
            continue
        parent_id = id_map.get((scope, "guid", parent_key))
        if parent_id is None:
            parent_id = id_map.get((scope, "name", parent_key))
        if parent_id is None:
            unresolved.append((child_id, scope, parent_key))
        elif parent_id != child_id:
            links.append((child_id, parent_id))
        else:
            links.append((child_id, None))
    return links, unresolved


# ── syncers ──────────────────────────────────────────────────────────────────


class TableSyncer:
    """Shared row loop with per-record error isolation."""

    table: str
    label: str
    source_table: str
    name_keys: tuple[str, ...] = ("name",)
    guid_keys: tuple[str, ...] = GUID_KEYS

    def fetch(self, ctx: SyncContext) -> list[dict]:
        return ctx.source.fetch(self.source_table)

    def sync_row(self, ctx: SyncContext, row: Mapping[str, Any]) -> Optional[WrittenRow]:
        raise NotImplementedError

    def after_rows(
        self,
        ctx: SyncContext,
        rows: list[tuple[TenantScope, Mapping[str, Any]]],
        written: list[WrittenRow],
        result: SyncResult,
    ) -> None:
        pass

    def identify(self, row: Mapping[str, Any]) -> str:
        value = pick(row, self.name_keys)
        if value is None:
            value = pick(row, self.guid_keys)
        return str(value)

    def record_error(self, ctx: SyncContext, result: SyncResult, name: str, exc: BaseException) -> None:
        ctx.session.rollback()
        result.errors += 1
        detail = f"{self.label} {name}: {describe(exc)}"
        result.error_details.append(detail)
        logger.error(f"{self.table}: {detail}")

    def sync(self, ctx: SyncContext) -> SyncResult:
        ctx.deadline.check(self.table)
        logger.info(f"Syncing {self.table} from {self.source_table}")
        source_rows = self.fetch(ctx)

        result = SyncResult(table=self.table)
        handled: list[tuple[TenantScope, Mapping[str, Any]]] = []
        written: list[WrittenRow] = []
        try:
            for row in source_rows:
                ctx.deadline.check(self.table)
                try:
                    outcome = self.sync_row(ctx, row)
                except SyncTimeoutError:
                    raise
                except Exception as exc:
                    self.record_error(ctx, result, self.identify(row), exc)
                    continue
                if outcome is None:
                    result.skipped += 1
                    continue
                result.synced += 1
                written.append(outcome)
                handled.append((outcome.scope, row))

            self.after_rows(ctx, handled, written, result)
        except SyncTimeoutError as exc:
            # Rows committed so far stay counted; the rest of the table is one error
            ctx.session.rollback()
            result.errors += 1
            result.error_details.append(str(exc))
            logger.error(f"{self.table}: {exc}")

        logger.info(
            f"{self.table}: {result.synced} synced, {result.errors} errors, "
            f"{result.skipped} skipped of {len(source_rows)} source rows"
        )
        return result


class EntitySyncer(TableSyncer):
    """Generic syncer for any tenant-scoped table described by an EntitySpec."""

    def __init__(self, spec: EntitySpec):
        self.spec = spec
        self.table = spec.table
        self.label = spec.label
        self.source_table = spec.source_table
        self.name_keys = spec.name_keys
        self.guid_keys = spec.guid_keys

    def fetch(self, ctx: SyncContext) -> list[dict]:
        filters = ctx.tenant_filters() if self.spec.tenant_filter else None
        limit = ctx.batch_size if self.spec.batched else None
        return ctx.source.fetch(self.source_table, filters, limit)

    def sync_row(self, ctx: SyncContext, row: Mapping[str, Any]) -> Optional[WrittenRow]:
        guid = to_text(pick(row, self.guid_keys))
        if not guid:
            raise RecordError("missing tally_guid")
        scope = ctx.resolve_scope(row)

        links: dict[str, Optional[int]] = {}
        for ref in self.spec.parent_refs:
            key = to_text(pick(row, ref.source))
            target_id = ctx.refs.lookup(MODELS_BY_TABLE[ref.target], scope, ref.lookup_by, key)
            if target_id is None and ref.required:
                logger.debug(
                    f"{self.table}: skipping {self.identify(row)}, "
                    f"{ref.target} {key!r} is not synced"
                )
                return None
            links[ref.field] = target_id

        values = map_fields(self.spec, row)
        values.update(links)
        record = upsert(ctx.session, self.spec.model, scope, guid, values)
        row_id = record.id
        ctx.session.commit()
        ctx.refs.remember(self.spec.model, scope, "tally_guid", guid, row_id)
        return WrittenRow(id=row_id, scope=scope, guid=guid, name=values.get("name"))

    def after_rows(self, ctx, rows, written, result) -> None:
        if self.spec.self_parent is None or not written:
            return
        links, unresolved = build_parent_links(rows, build_id_map(written), self.spec)
        for child_id, scope, parent_key in unresolved:
            parent_id = ctx.refs.lookup(self.spec.model, scope, "tally_guid", parent_key)
            if parent_id is None:
                parent_id = ctx.refs.lookup(self.spec.model, scope, "name", parent_key)
            if parent_id is None:
                logger.warning(f"{self.table}: parent {parent_key!r} of row id={child_id} not found")
            links.append((child_id, parent_id if parent_id != child_id else None))

        model = self.spec.model
        field = self.spec.self_parent.field
        names = {w.id: w.name or w.guid for w in written}
        for child_id, parent_id in links:
            ctx.deadline.check(self.table)
            try:
                record = ctx.session.get(model, child_id)
                setattr(record, field, parent_id)
                record.updated_at = utcnow()
                ctx.session.add(record)
                ctx.session.commit()
            except Exception as exc:
                self.record_error(ctx, result, f"{names.get(child_id)} (parent link)", exc)


class CompanySyncer(TableSyncer):
    """Companies from the source tenant table, keyed by their Tally id."""

    table = "companies"
    label = "Company"
    source_table = "companies"

    def sync_row(self, ctx: SyncContext, row: Mapping[str, Any]) -> Optional[WrittenRow]:
        guid = to_text(pick(row, self.guid_keys))
        name = to_text(row.get("name"))
        if not guid:
            raise RecordError("missing tally_guid")
        if not name:
            raise RecordError("missing name")
        session = ctx.session

        company = session.exec(select(Company).where(Company.tally_guid == guid)).first()
        if company is None:
            # Adopt a company the tenant resolver created by name
            company = session.exec(
                select(Company).where(Company.name == name, col(Company.tally_guid).is_(None))
            ).first()
        if company is None:
            company = Company(name=name, tally_guid=guid)
        else:
            company.name = name
            company.tally_guid = guid
            company.updated_at = utcnow()
        session.add(company)
        session.flush()
        company_id = company.id
        session.commit()
        return WrittenRow(id=company_id, scope=TenantScope(company_id, None), guid=guid, name=name)


class DivisionSyncer(TableSyncer):
    """Divisions, attached to the company whose Tally id the source row carries."""

    table = "divisions"
    label = "Division"
    source_table = "divisions"

    def sync_row(self, ctx: SyncContext, row: Mapping[str, Any]) -> Optional[WrittenRow]:
        guid = to_text(pick(row, self.guid_keys))
        name = to_text(row.get("name"))
        if not guid:
            raise RecordError("missing tally_guid")
        if not name:
            raise RecordError("missing name")
        session = ctx.session

        source_company = to_text(row.get("company_id"))
        company_id = session.exec(
            select(Company.id).where(Company.tally_guid == source_company)
        ).first()
        if company_id is None:
            raise RecordError(f"Company not found for {source_company}")

        division = session.exec(
            select(Division).where(Division.company_id == company_id, Division.tally_guid == guid)
        ).first()
        if division is None:
            division = session.exec(
                select(Division).where(
                    Division.company_id == company_id,
                    Division.name == name,
                    col(Division.tally_guid).is_(None),
                )
            ).first()
        if division is None:
            division = Division(company_id=company_id, name=name, tally_guid=guid)
        else:
            division.name = name
            division.tally_guid = guid
            division.updated_at = utcnow()
        tally_url = to_text(row.get("tally_url"))
        if tally_url is not None:
            division.tally_url = tally_url
        session.add(division)
        session.flush()
        division_id = division.id
        session.commit()
        return WrittenRow(
            id=division_id, scope=TenantScope(company_id, division_id), guid=guid, name=name
        )


def build_syncers() -> dict[str, TableSyncer]:
    syncers: dict[str, TableSyncer] = {
        "companies": CompanySyncer(),
        "divisions": DivisionSyncer(),
    }
    for table, spec in ENTITY_SPECS.items():
        syncers[table] = EntitySyncer(spec)
    return syncers
