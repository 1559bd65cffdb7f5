"""
Sync orchestrator: runs table syncers in dependency order and reports.

Failure policy:
  - a failing row is handled inside its table syncer
  - a failing table (unreadable source, timeout, bug) becomes a one-error
    result for that table and the run carries on with the next table
  - only a malformed request or an unreachable warehouse aborts the run
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Optional, Union

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from tally_sync.core.config import settings
from tally_sync.core.database import build_engine, engine as default_engine
from tally_sync.etl.cache import LookupCache, MemoryLookupCache
from tally_sync.etl.engine import Deadline, SyncContext, build_syncers
from tally_sync.etl.errors import SyncRequestError, SyncTimeoutError
from tally_sync.etl.ordering import SYNC_ORDER
from tally_sync.etl.resolver import ReferenceResolver
from tally_sync.etl.results import aggregate, table_failure
from tally_sync.etl.sources import SourceStore, SqlSource
from tally_sync.etl.tenants import TenantResolver
from tally_sync.models.tenant import utcnow
from tally_sync.models.transaction import SyncLog
from tally_sync.schemas.responses import SyncResponse, SyncResult

ACTIONS = ("full_sync", "sync_table")

_default_source: Optional[SqlSource] = None


def default_source() -> SqlSource:
    """SqlSource over SOURCE_DATABASE_URL, created on first use."""
    global _default_source
    if _default_source is None:
        _default_source = SqlSource(build_engine(settings.SOURCE_DATABASE_URL))
    return _default_source


def run_sync(
    action: str = "full_sync",
    *,
    batch_size: Optional[int] = None,
    company_id: Union[int, str, None] = None,
    division_id: Union[int, str, None] = None,
    table_name: Optional[str] = None,
    source: Optional[SourceStore] = None,
    bind: Optional[Engine] = None,
    deadline_seconds: Optional[float] = None,
    tenant_cache: Optional[LookupCache] = None,
    reference_cache: Optional[LookupCache] = None,
) -> SyncResponse:
    """
    Run one sync.

    ``full_sync`` walks every table in SYNC_ORDER; ``sync_table`` runs only
    ``table_name``. Caches are fresh per run unless injected.
    """
    if action not in ACTIONS:
        raise SyncRequestError(f"Unknown action: {action}")
    if action == "sync_table" and not table_name:
        raise SyncRequestError("tableName is required for sync_table")

    bind = bind or default_engine
    source = source if source is not None else default_source()
    deadline = Deadline(settings.SYNC_RUN_DEADLINE if deadline_seconds is None else deadline_seconds)
    tables = list(SYNC_ORDER) if action == "full_sync" else [table_name]
    started_at = utcnow()

    logger.info(
        f"Starting Tally sync: action={action} tables={len(tables)} "
        f"batch_size={batch_size or settings.SYNC_BATCH_SIZE} "
        f"company_id={company_id} division_id={division_id}"
    )

    try:
        results = _run_tables(
            tables,
            bind=bind,
            source=source,
            deadline=deadline,
            batch_size=batch_size or settings.SYNC_BATCH_SIZE,
            company_id=company_id,
            division_id=division_id,
            tenant_cache=tenant_cache,
            reference_cache=reference_cache,
        )
    except Exception as exc:
        logger.error(f"Sync aborted: {exc}")
        _record_run(bind, action, table_name, "error", started_at, message=str(exc))
        raise

    response = aggregate(results)
    status = "success" if response.success else "partial"
    logger.info(f"Sync finished ({status}): {response.message}")
    _record_run(bind, action, table_name, status, started_at, response=response)
    return response


def _run_tables(
    tables: list[str],
    *,
    bind: Engine,
    source: SourceStore,
    deadline: Deadline,
    batch_size: int,
    company_id,
    division_id,
    tenant_cache: Optional[LookupCache],
    reference_cache: Optional[LookupCache],
) -> list[SyncResult]:
    syncers = build_syncers()
    results: list[SyncResult] = []

    with Session(bind) as session:
        # Fail the whole run up front if the warehouse is unreachable
        session.connection()

        ctx = SyncContext(
            session=session,
            source=source,
            tenants=TenantResolver(
                session,
                cache=tenant_cache if tenant_cache is not None else MemoryLookupCache(),
                default_company=settings.DEFAULT_COMPANY_NAME,
            ),
            refs=ReferenceResolver(
                session,
                cache=reference_cache if reference_cache is not None else MemoryLookupCache(),
            ),
            deadline=deadline,
            batch_size=batch_size,
            company_id=company_id,
            division_id=division_id,
            default_division=settings.DEFAULT_DIVISION_NAME or None,
        )

        for table in tables:
            syncer = syncers.get(table)
            if syncer is None:
                logger.error(f"Unknown table: {table}")
                results.append(table_failure(table, SyncRequestError(f"Unknown table: {table}")))
                continue
            try:
                result = syncer.sync(ctx)
            except SyncTimeoutError as exc:
                session.rollback()
                logger.error(str(exc))
                result = table_failure(table, exc)
            except Exception as exc:
                session.rollback()
                logger.exception(f"Error syncing table {table}: {exc}")
                result = table_failure(table, exc)
            results.append(result)

    return results


def _record_run(
    bind: Engine,
    action: str,
    table_name: Optional[str],
    status: str,
    started_at: datetime,
    *,
    response: Optional[SyncResponse] = None,
    message: Optional[str] = None,
) -> None:
    log = SyncLog(
        action=action,
        table_name=table_name,
        status=status,
        started_at=started_at,
        finished_at=utcnow(),
        message=message,
    )
    if response is not None:
        log.total_records = response.total_records
        log.total_errors = response.total_errors
        log.message = response.message
        log.results = json.dumps([r.model_dump(by_alias=True) for r in response.results])
    else:
        log.total_errors = 1
    try:
        with Session(bind) as session:
            session.add(log)
            session.commit()
    except SQLAlchemyError as exc:
        logger.error(f"Could not write sync log: {exc}")
