"""Per-table sync results and their aggregation into the run response."""
from __future__ import annotations

from typing import Iterable, Optional

from tally_sync.schemas.responses import SyncResponse, SyncResult


def table_failure(table: str, exc: BaseException) -> SyncResult:
    """A whole table failed (unreadable source, timeout, unexpected bug)."""
    return SyncResult(table=table, synced=0, errors=1, error_details=[str(exc) or repr(exc)])


def aggregate(results: Iterable[SyncResult], message: Optional[str] = None) -> SyncResponse:
    results = list(results)
    total_records = sum(r.synced for r in results)
    total_errors = sum(r.errors for r in results)
    return SyncResponse(
        success=total_errors == 0,
        message=message
        or f"Sync completed. {total_records} records synced, {total_errors} errors.",
        results=results,
        total_records=total_records,
        total_errors=total_errors,
    )


def run_failure(message: str) -> SyncResponse:
    """Response for a run that failed before producing any table result."""
    return SyncResponse(
        success=False,
        message=message,
        results=[],
        total_records=0,
        total_errors=1,
    )
