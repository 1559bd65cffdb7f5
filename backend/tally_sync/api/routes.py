"""
REST API routes for the Tally → VT sync service.

Endpoints:
  GET     /api/health
  POST    /api/sync
  OPTIONS /api/sync
  GET     /api/sync/tables
  GET     /api/sync/logs
"""

import json

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError
from sqlmodel import Session, col, select

from tally_sync.core.database import get_session
from tally_sync.etl.orchestrator import run_sync
from tally_sync.etl.ordering import SYNC_ORDER
from tally_sync.etl.results import run_failure
from tally_sync.models.transaction import SyncLog
from tally_sync.schemas.responses import (
    HealthResponse,
    SyncLogRead,
    SyncRequest,
    SyncResponse,
)

router = APIRouter(prefix="/api")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _failure(message: str) -> JSONResponse:
    body = run_failure(message).model_dump(by_alias=True)
    return JSONResponse(status_code=500, content=body, headers=CORS_HEADERS)


# ── Health ────────────────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
def health(session: Session = Depends(get_session)):
    try:
        session.exec(select(SyncLog).limit(1))
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {e}"
    return HealthResponse(status="ok", db=db_status)


# ── Sync ──────────────────────────────────────────────────────────────────────


@router.options("/sync")
def sync_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/sync", response_model=SyncResponse)
async def trigger_sync(request: Request):
    """
    Run a sync.

    Body: {action: "full_sync" | "sync_table", batchSize?, companyId?,
    divisionId?, tableName?}. Per-row and per-table failures still return
    200 with success=false; only a run-level failure returns 500.
    """
    try:
        raw = await request.body()
        payload = json.loads(raw) if raw.strip() else {}
        req = SyncRequest.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        logger.warning(f"Rejected sync request: {exc}")
        return _failure(f"Invalid sync request: {exc}")

    try:
        response = await run_in_threadpool(
            run_sync,
            req.action,
            batch_size=req.batch_size,
            company_id=req.company_id,
            division_id=req.division_id,
            table_name=req.table_name,
        )
    except Exception as exc:
        logger.exception(f"Sync error: {exc}")
        return _failure(str(exc))

    return JSONResponse(
        status_code=200,
        content=response.model_dump(by_alias=True),
        headers=CORS_HEADERS,
    )


@router.get("/sync/tables", response_model=list[str])
def sync_tables():
    return SYNC_ORDER


@router.get("/sync/logs", response_model=list[SyncLogRead])
def sync_logs(
    limit: int = Query(default=20, ge=1, le=200),
    session: Session = Depends(get_session),
):
    logs = session.exec(
        select(SyncLog).order_by(col(SyncLog.started_at).desc()).limit(limit)
    ).all()
    return [
        SyncLogRead(
            id=log.id,
            action=log.action,
            table_name=log.table_name,
            status=log.status,
            total_records=log.total_records,
            total_errors=log.total_errors,
            message=log.message,
            results=json.loads(log.results) if log.results else None,
            started_at=log.started_at,
            finished_at=log.finished_at,
        )
        for log in logs
    ]
