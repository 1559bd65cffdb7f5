"""Pydantic request/response schemas for the sync API (camelCase on the wire)."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tally_sync.core.config import settings


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SyncRequest(CamelModel):
    action: Literal["full_sync", "sync_table"] = "full_sync"
    batch_size: int = Field(default=settings.SYNC_BATCH_SIZE, gt=0)
    company_id: Optional[Union[int, str]] = None
    division_id: Optional[Union[int, str]] = None
    table_name: Optional[str] = None  # required for sync_table


class SyncResult(CamelModel):
    table: str
    synced: int = 0
    errors: int = 0
    skipped: int = 0  # voucher children dropped because their voucher is not synced
    error_details: list[str] = []


class SyncResponse(CamelModel):
    success: bool
    message: str
    results: list[SyncResult]
    total_records: int
    total_errors: int


class HealthResponse(BaseModel):
    status: str
    db: str
    version: str = "1.0.0"


class SyncLogRead(BaseModel):
    id: int
    action: str
    table_name: Optional[str]
    status: str
    total_records: int
    total_errors: int
    message: Optional[str]
    results: Optional[list[dict[str, Any]]]
    started_at: datetime
    finished_at: Optional[datetime]
