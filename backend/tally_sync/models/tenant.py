"""SQLModel models for the tenant hierarchy (companies and their divisions)."""
from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    """Timezone-aware UTC now; every stored timestamp is aware."""
    return datetime.now(timezone.utc)


class Company(SQLModel, table=True):
    """Top-level tenant. Every warehouse row belongs to exactly one company."""

    __tablename__ = "companies"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    tally_guid: Optional[str] = Field(default=None, index=True, unique=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Division(SQLModel, table=True):
    """Second tenant level, scoped to a company."""

    __tablename__ = "divisions"
    __table_args__ = (
        UniqueConstraint("company_id", "name", name="uq_divisions_company_name"),
        UniqueConstraint("company_id", "tally_guid", name="uq_divisions_company_guid"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: int = Field(foreign_key="companies.id", index=True)
    name: str = Field(index=True)
    tally_guid: Optional[str] = Field(default=None, index=True)
    tally_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class TenantScoped(SQLModel):
    """
    Columns shared by every synced entity table.

    The upsert key is always (company_id, division_id, tally_guid).
    """

    company_id: int = Field(foreign_key="companies.id", index=True)
    division_id: Optional[int] = Field(default=None, foreign_key="divisions.id", index=True)
    tally_guid: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


def tenant_key(table: str) -> UniqueConstraint:
    return UniqueConstraint(
        "company_id", "division_id", "tally_guid", name=f"uq_{table}_tenant_guid"
    )
