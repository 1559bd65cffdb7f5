"""
Tenant resolution: (company name, division name) → (company_id, division_id).

Every warehouse row carries its tenant scope, so every source row passes
through here. Results are memoised for the lifetime of one sync run.

Get-or-create relies on the unique constraints on ``companies.name`` and
``divisions(company_id, name)``: when an insert loses a race against
another writer, the IntegrityError is caught and the winner's row is read
back instead of failing the record.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Type, TypeVar

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select

from tally_sync.etl.cache import LookupCache, MemoryLookupCache
from tally_sync.etl.errors import RecordError
from tally_sync.models.tenant import Company, Division

T = TypeVar("T", bound=SQLModel)


@dataclass(frozen=True)
class TenantScope:
    company_id: int
    division_id: Optional[int]


def tenant_label(company_name: str, division_name: Optional[str]) -> str:
    """Log label for a tenant; the cache is keyed on the (company, division) pair."""
    return f"{company_name}_{division_name or 'default'}"


class TenantResolver:
    def __init__(
        self,
        session: Session,
        cache: Optional[LookupCache] = None,
        default_company: str = "Default Company",
    ):
        self.session = session
        self.cache = cache if cache is not None else MemoryLookupCache()
        self.default_company = default_company

    def resolve(self, company_name: Optional[str], division_name: Optional[str] = None) -> TenantScope:
        company_name = company_name or self.default_company
        if not company_name:
            raise RecordError("no company name to resolve tenant")
        key = (company_name, division_name or None)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        company = self._get_or_create(
            Company,
            select(Company).where(Company.name == company_name),
            Company(name=company_name),
        )
        division_id = None
        if division_name:
            division = self._get_or_create(
                Division,
                select(Division).where(
                    Division.company_id == company.id,
                    Division.name == division_name,
                ),
                Division(company_id=company.id, name=division_name),
            )
            division_id = division.id

        scope = TenantScope(company_id=company.id, division_id=division_id)
        self.cache.set(key, scope)
        logger.debug(f"Resolved tenant {tenant_label(company_name, division_name)!r} → {scope}")
        return scope

    def _get_or_create(self, model: Type[T], stmt, new: T) -> T:
        existing = self.session.exec(stmt).first()
        if existing is not None:
            return existing
        self.session.add(new)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost the race: someone else created it between our select and insert
            self.session.rollback()
            existing = self.session.exec(stmt).first()
            if existing is None:
                raise
            logger.info(f"{model.__tablename__}: concurrent create detected, reusing id={existing.id}")
            return existing
        self.session.refresh(new)
        logger.info(f"Created {model.__tablename__} row id={new.id}")
        return new
