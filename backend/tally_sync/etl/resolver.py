"""
Reference resolution against rows already in the warehouse.

Tally does not expose stable ids across entity kinds, so most links
(ledger → group, stock item → stock group, entry → ledger …) are matched
by display name. Voucher children are matched by the voucher's GUID.

Matching rules:
  - exact, case-sensitive equality
  - always within the same tenant scope (company_id and division_id)
  - if several rows share the name, the lowest id wins
  - only hits are cached; a miss is re-queried next time
"""
from __future__ import annotations

from typing import Any, Optional, Type

from sqlmodel import Session, SQLModel, col, select

from tally_sync.etl.cache import LookupCache, MemoryLookupCache
from tally_sync.etl.tenants import TenantScope


def scoped(stmt, model: Type[SQLModel], scope: TenantScope):
    """Restrict a select to one tenant scope."""
    stmt = stmt.where(model.company_id == scope.company_id)
    if scope.division_id is None:
        return stmt.where(col(model.division_id).is_(None))
    return stmt.where(model.division_id == scope.division_id)


class ReferenceResolver:
    def __init__(self, session: Session, cache: Optional[LookupCache] = None):
        self.session = session
        self.cache = cache if cache is not None else MemoryLookupCache()

    @staticmethod
    def _key(model: Type[SQLModel], scope: TenantScope, field: str, value: Any) -> tuple:
        return (model.__tablename__, scope.company_id, scope.division_id, field, value)

    def lookup(
        self,
        model: Type[SQLModel],
        scope: TenantScope,
        field: str,
        value: Any,
    ) -> Optional[int]:
        if value is None or value == "":
            return None
        key = self._key(model, scope, field, value)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        stmt = scoped(select(model.id), model, scope)
        stmt = stmt.where(getattr(model, field) == value).order_by(model.id).limit(1)
        found = self.session.exec(stmt).first()
        if found is not None:
            self.cache.set(key, found)
        return found

    def remember(
        self,
        model: Type[SQLModel],
        scope: TenantScope,
        field: str,
        value: Any,
        row_id: int,
    ) -> None:
        """
        Seed the cache after an upsert.

        Only for fields unique within a scope (tally_guid). Names may repeat,
        and seeding one could shadow a lower-id row with the same name.
        """
        if value is None or value == "":
            return
        key = self._key(model, scope, field, value)
        if self.cache.get(key) is None:
            self.cache.set(key, row_id)
