"""
Table sync order, derived from the declared dependencies.

A syncer may only look up rows of tables that were synced before it, so the
order is a topological sort of the dependency graph. Ties are broken by
declaration order, which keeps the result stable and readable:

  companies → divisions → units_of_measure → groups → ledgers →
  stock_groups → stock_items → godowns → cost_categories → cost_centres →
  voucher_types → vouchers → ledger_entries → inventory_entries →
  address_details → bank_details
"""
from __future__ import annotations

import heapq
from typing import Iterable, Mapping

from tally_sync.etl.entities import DECLARED_TABLES, dependencies
from tally_sync.etl.errors import DependencyOrderError


def topological_order(
    graph: Mapping[str, Iterable[str]],
    preferred: list[str],
) -> list[str]:
    """Kahn's algorithm; among ready tables the one declared first goes next."""
    rank = {table: i for i, table in enumerate(preferred)}
    for table in graph:
        rank.setdefault(table, len(rank))

    deps = {table: set(d) - {table} for table, d in graph.items()}
    for table, d in deps.items():
        unknown = d - deps.keys()
        if unknown:
            raise DependencyOrderError(f"{table} depends on undeclared table(s) {sorted(unknown)}")

    dependents: dict[str, set[str]] = {table: set() for table in deps}
    for table, d in deps.items():
        for parent in d:
            dependents[parent].add(table)

    remaining = {table: len(d) for table, d in deps.items()}
    ready = [(rank[t], t) for t, n in remaining.items() if n == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        _, table = heapq.heappop(ready)
        order.append(table)
        for child in dependents[table]:
            remaining[child] -= 1
            if remaining[child] == 0:
                heapq.heappush(ready, (rank[child], child))

    if len(order) != len(deps):
        stuck = sorted(t for t, n in remaining.items() if n > 0)
        raise DependencyOrderError(f"Dependency cycle between tables: {stuck}")
    return order


def validate_order(order: list[str], graph: Mapping[str, Iterable[str]]) -> None:
    """Raise if any table's dependency is missing from, or later in, ``order``."""
    position = {table: i for i, table in enumerate(order)}
    for table, deps in graph.items():
        if table not in position:
            raise DependencyOrderError(f"{table} is missing from the sync order")
        for parent in deps:
            if parent == table:
                continue
            if parent not in position or position[parent] >= position[table]:
                raise DependencyOrderError(
                    f"{table} looks up {parent}, which is not synced before it"
                )


SYNC_ORDER: list[str] = topological_order(dependencies(), DECLARED_TABLES)
validate_order(SYNC_ORDER, dependencies())
