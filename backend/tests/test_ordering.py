"""Unit tests for the dependency-ordered table list."""
import pytest

from tally_sync.etl.entities import DECLARED_TABLES, ENTITY_SPECS, dependencies
from tally_sync.etl.errors import DependencyOrderError
from tally_sync.etl.ordering import SYNC_ORDER, topological_order, validate_order


class TestSyncOrder:
    def test_every_table_present_once(self):
        assert sorted(SYNC_ORDER) == sorted(DECLARED_TABLES)
        assert len(SYNC_ORDER) == len(set(SYNC_ORDER))

    def test_tenants_first(self):
        assert SYNC_ORDER[:2] == ["companies", "divisions"]

    def test_parents_before_children(self):
        pos = {t: i for i, t in enumerate(SYNC_ORDER)}
        for table, spec in ENTITY_SPECS.items():
            for ref in spec.parent_refs:
                assert pos[ref.target] < pos[table], f"{ref.target} must precede {table}"

    def test_known_order(self):
        assert SYNC_ORDER == [
            "companies",
            "divisions",
            "units_of_measure",
            "groups",
            "ledgers",
            "stock_groups",
            "stock_items",
            "godowns",
            "cost_categories",
            "cost_centres",
            "voucher_types",
            "vouchers",
            "ledger_entries",
            "inventory_entries",
            "address_details",
            "bank_details",
        ]

    def test_current_graph_validates(self):
        validate_order(SYNC_ORDER, dependencies())


class TestTopologicalOrder:
    def test_declaration_breaks_ties(self):
        graph = {"a": set(), "b": set(), "c": {"a"}}
        assert topological_order(graph, ["b", "a", "c"]) == ["b", "a", "c"]

    def test_dependency_beats_declaration(self):
        graph = {"child": {"parent"}, "parent": set()}
        assert topological_order(graph, ["child", "parent"]) == ["parent", "child"]

    def test_self_reference_ignored(self):
        graph = {"groups": {"groups"}}
        assert topological_order(graph, ["groups"]) == ["groups"]

    def test_cycle_rejected(self):
        graph = {"a": {"b"}, "b": {"a"}}
        with pytest.raises(DependencyOrderError, match="cycle"):
            topological_order(graph, ["a", "b"])

    def test_undeclared_dependency_rejected(self):
        with pytest.raises(DependencyOrderError, match="undeclared"):
            topological_order({"ledgers": {"groups"}}, ["ledgers"])


class TestValidateOrder:
    def test_child_before_parent_rejected(self):
        with pytest.raises(DependencyOrderError, match="not synced before"):
            validate_order(["ledgers", "groups"], {"ledgers": {"groups"}, "groups": set()})

    def test_missing_table_rejected(self):
        with pytest.raises(DependencyOrderError, match="missing"):
            validate_order(["groups"], {"ledgers": {"groups"}, "groups": set()})
