"""
Declarative description of every synced warehouse table.

Each EntitySpec says where the rows come from, how source columns map and
cast onto warehouse columns, and which other tables the rows point at. The
generic syncer in ``etl.engine`` does the rest, so adding an entity is a
matter of adding a spec here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Type

from sqlmodel import SQLModel

from tally_sync.core.config import settings
from tally_sync.etl import casting as c
from tally_sync.models.master import (
    BankDetail,
    CostCategory,
    CostCentre,
    Godown,
    Group,
    Ledger,
    StockGroup,
    StockItem,
    UnitOfMeasure,
    VoucherType,
)
from tally_sync.models.transaction import AddressDetail, InventoryEntry, LedgerEntry, Voucher

Caster = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldMap:
    """Warehouse column ← first non-null of the listed source keys, through ``cast``."""

    column: str
    source: tuple[str, ...]
    cast: Caster = c.to_text


@dataclass(frozen=True)
class ParentRef:
    """A link to an already-synced row of another table, in the same tenant scope."""

    field: str
    target: str
    source: tuple[str, ...]
    lookup_by: str = "name"  # or "tally_guid"
    required: bool = False  # miss → row skipped instead of stored unlinked


@dataclass(frozen=True)
class SelfParent:
    """Parent is a row of the same table; linked in a second pass."""

    source: tuple[str, ...]
    field: str = "parent_id"


@dataclass(frozen=True)
class EntitySpec:
    table: str
    label: str
    source_table: str
    model: Type[SQLModel]
    fields: tuple[FieldMap, ...]
    parent_refs: tuple[ParentRef, ...] = ()
    self_parent: Optional[SelfParent] = None
    batched: bool = False
    tenant_filter: bool = True
    name_keys: tuple[str, ...] = ("name",)
    guid_keys: tuple[str, ...] = ("tally_guid", "guid", "id")

    @property
    def depends_on(self) -> set[str]:
        return {ref.target for ref in self.parent_refs if ref.target != self.table}


def pick(row: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    """First non-null value among ``keys``."""
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return None


def _tally(name: str) -> str:
    schema = settings.SOURCE_SCHEMA.strip()
    return f"{schema}.{name}" if schema else name


def _f(column: str, *source: str, cast: Caster = c.to_text) -> FieldMap:
    return FieldMap(column=column, source=source or (column,), cast=cast)


def _num(column: str, *source: str) -> FieldMap:
    return _f(column, *source, cast=c.to_float)


def _flag(column: str, *source: str) -> FieldMap:
    return _f(column, *source, cast=c.to_bool)


# Tenant tables are synced by dedicated syncers (they *are* the scope);
# listed here only so the dependency graph knows about them.
TENANT_TABLES: dict[str, tuple[str, ...]] = {
    "companies": (),
    "divisions": ("companies",),
}


_SPECS: list[EntitySpec] = [
    EntitySpec(
        table="units_of_measure",
        label="UOM",
        source_table=_tally("unitofmeasure"),
        model=UnitOfMeasure,
        tenant_filter=False,
        fields=(
            _f("name"),
            _f("formal_name", "formalname", "formal_name"),
            _flag("is_simple_unit"),
            _f("base_units"),
            _f("additional_units"),
            _f("conversion_factor", "conversion", cast=c.conversion_factor),
        ),
    ),
    EntitySpec(
        table="groups",
        label="Group",
        source_table=_tally("group_table"),
        model=Group,
        self_parent=SelfParent(source=("parent_group_id", "parent")),
        fields=(
            _f("name"),
            _f("primary_group"),
            _flag("is_revenue"),
            _flag("is_deemed_positive", "is_deemed_positive", "is_deemedpositive"),
            _flag("is_reserved"),
            _flag("affects_gross_profit"),
            _f("sort_position", cast=c.to_int),
        ),
    ),
    EntitySpec(
        table="ledgers",
        label="Ledger",
        source_table=_tally("ledger"),
        model=Ledger,
        parent_refs=(ParentRef(field="group_id", target="groups", source=("parent",)),),
        fields=(
            _f("name"),
            _f("alias"),
            _num("opening_balance"),
            _num("closing_balance"),
            _f("mailing_name"),
            _f("mailing_address"),
            _f("email"),
            _f("gstn", "gstn", "gstin"),
            _f("pan", "it_pan", "pan"),
            _f("gst_registration_type"),
            _f("gst_supply_type"),
            _f("bank_name"),
            _f("bank_account_number"),
            _f("bank_ifsc"),
            _f("bank_account_holder"),
            _num("credit_limit"),
            _f("credit_days", cast=c.to_int),
            _flag("is_revenue"),
            _flag("is_deemed_positive", "is_deemedpositive", "is_deemed_positive"),
        ),
    ),
    EntitySpec(
        table="stock_groups",
        label="Stock Group",
        source_table=_tally("stockgroup"),
        model=StockGroup,
        tenant_filter=False,
        self_parent=SelfParent(source=("parent",)),
        fields=(_f("name"),),
    ),
    EntitySpec(
        table="stock_items",
        label="Stock Item",
        source_table=_tally("stockitem"),
        model=StockItem,
        tenant_filter=False,
        parent_refs=(
            ParentRef(field="stock_group_id", target="stock_groups", source=("parent",)),
        ),
        fields=(
            _f("name"),
            _f("alias"),
            _f("part_number"),
            _f("description"),
            _f("base_units"),
            _num("opening_balance"),
            _num("opening_rate"),
            _num("opening_value"),
            _num("closing_balance"),
            _num("closing_rate"),
            _num("closing_value"),
            _f("gst_hsn_code"),
            _f("gst_hsn_description"),
            _num("gst_rate"),
            _f("gst_taxability"),
            _f("gst_type_of_supply"),
            _f("costing_method", cast=c.costing_method),
        ),
    ),
    EntitySpec(
        table="godowns",
        label="Godown",
        source_table=_tally("godown"),
        model=Godown,
        tenant_filter=False,
        fields=(_f("name"), _f("address")),
    ),
    EntitySpec(
        table="cost_categories",
        label="Cost Category",
        source_table=_tally("costcategory"),
        model=CostCategory,
        tenant_filter=False,
        fields=(
            _f("name"),
            _flag("allocate_revenue"),
            _flag("allocate_non_revenue"),
        ),
    ),
    EntitySpec(
        table="cost_centres",
        label="Cost Centre",
        source_table=_tally("costcentre"),
        model=CostCentre,
        tenant_filter=False,
        parent_refs=(
            ParentRef(field="cost_category_id", target="cost_categories", source=("category",)),
        ),
        fields=(_f("name"),),
    ),
    EntitySpec(
        table="voucher_types",
        label="Voucher Type",
        source_table=_tally("vouchertype"),
        model=VoucherType,
        tenant_filter=False,
        self_parent=SelfParent(source=("parent",)),
        fields=(
            _f("name"),
            _f("parent"),
            _f("numbering_method"),
            _flag("affects_stock"),
            _flag("is_deemed_positive", "is_deemedpositive", "is_deemed_positive"),
        ),
    ),
    EntitySpec(
        table="vouchers",
        label="Voucher",
        source_table=_tally("voucher"),
        model=Voucher,
        batched=True,
        name_keys=("voucher_number",),
        parent_refs=(
            ParentRef(field="voucher_type_id", target="voucher_types", source=("voucher_type",)),
        ),
        fields=(
            _f("voucher_number"),
            _f("voucher_number_prefix"),
            _f("voucher_number_suffix"),
            _f("reference"),
            _f("voucher_date", "date", "voucher_date", cast=c.to_date),
            _f("due_date", cast=c.to_date),
            _num("basic_amount"),
            _num("discount_amount"),
            _num("tax_amount"),
            _num("total_amount"),
            _num("final_amount"),
            _f("currency", cast=c.currency),
            _f("exchange_rate", cast=c.exchange_rate),
            _f("narration"),
            _f("party_ledger_name"),
            _f("order_reference"),
            _f("consignment_note"),
            _f("receipt_reference"),
            _flag("is_cancelled"),
            _flag("is_optional"),
            _f("altered_by"),
            _f("altered_on", cast=c.to_datetime),
            _f("alter_id", "alterid", "alter_id", cast=c.to_int),
            _f("persisted_view", "persistedview", "persisted_view", cast=c.to_int),
        ),
    ),
    EntitySpec(
        table="ledger_entries",
        label="Ledger Entry",
        source_table=_tally("ledgerentries"),
        model=LedgerEntry,
        batched=True,
        name_keys=("tally_guid", "guid", "id"),
        parent_refs=(
            ParentRef(
                field="voucher_id",
                target="vouchers",
                source=("voucher_id", "voucher_guid"),
                lookup_by="tally_guid",
                required=True,
            ),
            ParentRef(field="ledger_id", target="ledgers", source=("ledger_name",)),
        ),
        fields=(
            _f("ledger_name"),
            _num("amount"),
            _num("amount_forex"),
            _f("currency", cast=c.currency),
            _flag("is_party_ledger"),
            _flag("is_deemed_positive", "is_deemed_positive", "is_deemedpositive"),
            _num("amount_cleared"),
        ),
    ),
    EntitySpec(
        table="inventory_entries",
        label="Inventory Entry",
        source_table=_tally("inventoryentries"),
        model=InventoryEntry,
        batched=True,
        name_keys=("tally_guid", "guid", "id"),
        parent_refs=(
            ParentRef(
                field="voucher_id",
                target="vouchers",
                source=("voucher_id", "voucher_guid"),
                lookup_by="tally_guid",
                required=True,
            ),
            ParentRef(
                field="stock_item_id",
                target="stock_items",
                source=("stockitem_name", "stock_item_name"),
            ),
        ),
        fields=(
            _f("stock_item_name", "stockitem_name", "stock_item_name"),
            _num("actual_quantity"),
            _num("billed_quantity"),
            _num("rate"),
            _num("amount"),
            _num("discount_percent"),
            _num("discount_amount"),
        ),
    ),
    EntitySpec(
        table="address_details",
        label="Address Detail",
        source_table=_tally("addressdetails"),
        model=AddressDetail,
        batched=True,
        name_keys=("tally_guid", "guid", "id"),
        parent_refs=(
            ParentRef(
                field="voucher_id",
                target="vouchers",
                source=("voucher_guid", "voucher_id"),
                lookup_by="tally_guid",
                required=True,
            ),
        ),
        fields=(
            _f("address_type"),
            _f("address_line1"),
            _f("address_line2"),
            _f("address_line3"),
            _f("address_line4"),
            _f("city"),
            _f("state"),
            _f("pincode"),
            _f("country"),
            _f("contact_person"),
            _f("phone"),
            _f("email"),
        ),
    ),
    EntitySpec(
        table="bank_details",
        label="Bank Detail",
        source_table=_tally("bankdetails"),
        model=BankDetail,
        name_keys=("account_number", "ledger_name"),
        parent_refs=(ParentRef(field="ledger_id", target="ledgers", source=("ledger_name",)),),
        fields=(
            _f("ledger_name"),
            _f("bank_name"),
            _f("account_number"),
            _f("ifsc"),
            _f("account_holder"),
            _f("branch"),
        ),
    ),
]

ENTITY_SPECS: dict[str, EntitySpec] = {spec.table: spec for spec in _SPECS}

MODELS_BY_TABLE: dict[str, Type[SQLModel]] = {spec.table: spec.model for spec in _SPECS}

# Declaration order doubles as the preferred sync order
DECLARED_TABLES: list[str] = [*TENANT_TABLES, *ENTITY_SPECS]


def dependencies() -> dict[str, set[str]]:
    """table → tables that must be synced before it."""
    graph: dict[str, set[str]] = {t: set(deps) for t, deps in TENANT_TABLES.items()}
    for spec in _SPECS:
        graph[spec.table] = set(TENANT_TABLES) | spec.depends_on
    return graph
