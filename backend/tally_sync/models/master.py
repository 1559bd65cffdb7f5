"""SQLModel models for synced Tally master data (groups, ledgers, stock, cost centres …)."""
from typing import Optional
from sqlmodel import Field

from tally_sync.models.tenant import TenantScoped, tenant_key


class UnitOfMeasure(TenantScoped, table=True):
    __tablename__ = "units_of_measure"
    __table_args__ = (tenant_key("units_of_measure"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    formal_name: Optional[str] = None
    is_simple_unit: bool = Field(default=True)
    base_units: Optional[str] = None
    additional_units: Optional[str] = None
    conversion_factor: float = Field(default=1.0)


class Group(TenantScoped, table=True):
    """Chart-of-accounts taxonomy node. Parent is another group (two-pass link)."""

    __tablename__ = "groups"
    __table_args__ = (tenant_key("groups"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    parent_id: Optional[int] = Field(default=None, foreign_key="groups.id")
    primary_group: Optional[str] = None
    is_revenue: bool = Field(default=False)
    is_deemed_positive: bool = Field(default=False)
    is_reserved: bool = Field(default=False)
    affects_gross_profit: bool = Field(default=False)
    sort_position: int = Field(default=0)


class Ledger(TenantScoped, table=True):
    """Chart-of-accounts leaf, linked to its group by name."""

    __tablename__ = "ledgers"
    __table_args__ = (tenant_key("ledgers"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    group_id: Optional[int] = Field(default=None, foreign_key="groups.id", index=True)
    alias: Optional[str] = None
    opening_balance: float = Field(default=0.0)
    closing_balance: float = Field(default=0.0)
    mailing_name: Optional[str] = None
    mailing_address: Optional[str] = None
    email: Optional[str] = None
    gstn: Optional[str] = Field(default=None, index=True)
    pan: Optional[str] = None
    gst_registration_type: Optional[str] = None
    gst_supply_type: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    bank_ifsc: Optional[str] = None
    bank_account_holder: Optional[str] = None
    credit_limit: float = Field(default=0.0)
    credit_days: int = Field(default=0)
    is_revenue: bool = Field(default=False)
    is_deemed_positive: bool = Field(default=False)


class StockGroup(TenantScoped, table=True):
    __tablename__ = "stock_groups"
    __table_args__ = (tenant_key("stock_groups"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    parent_id: Optional[int] = Field(default=None, foreign_key="stock_groups.id")


class StockItem(TenantScoped, table=True):
    """Stock item master, linked to its stock group by name."""

    __tablename__ = "stock_items"
    __table_args__ = (tenant_key("stock_items"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    stock_group_id: Optional[int] = Field(
        default=None, foreign_key="stock_groups.id", index=True
    )
    alias: Optional[str] = None
    part_number: Optional[str] = None
    description: Optional[str] = None
    base_units: Optional[str] = None
    opening_balance: float = Field(default=0.0)
    opening_rate: float = Field(default=0.0)
    opening_value: float = Field(default=0.0)
    closing_balance: float = Field(default=0.0)
    closing_rate: float = Field(default=0.0)
    closing_value: float = Field(default=0.0)
    gst_hsn_code: Optional[str] = None
    gst_hsn_description: Optional[str] = None
    gst_rate: float = Field(default=0.0)
    gst_taxability: Optional[str] = None
    gst_type_of_supply: Optional[str] = None
    costing_method: str = Field(default="FIFO")


class Godown(TenantScoped, table=True):
    __tablename__ = "godowns"
    __table_args__ = (tenant_key("godowns"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    address: Optional[str] = None


class CostCategory(TenantScoped, table=True):
    __tablename__ = "cost_categories"
    __table_args__ = (tenant_key("cost_categories"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    allocate_revenue: bool = Field(default=False)
    allocate_non_revenue: bool = Field(default=False)


class CostCentre(TenantScoped, table=True):
    __tablename__ = "cost_centres"
    __table_args__ = (tenant_key("cost_centres"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    cost_category_id: Optional[int] = Field(default=None, foreign_key="cost_categories.id")


class VoucherType(TenantScoped, table=True):
    """Transaction-type taxonomy. Parent is another voucher type (two-pass link)."""

    __tablename__ = "voucher_types"
    __table_args__ = (tenant_key("voucher_types"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    parent: Optional[str] = None
    parent_id: Optional[int] = Field(default=None, foreign_key="voucher_types.id")
    numbering_method: Optional[str] = None
    affects_stock: bool = Field(default=False)
    is_deemed_positive: bool = Field(default=False)


class BankDetail(TenantScoped, table=True):
    """Bank account attached to a ledger."""

    __tablename__ = "bank_details"
    __table_args__ = (tenant_key("bank_details"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    ledger_id: Optional[int] = Field(default=None, foreign_key="ledgers.id", index=True)
    ledger_name: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc: Optional[str] = None
    account_holder: Optional[str] = None
    branch: Optional[str] = None
