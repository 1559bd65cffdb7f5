"""SQLModel models for synced Tally transactions and the sync audit log."""
from typing import Optional
from datetime import date, datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from tally_sync.models.tenant import TenantScoped, tenant_key, utcnow


class Voucher(TenantScoped, table=True):
    """A single Tally voucher header (invoice, payment, receipt, journal, etc.)."""

    __tablename__ = "vouchers"
    __table_args__ = (tenant_key("vouchers"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    voucher_type_id: Optional[int] = Field(
        default=None, foreign_key="voucher_types.id", index=True
    )

    # Core identification
    voucher_number: Optional[str] = Field(default=None, index=True)
    voucher_number_prefix: Optional[str] = None
    voucher_number_suffix: Optional[str] = None
    reference: Optional[str] = None
    voucher_date: Optional[date] = Field(default=None, index=True)
    due_date: Optional[date] = None

    # Financial
    basic_amount: float = Field(default=0.0)
    discount_amount: float = Field(default=0.0)
    tax_amount: float = Field(default=0.0)
    total_amount: float = Field(default=0.0)
    final_amount: float = Field(default=0.0)
    currency: str = Field(default="INR")
    exchange_rate: float = Field(default=1.0)
    narration: Optional[str] = None

    # Party / references
    party_ledger_name: Optional[str] = Field(default=None, index=True)
    order_reference: Optional[str] = None
    consignment_note: Optional[str] = None
    receipt_reference: Optional[str] = None

    # Flags
    is_cancelled: bool = Field(default=False)
    is_optional: bool = Field(default=False)

    # Tally audit fields
    altered_by: Optional[str] = None
    altered_on: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    alter_id: int = Field(default=0)
    persisted_view: int = Field(default=0)


class LedgerEntry(TenantScoped, table=True):
    """Accounting line of a voucher. Never stored without its voucher."""

    __tablename__ = "ledger_entries"
    __table_args__ = (tenant_key("ledger_entries"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    voucher_id: int = Field(foreign_key="vouchers.id", index=True)
    ledger_id: Optional[int] = Field(default=None, foreign_key="ledgers.id", index=True)
    ledger_name: Optional[str] = None
    amount: float = Field(default=0.0)  # positive = debit, negative = credit (Tally convention)
    amount_forex: float = Field(default=0.0)
    currency: str = Field(default="INR")
    is_party_ledger: bool = Field(default=False)
    is_deemed_positive: bool = Field(default=False)
    amount_cleared: float = Field(default=0.0)


class InventoryEntry(TenantScoped, table=True):
    """Stock movement line of a voucher. Never stored without its voucher."""

    __tablename__ = "inventory_entries"
    __table_args__ = (tenant_key("inventory_entries"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    voucher_id: int = Field(foreign_key="vouchers.id", index=True)
    stock_item_id: Optional[int] = Field(
        default=None, foreign_key="stock_items.id", index=True
    )
    stock_item_name: Optional[str] = None
    actual_quantity: float = Field(default=0.0)
    billed_quantity: float = Field(default=0.0)
    rate: float = Field(default=0.0)
    amount: float = Field(default=0.0)
    discount_percent: float = Field(default=0.0)
    discount_amount: float = Field(default=0.0)


class AddressDetail(TenantScoped, table=True):
    """Billing / shipping address captured on a voucher."""

    __tablename__ = "address_details"
    __table_args__ = (tenant_key("address_details"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    voucher_id: int = Field(foreign_key="vouchers.id", index=True)
    address_type: Optional[str] = None  # billing / shipping
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    address_line3: Optional[str] = None
    address_line4: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class SyncLog(SQLModel, table=True):
    """Audit log of every sync run."""

    __tablename__ = "sync_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    action: str  # "full_sync" or "sync_table"
    table_name: Optional[str] = None
    status: str  # "success", "partial", "error"
    total_records: int = Field(default=0)
    total_errors: int = Field(default=0)
    message: Optional[str] = None
    results: Optional[str] = None  # JSON list of per-table results
    started_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    finished_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
