from tally_sync.models.tenant import Company, Division
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
from tally_sync.models.transaction import (
    AddressDetail,
    InventoryEntry,
    LedgerEntry,
    SyncLog,
    Voucher,
)

__all__ = [
    "Company",
    "Division",
    "UnitOfMeasure",
    "Group",
    "Ledger",
    "StockGroup",
    "StockItem",
    "Godown",
    "CostCategory",
    "CostCentre",
    "VoucherType",
    "BankDetail",
    "Voucher",
    "LedgerEntry",
    "InventoryEntry",
    "AddressDetail",
    "SyncLog",
]
