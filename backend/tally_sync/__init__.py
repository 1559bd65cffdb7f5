"""
Tally → VT warehouse sync.

Pulls mirrored Tally rows (groups, ledgers, stock, vouchers, entries …)
from the source schema and upserts them into the tenant-scoped warehouse.

Usage:
    # HTTP service
    uvicorn tally_sync.main:app

    # One-off run
    python -m tally_sync --action full_sync
"""

__version__ = "1.0.0"
