"""
Run a sync from the command line.

Usage:
    # Full sync of every table, in dependency order
    python -m tally_sync

    # Re-sync one table
    python -m tally_sync --action sync_table --table ledgers

    # Next slice of a large voucher backfill, one tenant only
    python -m tally_sync --batch-size 5000 --company-id 42
"""
import argparse
import sys

from loguru import logger

from tally_sync.core.database import create_db_and_tables
from tally_sync.core.logging import setup_logging
from tally_sync.etl.errors import SyncRequestError
from tally_sync.etl.orchestrator import run_sync
from tally_sync.etl.ordering import SYNC_ORDER


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Sync mirrored Tally data into the VT warehouse",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--action",
        choices=["full_sync", "sync_table"],
        default="full_sync",
        help="Sync every table or a single one (default: full_sync)",
    )
    parser.add_argument("--table", choices=SYNC_ORDER, help="Table to sync (sync_table only)")
    parser.add_argument("--batch-size", type=int, help="Row cap for voucher-sized tables")
    parser.add_argument("--company-id", help="Only pull source rows of this company")
    parser.add_argument("--division-id", help="Only pull source rows of this division")
    args = parser.parse_args(argv)

    setup_logging()
    create_db_and_tables()

    try:
        response = run_sync(
            args.action,
            batch_size=args.batch_size,
            company_id=args.company_id,
            division_id=args.division_id,
            table_name=args.table,
        )
    except SyncRequestError as e:
        parser.error(str(e))
    except Exception as e:
        logger.exception(f"Sync failed: {e}")
        return 1

    print(response.model_dump_json(by_alias=True, indent=2))
    return 0 if response.success else 1


if __name__ == "__main__":
    sys.exit(main())
