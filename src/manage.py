"""Storeflow management CLI.

Creates and drops the database schema and runs the unattended stock jobs.

Usage:
    python src/manage.py setup-db                 # Create all tables
    python src/manage.py drop-db                  # Drop all tables
    python src/manage.py sync-inventory           # Pull the inventory feed from the last checkpoint
    python src/manage.py aggregate-stock SKU ...  # Recompute hybrid stock for the given skus
"""

import argparse
import sys


def _init_domain():
    from allocation.domain import allocation

    allocation.init()
    return allocation


def setup_database():
    """Create the allocation database schema."""
    from allocation.utils.db import setup_db

    domain = _init_domain()
    print("Creating allocation database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    """Drop the allocation database schema."""
    from allocation.utils.db import drop_db

    domain = _init_domain()
    print("Dropping allocation database schema...")
    drop_db(domain)
    print("Done.")


def sync_inventory(aggregate: bool = False, mode: str | None = None):
    """Run the inventory feed; optionally refresh hybrid stock for every synced sku."""
    from allocation.stock.aggregator import StockAggregator
    from allocation.stock.feed import InventoryFeedSync

    domain = _init_domain()
    with domain.domain_context():
        aggregator = StockAggregator(mode) if aggregate else None
        result = InventoryFeedSync(aggregator=aggregator).run()

    if result.completed:
        print(f"Synced {result.records_upserted} records over {len(result.pages_processed)} page(s).")
        return 0
    print(f"Sync halted on page {result.cursor.page}: {result.error}")
    return 1


def aggregate_stock(skus: list[str], mode: str | None = None):
    """Recompute hybrid stock for the given skus."""
    from allocation.stock.aggregator import StockAggregator, VariantRef

    domain = _init_domain()
    with domain.domain_context():
        report = StockAggregator(mode).aggregate(VariantRef(sku=sku) for sku in skus)

    print(f"Created {report.created}, updated {report.updated} hybrid stock record(s).")
    for sku, error in report.failed_skus.items():
        print(f"  {sku}: {error}")
    return 1 if report.failed_skus else 0


def main():
    parser = argparse.ArgumentParser(description="Storeflow management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    modes = ["single", "primary_with_backup", "cluster"]

    sync_parser = subparsers.add_parser("sync-inventory", help="Pull raw stock from the inventory feed")
    sync_parser.add_argument("--aggregate", action="store_true", help="Refresh hybrid stock after each page")
    sync_parser.add_argument("--mode", choices=modes, help="Inventory mode (default: INVENTORY_MODE)")

    aggregate_parser = subparsers.add_parser("aggregate-stock", help="Recompute hybrid stock")
    aggregate_parser.add_argument("skus", nargs="+")
    aggregate_parser.add_argument("--mode", choices=modes, help="Inventory mode (default: INVENTORY_MODE)")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sync-inventory":
        sys.exit(sync_inventory(args.aggregate, args.mode))
    elif args.command == "aggregate-stock":
        sys.exit(aggregate_stock(args.skus, args.mode))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
