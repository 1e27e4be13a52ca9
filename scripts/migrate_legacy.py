#!/usr/bin/env python3
"""
Adopt legacy stock counts into the location ledger for one location.

Every product of the given type with a positive legacy quantity gets a
ledger row at the target location.  Products that already have a row
there are left alone, so the script can be re-run safely.

Usage:
  python3 scripts/migrate_legacy.py BAR drink
  python3 scripts/migrate_legacy.py BAR:back-shelf inventoryItem --config prod.yaml

The location is a destination code: a department code, optionally
followed by ":" and a section slug (or section id).
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Materialize legacy stock counts as ledger entries")
    p.add_argument("location", help="Destination code, e.g. BAR or BAR:back-shelf")
    p.add_argument("product_type", help="Product type: drink or inventoryItem")
    p.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: $INVENTORY_CONFIG or packaged defaults)",
    )
    p.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before migrating",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from inventory_config import get_active_config
    from inventory_config.bridges import bootstrap
    from inventory_kernel.db.engine import create_tables, session_scope
    from inventory_kernel.exceptions import InventoryKernelError
    from inventory_kernel.services.legacy_migration import LegacyMigrator
    from inventory_kernel.services.location_service import LocationService

    config = get_active_config(args.config)
    bootstrap(config)
    if args.create_tables:
        create_tables()

    try:
        with session_scope() as session:
            location = LocationService(session).resolve_destination_code(args.location)
            report = LegacyMigrator(session).migrate_location(args.product_type, location)
    except InventoryKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1

    print(f"  Location:        {args.location}")
    print(f"  Product type:    {report.product_type.value}")
    print(f"  Examined:        {report.examined}")
    print(f"  Materialized:    {report.materialized}")
    print(f"  Already present: {report.already_present}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
