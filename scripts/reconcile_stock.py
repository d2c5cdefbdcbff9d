#!/usr/bin/env python3
"""
Reconcile product stock counters against the import ledger.

For every product prints initial, available and outstanding (sum of
non-reversed import records) quantities.  Exits 1 when any product breaks

    available + outstanding == initial

which is what an InconsistentStateError leaves behind.

Usage:
    python3 scripts/reconcile_stock.py
    python3 scripts/reconcile_stock.py --db-url sqlite:///hub.db --only-unbalanced
"""

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

W = 88


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Compare each product's stock counter with its import ledger.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db-url",
        default=None,
        help="Database URL (default: from stock_config / DATABASE_URL)",
    )
    parser.add_argument(
        "--only-unbalanced",
        action="store_true",
        help="Print only products whose counter disagrees with the ledger",
    )
    args = parser.parse_args(argv)

    logging.disable(logging.CRITICAL)

    from stock_config import get_active_config
    from stock_kernel.db.engine import init_engine_from_url, session_scope
    from stock_kernel.selectors.ledger_selector import LedgerSelector

    db_url = args.db_url or get_active_config().database.url
    try:
        init_engine_from_url(db_url, echo=False)
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    with session_scope() as session:
        selector = LedgerSelector(session)
        positions = (
            selector.unbalanced_products()
            if args.only_unbalanced
            else selector.all_positions()
        )

    print("=" * W)
    print(f"  {'PRODUCT':<38} {'INITIAL':>10} {'AVAILABLE':>10} {'OUTSTANDING':>12}  STATUS")
    print("-" * W)
    unbalanced = 0
    for p in positions:
        if p.is_balanced:
            status = "ok"
        else:
            unbalanced += 1
            status = f"OFF BY {p.discrepancy:+d}"
        print(
            f"  {str(p.product_id):<38} {p.initial_quantity:>10} "
            f"{p.available_quantity:>10} {p.outstanding_quantity:>12}  {status}"
        )
    print("-" * W)
    print(f"  {len(positions)} product(s), {unbalanced} unbalanced")
    print("=" * W)

    return 1 if unbalanced else 0


if __name__ == "__main__":
    sys.exit(main())
