"""
Accept a price discrepancy by recording a manual adjustment.

The amount is a purchase price discount: the next validation run subtracts it
from the expected purchase price before comparing with what was paid. The
validation log prints a ready-made command for every transaction that needs
correction.

Usage:
    python scripts/add_adjustment.py AT-1003 67.00 "Loyalty discount"
    python scripts/add_adjustment.py AT-1003 67.00 "" --db ./pricing_audit.db
"""

import argparse
import sys
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import get_settings
from core.observability import configure_logging
from models.reconciliation import TransactionAdjustment
from storage import TransactionStore, init_db


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Record a manual transaction adjustment")
    parser.add_argument("transaction_id", help="Transaction to adjust")
    parser.add_argument("amount", type=Decimal, help="Purchase price discount, e.g. 67.00")
    parser.add_argument("notes", nargs="?", default="", help="Why the adjustment was accepted")
    parser.add_argument("--db", type=Path, default=settings.db_path, help="SQLite database path")
    args = parser.parse_args()

    configure_logging(force=True)
    init_db(args.db)

    store = TransactionStore(args.db)
    if store.get_transaction(args.transaction_id) is None:
        print(f"❌ Transaction {args.transaction_id} not found in {args.db}")
        sys.exit(1)

    adjustment = store.add_adjustment(TransactionAdjustment(
        transaction_id=args.transaction_id,
        purchase_price_discount=args.amount,
        notes=args.notes or None,
    ))

    print(f"✅ Adjustment {adjustment.id} of {args.amount} recorded for {args.transaction_id}")


if __name__ == "__main__":
    main()
