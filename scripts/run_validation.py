"""
Validate marketplace transactions against the vendor's pricing.

Prices every transaction sold since the cutover date, compares it with what
the vendor was paid and records a reconciliation outcome per transaction
version. Re-running is safe: unchanged transactions keep their record.

Usage:
    python scripts/run_validation.py
    python scripts/run_validation.py --start-date 2025-01-01 --db ./pricing_audit.db
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import get_settings
from core.observability import configure_logging
from storage import LicenseStore, PricingStore, TransactionStore, init_db
from validation import ValidationJob


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Validate transactions and record reconciliations")
    parser.add_argument("--start-date", type=date.fromisoformat,
                        help=f"Validate sales on/after this date (default {settings.default_start_date})")
    parser.add_argument("--db", type=Path, default=settings.db_path, help="SQLite database path")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO)
    configure_logging(level=level, json_format=args.json_logs or settings.log_json, force=True)

    init_db(args.db)

    job = ValidationJob(
        transaction_store=TransactionStore(args.db),
        pricing_store=PricingStore(args.db),
        license_store=LicenseStore(args.db),
        settings=settings,
    )
    summary = job.validate_transactions(args.start_date)

    if summary.failures:
        print(f"\n❌ FAILED ({summary.failed}):")
        for f in summary.failures:
            print(f"  - [{f.code}] {f.transaction_id}: {f.message}")

    print(f"\n✅ RECONCILED: {summary.reconciled}/{summary.total}")


if __name__ == "__main__":
    main()
