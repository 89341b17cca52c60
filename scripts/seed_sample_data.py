"""
Seed a database with the sample app's pricing tables and transactions.

Usage:
    python scripts/seed_sample_data.py
    python scripts/seed_sample_data.py --db ./demo.db --pricing-only
"""

import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.config import get_settings
from core.observability import configure_logging
from storage import seed_sample_data


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Seed sample pricing data")
    parser.add_argument("--db", type=Path, default=settings.db_path, help="SQLite database path")
    parser.add_argument("--pricing-only", action="store_true", help="Skip sample transactions")
    args = parser.parse_args()

    configure_logging(force=True)

    created = seed_sample_data(args.db, with_transactions=not args.pricing_only)
    print(f"Seeded {args.db}: {created}")


if __name__ == "__main__":
    main()
