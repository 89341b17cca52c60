"""Storage Package.

sqlite3-backed stores used by the validation engine:
- TransactionStore: transactions, reconciliation records, adjustments
- PricingStore: versioned pricing tables
- LicenseStore: sandbox flags per entitlement

Usage:
    from storage import init_db, TransactionStore

    init_db(db_path)
    store = TransactionStore(db_path)
"""

from storage.db import DEFAULT_DB_PATH, get_db_connection, init_db
from storage.transactions import TransactionStore
from storage.pricing import PricingStore
from storage.licenses import LicenseStore
from storage.seed import SAMPLE_ADDON_KEY, seed_sample_data

__all__ = [
    "DEFAULT_DB_PATH",
    "get_db_connection",
    "init_db",
    "TransactionStore",
    "PricingStore",
    "LicenseStore",
    "SAMPLE_ADDON_KEY",
    "seed_sample_data",
]
