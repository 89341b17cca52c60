"""Pricing Audit Database.

This module owns the sqlite schema shared by every store:
- marketplace_transaction: One row per transaction, latest version only
- transaction_version: JSON snapshot of every version that was stored
- transaction_reconcile: Reconciliation outcomes, one per transaction version
- transaction_adjustment: Operator discounts applied during validation
- pricing / pricing_item: Versioned pricing tables and their tiers
- license: Sandbox flag per entitlement

Amounts are stored as TEXT so Decimal values survive the round trip exactly.
"""

import sqlite3
from pathlib import Path
from typing import Union

from core.config import DEFAULT_DB_PATH
from core.observability import get_logger


logger = get_logger("storage.db")

PathLike = Union[str, Path]


def get_db_connection(db_path: PathLike = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Get database connection with row factory"""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: PathLike = DEFAULT_DB_PATH) -> None:
    """Initialize pricing audit database tables.

    Safe to call repeatedly; every statement is IF NOT EXISTS.

    Args:
        db_path: Path to SQLite database file
    """
    conn = sqlite3.connect(str(db_path))
    try:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS marketplace_transaction (
                id TEXT PRIMARY KEY,
                entitlement_id TEXT NOT NULL,
                addon_key TEXT NOT NULL,
                sale_date TEXT NOT NULL,
                sale_type TEXT NOT NULL,
                hosting TEXT NOT NULL,
                license_type TEXT NOT NULL,
                tier TEXT NOT NULL,
                billing_period TEXT NOT NULL,
                maintenance_start_date TEXT NOT NULL,
                maintenance_end_date TEXT NOT NULL,
                vendor_amount TEXT NOT NULL,
                purchase_price TEXT,
                country TEXT,
                current_version INTEGER NOT NULL DEFAULT 1,
                updated_at TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_transaction_entitlement
            ON marketplace_transaction(entitlement_id, sale_date)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_transaction_sale_date
            ON marketplace_transaction(sale_date)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS transaction_version (
                transaction_id TEXT NOT NULL,
                version INTEGER NOT NULL,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (transaction_id, version),
                FOREIGN KEY (transaction_id) REFERENCES marketplace_transaction(id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS transaction_reconcile (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                transaction_id TEXT NOT NULL,
                transaction_version INTEGER NOT NULL,
                reconciled INTEGER NOT NULL,
                automatic INTEGER NOT NULL DEFAULT 1,
                actual_vendor_amount TEXT,
                expected_vendor_amount TEXT,
                notes TEXT,
                current INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                FOREIGN KEY (transaction_id) REFERENCES marketplace_transaction(id)
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_reconcile_transaction
            ON transaction_reconcile(transaction_id, current)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS transaction_adjustment (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                transaction_id TEXT NOT NULL,
                purchase_price_discount TEXT NOT NULL,
                notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (transaction_id) REFERENCES marketplace_transaction(id)
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_adjustment_transaction
            ON transaction_adjustment(transaction_id)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS pricing (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                addon_key TEXT NOT NULL,
                deployment_type TEXT NOT NULL,
                start_date TEXT,
                end_date TEXT
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_pricing_lookup
            ON pricing(addon_key, deployment_type)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS pricing_item (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                pricing_id INTEGER NOT NULL,
                user_tier INTEGER NOT NULL,
                cost TEXT NOT NULL,
                FOREIGN KEY (pricing_id) REFERENCES pricing(id)
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_pricing_item_pricing
            ON pricing_item(pricing_id)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS license (
                entitlement_id TEXT PRIMARY KEY,
                installed_on_sandbox INTEGER NOT NULL DEFAULT 0
            )
        """)

        conn.commit()
        logger.debug("Pricing audit tables initialized", extra_fields={"db_path": str(db_path)})

    finally:
        conn.close()
