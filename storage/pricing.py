"""Pricing Store.

Persists versioned pricing tables. A table is a row in `pricing` with an
optional inclusive [start_date, end_date] window and its tiers in
`pricing_item`.
"""

import sqlite3
from datetime import date
from pathlib import Path
from typing import List, Optional

from core.config import DEFAULT_DB_PATH
from models.marketplace import DeploymentType
from models.pricing import PricingTable, PricingTier
from storage.db import PathLike, get_db_connection


class PricingStore:
    """Reads and writes pricing tables.

    Example:
        store = PricingStore(db_path)
        table = store.find_pricing("com.example.app", DeploymentType.CLOUD, date(2025, 5, 1))
    """

    def __init__(self, db_path: PathLike = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)

    def save_pricing(self, table: PricingTable) -> PricingTable:
        """Insert a pricing table and its tiers.

        Args:
            table: Table to store (id is ignored)

        Returns:
            PricingTable with id populated
        """
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO pricing (addon_key, deployment_type, start_date, end_date)
                VALUES (?, ?, ?, ?)
            """, (
                table.addon_key,
                table.deployment_type.value,
                table.start_date.isoformat() if table.start_date else None,
                table.end_date.isoformat() if table.end_date else None,
            ))
            pricing_id = cursor.lastrowid

            cursor.executemany("""
                INSERT INTO pricing_item (pricing_id, user_tier, cost)
                VALUES (?, ?, ?)
            """, [(pricing_id, t.user_tier, str(t.cost)) for t in table.tiers])

            conn.commit()
            return table.model_copy(update={"id": pricing_id})
        finally:
            conn.close()

    def find_pricing(
        self,
        addon_key: str,
        deployment_type: DeploymentType,
        sale_date: date,
    ) -> Optional[PricingTable]:
        """Find the pricing table in force on a sale date.

        If two windows touch the date, the one that started later wins.

        Returns:
            PricingTable if found, None otherwise
        """
        conn = get_db_connection(self.db_path)
        try:
            row = conn.execute("""
                SELECT * FROM pricing
                WHERE addon_key = ? AND deployment_type = ?
                  AND (start_date IS NULL OR start_date <= ?)
                  AND (end_date IS NULL OR end_date >= ?)
                ORDER BY start_date DESC
                LIMIT 1
            """, (
                addon_key,
                DeploymentType(deployment_type).value,
                sale_date.isoformat(),
                sale_date.isoformat(),
            )).fetchone()
            return _row_to_pricing(conn, row) if row else None
        finally:
            conn.close()

    def find_pricing_ending_on(
        self,
        addon_key: str,
        deployment_type: DeploymentType,
        end_date: date,
    ) -> Optional[PricingTable]:
        """Find the pricing table whose window ends exactly on `end_date`."""
        conn = get_db_connection(self.db_path)
        try:
            row = conn.execute("""
                SELECT * FROM pricing
                WHERE addon_key = ? AND deployment_type = ? AND end_date = ?
                ORDER BY id DESC
                LIMIT 1
            """, (
                addon_key,
                DeploymentType(deployment_type).value,
                end_date.isoformat(),
            )).fetchone()
            return _row_to_pricing(conn, row) if row else None
        finally:
            conn.close()


def _row_to_pricing(conn: sqlite3.Connection, row: sqlite3.Row) -> PricingTable:
    """Convert a pricing row and its items to PricingTable."""
    items = conn.execute(
        "SELECT user_tier, cost FROM pricing_item WHERE pricing_id = ?",
        (row["id"],),
    ).fetchall()
    tiers: List[PricingTier] = [
        PricingTier(user_tier=i["user_tier"], cost=i["cost"]) for i in items
    ]
    return PricingTable(
        id=row["id"],
        addon_key=row["addon_key"],
        deployment_type=row["deployment_type"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        tiers=tiers,
    )
