"""Transaction Store.

sqlite3-backed storage for marketplace transactions, their reconciliation
records and operator adjustments.

Reconciliation records are append-only: writing a record for a new
transaction version inserts a row and clears the `current` flag on every
older row of that transaction, so the history of outcomes is kept.

Every stored version of a transaction is also kept as a JSON snapshot, so a
new version can be compared with the one before it.
"""

import json
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from core.config import DEFAULT_DB_PATH
from models.marketplace import Transaction
from models.reconciliation import ReconciliationRecord, TransactionAdjustment
from pricing.errors import InvalidTransactionError
from storage.db import PathLike, get_db_connection


def _amount(value) -> Optional[str]:
    return None if value is None else str(value)


class TransactionStore:
    """Reads and writes transactions, reconciliations and adjustments.

    Example:
        store = TransactionStore(db_path)
        store.add_transaction(tx)
        related = store.load_related_transactions(tx.entitlement_id)
    """

    def __init__(self, db_path: PathLike = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)

    # =========================================================================
    # Transactions
    # =========================================================================

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Insert or replace a transaction.

        The caller owns `current_version`; bump it whenever the marketplace
        data for the transaction changes so the next validation run
        re-evaluates it. Storing a version again replaces its snapshot.

        Args:
            transaction: Transaction to store

        Returns:
            The stored transaction
        """
        now = datetime.utcnow().isoformat()

        conn = get_db_connection(self.db_path)
        try:
            conn.execute("""
                INSERT OR REPLACE INTO marketplace_transaction
                (id, entitlement_id, addon_key, sale_date, sale_type, hosting,
                 license_type, tier, billing_period, maintenance_start_date,
                 maintenance_end_date, vendor_amount, purchase_price, country,
                 current_version, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                transaction.id,
                transaction.entitlement_id,
                transaction.addon_key,
                transaction.sale_date.isoformat(),
                transaction.sale_type.value,
                transaction.hosting,
                transaction.license_type,
                transaction.tier,
                transaction.billing_period,
                transaction.maintenance_start_date.isoformat(),
                transaction.maintenance_end_date.isoformat(),
                _amount(transaction.vendor_amount),
                _amount(transaction.purchase_price),
                transaction.country,
                transaction.current_version,
                now,
            ))
            conn.execute("""
                INSERT OR REPLACE INTO transaction_version
                (transaction_id, version, data, created_at)
                VALUES (?, ?, ?, ?)
            """, (
                transaction.id,
                transaction.current_version,
                transaction.model_dump_json(),
                now,
            ))
            conn.commit()
            return transaction
        finally:
            conn.close()

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Look up a transaction by ID.

        Returns:
            Transaction if found, None otherwise
        """
        conn = get_db_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT * FROM marketplace_transaction WHERE id = ?",
                (transaction_id,),
            ).fetchone()
            return _row_to_transaction(row) if row else None
        finally:
            conn.close()

    def load_related_transactions(self, entitlement_id: str) -> List[Transaction]:
        """All transactions of an entitlement, oldest sale first.

        Args:
            entitlement_id: License entitlement identifier

        Returns:
            List of Transaction objects ordered by sale date
        """
        conn = get_db_connection(self.db_path)
        try:
            rows = conn.execute("""
                SELECT * FROM marketplace_transaction
                WHERE entitlement_id = ?
                ORDER BY sale_date, id
            """, (entitlement_id,)).fetchall()
            return [_row_to_transaction(r) for r in rows]
        finally:
            conn.close()

    def get_transactions_by_sale_date(self, start_date: date) -> List[Transaction]:
        """Transactions sold on or after `start_date`, oldest first.

        Raises:
            InvalidTransactionError: If any matching row is malformed. Use
                get_transaction_ids_by_sale_date() to load rows one by one.
        """
        conn = get_db_connection(self.db_path)
        try:
            rows = conn.execute("""
                SELECT * FROM marketplace_transaction
                WHERE sale_date >= ?
                ORDER BY sale_date, id
            """, (start_date.isoformat(),)).fetchall()
            return [_row_to_transaction(r) for r in rows]
        finally:
            conn.close()

    def get_transaction_ids_by_sale_date(self, start_date: date) -> List[str]:
        """IDs of transactions sold on or after `start_date`, oldest first."""
        conn = get_db_connection(self.db_path)
        try:
            rows = conn.execute("""
                SELECT id FROM marketplace_transaction
                WHERE sale_date >= ?
                ORDER BY sale_date, id
            """, (start_date.isoformat(),)).fetchall()
            return [r["id"] for r in rows]
        finally:
            conn.close()

    def get_transaction_version(self, transaction_id: str, version: int) -> Optional[Transaction]:
        """Snapshot of a transaction as it was stored at `version`.

        Returns:
            Transaction if that version was stored, None otherwise
        """
        conn = get_db_connection(self.db_path)
        try:
            row = conn.execute("""
                SELECT data FROM transaction_version
                WHERE transaction_id = ? AND version = ?
            """, (transaction_id, version)).fetchone()
        finally:
            conn.close()

        if row is None:
            return None

        try:
            return Transaction.model_validate_json(row["data"])
        except ValidationError as e:
            raise InvalidTransactionError(
                f"Stored version {version} of transaction {transaction_id} is invalid: {e}",
                transaction_id=transaction_id,
            ) from e

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def get_current_reconcile(self, transaction_id: str) -> Optional[ReconciliationRecord]:
        """The reconciliation record flagged current for a transaction."""
        conn = get_db_connection(self.db_path)
        try:
            row = conn.execute("""
                SELECT * FROM transaction_reconcile
                WHERE transaction_id = ? AND current = 1
                ORDER BY id DESC
                LIMIT 1
            """, (transaction_id,)).fetchone()
            return _row_to_reconcile(row) if row else None
        finally:
            conn.close()

    def record_reconcile(self, record: ReconciliationRecord) -> ReconciliationRecord:
        """Store a reconciliation record as the current one for its transaction.

        Older records of the same transaction stay in the table with
        `current` cleared.

        Args:
            record: Record to write

        Returns:
            ReconciliationRecord with id and created_at populated
        """
        now = datetime.utcnow()

        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE transaction_reconcile SET current = 0 WHERE transaction_id = ?",
                (record.transaction_id,),
            )
            cursor.execute("""
                INSERT INTO transaction_reconcile
                (transaction_id, transaction_version, reconciled, automatic,
                 actual_vendor_amount, expected_vendor_amount, notes, current, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?)
            """, (
                record.transaction_id,
                record.transaction_version,
                int(record.reconciled),
                int(record.automatic),
                _amount(record.actual_vendor_amount),
                _amount(record.expected_vendor_amount),
                json.dumps(record.notes),
                now.isoformat(),
            ))
            conn.commit()

            return record.model_copy(update={
                "id": cursor.lastrowid,
                "current": True,
                "created_at": now,
            })
        finally:
            conn.close()

    def list_reconciles(self, transaction_id: str) -> List[ReconciliationRecord]:
        """Every reconciliation record of a transaction, oldest first."""
        conn = get_db_connection(self.db_path)
        try:
            rows = conn.execute("""
                SELECT * FROM transaction_reconcile
                WHERE transaction_id = ?
                ORDER BY id
            """, (transaction_id,)).fetchall()
            return [_row_to_reconcile(r) for r in rows]
        finally:
            conn.close()

    # =========================================================================
    # Adjustments
    # =========================================================================

    def add_adjustment(self, adjustment: TransactionAdjustment) -> TransactionAdjustment:
        """Attach an operator discount to a transaction."""
        conn = get_db_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO transaction_adjustment
                (transaction_id, purchase_price_discount, notes, created_at)
                VALUES (?, ?, ?, ?)
            """, (
                adjustment.transaction_id,
                str(adjustment.purchase_price_discount),
                adjustment.notes,
                datetime.utcnow().isoformat(),
            ))
            conn.commit()
            return adjustment.model_copy(update={"id": cursor.lastrowid})
        finally:
            conn.close()

    def get_adjustments_for_transaction(self, transaction_id: str) -> List[TransactionAdjustment]:
        conn = get_db_connection(self.db_path)
        try:
            rows = conn.execute("""
                SELECT * FROM transaction_adjustment
                WHERE transaction_id = ?
                ORDER BY id
            """, (transaction_id,)).fetchall()
            return [
                TransactionAdjustment(
                    id=r["id"],
                    transaction_id=r["transaction_id"],
                    purchase_price_discount=r["purchase_price_discount"],
                    notes=r["notes"],
                )
                for r in rows
            ]
        finally:
            conn.close()


# =============================================================================
# Row Mapping
# =============================================================================

def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    """Convert database row to Transaction.

    Raises:
        InvalidTransactionError: If the row fails model validation
    """
    try:
        return Transaction(
            id=row["id"],
            entitlement_id=row["entitlement_id"],
            addon_key=row["addon_key"],
            sale_date=row["sale_date"],
            sale_type=row["sale_type"],
            hosting=row["hosting"],
            license_type=row["license_type"],
            tier=row["tier"],
            billing_period=row["billing_period"],
            maintenance_start_date=row["maintenance_start_date"],
            maintenance_end_date=row["maintenance_end_date"],
            vendor_amount=row["vendor_amount"],
            purchase_price=row["purchase_price"],
            country=row["country"] or "",
            current_version=row["current_version"],
        )
    except ValidationError as e:
        raise InvalidTransactionError(
            f"Stored transaction {row['id']} is invalid: {e}",
            transaction_id=row["id"],
        ) from e


def _row_to_reconcile(row: sqlite3.Row) -> ReconciliationRecord:
    """Convert database row to ReconciliationRecord."""
    return ReconciliationRecord(
        id=row["id"],
        transaction_id=row["transaction_id"],
        transaction_version=row["transaction_version"],
        reconciled=bool(row["reconciled"]),
        automatic=bool(row["automatic"]),
        actual_vendor_amount=row["actual_vendor_amount"],
        expected_vendor_amount=row["expected_vendor_amount"],
        notes=json.loads(row["notes"]) if row["notes"] else [],
        current=bool(row["current"]),
        created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
    )
