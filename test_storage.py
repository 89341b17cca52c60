"""
Storage layer tests.

Each test gets a fresh sqlite file under pytest's tmp_path.
"""

import sqlite3
from datetime import date
from decimal import Decimal

import pytest

from models.marketplace import DeploymentType, Transaction
from models.pricing import PricingTable, PricingTier
from models.reconciliation import ReconciliationRecord, TransactionAdjustment
from pricing.errors import InvalidTransactionError
from storage import LicenseStore, PricingStore, TransactionStore, init_db, seed_sample_data
from storage.seed import SAMPLE_ADDON_KEY


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database with the schema applied."""
    db_path = tmp_path / "pricing_audit.db"
    init_db(db_path)
    return db_path


def make_tx(tx_id="AT-1", entitlement_id="E-1", sale_date="2025-03-10", **overrides):
    data = dict(
        id=tx_id,
        entitlement_id=entitlement_id,
        addon_key=SAMPLE_ADDON_KEY,
        sale_date=sale_date,
        sale_type="New",
        hosting="Data Center",
        tier="500 Users",
        maintenance_start_date="2025-03-10",
        maintenance_end_date="2026-03-10",
        vendor_amount="2550",
        country="Germany",
    )
    data.update(overrides)
    return Transaction(**data)


class TestInitDb:
    """Schema creation."""

    def test_init_is_idempotent(self, temp_db):
        init_db(temp_db)
        init_db(temp_db)
        assert TransactionStore(temp_db).get_transaction("missing") is None


class TestTransactionStore:
    """Transactions, reconciliations and adjustments."""

    def test_round_trip_keeps_decimals(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx(vendor_amount="188.03", purchase_price="221.21"))

        tx = store.get_transaction("AT-1")

        assert tx.vendor_amount == Decimal("188.03")
        assert tx.purchase_price == Decimal("221.21")
        assert tx.sale_date == date(2025, 3, 10)
        assert tx.hosting == "Data Center"

    def test_add_replaces_existing(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx())
        store.add_transaction(make_tx(vendor_amount="2600", current_version=2))

        tx = store.get_transaction("AT-1")

        assert tx.vendor_amount == Decimal("2600")
        assert tx.current_version == 2

    def test_related_transactions_ordered_by_sale_date(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx("AT-3", sale_date="2025-05-01"))
        store.add_transaction(make_tx("AT-1", sale_date="2025-03-10"))
        store.add_transaction(make_tx("AT-2", sale_date="2025-04-14"))
        store.add_transaction(make_tx("AT-9", entitlement_id="E-9"))

        related = store.load_related_transactions("E-1")

        assert [t.id for t in related] == ["AT-1", "AT-2", "AT-3"]

    def test_transactions_by_sale_date_is_inclusive(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx("AT-1", sale_date="2024-12-31"))
        store.add_transaction(make_tx("AT-2", sale_date="2025-01-01"))
        store.add_transaction(make_tx("AT-3", sale_date="2025-02-01"))

        found = store.get_transactions_by_sale_date(date(2025, 1, 1))

        assert [t.id for t in found] == ["AT-2", "AT-3"]

    def test_transaction_ids_by_sale_date(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx("AT-3", sale_date="2025-02-01"))
        store.add_transaction(make_tx("AT-1", sale_date="2024-12-31"))
        store.add_transaction(make_tx("AT-2", sale_date="2025-01-01"))

        assert store.get_transaction_ids_by_sale_date(date(2025, 1, 1)) == ["AT-2", "AT-3"]

    def test_invalid_row_raises_invalid_transaction(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx("AT-1"))
        store.add_transaction(make_tx("AT-2", sale_date="2025-04-01"))

        conn = sqlite3.connect(str(temp_db))
        try:
            conn.execute(
                "UPDATE marketplace_transaction SET maintenance_end_date = '2025-01-01' WHERE id = 'AT-1'"
            )
            conn.commit()
        finally:
            conn.close()

        with pytest.raises(InvalidTransactionError) as exc:
            store.get_transaction("AT-1")

        assert exc.value.transaction_id == "AT-1"
        assert exc.value.code == "invalid_transaction"
        assert store.get_transaction("AT-2").id == "AT-2"
        with pytest.raises(InvalidTransactionError):
            store.load_related_transactions("E-1")

    def test_versions_are_snapshotted(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx(tier="500 Users"))
        store.add_transaction(make_tx(tier="1000 Users", current_version=2))

        assert store.get_transaction_version("AT-1", 1).tier == "500 Users"
        assert store.get_transaction_version("AT-1", 2).tier == "1000 Users"
        assert store.get_transaction_version("AT-1", 2).vendor_amount == Decimal("2550")
        assert store.get_transaction_version("AT-1", 3) is None
        assert store.get_transaction("AT-1").tier == "1000 Users"

    def test_record_reconcile_marks_current(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx())

        first = store.record_reconcile(ReconciliationRecord(
            transaction_id="AT-1", transaction_version=1, reconciled=False,
            actual_vendor_amount="2500", expected_vendor_amount="2550",
            notes=["first"],
        ))
        second = store.record_reconcile(ReconciliationRecord(
            transaction_id="AT-1", transaction_version=2, reconciled=True,
            actual_vendor_amount="2550", expected_vendor_amount="2550",
            notes=["second", "another"],
        ))

        current = store.get_current_reconcile("AT-1")
        history = store.list_reconciles("AT-1")

        assert first.id is not None and second.id > first.id
        assert current.id == second.id
        assert current.notes == ["second", "another"]
        assert current.expected_vendor_amount == Decimal("2550")
        assert [r.current for r in history] == [False, True]
        assert [r.transaction_version for r in history] == [1, 2]

    def test_no_current_reconcile(self, temp_db):
        assert TransactionStore(temp_db).get_current_reconcile("AT-1") is None

    def test_adjustments(self, temp_db):
        store = TransactionStore(temp_db)
        store.add_transaction(make_tx())

        stored = store.add_adjustment(TransactionAdjustment(
            transaction_id="AT-1", purchase_price_discount="585", notes="Loyalty discount",
        ))
        store.add_adjustment(TransactionAdjustment(transaction_id="AT-1", purchase_price_discount="15"))

        adjustments = store.get_adjustments_for_transaction("AT-1")

        assert stored.id is not None
        assert [a.purchase_price_discount for a in adjustments] == [Decimal("585"), Decimal("15")]
        assert adjustments[0].notes == "Loyalty discount"
        assert store.get_adjustments_for_transaction("AT-2") == []


class TestPricingStore:
    """Pricing table windows."""

    @pytest.fixture
    def store(self, temp_db):
        store = PricingStore(temp_db)
        store.save_pricing(PricingTable(
            addon_key=SAMPLE_ADDON_KEY, deployment_type=DeploymentType.CLOUD,
            end_date="2024-12-31",
            tiers=[PricingTier(user_tier=10, cost="15.00")],
        ))
        store.save_pricing(PricingTable(
            addon_key=SAMPLE_ADDON_KEY, deployment_type=DeploymentType.CLOUD,
            start_date="2025-01-01",
            tiers=[PricingTier(user_tier=-1, cost="0.10"), PricingTier(user_tier=10, cost="16.50")],
        ))
        return store

    def test_window_start_is_inclusive(self, store):
        table = store.find_pricing(SAMPLE_ADDON_KEY, DeploymentType.CLOUD, date(2025, 1, 1))
        assert table.start_date == date(2025, 1, 1)

    def test_window_end_is_inclusive(self, store):
        table = store.find_pricing(SAMPLE_ADDON_KEY, DeploymentType.CLOUD, date(2024, 12, 31))
        assert table.end_date == date(2024, 12, 31)
        assert table.tiers[0].cost == Decimal("15.00")

    def test_tiers_loaded_in_order(self, store):
        table = store.find_pricing(SAMPLE_ADDON_KEY, DeploymentType.CLOUD, date(2025, 6, 1))
        assert [t.user_tier for t in table.tiers] == [10, -1]

    def test_later_start_wins_on_touching_windows(self, temp_db):
        store = PricingStore(temp_db)
        store.save_pricing(PricingTable(
            addon_key=SAMPLE_ADDON_KEY, deployment_type=DeploymentType.SERVER,
            end_date="2025-01-01", tiers=[PricingTier(user_tier=10, cost="1000")],
        ))
        store.save_pricing(PricingTable(
            addon_key=SAMPLE_ADDON_KEY, deployment_type=DeploymentType.SERVER,
            start_date="2025-01-01", tiers=[PricingTier(user_tier=10, cost="1200")],
        ))

        table = store.find_pricing(SAMPLE_ADDON_KEY, DeploymentType.SERVER, date(2025, 1, 1))

        assert table.tiers[0].cost == Decimal("1200")

    def test_not_found(self, store):
        assert store.find_pricing(SAMPLE_ADDON_KEY, DeploymentType.DATACENTER, date(2025, 1, 1)) is None
        assert store.find_pricing("com.example.other", DeploymentType.CLOUD, date(2025, 1, 1)) is None

    def test_find_pricing_ending_on(self, store):
        table = store.find_pricing_ending_on(SAMPLE_ADDON_KEY, DeploymentType.CLOUD, date(2024, 12, 31))

        assert table is not None
        assert table.tiers[0].cost == Decimal("15.00")
        assert store.find_pricing_ending_on(SAMPLE_ADDON_KEY, DeploymentType.CLOUD, date(2024, 12, 30)) is None


class TestLicenseStore:
    """Sandbox flags."""

    def test_unknown_license_is_not_sandbox(self, temp_db):
        assert LicenseStore(temp_db).is_installed_on_sandbox("E-404") is False

    def test_sandbox_flag(self, temp_db):
        store = LicenseStore(temp_db)
        store.save_license("E-1", installed_on_sandbox=True)
        store.save_license("E-2")

        assert store.is_installed_on_sandbox("E-1") is True
        assert store.is_installed_on_sandbox("E-2") is False
        assert store.get_license("E-1").installed_on_sandbox is True


class TestSeedSampleData:
    """Sample data seeding."""

    def test_seed_counts(self, tmp_path):
        created = seed_sample_data(tmp_path / "seed.db")
        assert created == {"pricing_tables": 5, "transactions": 5, "licenses": 4}

    def test_pricing_only(self, tmp_path):
        db_path = tmp_path / "seed.db"
        created = seed_sample_data(db_path, with_transactions=False)

        assert created["transactions"] == 0
        assert TransactionStore(db_path).get_transaction("AT-1001") is None
        assert PricingStore(db_path).find_pricing(SAMPLE_ADDON_KEY, DeploymentType.SERVER, date(2025, 1, 1)) is not None
