"""Sample data for local runs and tests.

Seeds one sample app with a legacy and a current pricing table per
deployment type, plus a handful of transactions covering the common sale
types.
"""

from datetime import date
from decimal import Decimal
from typing import List, Tuple

from core.config import DEFAULT_DB_PATH
from core.observability import get_logger
from models.marketplace import DeploymentType, Transaction
from models.pricing import PricingTable, PricingTier
from storage.db import PathLike, init_db
from storage.licenses import LicenseStore
from storage.pricing import PricingStore
from storage.transactions import TransactionStore


logger = get_logger("storage.seed")

SAMPLE_ADDON_KEY = "com.example.timesheets"

# Prices changed on this date; the legacy tables end the day before
SAMPLE_PRICE_CHANGE_DATE = date(2025, 1, 1)
SAMPLE_LEGACY_END_DATE = date(2024, 12, 31)


def _tiers(points: List[Tuple[int, str]]) -> List[PricingTier]:
    return [PricingTier(user_tier=u, cost=Decimal(c)) for u, c in points]


# Cloud: first tier is a flat monthly price, the rest are per user per month
CLOUD_TIERS = _tiers([
    (10, "16.50"),
    (100, "1.65"),
    (250, "0.77"),
    (1000, "0.40"),
    (5000, "0.23"),
    (-1, "0.10"),
])

CLOUD_LEGACY_TIERS = _tiers([
    (10, "15.00"),
    (100, "1.50"),
    (250, "0.70"),
    (1000, "0.36"),
    (5000, "0.21"),
    (-1, "0.09"),
])

# Data Center: flat annual price per tier
DATACENTER_TIERS = _tiers([
    (500, "3400"),
    (1000, "4500"),
    (2000, "6700"),
    (3000, "8200"),
    (5000, "9600"),
    (10000, "10800"),
    (15000, "11700"),
    (-1, "21900"),
])

DATACENTER_LEGACY_TIERS = _tiers([
    (500, "3100"),
    (1000, "4100"),
    (2000, "6100"),
    (3000, "7500"),
    (5000, "8700"),
    (10000, "9800"),
    (15000, "10600"),
    (-1, "19900"),
])

SERVER_TIERS = _tiers([
    (10, "1200"),
    (25, "2400"),
    (50, "4400"),
    (100, "7900"),
    (-1, "16000"),
])


def sample_pricing_tables(addon_key: str = SAMPLE_ADDON_KEY) -> List[PricingTable]:
    """Pricing tables seeded for the sample app."""
    return [
        PricingTable(addon_key=addon_key, deployment_type=DeploymentType.CLOUD,
                     end_date=SAMPLE_LEGACY_END_DATE, tiers=CLOUD_LEGACY_TIERS),
        PricingTable(addon_key=addon_key, deployment_type=DeploymentType.CLOUD,
                     start_date=SAMPLE_PRICE_CHANGE_DATE, tiers=CLOUD_TIERS),
        PricingTable(addon_key=addon_key, deployment_type=DeploymentType.DATACENTER,
                     end_date=SAMPLE_LEGACY_END_DATE, tiers=DATACENTER_LEGACY_TIERS),
        PricingTable(addon_key=addon_key, deployment_type=DeploymentType.DATACENTER,
                     start_date=SAMPLE_PRICE_CHANGE_DATE, tiers=DATACENTER_TIERS),
        PricingTable(addon_key=addon_key, deployment_type=DeploymentType.SERVER,
                     tiers=SERVER_TIERS),
    ]


def sample_transactions(addon_key: str = SAMPLE_ADDON_KEY) -> List[Transaction]:
    """A few transactions that exercise each validation path."""
    return [
        Transaction(
            id="AT-1001", entitlement_id="E-100", addon_key=addon_key,
            sale_date="2025-05-01", sale_type="New", hosting="Cloud",
            tier="Per Unit Pricing (173 Users)", billing_period="Monthly",
            maintenance_start_date="2025-05-01", maintenance_end_date="2025-06-01",
            vendor_amount="188.03", country="United States",
        ),
        Transaction(
            id="AT-1002", entitlement_id="E-200", addon_key=addon_key,
            sale_date="2025-03-10", sale_type="New", hosting="Data Center",
            tier="500 Users", billing_period="Annual",
            maintenance_start_date="2025-03-10", maintenance_end_date="2026-03-10",
            vendor_amount="2550", country="Germany",
        ),
        Transaction(
            id="AT-1003", entitlement_id="E-200", addon_key=addon_key,
            sale_date="2025-04-14", sale_type="Upgrade", hosting="Data Center",
            tier="2000 Users", billing_period="Annual",
            maintenance_start_date="2025-04-14", maintenance_end_date="2026-03-10",
            vendor_amount="3650", country="Germany",
        ),
        Transaction(
            id="AT-1004", entitlement_id="E-300", addon_key=addon_key,
            sale_date="2025-06-02", sale_type="Refund", hosting="Data Center",
            tier="500 Users", billing_period="Annual",
            maintenance_start_date="2025-06-01", maintenance_end_date="2026-06-01",
            vendor_amount="-2550", country="Canada",
        ),
        Transaction(
            id="AT-1005", entitlement_id="E-400", addon_key=addon_key,
            sale_date="2025-02-03", sale_type="New", hosting="Cloud",
            tier="Per Unit Pricing (300 Users)", billing_period="Annual",
            maintenance_start_date="2025-02-03", maintenance_end_date="2026-02-03",
            vendor_amount="2100", country="Japan",
        ),
    ]


def seed_sample_data(db_path: PathLike = DEFAULT_DB_PATH, with_transactions: bool = True) -> dict:
    """Seed the database with sample pricing tables and transactions.

    Args:
        db_path: Path to database
        with_transactions: Also seed sample transactions and licenses

    Returns:
        Dict with counts of created rows
    """
    init_db(db_path)

    created = {"pricing_tables": 0, "transactions": 0, "licenses": 0}

    pricing_store = PricingStore(db_path)
    for table in sample_pricing_tables():
        pricing_store.save_pricing(table)
        created["pricing_tables"] += 1

    if with_transactions:
        transaction_store = TransactionStore(db_path)
        license_store = LicenseStore(db_path)
        for tx in sample_transactions():
            transaction_store.add_transaction(tx)
            created["transactions"] += 1

        for entitlement_id in sorted({tx.entitlement_id for tx in sample_transactions()}):
            license_store.save_license(entitlement_id, installed_on_sandbox=False)
            created["licenses"] += 1

    logger.info(
        f"Seeded {created['pricing_tables']} pricing tables, "
        f"{created['transactions']} transactions",
        extra_fields=created,
    )
    return created
