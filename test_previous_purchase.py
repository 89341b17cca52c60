"""
Previous-Purchase Resolver tests.

Each scenario is an entitlement history as the marketplace reports it,
including the odd ones (same-day refunds, zero-day renewals, several partial
refunds of one purchase).
"""

import itertools
from datetime import date

from models.marketplace import Transaction
from validation.previous_purchase import PreviousPurchaseResolver, find_previous_purchase


_ids = itertools.count()


def make_tx(start, end, sale_date, sale_type="New", tier="Unknown Tier"):
    return Transaction(
        id=str(next(_ids)),
        entitlement_id="E-1",
        addon_key="com.example.timesheets",
        sale_date=sale_date,
        sale_type=sale_type,
        hosting="Data Center",
        tier=tier,
        maintenance_start_date=start,
        maintenance_end_date=end,
    )


def assert_previous(result, tx, end):
    assert result is not None
    assert result.transaction.id == tx.id
    assert result.effective_maintenance_end_date == date.fromisoformat(end)


class TestFindPreviousPurchase:
    """Finding the purchase a transaction extends."""

    def test_no_previous_transactions(self):
        t1 = make_tx("2024-01-01", "2024-12-31", "2023-12-30")
        assert find_previous_purchase(t1, [t1]) is None

    def test_most_recent_purchase(self):
        t1 = make_tx("2023-01-01", "2023-12-31", "2022-12-30")
        t2 = make_tx("2024-01-01", "2024-12-31", "2023-12-30")

        assert_previous(find_previous_purchase(t2, [t2, t1]), t1, "2023-12-31")

    def test_fully_refunded_previous(self):
        """A refund covering the whole period leaves nothing to extend."""
        t1 = make_tx("2023-01-01", "2023-12-31", "2022-12-30")
        t2 = make_tx("2023-01-01", "2023-12-31", "2023-01-15", "Refund")
        t3 = make_tx("2024-01-01", "2024-12-31", "2023-12-30")

        assert find_previous_purchase(t3, [t3, t2, t1]) is None

    def test_refund_of_end_of_period(self):
        """Refunding the second half moves the effective end to the refund start."""
        t1 = make_tx("2023-01-01", "2023-12-31", "2022-12-30")
        t2 = make_tx("2023-07-01", "2023-12-31", "2023-06-30", "Refund")
        t3 = make_tx("2024-01-01", "2024-12-31", "2023-12-30")

        assert_previous(find_previous_purchase(t3, [t3, t2, t1]), t1, "2023-07-01")

    def test_multiple_overlapping_transactions(self):
        t1 = make_tx("2022-01-01", "2022-12-31", "2021-12-30")
        t2 = make_tx("2023-01-01", "2023-12-31", "2022-12-30")
        t3 = make_tx("2023-07-01", "2023-12-31", "2023-06-30", "Refund")
        t4 = make_tx("2024-01-01", "2024-12-31", "2023-12-30")

        assert_previous(find_previous_purchase(t4, [t4, t3, t2, t1]), t2, "2023-07-01")

    def test_same_day_refund_listed_first(self):
        t1 = make_tx("2023-01-01", "2023-12-31", "2023-01-01", "Refund")
        t2 = make_tx("2023-01-01", "2023-12-31", "2023-01-01", "New")
        t3 = make_tx("2024-01-01", "2024-12-31", "2023-12-30")

        assert find_previous_purchase(t3, [t3, t2, t1]) is None

    def test_same_day_sale_listed_first(self):
        t1 = make_tx("2023-01-01", "2023-12-31", "2023-01-01", "New")
        t2 = make_tx("2023-01-01", "2023-12-31", "2023-01-01", "Refund")
        t3 = make_tx("2024-01-01", "2024-12-31", "2023-12-30")

        assert find_previous_purchase(t3, [t3, t2, t1]) is None

    def test_renewal_after_partial_refund_of_end(self):
        t1 = make_tx("2024-01-01", "2024-12-31", "2023-12-30", "New")
        t2 = make_tx("2024-07-01", "2024-12-31", "2024-06-30", "Refund")
        t3 = make_tx("2024-07-05", "2025-04-30", "2024-06-30")

        assert_previous(find_previous_purchase(t3, [t3, t2, t1]), t1, "2024-07-01")

    def test_renewal_after_partial_refund_of_beginning(self):
        t1 = make_tx("2024-01-01", "2024-12-31", "2023-12-30", "New")
        t2 = make_tx("2024-01-01", "2024-04-30", "2024-06-30", "Refund")
        t3 = make_tx("2024-12-31", "2025-04-30", "2024-06-30")

        assert_previous(find_previous_purchase(t3, [t3, t2, t1]), t1, "2024-04-30")

    def test_ignores_refunds_sold_later(self):
        """Refunds sold after the evaluated sale are not known yet."""
        t1 = make_tx("2024-01-01", "2024-12-31", "2023-12-30", "New")
        t2 = make_tx("2024-12-31", "2025-04-30", "2024-05-30")
        t3 = make_tx("2024-01-01", "2024-12-31", "2024-06-30", "Refund")

        assert_previous(find_previous_purchase(t2, [t3, t2, t1]), t1, "2024-12-31")

    def test_multiple_refunds(self):
        t1 = make_tx("2024-01-01", "2025-01-01", "2023-12-30", "New")
        t2 = make_tx("2025-01-01", "2026-01-01", "2024-12-30", "Renewal")
        t3 = make_tx("2025-01-01", "2026-01-01", "2024-12-30", "Refund")
        t4 = make_tx("2025-01-01", "2026-01-01", "2024-12-31", "Renewal")
        t5 = make_tx("2026-01-01", "2027-01-01", "2025-12-30", "Renewal")
        t6 = make_tx("2026-01-01", "2027-01-01", "2026-01-14", "Refund")
        t7 = make_tx("2026-01-01", "2027-01-01", "2026-01-15", "Renewal")
        related = [t6, t5, t4, t3, t2, t1]

        assert_previous(find_previous_purchase(t4, related), t1, "2025-01-01")
        assert_previous(find_previous_purchase(t5, related), t4, "2026-01-01")
        assert_previous(find_previous_purchase(t7, related), t4, "2026-01-01")

    def test_upgrade_overlapping_previous_period(self):
        """An upgrade starting inside the previous period still finds it."""
        t1 = make_tx("2023-12-31", "2024-12-31", "2023-12-30", "New")
        t2 = make_tx("2024-12-31", "2025-12-31", "2024-12-30", "Renewal")
        t3 = make_tx("2025-06-01", "2025-12-31", "2025-05-30", "Upgrade")
        related = [t3, t2, t1]

        assert_previous(find_previous_purchase(t3, related), t2, "2025-12-31")
        assert_previous(find_previous_purchase(t2, related), t1, "2024-12-31")

    def test_renewal_after_refunded_upgrade(self):
        t1 = make_tx("2023-12-31", "2024-12-31", "2023-12-30", "New")
        t2 = make_tx("2024-12-31", "2025-12-31", "2024-12-30", "Renewal")
        t3 = make_tx("2025-06-01", "2025-12-31", "2025-05-30", "Upgrade")
        t4 = make_tx("2025-06-01", "2025-12-31", "2025-06-01", "Refund")
        t5 = make_tx("2025-12-31", "2026-12-31", "2025-06-02", "Renewal")

        assert_previous(find_previous_purchase(t5, [t5, t4, t3, t2, t1]), t2, "2025-12-31")

    def test_zero_day_renewals_and_tier_matched_refunds(self):
        """Refunds only match purchases of the same tier."""
        t1 = make_tx("2022-12-01", "2023-12-01", "2022-11-30", "New", "500 Users")
        t2 = make_tx("2023-12-01", "2024-12-01", "2023-12-05", "Upgrade", "1000 Users")
        t3 = make_tx("2023-12-01", "2023-12-01", "2023-12-19", "Renewal", "1000 Users")
        t4 = make_tx("2023-12-01", "2023-12-01", "2023-12-20", "Renewal", "500 Users")
        t5 = make_tx("2023-12-01", "2024-12-01", "2023-12-20", "Renewal", "500 Users")
        t6 = make_tx("2023-12-01", "2024-12-01", "2023-12-20", "Refund", "1000 Users")
        t7 = make_tx("2024-01-18", "2024-12-01", "2024-01-16", "Upgrade", "1000 Users")
        t8 = make_tx("2024-12-01", "2025-12-01", "2024-11-29", "Renewal", "1000 Users")

        related = [t8, t7, t6, t5, t4, t3, t2, t1]
        assert_previous(find_previous_purchase(t7, related), t5, "2024-12-01")

    def test_several_refunds_of_one_purchase(self):
        t1 = make_tx("2025-01-20", "2026-12-12", "2025-01-17", "New", "2000 Users")
        t2 = make_tx("2025-05-23", "2025-12-12", "2025-05-23", "Refund", "2000 Users")
        t3 = make_tx("2025-12-12", "2026-12-12", "2025-05-23", "Refund", "2000 Users")
        t4 = make_tx("2025-05-23", "2025-12-12", "2025-05-23", "Upgrade", "2500 Users")
        t5 = make_tx("2025-12-12", "2026-12-12", "2025-05-23", "Renewal", "2500 Users")
        related = [t5, t4, t3, t2, t1]

        assert_previous(find_previous_purchase(t4, related), t1, "2025-05-23")
        assert_previous(find_previous_purchase(t5, related), t4, "2025-12-12")

    def test_interspersed_refunds_and_zero_dollar_sales(self):
        t1 = make_tx("2021-02-28", "2022-02-28", "2021-02-26", "New", "500 Users")
        t2 = make_tx("2022-01-14", "2023-02-28", "2022-02-23", "Upgrade", "1000 Users")
        t3 = make_tx("2023-02-28", "2024-02-28", "2023-02-15", "Renewal", "1000 Users")
        t4 = make_tx("2024-02-28", "2026-02-28", "2024-02-27", "Upgrade", "2000 Users")
        t5 = make_tx("2024-02-28", "2026-02-28", "2024-03-01", "Refund", "2000 Users")
        t6 = make_tx("2024-02-28", "2024-02-28", "2024-03-01", "Renewal", "2000 Users")
        t7 = make_tx("2024-02-28", "2026-02-28", "2024-03-07", "Renewal", "2000 Users")
        related = [t7, t6, t5, t4, t3, t2, t1]

        assert_previous(find_previous_purchase(t4, related), t3, "2024-02-28")
        assert_previous(find_previous_purchase(t7, related), t3, "2024-02-28")


class FakeTransactionStore:
    def __init__(self, transactions):
        self.transactions = transactions
        self.loaded = []

    def load_related_transactions(self, entitlement_id):
        self.loaded.append(entitlement_id)
        return [t for t in self.transactions if t.entitlement_id == entitlement_id]


class TestPreviousPurchaseResolver:
    """Resolver loads the entitlement from storage."""

    def test_loads_related_transactions(self):
        t1 = make_tx("2023-01-01", "2023-12-31", "2022-12-30")
        t2 = make_tx("2024-01-01", "2024-12-31", "2023-12-30")
        store = FakeTransactionStore([t2, t1])

        result = PreviousPurchaseResolver(store).find_previous_purchase(t2)

        assert store.loaded == ["E-1"]
        assert_previous(result, t1, "2023-12-31")
