"""Previous-Purchase Resolver.

An upgrade is priced as the difference between the new license and what is
left of the license it replaces, and upgrades, downgrades and renewals must
all follow on from that license. This module finds that earlier purchase
among the transactions of the same entitlement.

Refunds complicate this: a refund shortens (or cancels) the coverage of the
purchase it refunds, so each purchase gets an "effective" end date that
accounts for every refund known at the time of the evaluated sale.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

from core.observability import get_logger
from models.marketplace import Transaction
from models.reconciliation import PreviousPurchase
from validation.stores import TransactionSource


logger = get_logger("validation.previous_purchase")


def _window_overlap_days(a: Transaction, b: Transaction) -> int:
    start = max(a.maintenance_start_date, b.maintenance_start_date)
    end = min(a.maintenance_end_date, b.maintenance_end_date)
    return (end - start).days


def _find_refunded_transaction(refund: Transaction, candidates: Iterable[Transaction]) -> Optional[Transaction]:
    """Pick the purchase a refund most plausibly refunds.

    Candidates must share the refund's tier, overlap its window and have been
    sold no later than the refund. The one with the largest overlap wins;
    on a tie the first candidate is kept.
    """
    best_match = None
    max_overlap = 0

    for tx in candidates:
        if tx.is_refund:
            continue
        if tx.tier != refund.tier:
            continue
        if tx.maintenance_start_date > refund.maintenance_end_date:
            continue
        if tx.maintenance_end_date < refund.maintenance_start_date:
            continue
        if tx.sale_date > refund.sale_date:
            continue

        overlap = _window_overlap_days(refund, tx)
        if overlap > max_overlap:
            max_overlap = overlap
            best_match = tx

    return best_match


def effective_end_dates(transaction: Transaction, others: List[Transaction]) -> Dict[str, date]:
    """Effective end dates of purchases shortened by refunds.

    Only refunds sold on or before the evaluated transaction's sale date are
    applied. Purchases missing from the result keep their stated end date.

    Args:
        transaction: Transaction being evaluated
        others: Every other transaction of the entitlement

    Returns:
        Dict of transaction ID to effective maintenance end date
    """
    effective: Dict[str, date] = {}

    for refund in others:
        if not refund.is_refund or refund.sale_date > transaction.sale_date:
            continue

        refunded = _find_refunded_transaction(refund, others)
        if refunded is None:
            continue

        refund_start = refund.maintenance_start_date
        refund_end = refund.maintenance_end_date
        current_end = effective.get(refunded.id, refunded.maintenance_end_date)

        if refund_start <= refunded.maintenance_start_date and refund_end >= current_end:
            # Fully refunded: no coverage left
            effective[refunded.id] = refunded.maintenance_start_date
        elif current_end > refund_start:
            effective[refunded.id] = refund_end if refund_end < current_end else refund_start

    return effective


def find_previous_purchase(
    transaction: Transaction,
    related_transactions: List[Transaction],
) -> Optional[PreviousPurchase]:
    """Find the purchase a transaction extends.

    Among non-refund transactions sold on or before the evaluated sale, picks
    the one with the latest effective end date that falls on or before the
    evaluated transaction's maintenance start or end. Transactions left with
    no coverage by refunds are skipped.

    Args:
        transaction: Transaction being evaluated
        related_transactions: All transactions of its entitlement

    Returns:
        PreviousPurchase, or None if nothing qualifies
    """
    others = [t for t in related_transactions if t.id != transaction.id]
    effective = effective_end_dates(transaction, others)

    latest: Optional[Transaction] = None
    latest_end: Optional[date] = None

    for tx in others:
        if tx.sale_date > transaction.sale_date or tx.is_refund:
            continue

        end = effective.get(tx.id, tx.maintenance_end_date)
        if end == tx.maintenance_start_date:
            continue

        if end <= transaction.maintenance_start_date or end <= transaction.maintenance_end_date:
            if latest_end is None or end > latest_end:
                latest = tx
                latest_end = end

    if latest is None:
        return None

    return PreviousPurchase(transaction=latest, effective_maintenance_end_date=latest_end)


class PreviousPurchaseResolver:
    """Loads an entitlement's transactions and finds the previous purchase.

    Example:
        resolver = PreviousPurchaseResolver(TransactionStore(db_path))
        previous = resolver.find_previous_purchase(upgrade_tx)
    """

    def __init__(self, transaction_store: TransactionSource):
        self.transaction_store = transaction_store

    def find_previous_purchase(self, transaction: Transaction) -> Optional[PreviousPurchase]:
        related = self.transaction_store.load_related_transactions(transaction.entitlement_id)
        previous = find_previous_purchase(transaction, related)

        if previous is not None:
            logger.debug(
                f"Previous purchase {previous.transaction.id} ends "
                f"{previous.effective_maintenance_end_date}",
                extra_fields={"related_count": len(related)},
            )

        return previous
