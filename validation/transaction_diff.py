"""Transaction Diff.

Compares a new version of a transaction with the version before it. A change
to any field that decides the price means an earlier reconciliation can no
longer be trusted, so each such change yields a note asking for the
transaction to be unreconciled.
"""

from typing import List, Optional

from models.marketplace import Transaction
from pricing.calculator import format_currency


def _price(value) -> str:
    return "none" if value is None else format_currency(value)


# (label, attribute, formatter)
PRICE_FIELDS = (
    ("purchase price", "purchase_price", _price),
    ("maintenance start date", "maintenance_start_date", str),
    ("maintenance end date", "maintenance_end_date", str),
    ("hosting", "hosting", str),
    ("license type", "license_type", str),
    ("tier", "tier", str),
    ("billing period", "billing_period", str),
)


def transaction_mutation_notes(transaction: Transaction, prior: Optional[Transaction]) -> List[str]:
    """Notes for every price-relevant field that changed since `prior`.

    Args:
        transaction: Current version
        prior: Previous version, or None for a first version

    Returns:
        One "Unreconciling because ..." note per changed field, empty if
        nothing relevant changed
    """
    if prior is None:
        return []

    notes = []
    for label, attr, fmt in PRICE_FIELDS:
        old = getattr(prior, attr)
        new = getattr(transaction, attr)
        if old != new:
            notes.append(f"Unreconciling because {label} has changed from {fmt(old)} to {fmt(new)}")

    return notes
