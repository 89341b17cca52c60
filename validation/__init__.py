"""Validation Package.

The pricing-validation and reconciliation engine:
- PricingTableResolver: tiers in force on a sale date, plus the prior table
- PreviousPurchaseResolver: the purchase an upgrade or renewal extends, net of refunds
- TransactionValidator: legacy-pricing search and tolerance rules
- ValidationJob: batch run writing one reconciliation record per version,
  unreconciling versions whose price-relevant fields changed

Usage:
    from validation import ValidationJob
    from storage import TransactionStore, PricingStore, LicenseStore

    job = ValidationJob(TransactionStore(db), PricingStore(db), LicenseStore(db))
    summary = job.validate_transactions()
"""

from validation.stores import TransactionSource, PricingSource, LicenseSource
from validation.pricing_resolver import PricingTableResolver
from validation.previous_purchase import (
    PreviousPurchaseResolver,
    effective_end_dates,
    find_previous_purchase,
)
from validation.validator import (
    LegacyPricePermutation,
    LEGACY_PRICING_PERMUTATIONS_WITH_UPGRADE,
    LEGACY_PRICING_PERMUTATIONS_NO_UPGRADE,
    TransactionValidator,
)
from validation.transaction_diff import transaction_mutation_notes
from validation.job import ValidationJob

__all__ = [
    # Interfaces
    "TransactionSource",
    "PricingSource",
    "LicenseSource",
    # Resolvers
    "PricingTableResolver",
    "PreviousPurchaseResolver",
    "effective_end_dates",
    "find_previous_purchase",
    # Validator
    "LegacyPricePermutation",
    "LEGACY_PRICING_PERMUTATIONS_WITH_UPGRADE",
    "LEGACY_PRICING_PERMUTATIONS_NO_UPGRADE",
    "TransactionValidator",
    "transaction_mutation_notes",
    # Job
    "ValidationJob",
]
