"""Models Package.

Data models for the pricing audit engine including:
- Marketplace transactions and licenses
- Pricing tables and price calculation results
- Reconciliation records and validation outcomes
"""

from models.marketplace import (
    SaleType,
    HostingType,
    DeploymentType,
    LicenseType,
    BillingPeriod,
    Transaction,
    License,
)

from models.pricing import (
    UNLIMITED_USERS,
    PricingTier,
    PricingTable,
    PricingTierResult,
    PriceCalcDescriptor,
    PriceResult,
    tier_sort_key,
)

from models.reconciliation import (
    ReconciliationRecord,
    TransactionAdjustment,
    PreviousPurchase,
    ValidationResult,
    ValidationFailure,
    ValidationRunSummary,
)

__all__ = [
    # Marketplace
    "SaleType",
    "HostingType",
    "DeploymentType",
    "LicenseType",
    "BillingPeriod",
    "Transaction",
    "License",
    # Pricing
    "UNLIMITED_USERS",
    "PricingTier",
    "PricingTable",
    "PricingTierResult",
    "PriceCalcDescriptor",
    "PriceResult",
    "tier_sort_key",
    # Reconciliation
    "ReconciliationRecord",
    "TransactionAdjustment",
    "PreviousPurchase",
    "ValidationResult",
    "ValidationFailure",
    "ValidationRunSummary",
]
