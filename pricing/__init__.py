"""Pricing Package.

Pure pricing components with no storage access:
- Duration and overlap arithmetic over maintenance periods
- Tier and hosting string parsing
- The Price Calculator

Usage:
    from pricing import calculate_expected_price, license_duration_days

    days = license_duration_days(date(2025, 3, 27), date(2028, 3, 27))  # 1095
"""

from pricing.errors import (
    PricingError,
    InvalidTransactionError,
    TierFormatError,
    UnknownHostingError,
    UnknownLicenseTypeError,
    BillingPeriodError,
    OverlapExceedsDurationError,
    PricingNotFoundError,
)

from pricing.duration import (
    day_count,
    license_duration_days,
    overlap_days,
    month_count,
)

from pricing.tiers import (
    user_count_from_tier,
    deployment_type_from_hosting,
)

from pricing.calculator import (
    calculate_expected_price,
    compute_tier_price,
    generate_cloud_annual_tiers,
    license_type_price_ratio,
    vendor_ratio,
    format_currency,
    round_cents,
)

__all__ = [
    # Errors
    "PricingError",
    "InvalidTransactionError",
    "TierFormatError",
    "UnknownHostingError",
    "UnknownLicenseTypeError",
    "BillingPeriodError",
    "OverlapExceedsDurationError",
    "PricingNotFoundError",
    # Duration
    "day_count",
    "license_duration_days",
    "overlap_days",
    "month_count",
    # Tiers
    "user_count_from_tier",
    "deployment_type_from_hosting",
    # Calculator
    "calculate_expected_price",
    "compute_tier_price",
    "generate_cloud_annual_tiers",
    "license_type_price_ratio",
    "vendor_ratio",
    "format_currency",
    "round_cents",
]
