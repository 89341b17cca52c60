"""Price Calculator.

Computes what a marketplace sale should have cost the customer and what the
vendor should have received for it, given the pricing tiers in force.

The calculation is a pure function of its arguments: no storage access, no
logging. Every step is recorded as a PriceCalcDescriptor so a reviewer can
follow how an expected amount was reached.

Usage:
    from pricing import calculate_expected_price

    price = calculate_expected_price(
        pricing_tier_result=PricingTierResult(tiers=tiers),
        sale_date=date(2025, 5, 1),
        sale_type="New",
        is_sandbox=False,
        hosting="Cloud",
        license_type="COMMERCIAL",
        tier="Per Unit Pricing (173 Users)",
        maintenance_start_date=date(2025, 5, 1),
        maintenance_end_date=date(2025, 6, 1),
        billing_period="Monthly",
    )
    print(price.vendor_price)  # Decimal('188.03')
"""

from datetime import date
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional

from models.marketplace import (
    BillingPeriod,
    DeploymentType,
    HostingType,
    LicenseType,
    SaleType,
)
from models.pricing import (
    UNLIMITED_USERS,
    PriceCalcDescriptor,
    PriceResult,
    PricingTier,
    PricingTierResult,
)
from pricing.constants import (
    ACADEMIC_CLOUD_PRICE_RATIO,
    ACADEMIC_DC_LARGE_TIER_USERS,
    ACADEMIC_DC_PRICE_RATIO_CURRENT_10K,
    ACADEMIC_DC_PRICE_RATIO_CURRENT_OTHER,
    ACADEMIC_DC_PRICE_RATIO_CURRENT_START_DATE,
    ACADEMIC_DC_PRICE_RATIO_LEGACY,
    ANNUAL_CLOUD_MULTIPLIER,
    CENTS,
    CLOUD_VENDOR_RATIO,
    DAYS_PER_YEAR,
    DC_VENDOR_RATIO,
    SHORT_MONTH_BASE,
    SHORT_MONTH_DAYS,
)
from pricing.duration import license_duration_days, overlap_days
from pricing.errors import (
    BillingPeriodError,
    OverlapExceedsDurationError,
    TierFormatError,
    UnknownLicenseTypeError,
)
from pricing.tiers import deployment_type_from_hosting, user_count_from_tier


ZERO = Decimal("0")

LICENSE_TYPES = frozenset(t.value for t in LicenseType)
BILLING_PERIODS = frozenset(p.value for p in BillingPeriod)


# =============================================================================
# Helpers
# =============================================================================

def _value(v) -> str:
    return v.value if isinstance(v, Enum) else v


def _ceil(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_CEILING)


def round_cents(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(value) -> str:
    """Format an amount as dollars, e.g. -$1,234.50."""
    amount = round_cents(Decimal(str(value)))
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def vendor_ratio(deployment_type: DeploymentType, sale_date: Optional[date] = None) -> Decimal:
    """Share of the list price the vendor receives.

    The ratio is static; `sale_date` is accepted so a dated revenue-share
    schedule can be introduced without changing callers.
    """
    return CLOUD_VENDOR_RATIO if deployment_type == DeploymentType.CLOUD else DC_VENDOR_RATIO


def license_type_price_ratio(sale_date: date, hosting: str, user_count: int) -> Decimal:
    """Fraction of list price charged for academic and community licenses."""
    if _value(hosting) == HostingType.CLOUD.value:
        return ACADEMIC_CLOUD_PRICE_RATIO

    if sale_date < ACADEMIC_DC_PRICE_RATIO_CURRENT_START_DATE:
        return ACADEMIC_DC_PRICE_RATIO_LEGACY

    if user_count != UNLIMITED_USERS and user_count >= ACADEMIC_DC_LARGE_TIER_USERS:
        return ACADEMIC_DC_PRICE_RATIO_CURRENT_10K

    return ACADEMIC_DC_PRICE_RATIO_CURRENT_OTHER


def _check_license_terms(license_type: str, billing_period: str) -> None:
    if license_type not in LICENSE_TYPES:
        raise UnknownLicenseTypeError(f"Unknown license type: {license_type!r}")
    if billing_period not in BILLING_PERIODS:
        raise BillingPeriodError(f"Unknown billing period: {billing_period!r}")


def _free_license_reason(is_sandbox: bool, hosting: str, license_type: str) -> Optional[str]:
    if is_sandbox:
        return "Sandbox licenses are free"
    if license_type == LicenseType.OPEN_SOURCE.value:
        return "Open source licenses are free"
    if license_type == LicenseType.COMMUNITY.value and hosting == HostingType.DATA_CENTER.value:
        return "Community DC licenses are free"
    return None


# =============================================================================
# Tier pricing
# =============================================================================

def compute_tier_price(user_count: int, per_user_tiers: List[PricingTier]) -> Decimal:
    """Monthly Cloud price for `user_count` seats.

    The first tier is a flat price covering every seat count up to its
    threshold. Beyond it, each later tier charges its per-seat cost for the
    seats that fall into its band, so the price is the sum over bands
    (marginal pricing). Band boundaries are measured from zero, which means
    the second tier also prices the seats covered by the flat tier.

    Args:
        user_count: Seats being purchased
        per_user_tiers: Tiers sorted ascending, unlimited (-1) last

    Returns:
        Monthly price before any discount
    """
    if user_count <= per_user_tiers[0].user_tier:
        return per_user_tiers[0].cost

    cost = ZERO
    remaining_users = user_count
    prior_period_users = 0

    for tier in per_user_tiers[1:]:
        if tier.user_tier == UNLIMITED_USERS:
            users_in_tier = remaining_users
        else:
            users_in_tier = tier.user_tier - prior_period_users
        users_to_price = min(users_in_tier, remaining_users)

        cost += users_to_price * tier.cost
        prior_period_users = tier.user_tier
        remaining_users -= users_to_price

        if remaining_users <= 0:
            break

    return cost


def generate_cloud_annual_tiers(
    per_user_tiers: List[PricingTier],
    annual_tiers: List[PricingTier],
) -> List[PricingTier]:
    """Derive annual Cloud prices from per-user monthly tiers.

    Each threshold of `annual_tiers` is priced with the monthly tier walk and
    multiplied by the annual multiplier. Used to cross-check the tier walk
    against a published annual price list.
    """
    return [
        PricingTier(
            user_tier=t.user_tier,
            cost=compute_tier_price(t.user_tier, per_user_tiers) * ANNUAL_CLOUD_MULTIPLIER,
        )
        for t in annual_tiers
    ]


def _select_flat_tier(user_count: int, tiers: List[PricingTier]) -> PricingTier:
    for t in tiers:
        if user_count == UNLIMITED_USERS:
            if t.user_tier == UNLIMITED_USERS:
                return t
        elif t.user_tier != UNLIMITED_USERS and user_count <= t.user_tier:
            return t

    label = "unlimited users" if user_count == UNLIMITED_USERS else f"{user_count} users"
    raise TierFormatError(f"No pricing tier covers {label}")


# =============================================================================
# Price Calculator
# =============================================================================

def calculate_expected_price(
    pricing_tier_result: PricingTierResult,
    sale_date: date,
    sale_type,
    is_sandbox: bool,
    hosting: str,
    license_type: str,
    tier: str,
    maintenance_start_date: date,
    maintenance_end_date: date,
    billing_period: str,
    previous_purchase_end_date: Optional[date] = None,
    previous_price: Optional[PriceResult] = None,
    manual_discount: Decimal = ZERO,
) -> PriceResult:
    """Compute the expected purchase and vendor price of one sale.

    Args:
        pricing_tier_result: Tiers to price with (already resolved for the
            hypothesis being tested, current or legacy)
        sale_date: Date of sale
        sale_type: New, Renewal, Upgrade, Downgrade or Refund
        is_sandbox: License is installed on a sandbox instance
        hosting: Server, Data Center or Cloud
        license_type: Marketplace license type
        tier: Tier string, e.g. "100 Users"
        maintenance_start_date: First day of coverage
        maintenance_end_date: Last day of coverage
        billing_period: Monthly or Annual
        previous_purchase_end_date: Effective end of the purchase an upgrade
            extends
        previous_price: Expected price of that previous purchase
        manual_discount: Sum of operator adjustments, subtracted from the price

    Returns:
        PriceResult with purchase and vendor price rounded to cents

    Raises:
        TierFormatError: Tier string is malformed or no tier covers it
        UnknownHostingError: Hosting value is not recognized
        UnknownLicenseTypeError: License type is not recognized
        BillingPeriodError: Billing period is not recognized, or a
            Server/Data Center license is not billed annually
        OverlapExceedsDurationError: Upgrade overlap longer than the upgrade
    """
    sale_type = SaleType(_value(sale_type))
    hosting = _value(hosting)
    license_type = _value(license_type)
    billing_period = _value(billing_period)

    _check_license_terms(license_type, billing_period)

    free_reason = _free_license_reason(is_sandbox, hosting, license_type)
    if free_reason:
        return PriceResult(
            vendor_price=ZERO,
            purchase_price=ZERO,
            daily_nominal_price=ZERO,
            descriptors=[PriceCalcDescriptor(subtotal=ZERO, description=free_reason)],
        )

    descriptors: List[PriceCalcDescriptor] = []

    def describe(description: str, subtotal: Optional[Decimal] = None) -> None:
        descriptors.append(PriceCalcDescriptor(subtotal=subtotal, description=description))

    user_count = user_count_from_tier(tier)
    deployment_type = deployment_type_from_hosting(hosting)
    tiers = pricing_tier_result.tiers
    duration_days = license_duration_days(maintenance_start_date, maintenance_end_date)
    is_annual = billing_period == BillingPeriod.ANNUAL.value

    if not tiers:
        raise TierFormatError(f"No pricing tiers available for {tier}")

    if deployment_type != DeploymentType.CLOUD:
        if not is_annual:
            raise BillingPeriodError(
                f"Non-cloud pricing must always be annual (got {billing_period})"
            )

        pricing_tier = _select_flat_tier(user_count, tiers)
        base_price = pricing_tier.cost
        describe(f"Annual base price is {format_currency(pricing_tier.cost)}/year", base_price)

        if duration_days != DAYS_PER_YEAR:
            base_price = base_price * duration_days / DAYS_PER_YEAR
            describe(
                f"Prorating {format_currency(pricing_tier.cost)} by license duration "
                f"({duration_days}/{DAYS_PER_YEAR} days)",
                base_price,
            )
    else:
        if user_count <= tiers[0].user_tier:
            base_price = tiers[0].cost
            describe(f"Base monthly price for first tier is {format_currency(base_price)}", base_price)
        else:
            base_price = compute_tier_price(user_count, tiers)
            describe(
                f"Base monthly price for tier with {user_count} users is {format_currency(base_price)}",
                base_price,
            )

        if is_annual:
            base_price = base_price * ANNUAL_CLOUD_MULTIPLIER * duration_days / DAYS_PER_YEAR
            if duration_days != DAYS_PER_YEAR:
                describe(
                    f"Annual discount: 12 months for the price of {ANNUAL_CLOUD_MULTIPLIER} "
                    f"and prorate for {duration_days} days: price * {ANNUAL_CLOUD_MULTIPLIER} "
                    f"* {duration_days} / {DAYS_PER_YEAR}",
                    base_price,
                )
            else:
                describe(f"Annual discount: 12 months for the price of {ANNUAL_CLOUD_MULTIPLIER}", base_price)
        elif duration_days < SHORT_MONTH_DAYS:
            if duration_days == 0:
                base_price = ZERO
                describe("Zero-day license", base_price)
            else:
                base_price = base_price * (duration_days + 2) / SHORT_MONTH_BASE
                describe(f"Short month: prorate by ({duration_days}+2)/31 days", base_price)

    if sale_type == SaleType.REFUND:
        base_price = -base_price
        describe("Refund: negate base price", base_price)

    if license_type in (LicenseType.ACADEMIC.value, LicenseType.COMMUNITY.value):
        ratio = license_type_price_ratio(sale_date, hosting, user_count)
        base_price *= ratio
        describe(f"Apply {license_type.lower()} discount of {(1 - ratio) * 100:.0f}%", base_price)

    if is_annual and base_price != _ceil(base_price):
        describe("Round to integer for annual billing", _ceil(base_price))

    purchase_price = _ceil(base_price) if is_annual else base_price
    daily_nominal_price = ZERO if duration_days == 0 else purchase_price / duration_days

    describe(
        f"Daily nominal price = purchase price / days in license = "
        f"{format_currency(purchase_price)} / {duration_days} = {format_currency(daily_nominal_price)}"
    )

    if sale_type in (SaleType.UPGRADE, SaleType.DOWNGRADE) and previous_purchase_end_date:
        overlap = overlap_days(maintenance_start_date, previous_purchase_end_date)

        if overlap > duration_days:
            raise OverlapExceedsDurationError(
                f"Overlap of {overlap} days exceeds license duration of {duration_days} days"
            )

        if overlap > 0 and previous_price is not None and previous_price.purchase_price > 0:
            new_days = duration_days - overlap
            new_period_price = daily_nominal_price * new_days
            describe(
                f"Subscription has {new_days} non-overlapping days at new license price "
                f"({format_currency(daily_nominal_price)} * {new_days}) = {format_currency(new_period_price)}"
            )

            old_period_price_per_day = daily_nominal_price - previous_price.daily_nominal_price
            old_period_price = old_period_price_per_day * overlap
            describe(
                f"Subscription overlaps {overlap} days with old license, which are billed at "
                f"{format_currency(daily_nominal_price)} - {format_currency(previous_price.daily_nominal_price)} "
                f"= {format_currency(old_period_price_per_day)} per day, or {format_currency(old_period_price)} total"
            )

            base_price = old_period_price + new_period_price
            purchase_price = _ceil(base_price) if is_annual else base_price
            describe(
                f"Final upgrade price = {format_currency(old_period_price)} + {format_currency(new_period_price)}",
                base_price,
            )

    if manual_discount:
        base_price -= manual_discount * (-1 if sale_type == SaleType.REFUND else 1)
        describe(f"Apply expected manual discount of {format_currency(manual_discount)}", base_price)

    if is_annual and base_price != _ceil(base_price):
        base_price = _ceil(base_price)
        describe("Round to integer for annual billing", base_price)

    purchase_price = base_price

    if is_annual and hosting != HostingType.CLOUD.value and base_price != _ceil(base_price):
        base_price = _ceil(base_price)
        describe("Round again to integer for DC", base_price)

    ratio = vendor_ratio(deployment_type, sale_date)
    base_price *= ratio
    describe(f"Apply marketplace revenue share of {ratio * 100:.0f}%", base_price)

    return PriceResult(
        purchase_price=round_cents(purchase_price),
        vendor_price=round_cents(base_price),
        daily_nominal_price=daily_nominal_price,
        descriptors=descriptors,
    )
