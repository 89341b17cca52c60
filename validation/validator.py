"""Transaction Validator.

Prices one transaction and decides whether the vendor was paid correctly.

We don't know whether a sale made near a price change was charged at the old
or the new prices, nor whether the purchase it upgrades was. So the
validator tries a short, fixed list of legacy-pricing hypotheses and stops at
the first one whose expected vendor amount matches what was actually paid.
When a transaction carries operator adjustments, each hypothesis is also
tried with and without them.

If nothing matches, the last hypothesis (current pricing, adjustments
applied) stands as the best-effort expectation and the transaction is
flagged as a discrepancy.

Upgrades, downgrades and renewals must also line up with the maintenance
period of the purchase they extend; a gap keeps the transaction from being
reconciled even when its price is right.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from core.config import ValidationSettings, get_settings
from core.observability import get_logger
from models.marketplace import LicenseType, SaleType, Transaction
from models.pricing import PriceResult, PricingTierResult
from models.reconciliation import PreviousPurchase, ValidationResult
from pricing.calculator import calculate_expected_price, format_currency
from pricing.duration import license_duration_days
from pricing.tiers import deployment_type_from_hosting
from validation.previous_purchase import PreviousPurchaseResolver
from validation.pricing_resolver import PricingTableResolver
from validation.stores import LicenseSource, TransactionSource


logger = get_logger("validation.validator")

JAPAN = "Japan"

# Sales that extend an earlier purchase of the same entitlement
CONTINUING_SALE_TYPES = (SaleType.UPGRADE, SaleType.DOWNGRADE, SaleType.RENEWAL)

ZERO = Decimal("0")


@dataclass(frozen=True)
class LegacyPricePermutation:
    """One hypothesis about which pricing tables were used."""
    use_legacy_for_current: bool
    use_legacy_for_previous: bool


# Must end with no legacy pricing so a failed search reports current prices
LEGACY_PRICING_PERMUTATIONS_WITH_UPGRADE = (
    LegacyPricePermutation(False, False),
    LegacyPricePermutation(True, False),
    LegacyPricePermutation(False, True),
    LegacyPricePermutation(True, True),
    LegacyPricePermutation(False, False),
)

LEGACY_PRICING_PERMUTATIONS_NO_UPGRADE = (
    LegacyPricePermutation(False, False),
    LegacyPricePermutation(True, False),
    LegacyPricePermutation(False, False),
)

# Must end with adjustments applied so a failed search still reflects them
DISCOUNT_PERMUTATIONS_WITH_ADJUSTMENTS = (True, False, True)


@dataclass
class DiscountResult:
    """Operator adjustments that apply to a transaction."""
    discount: Decimal
    notes: List[str]


class TransactionValidator:
    """Validates the price of single transactions.

    Example:
        validator = TransactionValidator(
            pricing_resolver=PricingTableResolver(pricing_store),
            transaction_store=transaction_store,
            license_store=license_store,
        )
        result = validator.validate_transaction(tx)
        if not result.valid:
            print(result.notes)
    """

    def __init__(
        self,
        pricing_resolver: PricingTableResolver,
        transaction_store: TransactionSource,
        license_store: LicenseSource,
        settings: Optional[ValidationSettings] = None,
    ):
        self.pricing_resolver = pricing_resolver
        self.transaction_store = transaction_store
        self.license_store = license_store
        self.previous_purchase_resolver = PreviousPurchaseResolver(transaction_store)
        self.settings = settings or get_settings()

    # =========================================================================
    # Entry point
    # =========================================================================

    def validate_transaction(self, transaction: Transaction) -> ValidationResult:
        """Price a transaction under each hypothesis until one matches.

        Args:
            transaction: Transaction to validate

        Returns:
            ValidationResult of the matching hypothesis, or of the final
            fallback hypothesis if none matched

        Raises:
            PricingError: If the transaction (or its previous purchase)
                cannot be priced at all
        """
        discount = self.expected_discount(transaction)
        is_sandbox = self.is_sandbox(transaction)

        previous: Optional[PreviousPurchase] = None
        previous_discount = ZERO
        if transaction.sale_type in CONTINUING_SALE_TYPES:
            previous = self.previous_purchase_resolver.find_previous_purchase(transaction)
            if previous is not None and transaction.is_upgrade:
                previous_discount = self.expected_discount(previous.transaction).discount

        permutations = (
            LEGACY_PRICING_PERMUTATIONS_WITH_UPGRADE
            if transaction.is_upgrade
            else LEGACY_PRICING_PERMUTATIONS_NO_UPGRADE
        )
        discount_permutations = (True,) if discount.discount == 0 else DISCOUNT_PERMUTATIONS_WITH_ADJUSTMENTS

        result: Optional[ValidationResult] = None

        for permutation in permutations:
            for use_discount in discount_permutations:
                result = self.validate_one(
                    transaction,
                    permutation=permutation,
                    manual_discount=discount.discount if use_discount else ZERO,
                    is_sandbox=is_sandbox,
                    previous=previous,
                    previous_discount=previous_discount,
                )

                if result.is_expected_price:
                    self._add_match_notes(transaction, result, permutation, use_discount, discount)
                    return self.apply_post_validation_rules(transaction, result)

        return self.apply_post_validation_rules(transaction, result)

    # =========================================================================
    # One hypothesis
    # =========================================================================

    def validate_one(
        self,
        transaction: Transaction,
        permutation: LegacyPricePermutation,
        manual_discount: Decimal = ZERO,
        is_sandbox: bool = False,
        previous: Optional[PreviousPurchase] = None,
        previous_discount: Decimal = ZERO,
    ) -> ValidationResult:
        """Price a transaction under a single legacy-pricing hypothesis."""
        deployment_type = deployment_type_from_hosting(transaction.hosting)
        tier_result = self.pricing_resolver.get_pricing_tiers(
            transaction.addon_key, deployment_type, transaction.sale_date
        )

        previous_tier_result: Optional[PricingTierResult] = None
        previous_price: Optional[PriceResult] = None
        previous_end = None

        if previous is not None and transaction.is_upgrade:
            previous_tx = previous.transaction
            previous_end = previous.effective_maintenance_end_date
            previous_tier_result = self.pricing_resolver.get_pricing_tiers(
                transaction.addon_key, deployment_type, previous_tx.sale_date
            )
            previous_price = self._price(
                previous_tx,
                previous_tier_result,
                use_legacy=permutation.use_legacy_for_previous,
                is_sandbox=False,
                manual_discount=previous_discount,
            )

        price = self._price(
            transaction,
            tier_result,
            use_legacy=permutation.use_legacy_for_current,
            is_sandbox=is_sandbox,
            manual_discount=manual_discount,
            previous_end=previous_end,
            previous_price=previous_price,
        )

        is_expected, notes = self.is_price_valid(
            transaction.vendor_amount, price.vendor_price, transaction.country
        )

        continuity_notes = self.check_continuity(transaction, previous)
        notes.extend(continuity_notes)

        return ValidationResult(
            transaction_id=transaction.id,
            is_expected_price=is_expected,
            valid=is_expected and not continuity_notes,
            vendor_amount=transaction.vendor_amount,
            expected_vendor_amount=price.vendor_price,
            price=price,
            notes=notes,
            legacy_pricing_end_date=tier_result.prior_pricing_end_date,
            previous_purchase_legacy_pricing_end_date=(
                previous_tier_result.prior_pricing_end_date if previous_tier_result else None
            ),
            use_legacy_pricing_for_current=permutation.use_legacy_for_current,
            use_legacy_pricing_for_previous=permutation.use_legacy_for_previous,
            manual_discount_applied=manual_discount,
        )

    def _price(
        self,
        transaction: Transaction,
        tier_result: PricingTierResult,
        use_legacy: bool,
        is_sandbox: bool,
        manual_discount: Decimal,
        previous_end=None,
        previous_price: Optional[PriceResult] = None,
    ) -> PriceResult:
        if use_legacy:
            tier_result = tier_result.as_legacy()

        return calculate_expected_price(
            pricing_tier_result=tier_result,
            sale_date=transaction.sale_date,
            sale_type=transaction.sale_type,
            is_sandbox=is_sandbox,
            hosting=transaction.hosting,
            license_type=transaction.license_type,
            tier=transaction.tier,
            maintenance_start_date=transaction.maintenance_start_date,
            maintenance_end_date=transaction.maintenance_end_date,
            billing_period=transaction.billing_period,
            previous_purchase_end_date=previous_end,
            previous_price=previous_price,
            manual_discount=manual_discount,
        )

    # =========================================================================
    # Rules
    # =========================================================================

    def check_continuity(self, transaction: Transaction, previous: Optional[PreviousPurchase]) -> List[str]:
        """Check that an upgrade, downgrade or renewal follows on from its previous purchase.

        Upgrades must start at or before the previous maintenance end,
        downgrades must not start before it and renewals must start on it.
        Zero-day licenses and community licenses are exempt.

        Returns:
            Notes describing each problem; empty when continuity holds
        """
        if transaction.sale_type not in CONTINUING_SALE_TYPES:
            return []
        if license_duration_days(transaction.maintenance_start_date, transaction.maintenance_end_date) == 0:
            return []
        if transaction.license_type == LicenseType.COMMUNITY.value:
            return []

        if previous is None:
            return [
                "This is an upgrade/downgrade/renewal, but we could not find related "
                "transaction for previous purchase"
            ]

        start = transaction.maintenance_start_date
        prior_end = previous.transaction.maintenance_end_date

        if prior_end < start:
            return [
                f"Maintenance gap: upgrade must start at or before end of previous maintenance: "
                f"previous maintenance ended on {prior_end} but this license starts on {start}"
            ]
        if transaction.sale_type == SaleType.DOWNGRADE and start < prior_end:
            return [
                f"Maintenance gap: downgrade must not start before end of previous maintenance: "
                f"this license starts on {start} but it downgrades a previous license ending on {prior_end}"
            ]
        if transaction.sale_type == SaleType.RENEWAL and start != prior_end:
            return [
                f"Maintenance gap: renewal must have same start date as previous maintenance: "
                f"this license starts on {start} but it renews a previous license ending on {prior_end}"
            ]

        return []

    def is_price_valid(
        self,
        vendor_amount: Decimal,
        expected_vendor_amount: Decimal,
        country: str,
    ) -> Tuple[bool, List[str]]:
        """Compare the paid amount with the expected amount.

        Japan sales are priced in JPY and converted, so they may drift by a
        relative margin. Everything else must land within an absolute band.
        A zero amount against a non-zero expectation never matches, whichever
        sign the expectation has.

        Returns:
            Tuple of (matches, notes)
        """
        unpaid = vendor_amount == 0 and expected_vendor_amount != 0

        if country == JAPAN:
            drift = self.settings.jpy_max_drift
            low, high = sorted((
                expected_vendor_amount * (1 - drift),
                expected_vendor_amount * (1 + drift),
            ))
            valid = low <= vendor_amount <= high and not unpaid
            return valid, [f"Japan sales priced in JPY are allowed drift of up to {drift * 100:.0f}%"]

        diff = abs(vendor_amount - expected_vendor_amount)
        valid = diff < self.settings.amount_tolerance and not unpaid
        return valid, []

    def apply_post_validation_rules(self, transaction: Transaction, result: ValidationResult) -> ValidationResult:
        """Business rules applied after the price search settles."""
        if result.use_legacy_pricing_for_current and result.legacy_pricing_end_date:
            days = (transaction.sale_date - result.legacy_pricing_end_date).days
            alert_days = self.settings.legacy_alert_days

            if days > alert_days:
                result.notes.append(
                    f"Legacy pricing was still applied more than {alert_days} days after "
                    f"pricing change on {result.legacy_pricing_end_date}"
                )
                result.valid = False

        if transaction.is_refund:
            result.notes.append("Refund requires manual approval")
            result.valid = False

        return result

    def _add_match_notes(
        self,
        transaction: Transaction,
        result: ValidationResult,
        permutation: LegacyPricePermutation,
        use_discount: bool,
        discount: DiscountResult,
    ) -> None:
        if permutation.use_legacy_for_current:
            result.notes.append(
                f"Price is correct but uses legacy pricing for current transaction "
                f"(sold on {transaction.sale_date}, but prior pricing ended on "
                f"{result.legacy_pricing_end_date})"
            )

        if permutation.use_legacy_for_previous:
            result.notes.append("Price is correct but uses legacy pricing for previous transaction")

        if discount.discount == 0:
            return

        if use_discount:
            for note in discount.notes:
                result.notes.append(f"Reconciled using manual adjustment: {note}")
        else:
            result.notes.append(
                f"Price is correct but expected discount of "
                f"{format_currency(discount.discount)} was not applied"
            )

    # =========================================================================
    # Inputs
    # =========================================================================

    def expected_discount(self, transaction: Transaction) -> DiscountResult:
        """Sum of the operator adjustments recorded for a transaction."""
        adjustments = self.transaction_store.get_adjustments_for_transaction(transaction.id)
        total = sum((a.purchase_price_discount for a in adjustments), ZERO)
        notes = [
            f"{format_currency(a.purchase_price_discount)} ({a.notes})" if a.notes
            else format_currency(a.purchase_price_discount)
            for a in adjustments
        ]
        return DiscountResult(discount=total, notes=notes)

    def is_sandbox(self, transaction: Transaction) -> bool:
        """Zero-amount sales on sandbox licenses are free."""
        if transaction.vendor_amount != 0:
            return False
        return self.license_store.is_installed_on_sandbox(transaction.entitlement_id)
