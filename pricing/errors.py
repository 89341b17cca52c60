"""Errors raised while loading or pricing a single transaction.

Every error here is fatal for the transaction being priced but never for the
batch: the validation job catches PricingError, records a ValidationFailure
carrying `code`, and moves on.
"""


class PricingError(Exception):
    """Base exception for per-transaction pricing errors."""
    code = "pricing_error"

    def __init__(self, message: str, transaction_id: str = ""):
        super().__init__(message)
        self.transaction_id = transaction_id


class InvalidTransactionError(PricingError):
    """A stored transaction row does not form a valid Transaction."""
    code = "invalid_transaction"


class TierFormatError(PricingError):
    """Tier string does not encode a seat count."""
    code = "invalid_tier"


class UnknownHostingError(PricingError):
    """Hosting value is not Server, Data Center or Cloud."""
    code = "unknown_hosting"


class UnknownLicenseTypeError(PricingError):
    """License type is not one the calculator knows how to price."""
    code = "unknown_license_type"


class BillingPeriodError(PricingError):
    """Billing period is unknown, or a Server/Data Center license is not annual."""
    code = "invalid_billing_period"


class OverlapExceedsDurationError(PricingError):
    """Upgrade overlap is longer than the upgrade itself."""
    code = "overlap_exceeds_duration"


class PricingNotFoundError(PricingError):
    """No pricing table covers the sale date."""
    code = "pricing_not_found"

    def __init__(self, addon_key: str, deployment_type: str, sale_date, transaction_id: str = ""):
        super().__init__(
            f"No pricing found for {addon_key} ({deployment_type}) on {sale_date}",
            transaction_id,
        )
        self.addon_key = addon_key
        self.deployment_type = deployment_type
        self.sale_date = sale_date
