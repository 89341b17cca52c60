"""Reconciliation and validation outcome models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from models.marketplace import DateValue, DecimalValue, Transaction
from models.pricing import PriceResult


class ReconciliationRecord(BaseModel):
    """Recorded outcome of validating one version of a transaction.

    Attributes:
        id: Database row ID
        transaction_id: Transaction this record belongs to
        transaction_version: Transaction version that was evaluated
        reconciled: Whether the transaction is considered settled
        automatic: True when produced by the engine, False for manual overrides
        actual_vendor_amount: Amount the vendor received
        expected_vendor_amount: Amount the engine expected
        notes: Explanations attached to the outcome
        current: Marks the latest record for the transaction
        created_at: When the record was written
    """
    id: Optional[int] = None
    transaction_id: str
    transaction_version: int
    reconciled: bool
    automatic: bool = True
    actual_vendor_amount: Optional[DecimalValue] = None
    expected_vendor_amount: Optional[DecimalValue] = None
    notes: List[str] = Field(default_factory=list)
    current: bool = True
    created_at: Optional[datetime] = None


class TransactionAdjustment(BaseModel):
    """A manual or partner discount an operator attached to a transaction."""
    id: Optional[int] = None
    transaction_id: str
    purchase_price_discount: DecimalValue = Decimal("0")
    notes: Optional[str] = None


class PreviousPurchase(BaseModel):
    """The purchase an upgrade or renewal extends, with its refund-adjusted end date."""
    transaction: Transaction
    effective_maintenance_end_date: DateValue


class ValidationResult(BaseModel):
    """Outcome of pricing one transaction and comparing it to what was paid.

    `is_expected_price` is the raw tolerance comparison; `valid` additionally
    folds in business rules (refund review, late legacy pricing) and is what
    gets recorded as `reconciled`.
    """
    transaction_id: str
    is_expected_price: bool
    valid: bool
    vendor_amount: DecimalValue
    expected_vendor_amount: DecimalValue
    price: PriceResult
    notes: List[str] = Field(default_factory=list)
    legacy_pricing_end_date: Optional[DateValue] = None
    previous_purchase_legacy_pricing_end_date: Optional[DateValue] = None
    use_legacy_pricing_for_current: bool = False
    use_legacy_pricing_for_previous: bool = False
    manual_discount_applied: DecimalValue = Decimal("0")


class ValidationFailure(BaseModel):
    """A transaction that could not be priced at all."""
    transaction_id: str
    code: str
    message: str


class ValidationRunSummary(BaseModel):
    """Counters for one batch validation run."""
    start_date: date
    total: int = 0
    expected_price: int = 0
    reconciled: int = 0
    skipped_unchanged: int = 0
    failures: List[ValidationFailure] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def needs_correction(self) -> int:
        return self.total - self.expected_price
