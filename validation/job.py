"""Validation Job.

Batch driver: validates every transaction sold since a cutover date, writes
one reconciliation record per transaction version and logs a line per
transaction plus a summary.

Runs are safe to repeat. A transaction whose current reconciliation record
already covers its current version is priced and logged again, but its
record is left alone.
"""

import uuid
from datetime import date
from typing import List, Optional

from core.config import ValidationSettings, get_settings
from core.observability import get_logger, with_correlation
from models.marketplace import Transaction
from models.reconciliation import (
    ReconciliationRecord,
    ValidationFailure,
    ValidationResult,
    ValidationRunSummary,
)
from pricing.calculator import format_currency, round_cents
from pricing.errors import InvalidTransactionError, PricingError
from validation.pricing_resolver import PricingTableResolver
from validation.stores import LicenseSource, PricingSource, TransactionSource
from validation.transaction_diff import transaction_mutation_notes
from validation.validator import TransactionValidator


logger = get_logger("validation.job")


class ValidationJob:
    """Validates stored transactions and records reconciliation outcomes.

    Each call to validate_transactions() uses a fresh pricing cache.

    Example:
        job = ValidationJob(TransactionStore(db), PricingStore(db), LicenseStore(db))
        summary = job.validate_transactions(date(2025, 1, 1))
        print(summary.reconciled, summary.failed)
    """

    def __init__(
        self,
        transaction_store: TransactionSource,
        pricing_store: PricingSource,
        license_store: LicenseSource,
        settings: Optional[ValidationSettings] = None,
    ):
        self.transaction_store = transaction_store
        self.pricing_store = pricing_store
        self.license_store = license_store
        self.settings = settings or get_settings()

    def create_validator(self) -> TransactionValidator:
        return TransactionValidator(
            pricing_resolver=PricingTableResolver(self.pricing_store),
            transaction_store=self.transaction_store,
            license_store=self.license_store,
            settings=self.settings,
        )

    def validate_transactions(self, start_date: Optional[date] = None) -> ValidationRunSummary:
        """Validate all transactions sold on or after `start_date`.

        Transactions are loaded one at a time. One that cannot be loaded or
        priced is logged and recorded as a failure in the summary; the run
        continues with the next one.

        Args:
            start_date: Cutover date (defaults to the configured start date)

        Returns:
            ValidationRunSummary with counts and failures
        """
        actual_start_date = start_date or self.settings.default_start_date
        run_id = f"validation-{uuid.uuid4().hex[:12]}"
        summary = ValidationRunSummary(start_date=actual_start_date)

        validator = self.create_validator()

        with with_correlation(run_id=run_id, stage="validation"):
            transaction_ids = self.transaction_store.get_transaction_ids_by_sale_date(actual_start_date)
            logger.info(
                f"=== Validating {len(transaction_ids)} transactions since {actual_start_date} ===",
                extra_fields={"transaction_count": len(transaction_ids)},
            )

            for transaction_id in transaction_ids:
                summary.total += 1

                with with_correlation(transaction_id=transaction_id):
                    self._validate_stored_transaction(validator, transaction_id, summary)

            logger.info(
                f"Summary: {summary.total} transactions; {summary.expected_price} have expected price; "
                f"{summary.reconciled} are reconciled; {summary.needs_correction} need correction; "
                f"{summary.failed} failed.",
                extra_fields={
                    "total": summary.total,
                    "expected_price": summary.expected_price,
                    "reconciled": summary.reconciled,
                    "failed": summary.failed,
                    "skipped_unchanged": summary.skipped_unchanged,
                },
            )

        return summary

    def _validate_stored_transaction(
        self,
        validator: TransactionValidator,
        transaction_id: str,
        summary: ValidationRunSummary,
    ) -> None:
        try:
            transaction = self.transaction_store.get_transaction(transaction_id)
            if transaction is None:
                raise InvalidTransactionError(
                    f"Transaction {transaction_id} was removed during the run", transaction_id
                )
        except PricingError as e:
            self._record_failure(summary, transaction_id, e)
            return

        with with_correlation(entitlement_id=transaction.entitlement_id):
            try:
                result = validator.validate_transaction(transaction)
                record = self.record_transaction_reconcile(transaction, result)
            except PricingError as e:
                self._record_failure(summary, transaction_id, e)
                return

            if record is None:
                summary.skipped_unchanged += 1

            self.log_transaction_validation(transaction, result)

        if result.is_expected_price:
            summary.expected_price += 1
        if result.valid:
            summary.reconciled += 1

    def _record_failure(self, summary: ValidationRunSummary, transaction_id: str, error: PricingError) -> None:
        summary.failures.append(ValidationFailure(
            transaction_id=transaction_id,
            code=error.code,
            message=str(error),
        ))
        logger.error(
            f"Transaction {transaction_id}: {error}",
            extra_fields={"error_code": error.code},
        )

    def record_transaction_reconcile(
        self,
        transaction: Transaction,
        result: ValidationResult,
    ) -> Optional[ReconciliationRecord]:
        """Write the reconciliation record for the transaction's current version.

        A new version of a transaction that was already evaluated is only
        reconciled automatically when the earlier version was reconciled and
        none of its price-relevant fields changed.

        Returns:
            The new record, or None if the current version was already
            reconciled
        """
        existing = self.transaction_store.get_current_reconcile(transaction.id)

        if existing is not None and existing.transaction_version == transaction.current_version:
            return None

        reconciled = result.valid
        notes = list(result.notes)

        if existing is not None:
            if reconciled and not existing.reconciled:
                notes.append(
                    "Price now matches, but prior version of transaction was not reconciled, "
                    "so requiring manual approval."
                )
                reconciled = False

            mutation_notes = self.mutation_notes(transaction)
            if mutation_notes:
                notes.extend(mutation_notes)
                reconciled = False

        if reconciled:
            message = f"Automatically reconciled with vendor price of {format_currency(result.vendor_amount)}"
            if result.manual_discount_applied != 0:
                message += (
                    f"; includes manual transaction adjustments of "
                    f"{format_currency(result.manual_discount_applied)}"
                )
            notes.append(message)

        return self.transaction_store.record_reconcile(ReconciliationRecord(
            transaction_id=transaction.id,
            transaction_version=transaction.current_version,
            reconciled=reconciled,
            automatic=True,
            actual_vendor_amount=result.vendor_amount,
            expected_vendor_amount=result.expected_vendor_amount,
            notes=notes,
        ))

    def mutation_notes(self, transaction: Transaction) -> List[str]:
        """Notes for price-relevant changes since the previous stored version."""
        if transaction.current_version <= 1:
            return []

        prior_version = transaction.current_version - 1
        prior = self.transaction_store.get_transaction_version(transaction.id, prior_version)

        if prior is None:
            logger.warning(
                f"Could not find prior version of transaction {transaction.id} "
                f"(expected to find version {prior_version})",
                extra_fields={"transaction_version": transaction.current_version},
            )
            return []

        return transaction_mutation_notes(transaction, prior)

    def log_transaction_validation(self, transaction: Transaction, result: ValidationResult) -> None:
        marker = "OK     " if result.valid else "*ERROR*"
        line = (
            f"{marker} {transaction.sale_date} {transaction.sale_type.value:<9} "
            f"L={transaction.entitlement_id:<17} "
            f"Expected vendor: {format_currency(result.expected_vendor_amount):<10}; "
            f"actual vendor: {format_currency(result.vendor_amount):<10}"
        )

        extra = {
            "valid": result.valid,
            "expected_vendor_amount": str(result.expected_vendor_amount),
            "vendor_amount": str(result.vendor_amount),
        }

        if result.valid:
            if result.notes:
                line += " " + "; ".join(result.notes)
            logger.info(line, extra_fields=extra)
            return

        expected_purchase = result.price.purchase_price
        actual_purchase = transaction.purchase_price
        difference = None if actual_purchase is None else round_cents(expected_purchase - actual_purchase)

        line += (
            f"; expected purchase: {format_currency(expected_purchase):<10}"
            f"; actual purchase: {_optional_currency(actual_purchase):<10}"
        )
        if difference is not None:
            line += f"; difference={format_currency(difference)}"
        line += f"; txID={transaction.id}"
        if result.notes:
            line += "; " + "; ".join(result.notes)

        extra.update({
            "expected_purchase_price": str(expected_purchase),
            "purchase_price": None if actual_purchase is None else str(actual_purchase),
            "difference": None if difference is None else str(difference),
        })
        logger.warning(line, extra_fields=extra)

        if difference is not None:
            logger.warning(
                f'To accept adjustment: python scripts/add_adjustment.py {transaction.id} {difference:.2f} ""'
            )


def _optional_currency(value) -> str:
    return "unknown" if value is None else format_currency(value)
