"""Storage interfaces the validation engine depends on.

The sqlite stores in `storage` implement these; tests may pass any object
with the same methods.
"""

from datetime import date
from typing import List, Optional, Protocol

from models.marketplace import DeploymentType, Transaction
from models.pricing import PricingTable
from models.reconciliation import ReconciliationRecord, TransactionAdjustment


class TransactionSource(Protocol):
    """Protocol for transaction and reconciliation access."""

    def load_related_transactions(self, entitlement_id: str) -> List[Transaction]:
        """All transactions of an entitlement ordered by sale date."""
        ...

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        ...

    def get_transaction_ids_by_sale_date(self, start_date: date) -> List[str]:
        """IDs of transactions sold on or after `start_date`, oldest first."""
        ...

    def get_transaction_version(self, transaction_id: str, version: int) -> Optional[Transaction]:
        ...

    def get_current_reconcile(self, transaction_id: str) -> Optional[ReconciliationRecord]:
        ...

    def record_reconcile(self, record: ReconciliationRecord) -> ReconciliationRecord:
        ...

    def get_adjustments_for_transaction(self, transaction_id: str) -> List[TransactionAdjustment]:
        ...


class PricingSource(Protocol):
    """Protocol for pricing table lookups."""

    def find_pricing(
        self,
        addon_key: str,
        deployment_type: DeploymentType,
        sale_date: date,
    ) -> Optional[PricingTable]:
        """The pricing table whose window contains `sale_date`, if any."""
        ...

    def find_pricing_ending_on(
        self,
        addon_key: str,
        deployment_type: DeploymentType,
        end_date: date,
    ) -> Optional[PricingTable]:
        ...


class LicenseSource(Protocol):
    """Protocol for license sandbox checks."""

    def is_installed_on_sandbox(self, entitlement_id: str) -> bool:
        ...
