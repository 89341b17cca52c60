"""Marketplace sale models.

These models mirror what the marketplace reports for each sale. The engine
treats them as read-only inputs: it never changes a transaction, it only
prices it and records a reconciliation outcome.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


# =============================================================================
# Value Parsers (sqlite hands back floats and ISO strings)
# =============================================================================

def _parse_decimal(value):
    """Parse decimal from various formats (string with $ or commas, floats, etc.)."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        s = s.replace("$", "").replace(",", "")
        if s.startswith("(") and s.endswith(")"):
            s = "-" + s[1:-1]
        try:
            return Decimal(s)
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    return value


def _parse_date(value):
    """Parse an ISO date, dropping any time component."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        return date.fromisoformat(s[:10])
    return value


DecimalValue = Annotated[Decimal, BeforeValidator(_parse_decimal)]
DateValue = Annotated[date, BeforeValidator(_parse_date)]


# =============================================================================
# Enums
# =============================================================================

class SaleType(str, Enum):
    """Kind of marketplace sale event."""
    NEW = "New"
    RENEWAL = "Renewal"
    UPGRADE = "Upgrade"
    DOWNGRADE = "Downgrade"
    REFUND = "Refund"


class HostingType(str, Enum):
    """Hosting as reported by the marketplace."""
    SERVER = "Server"
    DATA_CENTER = "Data Center"
    CLOUD = "Cloud"


class DeploymentType(str, Enum):
    """Deployment key used by pricing tables."""
    SERVER = "server"
    DATACENTER = "datacenter"
    CLOUD = "cloud"


class LicenseType(str, Enum):
    ACADEMIC = "ACADEMIC"
    COMMERCIAL = "COMMERCIAL"
    COMMUNITY = "COMMUNITY"
    EVALUATION = "EVALUATION"
    OPEN_SOURCE = "OPEN_SOURCE"


class BillingPeriod(str, Enum):
    MONTHLY = "Monthly"
    ANNUAL = "Annual"


# =============================================================================
# Transaction
# =============================================================================

class Transaction(BaseModel):
    """One marketplace sale event.

    Hosting, license type and billing period are kept as the raw strings the
    marketplace sent; the price calculator rejects values it does not know.

    Attributes:
        id: Stable transaction identifier
        entitlement_id: Groups every transaction of one license over time
        addon_key: App key used to look up pricing tables
        sale_date: Date of sale (no time component)
        sale_type: New, Renewal, Upgrade, Downgrade or Refund
        hosting: Server, Data Center or Cloud
        license_type: ACADEMIC, COMMERCIAL, COMMUNITY, EVALUATION or OPEN_SOURCE
        tier: Seat count string, e.g. "100 Users" or "Per Unit Pricing (173 Users)"
        billing_period: Monthly or Annual
        maintenance_start_date: First day of coverage
        maintenance_end_date: Last day of coverage
        vendor_amount: Amount actually received by the vendor
        purchase_price: Amount the customer paid, shown in discrepancy reports
        country: Customer country, used for currency tolerance
        current_version: Bumped whenever the marketplace data changes
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Transaction identifier")
    entitlement_id: str = Field(..., description="License entitlement identifier")
    addon_key: str = Field(..., description="App key")
    sale_date: DateValue
    sale_type: SaleType
    hosting: str
    license_type: str = LicenseType.COMMERCIAL.value
    tier: str
    billing_period: str = BillingPeriod.ANNUAL.value
    maintenance_start_date: DateValue
    maintenance_end_date: DateValue
    vendor_amount: DecimalValue = Decimal("0")
    purchase_price: Optional[DecimalValue] = None
    country: str = ""
    current_version: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _check_maintenance_window(self) -> "Transaction":
        if self.maintenance_end_date < self.maintenance_start_date:
            raise ValueError(
                f"maintenance_end_date {self.maintenance_end_date} precedes "
                f"maintenance_start_date {self.maintenance_start_date}"
            )
        return self

    @property
    def is_refund(self) -> bool:
        return self.sale_type == SaleType.REFUND

    @property
    def is_upgrade(self) -> bool:
        """Upgrades and downgrades both extend an earlier purchase."""
        return self.sale_type in (SaleType.UPGRADE, SaleType.DOWNGRADE)


class License(BaseModel):
    """The slice of a marketplace license record the engine needs."""
    entitlement_id: str
    installed_on_sandbox: bool = False
