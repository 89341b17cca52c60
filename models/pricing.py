"""Pricing table and price calculation models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models.marketplace import DateValue, DecimalValue, DeploymentType


UNLIMITED_USERS = -1


def tier_sort_key(tier: "PricingTier"):
    """Ascending by threshold, with the unlimited tier (-1) last."""
    return (tier.user_tier == UNLIMITED_USERS, tier.user_tier)


class PricingTier(BaseModel):
    """One price point of a pricing table.

    Attributes:
        user_tier: Seat threshold for this band; -1 means unlimited
        cost: Flat annual cost (server/datacenter) or per-seat monthly
            cost (cloud; the first cloud tier is a flat monthly price)
    """
    user_tier: int
    cost: DecimalValue


class PricingTable(BaseModel):
    """A versioned price list for one app and deployment type.

    The window is inclusive on both ends; a missing start or end date means
    "since the beginning of time" or "still current".
    """
    id: Optional[int] = None
    addon_key: str = Field(..., description="App key")
    deployment_type: DeploymentType
    start_date: Optional[DateValue] = None
    end_date: Optional[DateValue] = None
    tiers: List[PricingTier] = Field(default_factory=list)

    @field_validator("tiers")
    @classmethod
    def _sort_tiers(cls, tiers: List[PricingTier]) -> List[PricingTier]:
        return sorted(tiers, key=tier_sort_key)

    def covers(self, sale_date: date) -> bool:
        if self.start_date is not None and sale_date < self.start_date:
            return False
        if self.end_date is not None and sale_date > self.end_date:
            return False
        return True


class PricingTierResult(BaseModel):
    """Tiers applicable on a sale date, plus the table that preceded them.

    Attributes:
        tiers: Tiers in force on the sale date
        prior_tiers: Tiers of the table ending the day before `tiers` began
        prior_pricing_end_date: Last day the prior table was in force
    """
    tiers: List[PricingTier]
    prior_tiers: Optional[List[PricingTier]] = None
    prior_pricing_end_date: Optional[DateValue] = None

    def as_legacy(self) -> "PricingTierResult":
        """Return a result that prices with the prior table, if one exists."""
        if not self.prior_tiers:
            return self
        return PricingTierResult(tiers=self.prior_tiers)


class PriceCalcDescriptor(BaseModel):
    """One human-readable step of a price calculation."""
    subtotal: Optional[DecimalValue] = None
    description: str


class PriceResult(BaseModel):
    """Output of the price calculator.

    Attributes:
        vendor_price: What the vendor should receive, rounded to cents
        purchase_price: What the customer should be charged, rounded to cents
        daily_nominal_price: Unrounded purchase price per licensed day, used
            to prorate later upgrades
        descriptors: Audit trail of each pricing step
    """
    vendor_price: DecimalValue
    purchase_price: DecimalValue
    daily_nominal_price: DecimalValue = Decimal("0")
    descriptors: List[PriceCalcDescriptor] = Field(default_factory=list)
