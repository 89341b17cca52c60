"""Constants used for calculating prices."""

from datetime import date
from decimal import Decimal


# Share of list price the vendor receives after the marketplace cut
CLOUD_VENDOR_RATIO = Decimal("0.85")
DC_VENDOR_RATIO = Decimal("0.75")

# 12 months for the price of 10
ANNUAL_CLOUD_MULTIPLIER = Decimal("10")

DAYS_PER_YEAR = 365

# Monthly Cloud licenses shorter than this get the short-month correction
SHORT_MONTH_DAYS = 29
SHORT_MONTH_BASE = Decimal("31")

# Fraction of list price charged for academic and community licenses
ACADEMIC_CLOUD_PRICE_RATIO = Decimal("0.25")
ACADEMIC_DC_PRICE_RATIO_LEGACY = Decimal("0.5")
ACADEMIC_DC_PRICE_RATIO_CURRENT_START_DATE = date(2024, 9, 1)
ACADEMIC_DC_PRICE_RATIO_CURRENT_10K = Decimal("0.25")
ACADEMIC_DC_PRICE_RATIO_CURRENT_OTHER = Decimal("0.5")
ACADEMIC_DC_LARGE_TIER_USERS = 10000

CENTS = Decimal("0.01")
