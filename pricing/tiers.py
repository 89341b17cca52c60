"""Parsing of marketplace tier and hosting strings."""

import re

from models.marketplace import DeploymentType, HostingType
from models.pricing import UNLIMITED_USERS
from pricing.errors import TierFormatError, UnknownHostingError


UNLIMITED_TIER = "Unlimited Users"

# Matches both "100 Users" and "Per Unit Pricing (173 Users)"
_USER_COUNT_RE = re.compile(r"(\d+)\s+Users")

_DEPLOYMENT_BY_HOSTING = {
    HostingType.SERVER.value: DeploymentType.SERVER,
    HostingType.DATA_CENTER.value: DeploymentType.DATACENTER,
    HostingType.CLOUD.value: DeploymentType.CLOUD,
}


def user_count_from_tier(tier: str) -> int:
    """Extract the seat count from a tier string.

    Args:
        tier: Tier string as reported by the marketplace

    Returns:
        Seat count, or -1 for "Unlimited Users"

    Raises:
        TierFormatError: If the string carries no seat count
    """
    if tier == UNLIMITED_TIER:
        return UNLIMITED_USERS

    match = _USER_COUNT_RE.search(tier or "")
    if match:
        return int(match.group(1))

    raise TierFormatError(f"Invalid tier format: {tier}")


def deployment_type_from_hosting(hosting: str) -> DeploymentType:
    """Map a marketplace hosting value to the pricing-table deployment key."""
    value = hosting.value if isinstance(hosting, HostingType) else hosting
    try:
        return _DEPLOYMENT_BY_HOSTING[value]
    except KeyError:
        raise UnknownHostingError(f"Unknown hosting type: {hosting}") from None
