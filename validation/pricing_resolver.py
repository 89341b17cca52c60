"""PricingTable Resolver.

Finds the tiers in force for an app, deployment type and sale date, plus the
table that immediately preceded them. The prior table lets the validator test
whether a sale close to a price change was charged at the old prices.
"""

from datetime import date, timedelta
from typing import Dict, Tuple

from core.observability import get_logger
from models.marketplace import DeploymentType
from models.pricing import PricingTierResult
from pricing.errors import PricingNotFoundError
from validation.stores import PricingSource


logger = get_logger("validation.pricing_resolver")

CacheKey = Tuple[str, DeploymentType, date]


class PricingTableResolver:
    """Resolves pricing tiers for a sale date, cached per instance.

    Pricing tables are immutable for the lifetime of a validation run, so the
    cache is purely additive. Create one resolver per run.

    Example:
        resolver = PricingTableResolver(PricingStore(db_path))
        result = resolver.get_pricing_tiers("com.example.app", DeploymentType.CLOUD, date(2025, 5, 1))
        result.tiers, result.prior_tiers
    """

    def __init__(self, pricing_store: PricingSource):
        self.pricing_store = pricing_store
        self._cache: Dict[CacheKey, PricingTierResult] = {}

    def get_pricing_tiers(
        self,
        addon_key: str,
        deployment_type: DeploymentType,
        sale_date: date,
    ) -> PricingTierResult:
        """Resolve the tiers in force on `sale_date`.

        Args:
            addon_key: App key
            deployment_type: server, datacenter or cloud
            sale_date: Date of sale

        Returns:
            PricingTierResult with the current tiers and, when the current
            table has a start date and a table ended the day before it, the
            prior tiers and that table's end date

        Raises:
            PricingNotFoundError: If no table covers the sale date
        """
        deployment_type = DeploymentType(deployment_type)
        key = (addon_key, deployment_type, sale_date)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        table = self.pricing_store.find_pricing(addon_key, deployment_type, sale_date)
        if table is None:
            raise PricingNotFoundError(addon_key, deployment_type.value, sale_date)

        result = PricingTierResult(tiers=table.tiers)

        if table.start_date is not None:
            prior_end = table.start_date - timedelta(days=1)
            prior = self.pricing_store.find_pricing_ending_on(addon_key, deployment_type, prior_end)
            if prior is not None:
                result = PricingTierResult(
                    tiers=table.tiers,
                    prior_tiers=prior.tiers,
                    prior_pricing_end_date=prior.end_date,
                )

        logger.debug(
            f"Resolved pricing for {addon_key} ({deployment_type.value}) on {sale_date}",
            extra_fields={
                "pricing_id": table.id,
                "has_prior": result.prior_tiers is not None,
            },
        )

        self._cache[key] = result
        return result

    def clear(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)
