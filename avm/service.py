"""
Valuation Service - library contract of the valuation core

Exposes the three operations the surrounding application calls:
- estimate_value: stored property id or manual feature bundle -> Valuation
- estimate_rental: stored property id (+ purchase price) -> RentalEstimate
- get_comparable_stats: comparables -> ComparableStats

Mapping these to HTTP, persisting Valuations and authorising callers are
the surrounding application's job.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import date
from typing import Any, List, Mapping, Optional, Sequence, Union

from avm.exceptions import DataSourceUnavailableError, NotFoundError
from avm.schemas import (
    EstimateValueRequest,
    RentalEstimateRequest,
    parse_estimate_request,
    parse_rental_request,
)
from avm.valuation_engine import (
    DEFAULT_MODEL_CONFIG,
    DEFAULT_POLICY,
    Comparable,
    ComparableStats,
    ComparablesSelector,
    MarketDataProvider,
    PropertyRecord,
    PropertyStore,
    RentalEstimate,
    Valuation,
    ValuationAttributes,
    ValuationEstimator,
    ValuationModelConfig,
    ValuationPolicy,
)
from utils.config import Config


logger = logging.getLogger(__name__)


# Requester recorded when a valuation is produced on behalf of another call
SYSTEM_REQUESTER = "system"

MONTHS_PER_YEAR = 12

EstimateInput = Union[str, EstimateValueRequest, Mapping[str, Any]]


class ValuationService:
    """
    Entry point for valuation requests.

    Resolves targets (stored or ad hoc), validates manual bundles, and
    delegates the modelling to ValuationEstimator.
    """

    def __init__(
        self,
        property_store: PropertyStore,
        market_data: Optional[MarketDataProvider] = None,
        config: Config = None,
        model_config: Optional[ValuationModelConfig] = None,
        policy: ValuationPolicy = DEFAULT_POLICY,
        reference_date: date = None,
    ):
        """
        Initialize the service.

        Args:
            property_store: Stored properties (targets and candidates)
            market_data: Optional market snapshot source
            config: Runtime settings (default: loaded from environment)
            model_config: Model constants (default: defaults with the
                configured fallback price per sqft)
            policy: Community, adjacency and yield tables
            reference_date: Date ages are computed from (default: today)
        """
        self._config = config or Config.load()
        self._store = property_store

        if model_config is None:
            model_config = replace(
                DEFAULT_MODEL_CONFIG,
                fallback_price_per_sqft=self._config.fallback_price_per_sqft,
            )

        self._estimator = ValuationEstimator(
            property_store=property_store,
            market_data=market_data,
            config=model_config,
            policy=policy,
            reference_date=reference_date,
            candidate_timeout=self._config.candidate_timeout,
            market_data_timeout=self._config.market_data_timeout,
            comparables_limit=self._config.comparables_limit,
        )

    @property
    def estimator(self) -> ValuationEstimator:
        return self._estimator

    # =========================================================================
    # Operations
    # =========================================================================

    async def estimate_value(
        self,
        request: EstimateInput,
        requested_by: str,
    ) -> Valuation:
        """
        Estimate the value of a stored property or a manual feature bundle.

        Args:
            request: Property id, EstimateValueRequest, or raw request mapping
            requested_by: Identifier of the requesting user

        Returns:
            New Valuation (not persisted)

        Raises:
            NotFoundError: Property id does not resolve
            InvalidInputError: Manual bundle missing mandatory fields
            InsufficientDataError: No comparables found
            DataSourceUnavailableError: Mandatory read failed or timed out
        """
        target = await self.resolve_target(request)
        return await self._estimator.estimate_value(target, requested_by)

    async def estimate_rental(
        self,
        request: Union[str, RentalEstimateRequest, Mapping[str, Any]],
        purchase_price: Optional[float] = None,
        requested_by: str = SYSTEM_REQUESTER,
    ) -> RentalEstimate:
        """
        Estimate annual and monthly rent and gross yield for a stored property.

        With a purchase price the yield is measured against it; otherwise a
        fresh valuation supplies both the rent and the price.

        Raises:
            NotFoundError: Property id does not resolve
            InvalidInputError: Bad request (e.g. non-positive purchase price)
            InsufficientDataError: No purchase price and no comparables
        """
        if isinstance(request, str):
            request = {"property_id": request, "purchase_price": purchase_price}
        rental_request = parse_rental_request(request)

        record = await self.get_property(rental_request.property_id)

        if rental_request.purchase_price:
            price = rental_request.purchase_price
            annual_rent = await self._estimator.estimate_rental_for(record, price)
            gross_yield = self._estimator.calculate_gross_yield(price, annual_rent)
        else:
            valuation = await self._estimator.estimate_value(record, requested_by)
            price = valuation.estimated_value_aed
            annual_rent = valuation.estimated_rent_aed
            gross_yield = valuation.gross_yield_pct

        return RentalEstimate(
            property_id=record.property_id,
            annual_rent_aed=annual_rent,
            monthly_rent_aed=annual_rent / MONTHS_PER_YEAR,
            gross_yield_pct=gross_yield,
            based_on_price_aed=price,
        )

    @staticmethod
    def get_comparable_stats(comparables: Sequence[Comparable]) -> ComparableStats:
        """Median, average, min and max of raw and adjusted comparable prices."""
        return ComparablesSelector.get_comparable_stats(comparables)

    async def find_comparables(self, property_id: str, limit: int = 10) -> List[Comparable]:
        """Ranked comparables for a stored property."""
        record = await self.get_property(property_id)
        return await self._estimator.comparables_selector.find_comparables(record, limit)

    # =========================================================================
    # Target Resolution
    # =========================================================================

    async def resolve_target(self, request: EstimateInput) -> ValuationAttributes:
        """
        Turn a request into the target the engine values.

        Stored and manual targets come out as the same capability, so the
        rest of the pipeline never branches on where the target came from.
        """
        if isinstance(request, str):
            return await self.get_property(request)

        estimate_request = parse_estimate_request(request)
        if estimate_request.is_manual:
            return estimate_request.to_manual_input()
        return await self.get_property(estimate_request.property_id)

    async def get_property(self, property_id: str) -> PropertyRecord:
        """
        Look up a stored property.

        Raises:
            NotFoundError: No such property
            DataSourceUnavailableError: Lookup failed or timed out
        """
        timeout = self._config.candidate_timeout
        try:
            record = await asyncio.wait_for(self._store.get_by_id(property_id), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise DataSourceUnavailableError(
                "property store", f"lookup of {property_id} timed out after {timeout}s"
            ) from exc
        except OSError as exc:
            raise DataSourceUnavailableError("property store", str(exc)) from exc

        if record is None:
            logger.info("Valuation requested for unknown property %s", property_id)
            raise NotFoundError(property_id)
        return record
