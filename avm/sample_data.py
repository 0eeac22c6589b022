"""
Sample dataset for demonstrations and smoke tests.

A handful of Dubai Marina / JBR apartments and matching market snapshots,
with realistic but invented figures.
"""

from datetime import date
from typing import Tuple

from avm.market_data import InMemoryMarketDataProvider
from avm.property_store import InMemoryPropertyStore
from avm.valuation_engine import (
    CompletionStatus,
    MarketSnapshot,
    PropertyRecord,
    PropertyStatus,
    PropertyType,
)


SAMPLE_TARGET_ID = "DXB-MAR-0001"


def _apartment(property_id, community, bedrooms, area_sqft, price, **kwargs) -> PropertyRecord:
    return PropertyRecord(
        property_id=property_id,
        community=community,
        property_type=PropertyType.APARTMENT,
        area_sqft=area_sqft,
        bedrooms=bedrooms,
        bathrooms=kwargs.pop("bathrooms", bedrooms + 1),
        completion_status=kwargs.pop("completion_status", CompletionStatus.READY),
        completion_year=kwargs.pop("completion_year", 2016),
        amenities=kwargs.pop("amenities", ["Pool", "Gym", "Parking", "Security"]),
        price=price,
        **kwargs,
    )


def create_sample_dataset(
    reference_date: date = None,
) -> Tuple[InMemoryPropertyStore, InMemoryMarketDataProvider]:
    """
    Create a sample property store and market data provider.

    The target (SAMPLE_TARGET_ID) is a 2-bed Dubai Marina apartment; the
    rest are sold or available units in the Marina and adjacent JBR.
    """
    reference_date = reference_date or date.today()

    store = InMemoryPropertyStore([
        _apartment(SAMPLE_TARGET_ID, "Dubai Marina", 2, 1250, 2_450_000,
                   floor=18, view="Sea View", status=PropertyStatus.OFF_MARKET),
        _apartment("DXB-MAR-0002", "Dubai Marina", 2, 1200, 2_350_000,
                   floor=12, view="Marina View", status=PropertyStatus.SOLD),
        _apartment("DXB-MAR-0003", "Dubai Marina", 2, 1300, 2_520_000,
                   floor=22, view="Sea View", status=PropertyStatus.SOLD),
        _apartment("DXB-MAR-0004", "Dubai Marina", 3, 1450, 2_900_000,
                   floor=9, view="Marina View", completion_year=2012),
        _apartment("DXB-MAR-0005", "Dubai Marina", 1, 1100, 1_850_000,
                   floor=4, view="City View", amenities=["Gym", "Parking"]),
        _apartment("DXB-MAR-0006", "Dubai Marina", 2, 1180, 2_280_000,
                   floor=15, completion_year=2019, status=PropertyStatus.SOLD),
        _apartment("DXB-JBR-0001", "JBR", 2, 1275, 2_600_000,
                   floor=20, view="Beach View", amenities=["Pool", "Gym", "Beach Access"]),
        _apartment("DXB-JBR-0002", "JBR", 2, 1220, 2_380_000,
                   floor=7, view="Sea View", status=PropertyStatus.SOLD),
        _apartment("DXB-JBR-0003", "JBR", 3, 1400, 2_750_000,
                   floor=25, completion_year=2010, status=PropertyStatus.RESERVED),
    ])

    market = InMemoryMarketDataProvider(
        [
            MarketSnapshot(
                community="Dubai Marina",
                property_type=PropertyType.APARTMENT,
                avg_price_sqft=1780.0,
                avg_rent_sqft=115.0,
                transaction_count=412,
                price_change_yoy=0.0,
                as_of_date=date(reference_date.year - 1, 1, 1),
                source="sample",
            ),
            MarketSnapshot(
                community="Dubai Marina",
                property_type=PropertyType.APARTMENT,
                avg_price_sqft=1950.0,
                avg_rent_sqft=125.0,
                transaction_count=468,
                price_change_yoy=9.6,
                as_of_date=reference_date,
                source="sample",
            ),
            MarketSnapshot(
                community="JBR",
                property_type=PropertyType.APARTMENT,
                avg_price_sqft=2050.0,
                avg_rent_sqft=132.0,
                transaction_count=205,
                price_change_yoy=-1.8,
                as_of_date=reference_date,
                source="sample",
            ),
        ],
        reference_date=reference_date,
    )

    return store, market
