"""
Visit pricing: distance tier plus holiday and extra-cat surcharges.
"""

from datetime import date
from typing import Sequence

from meowwalker.errors import InvalidConfiguration
from meowwalker.models import Number, PricingTier


def select_tier(distance_km: Number, tiers: Sequence[PricingTier]) -> PricingTier:
    """
    Pick the first tier covering the distance.

    Tiers are scanned in the given order (callers keep them sorted ascending).
    A distance beyond every threshold falls back to the last tier.
    """
    if not tiers:
        raise InvalidConfiguration()

    for tier in tiers:
        if distance_km <= tier.max_distance_km:
            return tier
    return tiers[-1]


def calculate_price(
    distance_km: Number,
    cat_count: int,
    is_holiday: bool,
    tiers: Sequence[PricingTier],
    holiday_surcharge: Number,
    extra_cat_surcharge: Number,
) -> Number:
    """
    Price of a single visit.

    Args:
        distance_km: Travel distance from the base address
        cat_count: Number of cats (>= 1)
        is_holiday: Whether the visit falls on a holiday/weekend
        tiers: Distance tiers, ascending by max distance
        holiday_surcharge: Flat amount added on holidays
        extra_cat_surcharge: Amount added per cat beyond the first

    Returns:
        Unrounded price

    Raises:
        InvalidConfiguration: If no tiers are configured
    """
    price = select_tier(distance_km, tiers).price

    if is_holiday:
        price += holiday_surcharge

    if cat_count > 1:
        price += (cat_count - 1) * extra_cat_surcharge

    return price


async def check_is_holiday(day: date) -> bool:
    """Saturday and Sunday count as holidays"""
    return day.weekday() >= 5
