"""
Rental price calculation.
"""

import math
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from pydantic import BaseModel

from schemas import Car, Driver, HighSeason

SECONDS_PER_DAY = 24 * 60 * 60
END_OF_DAY = time(23, 59, 59, 999000)


class PriceBreakdown(BaseModel):
    base_price: float = 0
    driver_fee: float = 0
    high_season_fee: float = 0
    delivery_fee: float = 0
    total_price: float = 0


def rental_days(start: datetime, end: datetime) -> int:
    """Whole days charged for a rental; part days round up, minimum one."""
    days = math.ceil(abs((end - start).total_seconds()) / SECONDS_PER_DAY)
    return days if days > 0 else 1


def season_for_day(day: datetime, high_seasons: Iterable[HighSeason]) -> Optional[HighSeason]:
    """First season in list order that covers `day`.

    Overlapping seasons are not summed or maxed: the earliest listed wins.
    """
    for hs in high_seasons:
        hs_start = datetime.combine(hs.start_date, time.min, tzinfo=day.tzinfo)
        hs_end = datetime.combine(hs.end_date, END_OF_DAY, tzinfo=day.tzinfo)
        if hs_start <= day <= hs_end:
            return hs
    return None


def calculate_pricing(
    car: Car,
    driver: Optional[Driver],
    start: datetime,
    end: datetime,
    package_type: str,
    high_seasons: Iterable[HighSeason],
    delivery_fee: float = 0,
) -> PriceBreakdown:
    duration = rental_days(start, end)

    # unknown package without a flat tariff prices at zero
    base_price = 0
    if car.pricing and car.pricing.get(package_type):
        base_price = car.pricing[package_type] * duration
    elif car.price_24h:
        base_price = car.price_24h * duration

    driver_fee = driver.daily_rate * duration if driver else 0

    high_seasons = list(high_seasons)
    high_season_fee = 0
    day = start.replace(hour=0, minute=0, second=0, microsecond=0)
    for _ in range(duration):
        season = season_for_day(day, high_seasons)
        if season:
            high_season_fee += season.price_increase
        day += timedelta(days=1)

    return PriceBreakdown(
        base_price=base_price,
        driver_fee=driver_fee,
        high_season_fee=high_season_fee,
        delivery_fee=delivery_fee,
        total_price=base_price + driver_fee + high_season_fee + delivery_fee,
    )
