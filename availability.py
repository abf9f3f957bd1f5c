"""
Booking overlap checks for cars and drivers.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Literal, Optional, Union

from schemas import TERMINAL_STATUSES, Booking, to_utc_naive

ResourceType = Literal["car", "driver"]
BookingLike = Union[Booking, Dict[str, Any]]


def as_datetime(value: Union[datetime, str]) -> datetime:
    if not isinstance(value, datetime):
        # fromisoformat only takes a trailing Z from Python 3.11 on
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    return to_utc_naive(value)


def _field(booking: BookingLike, name: str):
    if isinstance(booking, dict):
        return booking.get(name)
    return getattr(booking, name)


def is_available(
    bookings: Iterable[BookingLike],
    resource_id: Optional[str],
    start: datetime,
    end: datetime,
    resource_type: ResourceType,
    exclude_booking_id: Optional[str] = None,
) -> bool:
    """True when no live booking holds `resource_id` during [start, end).

    Cancelled and completed bookings never block. `exclude_booking_id` skips
    the booking being edited so it doesn't conflict with itself.
    """
    if not resource_id:
        return True

    start, end = as_datetime(start), as_datetime(end)
    key = "car_id" if resource_type == "car" else "driver_id"
    for b in bookings:
        if str(_field(b, "status")).lower() in TERMINAL_STATUSES:
            continue
        if _field(b, key) != resource_id:
            continue
        if exclude_booking_id and _field(b, "id") == exclude_booking_id:
            continue
        b_start = as_datetime(_field(b, "start_date"))
        b_end = as_datetime(_field(b, "end_date"))
        if start < b_end and end > b_start:
            return False
    return True
