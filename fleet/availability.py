"""Date-range overlap and pricing helpers.

Every consumer that needs to know whether a vehicle is free for a range
goes through ``is_available``; booking acceptance and fleet filtering must
never compare dates on their own.
"""

from datetime import date, datetime
from typing import Optional, Tuple, Union

from dateutil import parser as date_parser
from dateutil import tz

from .booking import Booking
from .errors import InvalidRange, ValidationError
from .vehicle import Vehicle

DateLike = Union[date, datetime, str]


def parse_date(value: Optional[DateLike]) -> date:
    """
    Normalize a date-like value to a calendar date at the UTC day boundary.

    - date: returned as-is
    - datetime / ISO-8601 string: aware values are converted to UTC first,
      naive values are taken as UTC
    """
    if value is None or value == "":
        raise InvalidRange("Date is required")
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return value
    elif isinstance(value, str):
        try:
            moment = date_parser.isoparse(value.strip())
        except (ValueError, OverflowError):
            raise InvalidRange(f"Invalid date: {value!r}")
    else:
        raise InvalidRange(f"Invalid date: {value!r}")
    if moment.tzinfo is not None:
        moment = moment.astimezone(tz.UTC)
    return moment.date()


def check_range(start: Optional[DateLike], end: Optional[DateLike]) -> Tuple[date, date]:
    """Parse both ends of a range and require start <= end."""
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date > end_date:
        raise InvalidRange(
            f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
        )
    return start_date, end_date


def overlaps(booking: Booking, start: date, end: date) -> bool:
    """Check if a confirmed booking shares at least one day with [start, end]."""
    if not booking.is_confirmed:
        return False
    return booking.start_date <= end and booking.end_date >= start


def is_available(
    vehicle: Vehicle,
    start: DateLike,
    end: DateLike,
    exclude: Optional[str] = None,
) -> bool:
    """
    True if no confirmed booking on the vehicle overlaps the range.

    Args:
        exclude: booking id to leave out of the check (a booking being
            re-confirmed must not conflict with itself)
    """
    start_date, end_date = check_range(start, end)
    return not any(
        overlaps(booking, start_date, end_date)
        for booking in vehicle.bookings
        if booking.id != exclude
    )


def day_count(start: date, end: date) -> int:
    """Inclusive number of rental days. A same-day booking is one day."""
    return (end - start).days + 1


def compute_total(
    start: date,
    end: date,
    price_per_day: float,
    price_override: Optional[float] = None,
) -> float:
    """Total rental amount: days x effective daily price."""
    price = price_per_day
    if price_override is not None:
        if price_override < 0:
            raise ValidationError("Price per day cannot be negative")
        price = price_override
    return day_count(start, end) * price
