"""Booking class for a reservation on one vehicle."""

from datetime import date
from typing import Optional

from .status import BookingStatus


class Booking:
    """An inclusive date-range reservation owned by a single vehicle."""

    def __init__(
        self,
        id: str,
        customer_name: str,
        start_date: date,
        end_date: date,
        total_amount: float = 0,
        status: BookingStatus = BookingStatus.CONFIRMED,
        phone: str = "",
        created_at: Optional[str] = None,
    ):
        self.id = id
        self.customer_name = customer_name
        self.phone = phone or ""
        self.start_date = start_date
        self.end_date = end_date
        self.total_amount = total_amount
        self.status = status
        self.created_at = created_at

    @property
    def is_confirmed(self) -> bool:
        return self.status is BookingStatus.CONFIRMED

    @property
    def days(self) -> int:
        """Number of calendar days covered, counting both ends."""
        return (self.end_date - self.start_date).days + 1
