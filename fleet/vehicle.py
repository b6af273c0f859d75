"""Vehicle class - the aggregate holding a car and its bookings."""

from typing import List, Optional

from .booking import Booking
from .status import Category, Transmission, VehicleStatus


class Vehicle:
    """A rentable car with its embedded booking history."""

    def __init__(
        self,
        brand: str,
        model: str,
        image_url: str,
        price_per_day: float,
        description: str = "",
        category: Category = Category.SEDAN,
        seats: int = 5,
        transmission: Transmission = Transmission.MANUAL,
        logo_url: str = "",
        status: VehicleStatus = VehicleStatus.ACTIVE,
        bookings: Optional[List[Booking]] = None,
        id: Optional[str] = None,
        version: int = 0,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.brand = brand
        self.model = model
        self.description = description or ""
        self.category = category
        self.seats = seats
        self.transmission = transmission
        self.image_url = image_url
        self.logo_url = logo_url or ""
        self.price_per_day = price_per_day
        self.status = status
        self.bookings = bookings or []
        self.version = version
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def name(self) -> str:
        """Human-readable vehicle name."""
        return f"{self.brand} {self.model}"

    @property
    def is_active(self) -> bool:
        return self.status is VehicleStatus.ACTIVE

    @property
    def confirmed_bookings(self) -> List[Booking]:
        return [b for b in self.bookings if b.is_confirmed]

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        """Find a booking by its id."""
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking
        return None

    def get_bookings_sorted(self, reverse: bool = False) -> List[Booking]:
        """Bookings ordered by start date, then end date."""
        return sorted(
            self.bookings, key=lambda b: (b.start_date, b.end_date), reverse=reverse
        )
