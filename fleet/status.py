"""Status enums for vehicle lifecycle and booking state."""

from enum import Enum


class VehicleStatus(Enum):
    """Vehicle lifecycle. Only ACTIVE vehicles are offered for rent."""

    ACTIVE = "Active"
    MAINTENANCE = "Maintenance"

    def toggled(self) -> "VehicleStatus":
        if self is VehicleStatus.ACTIVE:
            return VehicleStatus.MAINTENANCE
        return VehicleStatus.ACTIVE


class BookingStatus(Enum):
    """Booking state. Only CONFIRMED bookings block their dates."""

    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"

    def toggled(self) -> "BookingStatus":
        if self is BookingStatus.CONFIRMED:
            return BookingStatus.CANCELLED
        return BookingStatus.CONFIRMED


class Category(Enum):
    SEDAN = "Sedan"
    SUV = "SUV"
    HATCHBACK = "Hatchback"
    LUXURY = "Luxury"
    ELECTRIC = "Electric"
    MUV = "MUV"


class Transmission(Enum):
    AUTOMATIC = "Automatic"
    MANUAL = "Manual"
