"""
Car-rental fleet models and booking logic.

This package provides:
- VehicleStatus, BookingStatus, Category, Transmission: enums
- Vehicle: rentable car aggregate owning its bookings
- Booking: inclusive date-range reservation
- availability: overlap, availability and pricing helpers
- YamlStore: one versioned YAML document per vehicle
- service: booking, cancellation, fleet filtering and vehicle CRUD
"""

from .status import BookingStatus, Category, Transmission, VehicleStatus
from .booking import Booking
from .vehicle import Vehicle
from .errors import (
    AlreadyInState,
    Conflict,
    FleetError,
    InvalidRange,
    NotFound,
    ValidationError,
    WriteConflict,
)
from .availability import (
    check_range,
    compute_total,
    day_count,
    is_available,
    overlaps,
    parse_date,
)
from .store import YamlStore, booking_to_dict, vehicle_to_dict
from .service import (
    cancel_booking,
    create_booking,
    create_vehicle,
    delete_vehicle,
    filter_fleet,
    get_vehicle,
    list_fleet,
    set_booking_status,
    set_vehicle_status,
    update_vehicle,
    vehicles_booked_on,
)

__all__ = [
    "BookingStatus",
    "Category",
    "Transmission",
    "VehicleStatus",
    "Booking",
    "Vehicle",
    "AlreadyInState",
    "Conflict",
    "FleetError",
    "InvalidRange",
    "NotFound",
    "ValidationError",
    "WriteConflict",
    "check_range",
    "compute_total",
    "day_count",
    "is_available",
    "overlaps",
    "parse_date",
    "YamlStore",
    "booking_to_dict",
    "vehicle_to_dict",
    "cancel_booking",
    "create_booking",
    "create_vehicle",
    "delete_vehicle",
    "filter_fleet",
    "get_vehicle",
    "list_fleet",
    "set_booking_status",
    "set_vehicle_status",
    "update_vehicle",
    "vehicles_booked_on",
]
