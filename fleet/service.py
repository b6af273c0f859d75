"""Fleet operations used by the web API and the CLI.

All mutations follow the same shape: read the vehicle, check and change it
in memory, then write it back conditionally on the version that was read.
A lost write is retried from a fresh read a bounded number of times.
"""

from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar

from loguru import logger
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from . import availability, config
from .availability import DateLike, check_range
from .booking import Booking
from .errors import AlreadyInState, Conflict, NotFound, ValidationError, WriteConflict
from .status import BookingStatus, Category, Transmission, VehicleStatus
from .store import YamlStore, new_id, utc_now
from .vehicle import Vehicle

FILTER_MODES = ("all", "available", "booked")

# Attributes a caller may set on create/update
VEHICLE_FIELDS = (
    "brand",
    "model",
    "description",
    "category",
    "seats",
    "transmission",
    "image_url",
    "logo_url",
    "price_per_day",
    "status",
)
REQUIRED_VEHICLE_FIELDS = ("brand", "model", "image_url", "price_per_day")

E = TypeVar("E")
T = TypeVar("T")


# =============================================================================
# Input validation
# =============================================================================


def parse_enum(enum_cls: Type[E], value: Any, label: str) -> E:
    """Accept an enum member or its value, case-insensitively."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValidationError(f"Invalid {label} {value!r} (expected one of: {allowed})")


def parse_price(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid price {value!r}")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid price {value!r}")
    if price < 0:
        raise ValidationError("Price per day cannot be negative")
    return price


def _parse_seats(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid seat count {value!r}")
    try:
        seats = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid seat count {value!r}")
    if seats < 1:
        raise ValidationError("Seat count must be at least 1")
    return seats


def _clean_text(value: Any, label: str, required: bool) -> str:
    text = "" if value is None else str(value).strip()
    if required and not text:
        raise ValidationError(f"{label} is required")
    return text


def clean_vehicle_attrs(attrs: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate vehicle attributes and convert them to model types.

    Args:
        partial: if True, only the supplied keys are checked (updates);
            otherwise the required fields must all be present (creation)
    """
    unknown = set(attrs) - set(VEHICLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown vehicle fields: {', '.join(sorted(unknown))}")
    if not partial:
        missing = [f for f in REQUIRED_VEHICLE_FIELDS if attrs.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cleaned: Dict[str, Any] = {}
    for key, value in attrs.items():
        if key in ("brand", "model", "image_url"):
            cleaned[key] = _clean_text(value, key, required=True)
        elif key in ("description", "logo_url"):
            cleaned[key] = _clean_text(value, key, required=False)
        elif key == "category":
            cleaned[key] = parse_enum(Category, value, "category")
        elif key == "transmission":
            cleaned[key] = parse_enum(Transmission, value, "transmission")
        elif key == "status":
            cleaned[key] = parse_enum(VehicleStatus, value, "status")
        elif key == "seats":
            cleaned[key] = _parse_seats(value)
        elif key == "price_per_day":
            cleaned[key] = parse_price(value)
    return cleaned


# =============================================================================
# Conditional write with bounded retry
# =============================================================================


def _apply_with_retry(
    store: YamlStore,
    vehicle_id: str,
    mutate: Callable[[Vehicle], T],
    retries: Optional[int] = None,
) -> T:
    """
    Run mutate against a fresh read and save it conditionally.

    Only a lost write (WriteConflict) is retried; anything mutate raises,
    including an overlap Conflict found on a re-read, surfaces at once.
    """
    if retries is None:
        retries = config.BOOKING_RETRIES

    def log_retry(retry_state: RetryCallState) -> None:
        logger.warning(
            "Lost write on vehicle {}, retrying ({}/{})",
            vehicle_id,
            retry_state.attempt_number,
            retries,
        )

    for attempt in Retrying(
        retry=retry_if_exception_type(WriteConflict),
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential_jitter(initial=0.01, max=0.2),
        before_sleep=log_retry,
        reraise=True,
    ):
        with attempt:
            vehicle = store.get_vehicle(vehicle_id)
            read_version = vehicle.version
            result = mutate(vehicle)
            store.save_vehicle_atomic(vehicle, read_version)
    return result


# =============================================================================
# Bookings
# =============================================================================


def create_booking(
    store: YamlStore,
    vehicle_id: str,
    customer_name: Optional[str],
    phone: Optional[str],
    start: Optional[DateLike],
    end: Optional[DateLike],
    price_override: Optional[float] = None,
    retries: Optional[int] = None,
) -> Booking:
    """
    Book a vehicle for an inclusive date range.

    Raises ValidationError (no customer name, bad price), InvalidRange,
    NotFound, or Conflict (dates overlap a confirmed booking, or the
    vehicle kept changing underneath us). Nothing is appended on failure.
    """
    name = _clean_text(customer_name, "Customer name", required=True)
    start_date, end_date = check_range(start, end)
    if price_override is not None:
        price_override = parse_price(price_override)

    def append(vehicle: Vehicle) -> Booking:
        if not availability.is_available(vehicle, start_date, end_date):
            logger.info(
                "Rejected booking on vehicle {}: {} to {} overlaps a confirmed booking",
                vehicle.id,
                start_date,
                end_date,
            )
            raise Conflict(
                f"{vehicle.name} is already booked between "
                f"{start_date.isoformat()} and {end_date.isoformat()}"
            )
        booking = Booking(
            id=new_id(),
            customer_name=name,
            phone=_clean_text(phone, "phone", required=False),
            start_date=start_date,
            end_date=end_date,
            total_amount=availability.compute_total(
                start_date, end_date, vehicle.price_per_day, price_override
            ),
            status=BookingStatus.CONFIRMED,
            created_at=utc_now(),
        )
        vehicle.bookings.append(booking)
        return booking

    booking = _apply_with_retry(store, vehicle_id, append, retries)
    logger.info(
        "Booked vehicle {} for {}: {} to {}, total {}",
        vehicle_id,
        booking.customer_name,
        booking.start_date,
        booking.end_date,
        booking.total_amount,
    )
    return booking


def set_booking_status(
    store: YamlStore,
    vehicle_id: str,
    booking_id: str,
    new_status: Optional[BookingStatus] = None,
    retries: Optional[int] = None,
) -> Booking:
    """
    Toggle a booking between Confirmed and Cancelled, or set it explicitly.

    Re-confirming a cancelled booking is only allowed while its dates are
    still free of other confirmed bookings. Asking for the status the
    booking already has raises AlreadyInState and writes nothing.
    """

    def apply(vehicle: Vehicle) -> Booking:
        booking = vehicle.get_booking(booking_id)
        if booking is None:
            raise NotFound(f"Booking '{booking_id}' not found on vehicle '{vehicle_id}'")
        target = booking.status.toggled() if new_status is None else new_status
        if target is booking.status:
            raise AlreadyInState(f"Booking '{booking_id}' is already {target.value}")
        if target is BookingStatus.CONFIRMED and not availability.is_available(
            vehicle, booking.start_date, booking.end_date, exclude=booking.id
        ):
            raise Conflict(
                f"Cannot re-confirm booking '{booking_id}': its dates are now booked"
            )
        booking.status = target
        return booking

    booking = _apply_with_retry(store, vehicle_id, apply, retries)
    logger.info(
        "Booking {} on vehicle {} is now {}", booking_id, vehicle_id, booking.status.value
    )
    return booking


def cancel_booking(
    store: YamlStore, vehicle_id: str, booking_id: str, retries: Optional[int] = None
) -> Booking:
    """Cancel a booking. Cancelling twice raises AlreadyInState."""
    return set_booking_status(
        store, vehicle_id, booking_id, BookingStatus.CANCELLED, retries
    )


# =============================================================================
# Fleet filtering
# =============================================================================


def filter_fleet(
    vehicles: Iterable[Vehicle],
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    mode: Optional[str] = "all",
) -> List[Vehicle]:
    """
    Select active vehicles, optionally split by availability for a range.

    - all: every active vehicle (dates ignored)
    - available: active vehicles with no confirmed booking in [start, end]
    - booked: active vehicles with at least one
    """
    mode = (mode or "all").strip().lower()
    if mode not in FILTER_MODES:
        raise ValidationError(
            f"Invalid mode {mode!r} (expected one of: {', '.join(FILTER_MODES)})"
        )
    active = [v for v in vehicles if v.is_active]
    if mode == "all":
        return active
    if start in (None, "") or end in (None, ""):
        raise ValidationError(f"Mode '{mode}' requires both start and end dates")
    start_date, end_date = check_range(start, end)
    want_available = mode == "available"
    return [
        v
        for v in active
        if availability.is_available(v, start_date, end_date) == want_available
    ]


def list_fleet(
    store: YamlStore,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    mode: Optional[str] = "all",
) -> List[Vehicle]:
    """Load every vehicle from the store and apply filter_fleet."""
    return filter_fleet(store.list_vehicles(), start, end, mode)


def vehicles_booked_on(store: YamlStore, day: DateLike, mode: str = "booked") -> List[Vehicle]:
    """Active vehicles booked (or free) on a single calendar day."""
    day_date: date = availability.parse_date(day)
    return list_fleet(store, day_date, day_date, mode)


# =============================================================================
# Vehicles
# =============================================================================


def get_vehicle(store: YamlStore, vehicle_id: str) -> Vehicle:
    return store.get_vehicle(vehicle_id)


def create_vehicle(store: YamlStore, attrs: Dict[str, Any]) -> Vehicle:
    """Validate attributes and add a new vehicle with an empty booking list."""
    cleaned = clean_vehicle_attrs(attrs)
    return store.create_vehicle(Vehicle(**cleaned))


def update_vehicle(
    store: YamlStore,
    vehicle_id: str,
    attrs: Dict[str, Any],
    retries: Optional[int] = None,
) -> Vehicle:
    """Apply a partial update of descriptive fields, price or status."""
    cleaned = clean_vehicle_attrs(attrs, partial=True)

    def apply(vehicle: Vehicle) -> Vehicle:
        for key, value in cleaned.items():
            setattr(vehicle, key, value)
        return vehicle

    vehicle = _apply_with_retry(store, vehicle_id, apply, retries)
    logger.info("Updated vehicle {}: {}", vehicle_id, ", ".join(sorted(cleaned)) or "-")
    return vehicle


def set_vehicle_status(
    store: YamlStore,
    vehicle_id: str,
    status: Optional[VehicleStatus] = None,
    retries: Optional[int] = None,
) -> Vehicle:
    """Toggle Active/Maintenance, or set the given status. No guard conditions."""

    def apply(vehicle: Vehicle) -> Vehicle:
        vehicle.status = vehicle.status.toggled() if status is None else status
        return vehicle

    vehicle = _apply_with_retry(store, vehicle_id, apply, retries)
    logger.info("Vehicle {} is now {}", vehicle_id, vehicle.status.value)
    return vehicle


def delete_vehicle(store: YamlStore, vehicle_id: str) -> None:
    """Delete a vehicle and, with it, all of its bookings."""
    store.delete_vehicle(vehicle_id)
