"""YAML-backed vehicle store.

Each vehicle is one YAML document, ``<directory>/<id>.yaml``, with its
bookings embedded. Writes are conditional on the ``version`` that was read,
so a read-check-write sequence can detect that someone else got there first.
"""

import os
import re
import tempfile
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import yaml
from filelock import FileLock, Timeout
from loguru import logger

from . import config
from .booking import Booking
from .errors import NotFound, WriteConflict
from .status import BookingStatus, Category, Transmission, VehicleStatus
from .vehicle import Vehicle

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _to_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


# =============================================================================
# Serialization (camelCase keys, shared by the store and the web API)
# =============================================================================


def booking_to_dict(booking: Booking) -> Dict[str, Any]:
    """Serialize a Booking to the document format."""
    return {
        "id": booking.id,
        "customerName": booking.customer_name,
        "phone": booking.phone,
        "startDate": booking.start_date.isoformat(),
        "endDate": booking.end_date.isoformat(),
        "totalAmount": booking.total_amount,
        "status": booking.status.value,
        "createdAt": booking.created_at,
    }


def vehicle_to_dict(vehicle: Vehicle) -> Dict[str, Any]:
    """Serialize a Vehicle, bookings included, to the document format."""
    return {
        "id": vehicle.id,
        "version": vehicle.version,
        "brand": vehicle.brand,
        "model": vehicle.model,
        "description": vehicle.description,
        "category": vehicle.category.value,
        "seats": vehicle.seats,
        "transmission": vehicle.transmission.value,
        "imageUrl": vehicle.image_url,
        "logoUrl": vehicle.logo_url,
        "pricePerDay": vehicle.price_per_day,
        "status": vehicle.status.value,
        "createdAt": vehicle.created_at,
        "updatedAt": vehicle.updated_at,
        "bookings": [booking_to_dict(b) for b in vehicle.bookings],
    }


def _parse_booking(dct: Dict[str, Any]) -> Booking:
    return Booking(
        id=dct["id"],
        customer_name=dct["customerName"],
        phone=dct.get("phone") or "",
        start_date=_to_date(dct["startDate"]),
        end_date=_to_date(dct["endDate"]),
        total_amount=dct.get("totalAmount", 0),
        status=BookingStatus(dct.get("status", BookingStatus.CONFIRMED.value)),
        created_at=dct.get("createdAt"),
    )


def _parse_vehicle(dct: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        id=dct["id"],
        version=dct.get("version", 1),
        brand=dct["brand"],
        model=dct["model"],
        description=dct.get("description") or "",
        category=Category(dct.get("category", Category.SEDAN.value)),
        seats=dct.get("seats", 5),
        transmission=Transmission(dct.get("transmission", Transmission.MANUAL.value)),
        image_url=dct["imageUrl"],
        logo_url=dct.get("logoUrl") or "",
        price_per_day=dct["pricePerDay"],
        status=VehicleStatus(dct.get("status", VehicleStatus.ACTIVE.value)),
        created_at=dct.get("createdAt"),
        updated_at=dct.get("updatedAt"),
        bookings=[_parse_booking(b) for b in dct.get("bookings") or []],
    )


# =============================================================================
# Store
# =============================================================================


class YamlStore:
    """Directory of vehicle documents with per-vehicle conditional writes.

    Writers serialise on a lock file per vehicle under ``.locks/``, so the
    version check holds across stores and processes sharing the directory.
    """

    def __init__(self, directory: Union[str, Path], lock_timeout: Optional[float] = None):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.lock_dir = self.directory / ".locks"
        self.lock_dir.mkdir(exist_ok=True)
        self.lock_timeout = config.LOCK_TIMEOUT if lock_timeout is None else lock_timeout

    def path_for(self, vehicle_id: str) -> Path:
        """Get full path for a vehicle id."""
        if not vehicle_id or not _ID_PATTERN.match(vehicle_id):
            raise NotFound(f"Vehicle '{vehicle_id}' not found")
        return self.directory / f"{vehicle_id}.yaml"

    def lock_path_for(self, vehicle_id: str) -> Path:
        return self.lock_dir / f"{vehicle_id}.lock"

    @contextmanager
    def _locked(self, vehicle_id: str) -> Iterator[None]:
        lock = FileLock(self.lock_path_for(vehicle_id), timeout=self.lock_timeout)
        try:
            with lock:
                yield
        except Timeout:
            logger.warning("Timed out waiting for the lock on vehicle {}", vehicle_id)
            raise WriteConflict(f"Vehicle '{vehicle_id}' is busy, please retry")

    def _read(self, path: Path) -> Dict[str, Any]:
        with open(path, "r") as fp:
            return yaml.load(fp, Loader=yaml.SafeLoader)

    def _write(self, path: Path, data: Dict[str, Any]) -> None:
        # Write to a sibling temp file and rename so readers never see a partial document
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as fp:
                yaml.dump(
                    data,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        """Load a vehicle, raising NotFound if it does not exist."""
        path = self.path_for(vehicle_id)
        try:
            data = self._read(path)
        except FileNotFoundError:
            raise NotFound(f"Vehicle '{vehicle_id}' not found")
        return _parse_vehicle(data)

    def list_vehicles(self, status: Optional[VehicleStatus] = None) -> List[Vehicle]:
        """All vehicles, newest first, optionally limited to one lifecycle status."""
        vehicles = []
        for path in self.directory.glob("*.yaml"):
            try:
                vehicles.append(_parse_vehicle(self._read(path)))
            except FileNotFoundError:
                # Deleted after the directory listing
                continue
        if status is not None:
            vehicles = [v for v in vehicles if v.status is status]
        return sorted(vehicles, key=lambda v: v.created_at or "", reverse=True)

    def create_vehicle(self, vehicle: Vehicle) -> Vehicle:
        """Assign an id and timestamps and write a new vehicle document."""
        vehicle.id = new_id()
        vehicle.version = 1
        vehicle.created_at = vehicle.updated_at = utc_now()
        self._write(self.path_for(vehicle.id), vehicle_to_dict(vehicle))
        logger.info("Created vehicle {} ({})", vehicle.id, vehicle.name)
        return vehicle

    def save_vehicle_atomic(self, vehicle: Vehicle, expected_version: int) -> Vehicle:
        """
        Write the vehicle only if the stored version still equals expected_version.

        On success the vehicle's version is bumped and updated_at refreshed.
        Raises WriteConflict if the document changed since it was read (or
        its lock could not be taken in time) and NotFound if it was deleted.
        """
        path = self.path_for(vehicle.id)
        with self._locked(vehicle.id):
            try:
                current = self._read(path).get("version", 1)
            except FileNotFoundError:
                raise NotFound(f"Vehicle '{vehicle.id}' not found")
            if current != expected_version:
                logger.warning(
                    "Stale write on vehicle {}: expected version {}, found {}",
                    vehicle.id,
                    expected_version,
                    current,
                )
                raise WriteConflict(
                    f"Vehicle '{vehicle.id}' was modified concurrently, please retry"
                )
            vehicle.version = expected_version + 1
            vehicle.updated_at = utc_now()
            self._write(path, vehicle_to_dict(vehicle))
        return vehicle

    def delete_vehicle(self, vehicle_id: str) -> None:
        """Remove a vehicle document, bookings included."""
        path = self.path_for(vehicle_id)
        with self._locked(vehicle_id):
            try:
                path.unlink()
            except FileNotFoundError:
                raise NotFound(f"Vehicle '{vehicle_id}' not found")
        # Ids are never reused, so a writer still waiting on this lock file
        # finds the document gone and gets NotFound
        self.lock_path_for(vehicle_id).unlink(missing_ok=True)
        logger.info("Deleted vehicle {}", vehicle_id)
