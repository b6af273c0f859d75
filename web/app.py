"""Flask JSON API for the rental fleet."""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from flask import Flask, jsonify, request
from loguru import logger
from werkzeug.exceptions import HTTPException

# Add parent directory to path for package imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleet import config, service
from fleet.errors import (
    AlreadyInState,
    Conflict,
    FleetError,
    InvalidRange,
    NotFound,
    ValidationError,
)
from fleet.status import BookingStatus, VehicleStatus
from fleet.store import YamlStore, booking_to_dict, vehicle_to_dict

app = Flask(__name__)
app.secret_key = config.SECRET_KEY
app.config["VEHICLES_DIR"] = config.DATA_DIR

_store_lock = threading.Lock()

# Request body keys accepted for vehicle fields (camelCase as returned, snake_case too)
VEHICLE_KEYS = {
    "brand": "brand",
    "model": "model",
    "description": "description",
    "category": "category",
    "seats": "seats",
    "transmission": "transmission",
    "imageUrl": "image_url",
    "image_url": "image_url",
    "logoUrl": "logo_url",
    "logo_url": "logo_url",
    "pricePerDay": "price_per_day",
    "price_per_day": "price_per_day",
    "status": "status",
}

ERROR_STATUS = [
    (ValidationError, 400),
    (InvalidRange, 400),
    (NotFound, 404),
    (AlreadyInState, 409),
    (Conflict, 409),
]


def get_store() -> YamlStore:
    """Store for the configured data directory, shared across requests."""
    directory = Path(app.config["VEHICLES_DIR"])
    with _store_lock:
        store = app.extensions.get("fleet_store")
        if store is None or store.directory != directory:
            store = YamlStore(directory)
            app.extensions["fleet_store"] = store
        return store


def get_payload() -> Dict[str, Any]:
    """Request body as a dict, from JSON or form fields."""
    if request.is_json:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        return payload
    return request.form.to_dict()


def vehicle_attrs(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Map request keys to vehicle attribute names, dropping unknown keys."""
    return {VEHICLE_KEYS[k]: v for k, v in payload.items() if k in VEHICLE_KEYS}


# =============================================================================
# Error handlers
# =============================================================================


@app.errorhandler(FleetError)
def handle_fleet_error(err: FleetError):
    code = next((c for cls, c in ERROR_STATUS if isinstance(err, cls)), 500)
    return jsonify(error=type(err).__name__, message=str(err)), code


@app.errorhandler(HTTPException)
def handle_http_error(err: HTTPException):
    return jsonify(error=err.name, message=err.description), err.code


@app.errorhandler(Exception)
def handle_unexpected_error(err: Exception):
    logger.exception("Unhandled error on {} {}", request.method, request.path)
    return jsonify(error="InternalServerError", message="Internal server error"), 500


# =============================================================================
# Routes
# =============================================================================


@app.route("/health")
def health():
    return jsonify(
        status="ok",
        dataDir=str(app.config["VEHICLES_DIR"]),
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )


@app.route("/api/cars", methods=["GET"])
def list_cars():
    """
    List vehicles.

    ?start=&end=&mode=all|available|booked filters active vehicles by
    availability; ?status=Active|Maintenance lists by lifecycle status instead.
    """
    store = get_store()
    status = request.args.get("status")
    if status:
        vehicles = store.list_vehicles(
            service.parse_enum(VehicleStatus, status, "status")
        )
    else:
        vehicles = service.list_fleet(
            store,
            request.args.get("start"),
            request.args.get("end"),
            request.args.get("mode", "all"),
        )
    return jsonify([vehicle_to_dict(v) for v in vehicles])


@app.route("/api/cars/date/<day>", methods=["GET"])
def list_cars_on_date(day: str):
    """Active vehicles booked on a day (or free, with ?mode=available)."""
    mode = request.args.get("mode", "booked")
    vehicles = service.vehicles_booked_on(get_store(), day, mode)
    return jsonify([vehicle_to_dict(v) for v in vehicles])


@app.route("/api/cars/<vehicle_id>", methods=["GET"])
def get_car(vehicle_id: str):
    return jsonify(vehicle_to_dict(service.get_vehicle(get_store(), vehicle_id)))


@app.route("/api/cars", methods=["POST"])
def create_car():
    vehicle = service.create_vehicle(get_store(), vehicle_attrs(get_payload()))
    return jsonify(vehicle_to_dict(vehicle)), 201


@app.route("/api/cars/<vehicle_id>", methods=["PUT"])
def update_car(vehicle_id: str):
    vehicle = service.update_vehicle(
        get_store(), vehicle_id, vehicle_attrs(get_payload())
    )
    return jsonify(vehicle_to_dict(vehicle))


@app.route("/api/cars/<vehicle_id>/status", methods=["PATCH"])
def toggle_car_status(vehicle_id: str):
    """Toggle Active/Maintenance, or set {"status": ...} explicitly."""
    status = get_payload().get("status")
    if status:
        status = service.parse_enum(VehicleStatus, status, "status")
    vehicle = service.set_vehicle_status(get_store(), vehicle_id, status or None)
    return jsonify(vehicle_to_dict(vehicle))


@app.route("/api/cars/<vehicle_id>", methods=["DELETE"])
def delete_car(vehicle_id: str):
    service.delete_vehicle(get_store(), vehicle_id)
    return "", 204


@app.route("/api/cars/<vehicle_id>/bookings", methods=["GET"])
def list_bookings(vehicle_id: str):
    vehicle = service.get_vehicle(get_store(), vehicle_id)
    return jsonify([booking_to_dict(b) for b in vehicle.get_bookings_sorted()])


@app.route("/api/cars/<vehicle_id>/bookings", methods=["POST"])
def create_booking(vehicle_id: str):
    payload = get_payload()
    price = payload.get("pricePerDay", payload.get("price"))
    booking = service.create_booking(
        get_store(),
        vehicle_id,
        payload.get("customerName"),
        payload.get("phone"),
        payload.get("startDate"),
        payload.get("endDate"),
        price_override=None if price in (None, "") else price,
    )
    return jsonify(booking_to_dict(booking)), 201


@app.route("/api/cars/<vehicle_id>/bookings/<booking_id>", methods=["PATCH"])
def update_booking_status(vehicle_id: str, booking_id: str):
    """Toggle Confirmed/Cancelled, or set {"status": ...} explicitly."""
    status = get_payload().get("status")
    if status:
        status = service.parse_enum(BookingStatus, status, "booking status")
    booking = service.set_booking_status(
        get_store(), vehicle_id, booking_id, status or None
    )
    return jsonify(booking_to_dict(booking))


@app.route("/api/cars/<vehicle_id>/bookings/<booking_id>/cancel", methods=["POST"])
def cancel_booking(vehicle_id: str, booking_id: str):
    booking = service.cancel_booking(get_store(), vehicle_id, booking_id)
    return jsonify(booking_to_dict(booking))


if __name__ == "__main__":
    logger.add(config.LOG_FILE, rotation="10 MB", compression="zip")
    app.run(debug=True, host="0.0.0.0", port=config.PORT)
