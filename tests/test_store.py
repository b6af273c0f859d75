#!/usr/bin/env python3
"""Tests for the YAML vehicle store."""

import threading
from datetime import date

import pytest
import yaml
from filelock import FileLock

from fleet import (
    Booking,
    BookingStatus,
    Category,
    NotFound,
    Transmission,
    Vehicle,
    VehicleStatus,
    WriteConflict,
    YamlStore,
    vehicle_to_dict,
)


def make_vehicle(**kwargs):
    attrs = dict(brand="Toyota", model="Corolla", image_url="corolla.png", price_per_day=100)
    attrs.update(kwargs)
    return Vehicle(**attrs)


@pytest.fixture
def store(tmp_path):
    return YamlStore(tmp_path / "vehicles")


class TestCreateAndLoad:
    """Tests for create_vehicle and get_vehicle."""

    def test_create_assigns_id_version_and_timestamps(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        assert len(vehicle.id) == 32
        assert vehicle.version == 1
        assert vehicle.created_at is not None
        assert vehicle.created_at == vehicle.updated_at
        assert store.path_for(vehicle.id).exists()

    def test_round_trip_preserves_fields(self, store):
        created = store.create_vehicle(
            make_vehicle(
                description="Reliable",
                category=Category.SUV,
                seats=7,
                transmission=Transmission.AUTOMATIC,
                logo_url="toyota.png",
                status=VehicleStatus.MAINTENANCE,
            )
        )
        loaded = store.get_vehicle(created.id)
        assert vehicle_to_dict(loaded) == vehicle_to_dict(created)
        assert loaded.category is Category.SUV
        assert loaded.transmission is Transmission.AUTOMATIC
        assert loaded.status is VehicleStatus.MAINTENANCE

    def test_bookings_embedded_in_document(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        vehicle.bookings.append(
            Booking("b1", "Jane Doe", date(2026, 2, 18), date(2026, 2, 20), 300)
        )
        store.save_vehicle_atomic(vehicle, 1)

        with open(store.path_for(vehicle.id)) as fp:
            raw = yaml.safe_load(fp)
        assert raw["bookings"][0]["startDate"] == "2026-02-18"
        assert raw["bookings"][0]["status"] == "Confirmed"

        loaded = store.get_vehicle(vehicle.id)
        assert loaded.bookings[0].start_date == date(2026, 2, 18)
        assert loaded.bookings[0].end_date == date(2026, 2, 20)
        assert loaded.bookings[0].total_amount == 300

    def test_loads_unquoted_yaml_dates(self, store):
        """Hand-edited documents with bare dates still load."""
        vehicle = store.create_vehicle(make_vehicle())
        path = store.path_for(vehicle.id)
        with open(path) as fp:
            data = yaml.safe_load(fp)
        data["bookings"] = [
            {
                "id": "b1",
                "customerName": "Jane",
                "startDate": date(2026, 2, 18),
                "endDate": date(2026, 2, 19),
            }
        ]
        with open(path, "w") as fp:
            yaml.safe_dump(data, fp)

        booking = store.get_vehicle(vehicle.id).bookings[0]
        assert booking.start_date == date(2026, 2, 18)
        assert booking.status is BookingStatus.CONFIRMED

    def test_missing_vehicle(self, store):
        with pytest.raises(NotFound):
            store.get_vehicle("0" * 32)

    def test_deleted_while_loading(self, store, monkeypatch):
        vehicle = store.create_vehicle(make_vehicle())
        original_read = store._read

        def read_after_delete(path):
            path.unlink()
            return original_read(path)

        monkeypatch.setattr(store, "_read", read_after_delete)
        with pytest.raises(NotFound):
            store.get_vehicle(vehicle.id)

    @pytest.mark.parametrize("vehicle_id", ["", "../etc/passwd", "ABC", "x" * 32])
    def test_malformed_id_is_not_found(self, store, vehicle_id):
        with pytest.raises(NotFound):
            store.get_vehicle(vehicle_id)


class TestListVehicles:
    """Tests for list_vehicles."""

    def test_empty(self, store):
        assert store.list_vehicles() == []

    def test_lists_all(self, store):
        a = store.create_vehicle(make_vehicle())
        b = store.create_vehicle(make_vehicle(brand="Honda", model="Civic"))
        assert {v.id for v in store.list_vehicles()} == {a.id, b.id}

    def test_newest_first(self, store):
        old = store.create_vehicle(make_vehicle(brand="Old"))
        new = store.create_vehicle(make_vehicle(brand="New"))
        old.created_at = "2020-01-01T00:00:00+00:00"
        store.save_vehicle_atomic(old, 1)
        assert [v.id for v in store.list_vehicles()] == [new.id, old.id]

    def test_skips_vehicle_deleted_while_listing(self, store, monkeypatch):
        kept = store.create_vehicle(make_vehicle())
        gone = store.create_vehicle(make_vehicle(brand="Honda"))
        original_read = store._read

        def read(path):
            if path.stem == gone.id:
                path.unlink()
            return original_read(path)

        monkeypatch.setattr(store, "_read", read)
        assert [v.id for v in store.list_vehicles()] == [kept.id]

    def test_status_filter(self, store):
        active = store.create_vehicle(make_vehicle())
        store.create_vehicle(make_vehicle(status=VehicleStatus.MAINTENANCE))
        assert [v.id for v in store.list_vehicles(VehicleStatus.ACTIVE)] == [active.id]


class TestSaveVehicleAtomic:
    """Tests for the version-checked write."""

    def test_bumps_version(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        vehicle.price_per_day = 120
        saved = store.save_vehicle_atomic(vehicle, 1)
        assert saved.version == 2
        loaded = store.get_vehicle(vehicle.id)
        assert loaded.version == 2
        assert loaded.price_per_day == 120

    def test_stale_version_rejected(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        first = store.get_vehicle(vehicle.id)
        second = store.get_vehicle(vehicle.id)

        first.price_per_day = 110
        store.save_vehicle_atomic(first, first.version)

        second.price_per_day = 90
        with pytest.raises(WriteConflict):
            store.save_vehicle_atomic(second, second.version)
        assert store.get_vehicle(vehicle.id).price_per_day == 110

    def test_deleted_vehicle(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        store.delete_vehicle(vehicle.id)
        with pytest.raises(NotFound):
            store.save_vehicle_atomic(vehicle, 1)

    def test_leaves_no_temp_files(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        store.save_vehicle_atomic(vehicle, 1)
        files = [p.name for p in store.directory.iterdir() if p.is_file()]
        assert files == [f"{vehicle.id}.yaml"]

    def test_stale_version_rejected_across_stores(self, store):
        other_store = YamlStore(store.directory)
        first = store.get_vehicle(store.create_vehicle(make_vehicle()).id)
        second = other_store.get_vehicle(first.id)

        store.save_vehicle_atomic(first, first.version)
        with pytest.raises(WriteConflict):
            other_store.save_vehicle_atomic(second, second.version)

    def test_writers_on_separate_stores_take_turns(self, store, monkeypatch):
        """A second store blocks on the lock while the first is mid-write."""
        other_store = YamlStore(store.directory)
        vehicle = store.create_vehicle(make_vehicle())
        theirs = other_store.get_vehicle(vehicle.id)
        outcome = []

        def save_other():
            try:
                other_store.save_vehicle_atomic(theirs, 1)
                outcome.append("saved")
            except WriteConflict:
                outcome.append("conflict")

        original_write = store._write
        waiter = threading.Thread(target=save_other)

        def slow_write(path, data):
            waiter.start()
            waiter.join(timeout=0.3)
            assert waiter.is_alive()
            original_write(path, data)

        monkeypatch.setattr(store, "_write", slow_write)
        store.save_vehicle_atomic(vehicle, 1)
        waiter.join(timeout=5)

        assert outcome == ["conflict"]
        assert store.get_vehicle(vehicle.id).version == 2

    def test_lock_timeout_is_write_conflict(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        impatient = YamlStore(store.directory, lock_timeout=0.05)
        with FileLock(store.lock_path_for(vehicle.id)):
            with pytest.raises(WriteConflict):
                impatient.save_vehicle_atomic(vehicle, 1)
        assert store.get_vehicle(vehicle.id).version == 1


class TestDeleteVehicle:
    """Tests for delete_vehicle."""

    def test_removes_file(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        store.delete_vehicle(vehicle.id)
        assert not store.path_for(vehicle.id).exists()
        assert store.list_vehicles() == []

    def test_removes_lock_file(self, store):
        vehicle = store.create_vehicle(make_vehicle())
        store.save_vehicle_atomic(vehicle, 1)
        assert store.lock_path_for(vehicle.id).exists()
        store.delete_vehicle(vehicle.id)
        assert not store.lock_path_for(vehicle.id).exists()

    def test_missing_raises(self, store):
        with pytest.raises(NotFound):
            store.delete_vehicle("0" * 32)
