#!/usr/bin/env python3
"""Check stored vehicle documents against schema.yaml and the booking rules.

Usage: validate_yaml.py [DATA_DIR]   (defaults to FLEET_DATA_DIR)
"""
import sys
from pathlib import Path
from typing import Any, List

import yaml
from jsonschema import Draft7Validator

from fleet import config

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"


def load_schema(path: Path = SCHEMA_PATH) -> dict:
    """Read the vehicle document schema."""
    with open(path) as fp:
        return yaml.safe_load(fp)


def check_booking_ranges(document: dict) -> List[str]:
    """Report bookings whose end date is before their start date."""
    problems = []
    for index, booking in enumerate(document.get("bookings") or []):
        if str(booking["endDate"]) < str(booking["startDate"]):
            problems.append(
                f"Booking {booking['id']} ends before it starts"
                f" (at path: bookings.{index})"
            )
    return problems


def _schema_problems(document: Any, schema: dict) -> List[str]:
    validator = Draft7Validator(schema)
    problems = []
    errors = sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.path])
    for error in errors:
        location = ".".join(str(p) for p in error.path) or "<document>"
        problems.append(f"Schema validation error at {location}: {error.message}")
    return problems


def validate_vehicle_file(filepath: Path, schema: dict) -> List[str]:
    """Every problem found in one vehicle document; empty if it is valid."""
    try:
        with open(filepath) as fp:
            document = yaml.safe_load(fp)
    except yaml.YAMLError as e:
        return [f"YAML parse error: {e}"]
    except OSError as e:
        return [f"Error reading {filepath.name}: {e.strerror}"]

    problems = _schema_problems(document, schema)
    if problems:
        return problems
    return check_booking_ranges(document)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    data_dir = Path(argv[0]) if argv else config.DATA_DIR
    if not data_dir.is_dir():
        print(f"Error: data directory not found: {data_dir}")
        return 1

    documents = sorted(data_dir.glob("*.yaml"))
    if not documents:
        print(f"Warning: no vehicle documents in {data_dir}")
        return 0

    schema = load_schema()
    failed = 0
    for path in documents:
        problems = validate_vehicle_file(path, schema)
        if not problems:
            print(f"OK: {path.name}")
            continue
        failed += 1
        print(f"FAIL: {path.name}")
        for problem in problems:
            print(f"  {problem}")

    print(f"{len(documents) - failed} of {len(documents)} vehicle documents valid")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
