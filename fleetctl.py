#!/usr/bin/env python3
"""
Command-line front end for the rental fleet.

Commands:
  list          - List active vehicles, optionally by availability for a range
  bookings      - Show the bookings of one vehicle
  add           - Add a vehicle
  book          - Book a vehicle for a date range
  cancel        - Cancel a booking
  toggle-status - Switch a vehicle between Active and Maintenance
  delete        - Delete a vehicle and its bookings
"""

import argparse
import sys
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional

from fleet import (
    Booking,
    FleetError,
    Vehicle,
    VehicleStatus,
    YamlStore,
    check_range,
    compute_total,
    is_available,
)
from fleet import config, service

# =============================================================================
# Formatting helpers
# =============================================================================


def format_money(amount: Optional[float]) -> str:
    """Format an amount for display."""
    return f"{amount:,.2f}" if amount is not None else "-"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def make_fleet_table(vehicles: List[Vehicle]) -> List[List[str]]:
    """Convert vehicles to table rows."""
    rows = []
    for vehicle in vehicles:
        rows.append(
            [
                vehicle.id,
                vehicle.name,
                vehicle.category.value,
                vehicle.seats,
                vehicle.transmission.value,
                format_money(vehicle.price_per_day),
                vehicle.status.value,
                len(vehicle.confirmed_bookings),
            ]
        )
    return rows


def make_booking_table(bookings: List[Booking]) -> List[List[str]]:
    """Convert bookings to table rows."""
    rows = []
    for booking in bookings:
        rows.append(
            [
                booking.id,
                booking.start_date.isoformat(),
                booking.end_date.isoformat(),
                booking.days,
                truncate(booking.customer_name),
                booking.phone or "-",
                format_money(booking.total_amount),
                booking.status.value,
            ]
        )
    return rows


# =============================================================================
# Commands
# =============================================================================


def cmd_list(store: YamlStore, args) -> int:
    """List vehicles."""
    if args.status:
        status = service.parse_enum(VehicleStatus, args.status, "status")
        vehicles = store.list_vehicles(status)
        print(f"Vehicles with status {status.value}: {len(vehicles)}")
    else:
        vehicles = service.list_fleet(store, args.start, args.end, args.mode)
        if args.mode != "all":
            print(f"Filter: {args.mode.upper()} from {args.start} to {args.end}")
        print(f"Active vehicles: {len(vehicles)}")
    print()

    if not vehicles:
        print("No vehicles found.")
        return 0

    headers = ["ID", "Vehicle", "Category", "Seats", "Gearbox", "Price/day", "Status", "Bookings"]
    print(tabulate(make_fleet_table(vehicles), headers=headers, tablefmt="simple"))
    return 0


def cmd_bookings(store: YamlStore, args) -> int:
    """Show the bookings of one vehicle."""
    vehicle = store.get_vehicle(args.vehicle_id)
    bookings = vehicle.get_bookings_sorted()
    if not args.all:
        bookings = [b for b in bookings if b.is_confirmed]

    print(f"Vehicle: {vehicle.name} ({vehicle.status.value})")
    print(f"Price per day: {format_money(vehicle.price_per_day)}")
    print(f"Total bookings: {len(vehicle.bookings)}")
    print()

    if not bookings:
        print("No bookings found.")
        return 0

    headers = ["ID", "Start", "End", "Days", "Customer", "Phone", "Total", "Status"]
    print(tabulate(make_booking_table(bookings), headers=headers, tablefmt="simple"))
    return 0


def cmd_add(store: YamlStore, args) -> int:
    """Add a vehicle."""
    attrs = {
        "brand": args.brand,
        "model": args.model,
        "image_url": args.image_url,
        "price_per_day": args.price,
        "category": args.category,
        "seats": args.seats,
        "transmission": args.transmission,
        "description": args.description,
        "logo_url": args.logo_url,
    }
    vehicle = service.create_vehicle(store, {k: v for k, v in attrs.items() if v is not None})
    print(f"Added {vehicle.name}: {vehicle.id}")
    return 0


def cmd_book(store: YamlStore, args) -> int:
    """Book a vehicle for a date range."""
    if args.dry_run:
        vehicle = store.get_vehicle(args.vehicle_id)
        start, end = check_range(args.start, args.end)
        available = is_available(vehicle, start, end)
        total = compute_total(start, end, vehicle.price_per_day, args.price)
        print(f"Vehicle: {vehicle.name}")
        print(f"Dates:   {start.isoformat()} to {end.isoformat()}")
        print(f"Total:   {format_money(total)}")
        print(f"Free:    {'yes' if available else 'no'}")
        print()
        print("(dry run - no changes made)")
        return 0

    booking = service.create_booking(
        store,
        args.vehicle_id,
        args.customer,
        args.phone,
        args.start,
        args.end,
        price_override=args.price,
    )
    print(f"Booking confirmed: {booking.id}")
    print(f"  Dates: {booking.start_date.isoformat()} to {booking.end_date.isoformat()} ({booking.days} days)")
    print(f"  Total: {format_money(booking.total_amount)}")
    return 0


def cmd_cancel(store: YamlStore, args) -> int:
    """Cancel a booking."""
    booking = service.cancel_booking(store, args.vehicle_id, args.booking_id)
    print(f"Booking {booking.id} cancelled.")
    return 0


def cmd_toggle_status(store: YamlStore, args) -> int:
    """Switch a vehicle between Active and Maintenance."""
    vehicle = service.set_vehicle_status(store, args.vehicle_id)
    print(f"{vehicle.name} is now {vehicle.status.value}.")
    return 0


def cmd_delete(store: YamlStore, args) -> int:
    """Delete a vehicle."""
    service.delete_vehicle(store, args.vehicle_id)
    print(f"Vehicle {args.vehicle_id} deleted.")
    return 0


COMMANDS = {
    "list": cmd_list,
    "bookings": cmd_bookings,
    "add": cmd_add,
    "book": cmd_book,
    "cancel": cmd_cancel,
    "toggle-status": cmd_toggle_status,
    "delete": cmd_delete,
}


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Car rental fleet manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list
  %(prog)s list --mode available --start 2026-02-18 --end 2026-02-20
  %(prog)s add --brand Toyota --model Corolla --image-url car.png --price 100
  %(prog)s book <vehicle-id> "Jane Doe" 2026-02-18 2026-02-20 --phone 555-0100
  %(prog)s cancel <vehicle-id> <booking-id>
""",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=config.DATA_DIR,
        help="Directory of vehicle YAML files (default: $FLEET_DATA_DIR or ./vehicles)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # List subcommand
    list_parser = subparsers.add_parser("list", help="List vehicles")
    list_parser.add_argument(
        "--mode",
        choices=list(service.FILTER_MODES),
        default="all",
        help="Availability filter (default: all)",
    )
    list_parser.add_argument("--start", type=str, help="Range start (YYYY-MM-DD)")
    list_parser.add_argument("--end", type=str, help="Range end (YYYY-MM-DD)")
    list_parser.add_argument(
        "--status",
        type=str,
        help="List by lifecycle status instead (Active or Maintenance)",
    )

    # Bookings subcommand
    bookings_parser = subparsers.add_parser("bookings", help="Show bookings of a vehicle")
    bookings_parser.add_argument("vehicle_id", type=str)
    bookings_parser.add_argument(
        "--all", action="store_true", help="Include cancelled bookings"
    )

    # Add subcommand
    add_parser = subparsers.add_parser("add", help="Add a vehicle")
    add_parser.add_argument("--brand", required=True)
    add_parser.add_argument("--model", required=True)
    add_parser.add_argument("--image-url", required=True)
    add_parser.add_argument("--price", type=float, required=True, help="Price per day")
    add_parser.add_argument("--category", type=str)
    add_parser.add_argument("--seats", type=int)
    add_parser.add_argument("--transmission", type=str)
    add_parser.add_argument("--description", type=str)
    add_parser.add_argument("--logo-url", type=str)

    # Book subcommand
    book_parser = subparsers.add_parser("book", help="Book a vehicle")
    book_parser.add_argument("vehicle_id", type=str)
    book_parser.add_argument("customer", type=str, help="Customer name")
    book_parser.add_argument("start", type=str, help="First day (YYYY-MM-DD)")
    book_parser.add_argument("end", type=str, help="Last day, inclusive (YYYY-MM-DD)")
    book_parser.add_argument("--phone", type=str)
    book_parser.add_argument(
        "--price", type=float, help="Daily price override (default: vehicle price)"
    )
    book_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the quote and availability without booking",
    )

    # Cancel subcommand
    cancel_parser = subparsers.add_parser("cancel", help="Cancel a booking")
    cancel_parser.add_argument("vehicle_id", type=str)
    cancel_parser.add_argument("booking_id", type=str)

    # Toggle status subcommand
    toggle_parser = subparsers.add_parser(
        "toggle-status", help="Switch a vehicle between Active and Maintenance"
    )
    toggle_parser.add_argument("vehicle_id", type=str)

    # Delete subcommand
    delete_parser = subparsers.add_parser("delete", help="Delete a vehicle")
    delete_parser.add_argument("vehicle_id", type=str)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    store = YamlStore(args.data_dir)
    try:
        return COMMANDS[args.command](store, args)
    except FleetError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
