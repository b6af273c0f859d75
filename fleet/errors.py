"""Failure types raised by fleet operations.

The web layer maps each of these to an HTTP status code; callers should
never see a default value in place of one of these errors.
"""


class FleetError(Exception):
    """Base class for all fleet failures."""


class ValidationError(FleetError):
    """Malformed or missing input."""


class InvalidRange(FleetError):
    """Unparseable dates or a start date after the end date."""


class NotFound(FleetError):
    """Referenced vehicle or booking does not exist."""


class Conflict(FleetError):
    """Requested dates overlap a confirmed booking."""


class WriteConflict(Conflict):
    """Vehicle record changed between read and write. Safe to retry after re-reading."""


class AlreadyInState(FleetError):
    """Booking is already in the requested status."""
