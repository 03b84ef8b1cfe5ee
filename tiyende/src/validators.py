"""
Validation and ownership checks for the Tiyende Vendor API.

This module centralizes guard logic such as:
- Session validation
- Ownership checks on vendor scoped records
- State transition enforcement
- Trip schedule and seat constraints
- Route stop ordering

All functions raise appropriate exceptions from `tiyende.src.exceptions`
when validation fails, ensuring consistent error handling.
"""

from datetime import datetime
from typing import Any, List, Optional, Type

from sqlalchemy import Column

from tiyende.src import exceptions
from tiyende.src.constants import SESSION_MAX_IDLE
from tiyende.src.db import ORMbase, Bus, RouteStop, Trip, VendorSession
from tiyende.src.enums import BookingStatus, PaymentStatus, TripStatus
from tiyende.src.functions import isValidTransition, toUTC
from tiyende.src.storage import Storage


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------
TRIP_STATUS_TRANSITION = {
    TripStatus.SCHEDULED.value: [TripStatus.IN_PROGRESS.value, TripStatus.CANCELLED.value],
    TripStatus.IN_PROGRESS.value: [TripStatus.COMPLETED.value, TripStatus.CANCELLED.value],
    TripStatus.COMPLETED.value: [],
    TripStatus.CANCELLED.value: [],
}

BOOKING_STATUS_TRANSITION = {
    BookingStatus.PENDING.value: [BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value],
    BookingStatus.CONFIRMED.value: [BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value],
    BookingStatus.CANCELLED.value: [],
    BookingStatus.COMPLETED.value: [],
}

PAYMENT_STATUS_TRANSITION = {
    PaymentStatus.PENDING.value: [PaymentStatus.COMPLETED.value, PaymentStatus.FAILED.value],
    PaymentStatus.FAILED.value: [PaymentStatus.PENDING.value],
    PaymentStatus.COMPLETED.value: [PaymentStatus.REFUNDED.value],
    PaymentStatus.REFUNDED.value: [],
}


# ---------------------------------------------------------------------------
# Session validation
# ---------------------------------------------------------------------------
def vendorSession(accessToken: Optional[str], storage: Storage) -> VendorSession:
    """
    Resolve the session cookie to a live session and extend its lifetime.

    Args:
        accessToken (Optional[str]): Value of the session cookie, if any.
        storage (Storage): Data-access layer holding the session records.

    Returns:
        VendorSession: The live session, with `expires_at` slid forward.

    Raises:
        exceptions.Unauthorized: If the cookie is missing, unknown or expired.
    """
    if not accessToken:
        raise exceptions.Unauthorized()
    session = storage.touchSession(accessToken, SESSION_MAX_IDLE)
    if session is None:
        raise exceptions.Unauthorized()
    return session


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------
def owned(record: Optional[ORMbase], vendorId: int, model: Type[ORMbase]) -> ORMbase:
    """
    Ensure a record exists and belongs to the vendor.

    A record owned by another vendor is reported exactly like a missing one,
    so the existence of other vendors' data never leaks.

    Raises:
        exceptions.NotFound: If the record is missing or owned by someone else.
    """
    if record is None or record.vendor_id != vendorId:
        raise exceptions.NotFound(model)
    return record


# ---------------------------------------------------------------------------
# Other validations
# ---------------------------------------------------------------------------
def stateTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any, state: Column
) -> bool:
    """
    Validate whether a state transition is allowed.

    Re-applying the current state is accepted as a no-op.

    Raises:
        exceptions.InvalidStateTransition: If the transition is not permitted.
    """
    if old_state == new_state:
        return True
    if not isValidTransition(transitions, old_state, new_state):
        raise exceptions.InvalidStateTransition(state)
    return True


def tripSchedule(departureTime: datetime, arrivalTime: datetime) -> bool:
    """
    Raises:
        exceptions.InvalidValue: If the trip does not arrive after it departs.
    """
    if toUTC(arrivalTime) <= toUTC(departureTime):
        raise exceptions.InvalidValue(
            Trip.arrival_time, "arrival must be after departure"
        )
    return True


def tripSeats(availableSeats: int, bus: Bus) -> bool:
    """
    Raises:
        exceptions.InvalidValue: If the seats exceed the capacity of the bus.
    """
    if availableSeats > bus.capacity:
        raise exceptions.InvalidValue(
            Trip.available_seats, f"the bus capacity is {bus.capacity}"
        )
    return True


def routeStops(stops: List[dict], distance: Optional[float] = None) -> bool:
    """
    Validate the stops of a route.

    Conditions:
        - Distances from the origin must be distinct, so ordering the stops
          by distance gives a strictly increasing sequence.
        - When the route length is known, no stop may lie beyond it.

    Raises:
        exceptions.InvalidValue: If any condition fails.
    """
    distances = [stop["distance_from_origin"] for stop in stops]
    if len(distances) != len(set(distances)):
        raise exceptions.InvalidValue(
            RouteStop.distance_from_origin, "stops must have distinct distances"
        )
    if distance is not None and any(d > distance for d in distances):
        raise exceptions.InvalidValue(
            RouteStop.distance_from_origin, "stop lies beyond the route distance"
        )
    return True
