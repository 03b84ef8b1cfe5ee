from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, ConfigDict

from tiyende.api.cookie import cookie_vendor
from tiyende.src.constants import DEFAULT_DASHBOARD_LIMIT, MAX_DASHBOARD_LIMIT
from tiyende.src.db import Bus, Route, Trip
from tiyende.src import exceptions, validators, getters
from tiyende.src.enums import TripStatus
from tiyende.src.loggers import logEvent
from tiyende.src.functions import enumStr, makeExceptionResponses, toUTC
from tiyende.src.storage import Storage

route_vendor = APIRouter()


## Output Schema
class TripSchema(BaseModel):
    id: int
    vendor_id: int
    route_id: int
    bus_id: int
    departure_time: datetime
    arrival_time: datetime
    status: str
    available_seats: int
    price: float
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class CreateForm(BaseModel):
    route_id: int
    bus_id: int
    departure_time: datetime
    arrival_time: datetime
    available_seats: int | None = Field(
        ge=0, default=None, description="Defaults to the capacity of the bus"
    )
    price: float | None = Field(
        ge=0, default=None, description="Defaults to the price of the route"
    )


class UpdateForm(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    route_id: int | None = Field(default=None)
    bus_id: int | None = Field(default=None)
    departure_time: datetime | None = Field(default=None)
    arrival_time: datetime | None = Field(default=None)
    status: TripStatus | None = Field(
        default=None, description=enumStr(TripStatus)
    )
    available_seats: int | None = Field(ge=0, default=None)
    price: float | None = Field(ge=0, default=None)


## Function
def validateUpdate(trip: Trip, updates: dict, vendorId: int, storage: Storage):
    if "route_id" in updates:
        validators.owned(storage.getRoute(updates["route_id"]), vendorId, Route)

    if "departure_time" in updates or "arrival_time" in updates:
        validators.tripSchedule(
            updates.get("departure_time", trip.departure_time),
            updates.get("arrival_time", trip.arrival_time),
        )

    if "bus_id" in updates or "available_seats" in updates:
        busId = updates.get("bus_id", trip.bus_id)
        bus = validators.owned(storage.getBus(busId), vendorId, Bus)
        validators.tripSeats(updates.get("available_seats", trip.available_seats), bus)

    if "status" in updates:
        validators.stateTransition(
            validators.TRIP_STATUS_TRANSITION,
            trip.status,
            updates["status"],
            Trip.status,
        )


## API endpoints [Vendor]
@route_vendor.get(
    "/trips",
    tags=["Trip"],
    response_model=List[TripSchema],
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="""
    Fetches every trip of the logged in vendor, oldest first.
    Can be narrowed to a single trip status.
    """,
)
async def fetch_trips(
    status: TripStatus | None = Query(default=None, description=enumStr(TripStatus)),
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return storage.getTripsByVendor(
            token.vendor_id, status=status.value if status else None
        )
    except Exception as e:
        exceptions.handle(e)


@route_vendor.post(
    "/trips",
    tags=["Trip"],
    response_model=TripSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [
            exceptions.Unauthorized,
            exceptions.NotFound,
            exceptions.InvalidValue,
            exceptions.ValidationFailed,
        ]
    ),
    description="""
    Schedules a new trip for the logged in vendor.

    - The route and the bus must belong to the vendor.
    - The arrival time must be after the departure time.
    - Available seats default to, and may not exceed, the bus capacity.
    - The price defaults to the route price.
    - Every trip starts in the `scheduled` status.
    - Logs the trip creation activity.
    """,
)
async def create_trip(
    fParam: CreateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        route = validators.owned(storage.getRoute(fParam.route_id), token.vendor_id, Route)
        bus = validators.owned(storage.getBus(fParam.bus_id), token.vendor_id, Bus)
        validators.tripSchedule(fParam.departure_time, fParam.arrival_time)

        availableSeats = fParam.available_seats
        if availableSeats is None:
            availableSeats = bus.capacity
        validators.tripSeats(availableSeats, bus)

        price = fParam.price
        if price is None:
            price = route.price

        trip = storage.createTrip(
            vendor_id=token.vendor_id,
            route_id=route.id,
            bus_id=bus.id,
            departure_time=toUTC(fParam.departure_time),
            arrival_time=toUTC(fParam.arrival_time),
            available_seats=availableSeats,
            price=price,
        )

        logEvent(token.vendor_id, request_info, jsonable_encoder(trip))
        return trip
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/trips/upcoming",
    tags=["Trip"],
    response_model=List[TripSchema],
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="""
    Fetches the trips of the logged in vendor that have not departed yet,
    soonest departure first.
    """,
)
async def fetch_upcoming_trips(
    limit: int = Query(default=DEFAULT_DASHBOARD_LIMIT, gt=0, le=MAX_DASHBOARD_LIMIT),
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return storage.upcomingTrips(token.vendor_id, limit)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/trips/{id}",
    tags=["Trip"],
    response_model=TripSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized, exceptions.NotFound]),
    description="Fetches a single trip of the logged in vendor.",
)
async def fetch_trip(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return validators.owned(storage.getTrip(id), token.vendor_id, Trip)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.patch(
    "/trips/{id}",
    tags=["Trip"],
    response_model=TripSchema,
    responses=makeExceptionResponses(
        [
            exceptions.Unauthorized,
            exceptions.NotFound,
            exceptions.InvalidValue,
            exceptions.InvalidStateTransition,
        ]
    ),
    description="""
    Updates a trip of the logged in vendor.

    - Supports partial updates; omitted fields are left untouched.
    - A new route or bus must belong to the vendor.
    - The schedule is re-checked against the stored times.
    - Seats are re-checked against the bus capacity when either changes.
    - Status moves from `scheduled` to `in-progress` or `cancelled`,
      and from `in-progress` to `completed` or `cancelled`.
    - Logs the trip updating activity.
    """,
)
async def update_trip(
    id: int,
    fParam: UpdateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        trip = validators.owned(storage.getTrip(id), token.vendor_id, Trip)

        updates = fParam.model_dump(exclude_none=True)
        validateUpdate(trip, updates, token.vendor_id, storage)
        for field in ("departure_time", "arrival_time"):
            if field in updates:
                updates[field] = toUTC(updates[field])

        trip = storage.updateTrip(id, updates)
        if trip is None:
            raise exceptions.NotFound(Trip)

        if updates:
            logEvent(token.vendor_id, request_info, jsonable_encoder(trip))
        return trip
    except Exception as e:
        exceptions.handle(e)


@route_vendor.delete(
    "/trips/{id}",
    tags=["Trip"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.NotFound, exceptions.DataInUse]
    ),
    description="""
    Deletes a trip of the logged in vendor.
    A trip that has bookings cannot be deleted, cancel it instead.
    Logs the deletion activity.
    """,
)
async def delete_trip(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        trip = validators.owned(storage.getTrip(id), token.vendor_id, Trip)
        if storage.isTripInUse(id):
            raise exceptions.DataInUse(Trip)

        if storage.deleteTrip(id):
            logEvent(token.vendor_id, request_info, jsonable_encoder(trip))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
