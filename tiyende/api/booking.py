from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, EmailStr, ConfigDict, model_validator
from pydantic_extra_types.phone_numbers import PhoneNumber

from tiyende.api.cookie import cookie_vendor
from tiyende.src.constants import DEFAULT_DASHBOARD_LIMIT, MAX_DASHBOARD_LIMIT
from tiyende.src.db import Booking, Customer, Trip
from tiyende.src import exceptions, validators, getters
from tiyende.src.enums import BookingStatus
from tiyende.src.loggers import logEvent
from tiyende.src.functions import enumStr, makeExceptionResponses
from tiyende.src.storage import Storage

route_vendor = APIRouter()


## Output Schema
class BookingSchema(BaseModel):
    id: int
    trip_id: int
    customer_id: int
    vendor_id: int
    seat_count: int
    status: str
    total_price: float
    booking_date: datetime
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class CustomerForm(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    email: EmailStr = Field(description="Email in RFC 5322 format")
    phone: PhoneNumber | None = Field(
        default=None, description="Phone number in RFC3966 format"
    )


class CreateForm(BaseModel):
    trip_id: int
    customer_id: int | None = Field(default=None)
    customer: CustomerForm | None = Field(
        default=None,
        description="Used when no customer_id is given, matched to an existing customer by email",
    )
    seat_count: int = Field(ge=1, le=120, default=1)
    total_price: float | None = Field(
        ge=0, default=None, description="Defaults to the trip price times the seat count"
    )

    @model_validator(mode="after")
    def needCustomer(self):
        if self.customer_id is None and self.customer is None:
            raise ValueError("Either customer_id or customer is required")
        return self


class StatusForm(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: BookingStatus = Field(description=enumStr(BookingStatus))


## API endpoints [Vendor]
@route_vendor.get(
    "/bookings",
    tags=["Booking"],
    response_model=List[BookingSchema],
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="""
    Fetches every booking of the logged in vendor, oldest first.
    Can be narrowed to a single booking status.
    """,
)
async def fetch_bookings(
    status: BookingStatus | None = Query(
        default=None, description=enumStr(BookingStatus)
    ),
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return storage.getBookingsByVendor(
            token.vendor_id, status=status.value if status else None
        )
    except Exception as e:
        exceptions.handle(e)


@route_vendor.post(
    "/bookings",
    tags=["Booking"],
    response_model=BookingSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [
            exceptions.Unauthorized,
            exceptions.NotFound,
            exceptions.InsufficientSeats,
            exceptions.ValidationFailed,
        ]
    ),
    description="""
    Books seats on a trip of the logged in vendor.

    - The customer is referenced by `customer_id`, or given inline; an inline
      customer is matched by email and created when unknown.
    - The seats are taken from the trip in the same transaction.
    - The total price defaults to the trip price times the seat count.
    - Every booking starts in the `pending` status.
    - Logs the booking creation activity.
    """,
)
async def create_booking(
    fParam: CreateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        trip = validators.owned(storage.getTrip(fParam.trip_id), token.vendor_id, Trip)
        if fParam.customer_id is not None:
            if storage.getCustomer(fParam.customer_id) is None:
                raise exceptions.NotFound(Customer)
            inlineCustomer = None
        else:
            inlineCustomer = fParam.customer.model_dump()

        booking = storage.createBooking(
            customer=inlineCustomer,
            trip_id=trip.id,
            customer_id=fParam.customer_id,
            seat_count=fParam.seat_count,
            total_price=fParam.total_price,
        )
        if booking is None:
            raise exceptions.NotFound(Trip)

        logEvent(token.vendor_id, request_info, jsonable_encoder(booking))
        return booking
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/bookings/recent",
    tags=["Booking"],
    response_model=List[BookingSchema],
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="Fetches the latest bookings of the logged in vendor, newest first.",
)
async def fetch_recent_bookings(
    limit: int = Query(default=DEFAULT_DASHBOARD_LIMIT, gt=0, le=MAX_DASHBOARD_LIMIT),
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return storage.recentBookings(token.vendor_id, limit)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/bookings/{id}",
    tags=["Booking"],
    response_model=BookingSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized, exceptions.NotFound]),
    description="Fetches a single booking of the logged in vendor.",
)
async def fetch_booking(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return validators.owned(storage.getBooking(id), token.vendor_id, Booking)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.patch(
    "/bookings/{id}/status",
    tags=["Booking"],
    response_model=BookingSchema,
    responses=makeExceptionResponses(
        [
            exceptions.Unauthorized,
            exceptions.NotFound,
            exceptions.InvalidStateTransition,
        ]
    ),
    description="""
    Moves a booking of the logged in vendor to a new status.

    - `pending` moves to `confirmed` or `cancelled`.
    - `confirmed` moves to `completed` or `cancelled`.
    - Cancelling gives the seats back to the trip.
    - Logs the status change.
    """,
)
async def update_booking_status(
    id: int,
    fParam: StatusForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        booking = validators.owned(storage.getBooking(id), token.vendor_id, Booking)
        validators.stateTransition(
            validators.BOOKING_STATUS_TRANSITION,
            booking.status,
            fParam.status,
            Booking.status,
        )
        if booking.status == fParam.status:
            return booking

        booking = storage.updateBookingStatus(id, fParam.status)
        if booking is None:
            raise exceptions.NotFound(Booking)

        logEvent(token.vendor_id, request_info, jsonable_encoder(booking))
        return booking
    except Exception as e:
        exceptions.handle(e)
