from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, ConfigDict

from tiyende.api.cookie import cookie_vendor
from tiyende.src.db import Booking, Payment
from tiyende.src import exceptions, validators, getters
from tiyende.src.enums import PaymentMethod, PaymentStatus
from tiyende.src.loggers import logEvent
from tiyende.src.functions import enumStr, makeExceptionResponses
from tiyende.src.storage import Storage

route_vendor = APIRouter()


## Output Schema
class PaymentSchema(BaseModel):
    id: int
    booking_id: int
    vendor_id: int
    amount: float
    payment_method: str
    status: str
    transaction_id: Optional[str]
    payment_date: datetime
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class CreateForm(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    booking_id: int
    amount: float | None = Field(
        ge=0, default=None, description="Defaults to the booking total price"
    )
    payment_method: PaymentMethod = Field(description=enumStr(PaymentMethod))
    transaction_id: str | None = Field(max_length=128, default=None)


class StatusForm(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: PaymentStatus = Field(description=enumStr(PaymentStatus))


## API endpoints [Vendor]
@route_vendor.get(
    "/payments",
    tags=["Payment"],
    response_model=List[PaymentSchema],
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="""
    Fetches every payment of the logged in vendor, oldest first.
    Can be narrowed to a single payment status.
    """,
)
async def fetch_payments(
    status: PaymentStatus | None = Query(
        default=None, description=enumStr(PaymentStatus)
    ),
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return storage.getPaymentsByVendor(
            token.vendor_id, status=status.value if status else None
        )
    except Exception as e:
        exceptions.handle(e)


@route_vendor.post(
    "/payments",
    tags=["Payment"],
    response_model=PaymentSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.NotFound, exceptions.ValidationFailed]
    ),
    description="""
    Records a payment against a booking of the logged in vendor.

    - The amount defaults to the booking total price.
    - Every payment starts in the `pending` status.
    - Logs the payment creation activity.
    """,
)
async def create_payment(
    fParam: CreateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        booking = validators.owned(
            storage.getBooking(fParam.booking_id), token.vendor_id, Booking
        )

        payment = storage.createPayment(
            booking_id=booking.id,
            amount=fParam.amount,
            payment_method=fParam.payment_method,
            transaction_id=fParam.transaction_id,
        )
        if payment is None:
            raise exceptions.NotFound(Booking)

        logEvent(token.vendor_id, request_info, jsonable_encoder(payment))
        return payment
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/payments/{id}",
    tags=["Payment"],
    response_model=PaymentSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized, exceptions.NotFound]),
    description="Fetches a single payment of the logged in vendor.",
)
async def fetch_payment(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return validators.owned(storage.getPayment(id), token.vendor_id, Payment)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.patch(
    "/payments/{id}/status",
    tags=["Payment"],
    response_model=PaymentSchema,
    responses=makeExceptionResponses(
        [
            exceptions.Unauthorized,
            exceptions.NotFound,
            exceptions.InvalidStateTransition,
        ]
    ),
    description="""
    Moves a payment of the logged in vendor to a new status.

    - `pending` moves to `completed` or `failed`.
    - A `failed` payment can be retried by moving it back to `pending`.
    - `completed` moves to `refunded`.
    - Only `completed` payments count towards revenue.
    - Logs the status change.
    """,
)
async def update_payment_status(
    id: int,
    fParam: StatusForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        payment = validators.owned(storage.getPayment(id), token.vendor_id, Payment)
        validators.stateTransition(
            validators.PAYMENT_STATUS_TRANSITION,
            payment.status,
            fParam.status,
            Payment.status,
        )
        if payment.status == fParam.status:
            return payment

        payment = storage.updatePaymentStatus(id, fParam.status)
        if payment is None:
            raise exceptions.NotFound(Payment)

        logEvent(token.vendor_id, request_info, jsonable_encoder(payment))
        return payment
    except Exception as e:
        exceptions.handle(e)
