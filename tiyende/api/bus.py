from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from tiyende.api.cookie import cookie_vendor
from tiyende.src.db import Bus
from tiyende.src import exceptions, validators, getters
from tiyende.src.loggers import logEvent
from tiyende.src.functions import makeExceptionResponses
from tiyende.src.storage import Storage

route_vendor = APIRouter()


## Output Schema
class BusSchema(BaseModel):
    id: int
    vendor_id: int
    name: str
    registration_number: str
    capacity: int
    type: Optional[str]
    is_active: bool
    updated_on: Optional[datetime]
    created_on: datetime


## Input Forms
class CreateForm(BaseModel):
    name: str = Field(min_length=1, max_length=32)
    registration_number: str = Field(min_length=1, max_length=16)
    capacity: int = Field(ge=1, le=120)
    type: str | None = Field(max_length=32, default=None)
    is_active: bool = Field(default=True)


class UpdateForm(BaseModel):
    name: str | None = Field(min_length=1, max_length=32, default=None)
    registration_number: str | None = Field(min_length=1, max_length=16, default=None)
    capacity: int | None = Field(ge=1, le=120, default=None)
    type: str | None = Field(max_length=32, default=None)
    is_active: bool | None = Field(default=None)


## API endpoints [Vendor]
@route_vendor.get(
    "/buses",
    tags=["Bus"],
    response_model=List[BusSchema],
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="""
    Fetches every bus of the logged in vendor, oldest first.
    Can be narrowed to active or inactive buses.
    """,
)
async def fetch_buses(
    is_active: bool | None = Query(default=None),
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return storage.getBusesByVendor(token.vendor_id, is_active=is_active)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.post(
    "/buses",
    tags=["Bus"],
    response_model=BusSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.ValidationFailed]
    ),
    description="""
    Creates a new bus for the logged in vendor.
    Logs the bus creation activity.
    """,
)
async def create_bus(
    fParam: CreateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        bus = storage.createBus(
            vendor_id=token.vendor_id,
            name=fParam.name,
            registration_number=fParam.registration_number,
            capacity=fParam.capacity,
            type=fParam.type,
            is_active=fParam.is_active,
        )

        logEvent(token.vendor_id, request_info, jsonable_encoder(bus))
        return bus
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/buses/{id}",
    tags=["Bus"],
    response_model=BusSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized, exceptions.NotFound]),
    description="Fetches a single bus of the logged in vendor.",
)
async def fetch_bus(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return validators.owned(storage.getBus(id), token.vendor_id, Bus)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.patch(
    "/buses/{id}",
    tags=["Bus"],
    response_model=BusSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized, exceptions.NotFound]),
    description="""
    Updates a bus of the logged in vendor.
    Supports partial updates; omitted fields are left untouched.
    Logs the bus updating activity.
    """,
)
async def update_bus(
    id: int,
    fParam: UpdateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        validators.owned(storage.getBus(id), token.vendor_id, Bus)

        updates = fParam.model_dump(exclude_none=True)
        bus = storage.updateBus(id, updates)
        if bus is None:
            raise exceptions.NotFound(Bus)

        if updates:
            logEvent(token.vendor_id, request_info, jsonable_encoder(bus))
        return bus
    except Exception as e:
        exceptions.handle(e)


@route_vendor.delete(
    "/buses/{id}",
    tags=["Bus"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.NotFound, exceptions.DataInUse]
    ),
    description="""
    Deletes a bus of the logged in vendor.
    A bus that is assigned to a trip cannot be deleted.
    Logs the deletion activity.
    """,
)
async def delete_bus(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        bus = validators.owned(storage.getBus(id), token.vendor_id, Bus)
        if storage.isBusInUse(id):
            raise exceptions.DataInUse(Bus)

        if storage.deleteBus(id):
            logEvent(token.vendor_id, request_info, jsonable_encoder(bus))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
