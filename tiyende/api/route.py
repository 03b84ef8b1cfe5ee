from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from tiyende.api.cookie import cookie_vendor
from tiyende.src.db import Route
from tiyende.src import exceptions, validators, getters
from tiyende.src.loggers import logEvent
from tiyende.src.functions import makeExceptionResponses
from tiyende.src.storage import Storage

route_vendor = APIRouter()


## Output Schema
class RouteSchema(BaseModel):
    id: int
    vendor_id: int
    origin: str
    destination: str
    distance: Optional[float]
    duration: Optional[int]
    price: float
    is_active: bool
    has_stops: bool
    updated_on: Optional[datetime]
    created_on: datetime


class RouteStopSchema(BaseModel):
    id: int
    route_id: int
    name: str
    distance_from_origin: float
    order: int
    created_on: datetime


## Input Forms
class StopForm(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    distance_from_origin: float = Field(ge=0, description="In kilometers")


class CreateForm(BaseModel):
    origin: str = Field(min_length=1, max_length=64)
    destination: str = Field(min_length=1, max_length=64)
    distance: float | None = Field(gt=0, default=None, description="In kilometers")
    duration: int | None = Field(gt=0, default=None, description="In minutes")
    price: float = Field(ge=0)
    is_active: bool = Field(default=True)
    stops: List[StopForm] | None = Field(default=None)


class UpdateForm(BaseModel):
    origin: str | None = Field(min_length=1, max_length=64, default=None)
    destination: str | None = Field(min_length=1, max_length=64, default=None)
    distance: float | None = Field(gt=0, default=None, description="In kilometers")
    duration: int | None = Field(gt=0, default=None, description="In minutes")
    price: float | None = Field(ge=0, default=None)
    is_active: bool | None = Field(default=None)
    stops: List[StopForm] | None = Field(
        default=None, description="Replaces every stop of the route when given"
    )


class StopsForm(BaseModel):
    stops: List[StopForm]


## Function
def stopList(stops: List[StopForm] | None) -> List[dict] | None:
    if stops is None:
        return None
    return [stop.model_dump() for stop in stops]


## API endpoints [Vendor]
@route_vendor.get(
    "/routes",
    tags=["Route"],
    response_model=List[RouteSchema],
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="""
    Fetches every route of the logged in vendor, oldest first.
    Can be narrowed to active or inactive routes.
    """,
)
async def fetch_routes(
    is_active: bool | None = Query(default=None),
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return storage.getRoutesByVendor(token.vendor_id, is_active=is_active)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.post(
    "/routes",
    tags=["Route"],
    response_model=RouteSchema,
    status_code=status.HTTP_201_CREATED,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.ValidationFailed, exceptions.InvalidValue]
    ),
    description="""
    Creates a new route for the logged in vendor.

    - Stops may be supplied with the route; they are ordered by their distance from the origin.
    - Stop distances must be distinct and must not exceed the route distance.
    - Logs the route creation activity.
    """,
)
async def create_route(
    fParam: CreateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        stops = stopList(fParam.stops)
        if stops:
            validators.routeStops(stops, fParam.distance)

        route = storage.createRoute(
            stops=stops,
            vendor_id=token.vendor_id,
            origin=fParam.origin,
            destination=fParam.destination,
            distance=fParam.distance,
            duration=fParam.duration,
            price=fParam.price,
            is_active=fParam.is_active,
        )

        logEvent(token.vendor_id, request_info, jsonable_encoder(route))
        return route
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/routes/{id}",
    tags=["Route"],
    response_model=RouteSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized, exceptions.NotFound]),
    description="Fetches a single route of the logged in vendor.",
)
async def fetch_route(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        return validators.owned(storage.getRoute(id), token.vendor_id, Route)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.patch(
    "/routes/{id}",
    tags=["Route"],
    response_model=RouteSchema,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.NotFound, exceptions.InvalidValue]
    ),
    description="""
    Updates a route of the logged in vendor.

    - Supports partial updates; omitted fields are left untouched.
    - When `stops` is given the stop list is replaced in the same transaction.
    - Stops are re-checked against the route distance whenever either changes.
    - Logs the route updating activity.
    """,
)
async def update_route(
    id: int,
    fParam: UpdateForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        route = validators.owned(storage.getRoute(id), token.vendor_id, Route)

        updates = fParam.model_dump(exclude_none=True, exclude={"stops"})
        stops = stopList(fParam.stops)
        distance = updates.get("distance", route.distance)
        if stops is not None:
            validators.routeStops(stops, distance)
        elif "distance" in updates and route.has_stops:
            currentStops = [
                {"distance_from_origin": stop.distance_from_origin}
                for stop in storage.getRouteStops(id)
            ]
            validators.routeStops(currentStops, distance)

        route = storage.updateRoute(id, updates, stops=stops)
        if route is None:
            raise exceptions.NotFound(Route)

        if updates or stops is not None:
            logEvent(token.vendor_id, request_info, jsonable_encoder(route))
        return route
    except Exception as e:
        exceptions.handle(e)


@route_vendor.delete(
    "/routes/{id}",
    tags=["Route"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.NotFound, exceptions.DataInUse]
    ),
    description="""
    Deletes a route of the logged in vendor along with its stops.
    A route that is used by a trip cannot be deleted.
    Logs the deletion activity.
    """,
)
async def delete_route(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        route = validators.owned(storage.getRoute(id), token.vendor_id, Route)
        if storage.isRouteInUse(id):
            raise exceptions.DataInUse(Route)

        if storage.deleteRoute(id):
            logEvent(token.vendor_id, request_info, jsonable_encoder(route))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.get(
    "/routes/{id}/stops",
    tags=["Route"],
    response_model=List[RouteStopSchema],
    responses=makeExceptionResponses([exceptions.Unauthorized, exceptions.NotFound]),
    description="Fetches the stops of a route in travel order.",
)
async def fetch_route_stops(
    id: int,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
):
    try:
        token = validators.vendorSession(cookie, storage)
        validators.owned(storage.getRoute(id), token.vendor_id, Route)
        return storage.getRouteStops(id)
    except Exception as e:
        exceptions.handle(e)


@route_vendor.put(
    "/routes/{id}/stops",
    tags=["Route"],
    response_model=List[RouteStopSchema],
    responses=makeExceptionResponses(
        [exceptions.Unauthorized, exceptions.NotFound, exceptions.InvalidValue]
    ),
    description="""
    Replaces every stop of a route.
    An empty list removes all stops.
    Logs the stop replacement activity.
    """,
)
async def replace_route_stops(
    id: int,
    fParam: StopsForm,
    cookie=Depends(cookie_vendor),
    storage: Storage = Depends(getters.storage),
    request_info=Depends(getters.requestInfo),
):
    try:
        token = validators.vendorSession(cookie, storage)
        route = validators.owned(storage.getRoute(id), token.vendor_id, Route)

        stops = stopList(fParam.stops)
        validators.routeStops(stops, route.distance)
        routeStops = storage.replaceRouteStops(id, stops)
        if routeStops is None:
            raise exceptions.NotFound(Route)

        logEvent(
            token.vendor_id,
            request_info,
            {"route_id": id, "stops": jsonable_encoder(routeStops)},
        )
        return routeStops
    except Exception as e:
        exceptions.handle(e)
