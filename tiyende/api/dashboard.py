from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tiyende.api.cookie import cookie_vendor
from tiyende.src import exceptions, validators, getters
from tiyende.src.functions import makeExceptionResponses
from tiyende.src.storage import Storage

route_vendor = APIRouter()


## Output Schema
class PercentChangeSchema(BaseModel):
    passengers: Optional[float]
    trips: Optional[float]
    revenue: Optional[float]
    bookings: Optional[float]


class StatsSchema(BaseModel):
    total_passengers: int
    active_trips: int
    revenue: float
    bookings: int
    percent_changes: PercentChangeSchema


## API endpoints [Vendor]
@route_vendor.get(
    "/dashboard/stats",
    tags=["Dashboard"],
    response_model=StatsSchema,
    responses=makeExceptionResponses([exceptions.Unauthorized]),
    description="""
    Summarises the business of the logged in vendor.

    - `total_passengers` is the number of booked seats over every booking.
    - `active_trips` counts trips that are on the road right now.
    - `revenue` sums completed payments only.
    - `percent_changes` compares the last 30 days with the 30 days before;
      a value is null when there was no activity to compare with.
    """,
)
async def fetch_stats(
    cookie=Depends(cookie_vendor), storage: Storage = Depends(getters.storage)
):
    try:
        token = validators.vendorSession(cookie, storage)
        return storage.dashboardStats(token.vendor_id)
    except Exception as e:
        exceptions.handle(e)
