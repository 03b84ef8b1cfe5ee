from fastapi import APIRouter
from tiyende.api import (
    vendor_account,
    route,
    bus,
    trip,
    booking,
    payment,
    dashboard,
)


# ------------------------------------------------------
# Vendor routers, everything is served under /api
# ------------------------------------------------------
api_vendor = APIRouter(prefix="/api")

api_vendor.include_router(vendor_account.route_vendor)
api_vendor.include_router(route.route_vendor)
api_vendor.include_router(bus.route_vendor)
api_vendor.include_router(trip.route_vendor)
api_vendor.include_router(booking.route_vendor)
api_vendor.include_router(payment.route_vendor)
api_vendor.include_router(dashboard.route_vendor)
