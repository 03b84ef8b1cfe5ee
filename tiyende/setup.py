import argparse
from datetime import datetime, timedelta, timezone

from tiyende.src import argon2
from tiyende.src.constants import DB_URL
from tiyende.src.db import makeEngine
from tiyende.src.storage import Storage


# ----------------------------------- Project Setup -------------------------------------------#
def removeTables(storage: Storage):
    storage.removeTables()
    print("* All tables deleted")


def createTables(storage: Storage):
    storage.createTables()
    print("* All tables created")


def initDB(storage: Storage):
    if storage.getVendorByUsername("John") is not None:
        print("* Demo vendor already present")
        return
    storage.createVendor(
        username="John",
        password=argon2.makePassword("john1234"),
        name="John Banda",
        email="john@tiyende.co.zm",
        phone="tel:+260-97-7123456",
        company_name="Tiyende Express",
        address="Cairo Road",
        city="Lusaka",
    )
    print("* Initialization completed")


def testDB(storage: Storage):
    vendor = storage.getVendorByUsername("John")
    if vendor is None:
        print("* Run -init before -test")
        return

    lusakaNdola = storage.createRoute(
        vendor_id=vendor.id,
        origin="Lusaka",
        destination="Ndola",
        distance=320,
        duration=300,
        price=150,
        stops=[
            {"name": "Kabwe", "distance_from_origin": 140},
            {"name": "Kapiri Mposhi", "distance_from_origin": 200},
        ],
    )
    lusakaLivingstone = storage.createRoute(
        vendor_id=vendor.id,
        origin="Lusaka",
        destination="Livingstone",
        distance=480,
        duration=420,
        price=250,
    )
    print("* Created routes")

    coach = storage.createBus(
        vendor_id=vendor.id,
        name="Coach 1",
        registration_number="ALB 1234",
        capacity=60,
        type="Executive",
    )
    minibus = storage.createBus(
        vendor_id=vendor.id,
        name="Shuttle 1",
        registration_number="BAF 5678",
        capacity=18,
        type="Standard",
    )
    print("* Created buses")

    tomorrow = datetime.now(timezone.utc).replace(
        hour=6, minute=0, second=0, microsecond=0
    ) + timedelta(days=1)
    storage.createTrip(
        vendor_id=vendor.id,
        route_id=lusakaNdola.id,
        bus_id=coach.id,
        departure_time=tomorrow,
        arrival_time=tomorrow + timedelta(minutes=lusakaNdola.duration),
        available_seats=coach.capacity,
        price=lusakaNdola.price,
    )
    storage.createTrip(
        vendor_id=vendor.id,
        route_id=lusakaLivingstone.id,
        bus_id=minibus.id,
        departure_time=tomorrow + timedelta(hours=2),
        arrival_time=tomorrow + timedelta(hours=2, minutes=lusakaLivingstone.duration),
        available_seats=minibus.capacity,
        price=lusakaLivingstone.price,
    )
    print("* Created trips")


# Setup database
if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("-rm", action="store_true", help="remove tables")
    parser.add_argument("-cr", action="store_true", help="create tables")
    parser.add_argument("-init", action="store_true", help="initialize DB")
    parser.add_argument("-test", action="store_true", help="add test data")
    args = parser.parse_args()

    storage = Storage(makeEngine(DB_URL))
    try:
        if args.cr:
            createTables(storage)
        if args.init:
            initDB(storage)
        if args.test:
            testDB(storage)
        if args.rm:
            removeTables(storage)
    finally:
        storage.close()
