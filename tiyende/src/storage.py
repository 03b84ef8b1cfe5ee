"""
Data-access layer for the Tiyende Vendor API.

`Storage` is the only path through which records are created, read, updated
and deleted. It wraps a SQLAlchemy engine handed to it at construction, so
the backing database (PostgreSQL in production, SQLite in tests and demos)
is chosen by whoever builds the application.

Conventions:
    - Every operation runs in its own short ORM session and is atomic.
    - A missing record is reported as `None` (or `False` for deletes),
      never as an exception.
    - Identities come from the database sequence of each table; they start
      at 1, increase with every insert and are never reused.
    - Returned ORM objects are detached and safe to read after the call.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Type

from sqlalchemy import delete, func, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tiyende.src import exceptions
from tiyende.src.constants import DEFAULT_DASHBOARD_LIMIT, STATS_PERIOD
from tiyende.src.db import (
    ORMbase,
    Booking,
    Bus,
    Customer,
    Payment,
    Route,
    RouteStop,
    Trip,
    Vendor,
    VendorSession,
)
from tiyende.src.enums import BookingStatus, PaymentStatus
from tiyende.src.functions import percentChange, toUTC

# Fields that no update may overwrite
IMMUTABLE_FIELDS = {"id", "created_on"}

# Bookings still holding seats on their trip
SEAT_HOLDING_STATUSES = {BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value}


class Storage:
    def __init__(self, engine: Engine):
        self.engine = engine
        self.sessionMaker = sessionmaker(bind=engine, expire_on_commit=False)

    # ----------------------------------- Lifecycle -------------------------------------------#
    def createTables(self) -> None:
        ORMbase.metadata.create_all(self.engine)

    def removeTables(self) -> None:
        ORMbase.metadata.drop_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    # ----------------------------------- Generic CRUD ----------------------------------------#
    def create(self, model: Type[ORMbase], **fields) -> ORMbase:
        """
        Insert a new record and return it as stored, with its assigned `id`
        and `created_on`.

        Uniqueness beyond the database constraints is the caller's
        responsibility (eg: looking up a username before registering it).
        """
        with self.sessionMaker() as session:
            record = model(**fields)
            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def get(self, model: Type[ORMbase], id: int) -> Optional[ORMbase]:
        with self.sessionMaker() as session:
            return session.get(model, id)

    def update(self, model: Type[ORMbase], id: int, fields: dict) -> Optional[ORMbase]:
        """
        Shallow-merge `fields` over an existing record.

        Keys that are not columns of the model, and the immutable `id` and
        `created_on`, are ignored. Omitted fields keep their current value.

        Returns:
            The updated record, or None if no record has the given id.
        """
        with self.sessionMaker() as session:
            record = session.get(model, id)
            if record is None:
                return None
            self._merge(record, fields)
            if session.is_modified(record):
                session.commit()
                session.refresh(record)
            return record

    def delete(self, model: Type[ORMbase], id: int) -> bool:
        """Remove a record. Returns whether a record was actually present."""
        with self.sessionMaker() as session:
            record = session.get(model, id)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    def listByVendor(self, model: Type[ORMbase], vendorId: int, **filters) -> List:
        """
        All records of `model` owned by the vendor, in insertion order.
        Keyword filters are equality checks; None values are skipped.
        """
        with self.sessionMaker() as session:
            query = session.query(model).filter(model.vendor_id == vendorId)
            for column, value in filters.items():
                if value is not None:
                    query = query.filter(getattr(model, column) == value)
            return query.order_by(model.id.asc()).all()

    def _merge(self, record: ORMbase, fields: dict) -> None:
        columns = record.__table__.columns.keys()
        for field, value in fields.items():
            if field in IMMUTABLE_FIELDS or field not in columns:
                continue
            if getattr(record, field) != value:
                setattr(record, field, value)

    def _exists(self, session: Session, column, value) -> bool:
        return session.query(column).filter(column == value).first() is not None

    # ----------------------------------- Vendors ---------------------------------------------#
    def getVendor(self, id: int) -> Optional[Vendor]:
        return self.get(Vendor, id)

    def getVendorByUsername(self, username: str) -> Optional[Vendor]:
        with self.sessionMaker() as session:
            return session.query(Vendor).filter(Vendor.username == username).first()

    def getVendorByEmail(self, email: str) -> Optional[Vendor]:
        with self.sessionMaker() as session:
            return session.query(Vendor).filter(Vendor.email == email).first()

    def createVendor(self, **fields) -> Vendor:
        return self.create(Vendor, **fields)

    def updateVendor(self, id: int, fields: dict) -> Optional[Vendor]:
        return self.update(Vendor, id, fields)

    # ----------------------------------- Routes ----------------------------------------------#
    def getRoute(self, id: int) -> Optional[Route]:
        return self.get(Route, id)

    def getRoutesByVendor(self, vendorId: int, **filters) -> List[Route]:
        return self.listByVendor(Route, vendorId, **filters)

    def createRoute(self, stops: Iterable[dict] | None = None, **fields) -> Route:
        """
        Insert a route together with its optional stops in one transaction.
        Stops are ordered by their distance from the origin.
        """
        with self.sessionMaker() as session:
            route = Route(**fields)
            session.add(route)
            session.flush()
            self._writeStops(session, route, stops or [])
            session.commit()
            session.refresh(route)
            return route

    def updateRoute(
        self, id: int, fields: dict, stops: Iterable[dict] | None = None
    ) -> Optional[Route]:
        """
        Merge `fields` into the route. When `stops` is given the stop list is
        replaced as part of the same transaction.
        """
        with self.sessionMaker() as session:
            route = session.get(Route, id)
            if route is None:
                return None
            self._merge(route, fields)
            if stops is not None:
                session.execute(delete(RouteStop).where(RouteStop.route_id == id))
                self._writeStops(session, route, stops)
            if session.is_modified(route) or stops is not None:
                session.commit()
                session.refresh(route)
            return route

    def deleteRoute(self, id: int) -> bool:
        with self.sessionMaker() as session:
            route = session.get(Route, id)
            if route is None:
                return False
            session.execute(delete(RouteStop).where(RouteStop.route_id == id))
            session.delete(route)
            session.commit()
            return True

    def getRouteStops(self, routeId: int) -> List[RouteStop]:
        with self.sessionMaker() as session:
            return (
                session.query(RouteStop)
                .filter(RouteStop.route_id == routeId)
                .order_by(RouteStop.order.asc())
                .all()
            )

    def replaceRouteStops(self, routeId: int, stops: Iterable[dict]) -> Optional[List[RouteStop]]:
        route = self.updateRoute(routeId, {}, stops=list(stops))
        if route is None:
            return None
        return self.getRouteStops(routeId)

    def isRouteInUse(self, id: int) -> bool:
        with self.sessionMaker() as session:
            return self._exists(session, Trip.route_id, id)

    def _writeStops(self, session: Session, route: Route, stops: Iterable[dict]) -> None:
        stops = sorted(stops, key=lambda stop: stop["distance_from_origin"])
        for order, stop in enumerate(stops, start=1):
            session.add(
                RouteStop(
                    route_id=route.id,
                    name=stop["name"],
                    distance_from_origin=stop["distance_from_origin"],
                    order=order,
                )
            )
        hasStops = len(stops) > 0
        if route.has_stops != hasStops:
            route.has_stops = hasStops

    # ----------------------------------- Buses -----------------------------------------------#
    def getBus(self, id: int) -> Optional[Bus]:
        return self.get(Bus, id)

    def getBusesByVendor(self, vendorId: int, **filters) -> List[Bus]:
        return self.listByVendor(Bus, vendorId, **filters)

    def createBus(self, **fields) -> Bus:
        return self.create(Bus, **fields)

    def updateBus(self, id: int, fields: dict) -> Optional[Bus]:
        return self.update(Bus, id, fields)

    def deleteBus(self, id: int) -> bool:
        return self.delete(Bus, id)

    def isBusInUse(self, id: int) -> bool:
        with self.sessionMaker() as session:
            return self._exists(session, Trip.bus_id, id)

    # ----------------------------------- Trips -----------------------------------------------#
    def getTrip(self, id: int) -> Optional[Trip]:
        return self.get(Trip, id)

    def getTripsByVendor(self, vendorId: int, **filters) -> List[Trip]:
        return self.listByVendor(Trip, vendorId, **filters)

    def createTrip(self, **fields) -> Trip:
        return self.create(Trip, **fields)

    def updateTrip(self, id: int, fields: dict) -> Optional[Trip]:
        return self.update(Trip, id, fields)

    def deleteTrip(self, id: int) -> bool:
        return self.delete(Trip, id)

    def isTripInUse(self, id: int) -> bool:
        with self.sessionMaker() as session:
            return self._exists(session, Booking.trip_id, id)

    def upcomingTrips(
        self,
        vendorId: int,
        limit: int = DEFAULT_DASHBOARD_LIMIT,
        now: datetime | None = None,
    ) -> List[Trip]:
        """Trips departing strictly after `now`, soonest first."""
        now = toUTC(now) or datetime.now(timezone.utc)
        with self.sessionMaker() as session:
            return (
                session.query(Trip)
                .filter(Trip.vendor_id == vendorId)
                .filter(Trip.departure_time > now)
                .order_by(Trip.departure_time.asc(), Trip.id.asc())
                .limit(limit)
                .all()
            )

    # ----------------------------------- Customers -------------------------------------------#
    def getCustomer(self, id: int) -> Optional[Customer]:
        return self.get(Customer, id)

    def getCustomerByEmail(self, email: str) -> Optional[Customer]:
        with self.sessionMaker() as session:
            return (
                session.query(Customer)
                .filter(Customer.email == email)
                .order_by(Customer.id.asc())
                .first()
            )

    def createCustomer(self, **fields) -> Customer:
        return self.create(Customer, **fields)

    @staticmethod
    def customerFor(session: Session, details: dict) -> Customer:
        """Customer with the given email, added to `session` when unknown."""
        customer = (
            session.query(Customer)
            .filter(Customer.email == details["email"])
            .order_by(Customer.id.asc())
            .first()
        )
        if customer is None:
            customer = Customer(
                **{key: value for key, value in details.items() if value is not None}
            )
            session.add(customer)
            session.flush()
        return customer

    # ----------------------------------- Bookings --------------------------------------------#
    def getBooking(self, id: int) -> Optional[Booking]:
        return self.get(Booking, id)

    def getBookingsByVendor(self, vendorId: int, **filters) -> List[Booking]:
        return self.listByVendor(Booking, vendorId, **filters)

    def createBooking(self, customer: dict | None = None, **fields) -> Optional[Booking]:
        """
        Reserve seats on a trip.

        The booking inherits the trip's `vendor_id`, and the trip's
        `available_seats` is decremented in the same transaction while the
        trip row is locked. `total_price` defaults to the trip price times
        the seat count.

        Args:
            customer: Inline customer details, used when no `customer_id` is
                given. The customer is matched by email and created when
                unknown, in the same transaction as the booking.

        Returns:
            The stored booking, or None if the trip does not exist.

        Raises:
            exceptions.InsufficientSeats: If the trip cannot hold the seats.
        """
        with self.sessionMaker() as session:
            trip = (
                session.query(Trip)
                .filter(Trip.id == fields["trip_id"])
                .with_for_update()
                .first()
            )
            if trip is None:
                return None

            seatCount = fields.get("seat_count") or 1
            taken = session.execute(
                update(Trip)
                .where(Trip.id == trip.id, Trip.available_seats >= seatCount)
                .values(available_seats=Trip.available_seats - seatCount)
                .execution_options(synchronize_session=False)
            )
            if taken.rowcount != 1:
                session.rollback()
                raise exceptions.InsufficientSeats()

            if fields.get("customer_id") is None and customer is not None:
                fields["customer_id"] = self.customerFor(session, customer).id

            if fields.get("total_price") is None:
                fields["total_price"] = trip.price * seatCount
            fields = {key: value for key, value in fields.items() if value is not None}
            fields["seat_count"] = seatCount
            fields["vendor_id"] = trip.vendor_id

            booking = Booking(**fields)
            session.add(booking)
            session.commit()
            session.refresh(booking)
            return booking

    def updateBookingStatus(self, id: int, status: str) -> Optional[Booking]:
        """
        Set the booking status. Cancelling a booking that still holds seats
        returns them to the trip in the same transaction.

        The status only moves from the value read under the row lock, so two
        concurrent changes cannot both act on the same old status. The one
        that loses gets the booking back as the winner left it.

        Raises:
            exceptions.InvalidStateTransition: If a concurrent change moved
                the booking to a different status first.
        """
        with self.sessionMaker() as session:
            booking = (
                session.query(Booking)
                .filter(Booking.id == id)
                .with_for_update()
                .first()
            )
            if booking is None:
                return None
            if booking.status == status:
                return booking

            previous = booking.status
            moved = session.execute(
                update(Booking)
                .where(Booking.id == id, Booking.status == previous)
                .values(status=status, updated_on=func.now())
                .execution_options(synchronize_session=False)
            )
            if moved.rowcount != 1:
                session.rollback()
                booking = session.get(Booking, id, populate_existing=True)
                if booking is None:
                    return None
                if booking.status != status:
                    raise exceptions.InvalidStateTransition(Booking.status)
                return booking

            if (
                status == BookingStatus.CANCELLED.value
                and previous in SEAT_HOLDING_STATUSES
            ):
                session.execute(
                    update(Trip)
                    .where(Trip.id == booking.trip_id)
                    .values(available_seats=Trip.available_seats + booking.seat_count)
                    .execution_options(synchronize_session=False)
                )

            session.commit()
            session.refresh(booking)
            return booking

    def recentBookings(
        self, vendorId: int, limit: int = DEFAULT_DASHBOARD_LIMIT
    ) -> List[Booking]:
        """Bookings of the vendor, most recent `booking_date` first."""
        with self.sessionMaker() as session:
            return (
                session.query(Booking)
                .filter(Booking.vendor_id == vendorId)
                .order_by(Booking.booking_date.desc(), Booking.id.desc())
                .limit(limit)
                .all()
            )

    # ----------------------------------- Payments --------------------------------------------#
    def getPayment(self, id: int) -> Optional[Payment]:
        return self.get(Payment, id)

    def getPaymentsByVendor(self, vendorId: int, **filters) -> List[Payment]:
        return self.listByVendor(Payment, vendorId, **filters)

    def createPayment(self, **fields) -> Optional[Payment]:
        """
        Record a payment against a booking. The payment inherits the
        booking's `vendor_id`; `amount` defaults to the booking total.

        Returns:
            The stored payment, or None if the booking does not exist.
        """
        with self.sessionMaker() as session:
            booking = session.get(Booking, fields["booking_id"])
            if booking is None:
                return None

            if fields.get("amount") is None:
                fields["amount"] = booking.total_price
            fields = {key: value for key, value in fields.items() if value is not None}
            fields["vendor_id"] = booking.vendor_id

            payment = Payment(**fields)
            session.add(payment)
            session.commit()
            session.refresh(payment)
            return payment

    def updatePaymentStatus(self, id: int, status: str) -> Optional[Payment]:
        return self.update(Payment, id, {"status": status})

    # ----------------------------------- Dashboard -------------------------------------------#
    def dashboardStats(
        self, vendorId: int, now: datetime | None = None, period: int = STATS_PERIOD
    ) -> dict:
        """
        Aggregate statistics of a vendor.

        - total_passengers: seats over all bookings, any status.
        - active_trips: trips with departure_time <= now <= arrival_time.
        - revenue: amount over payments with status `completed`.
        - bookings: number of bookings, any status.
        - percent_changes: the same measures over the last `period` seconds
          compared with the `period` before it. A measure with no activity
          in the earlier window has no meaningful change and reports None.
        """
        now = toUTC(now) or datetime.now(timezone.utc)
        window = timedelta(seconds=period)

        with self.sessionMaker() as session:
            totalPassengers = (
                session.query(func.coalesce(func.sum(Booking.seat_count), 0))
                .filter(Booking.vendor_id == vendorId)
                .scalar()
            )
            bookings = (
                session.query(func.count(Booking.id))
                .filter(Booking.vendor_id == vendorId)
                .scalar()
            )
            activeTrips = (
                session.query(func.count(Trip.id))
                .filter(Trip.vendor_id == vendorId)
                .filter(Trip.departure_time <= now)
                .filter(Trip.arrival_time >= now)
                .scalar()
            )
            revenue = (
                session.query(func.coalesce(func.sum(Payment.amount), 0))
                .filter(Payment.vendor_id == vendorId)
                .filter(Payment.status == PaymentStatus.COMPLETED.value)
                .scalar()
            )

            current = self._windowStats(session, vendorId, now - window, now)
            previous = self._windowStats(session, vendorId, now - 2 * window, now - window)

        return {
            "total_passengers": int(totalPassengers),
            "active_trips": int(activeTrips),
            "revenue": float(revenue),
            "bookings": int(bookings),
            "percent_changes": {
                measure: percentChange(current[measure], previous[measure])
                for measure in current
            },
        }

    def _windowStats(
        self, session: Session, vendorId: int, start: datetime, end: datetime
    ) -> dict:
        # Activity within [start, end)
        passengers, bookings = (
            session.query(
                func.coalesce(func.sum(Booking.seat_count), 0), func.count(Booking.id)
            )
            .filter(Booking.vendor_id == vendorId)
            .filter(Booking.booking_date >= start)
            .filter(Booking.booking_date < end)
            .one()
        )
        trips = (
            session.query(func.count(Trip.id))
            .filter(Trip.vendor_id == vendorId)
            .filter(Trip.departure_time >= start)
            .filter(Trip.departure_time < end)
            .scalar()
        )
        revenue = (
            session.query(func.coalesce(func.sum(Payment.amount), 0))
            .filter(Payment.vendor_id == vendorId)
            .filter(Payment.status == PaymentStatus.COMPLETED.value)
            .filter(Payment.payment_date >= start)
            .filter(Payment.payment_date < end)
            .scalar()
        )
        return {
            "passengers": int(passengers),
            "trips": int(trips),
            "revenue": float(revenue),
            "bookings": int(bookings),
        }

    # ----------------------------------- Sessions --------------------------------------------#
    def createSession(
        self, vendorId: int, lifetime: int, clientDetails: str | None = None
    ) -> VendorSession:
        expiresAt = datetime.now(timezone.utc) + timedelta(seconds=lifetime)
        return self.create(
            VendorSession,
            vendor_id=vendorId,
            expires_at=expiresAt,
            client_details=clientDetails,
        )

    def touchSession(
        self, accessToken: str, lifetime: int, now: datetime | None = None
    ) -> Optional[VendorSession]:
        """
        Return the live session for the token and slide its expiry to
        `now + lifetime`. Missing or expired sessions give None.
        """
        now = toUTC(now) or datetime.now(timezone.utc)
        with self.sessionMaker() as session:
            vendorSession = (
                session.query(VendorSession)
                .filter(VendorSession.access_token == accessToken)
                .filter(VendorSession.expires_at > now)
                .first()
            )
            if vendorSession is None:
                return None
            vendorSession.expires_at = now + timedelta(seconds=lifetime)
            session.commit()
            return vendorSession

    def deleteSession(self, accessToken: str) -> bool:
        with self.sessionMaker() as session:
            result = session.execute(
                delete(VendorSession).where(VendorSession.access_token == accessToken)
            )
            session.commit()
            return result.rowcount > 0

    def deleteVendorSessions(self, vendorId: int, keep: str | None = None) -> int:
        """Remove every session of a vendor except the one with token `keep`."""
        with self.sessionMaker() as session:
            statement = delete(VendorSession).where(VendorSession.vendor_id == vendorId)
            if keep is not None:
                statement = statement.where(VendorSession.access_token != keep)
            result = session.execute(statement)
            session.commit()
            return result.rowcount

    def removeExpiredSessions(self, now: datetime | None = None) -> int:
        now = toUTC(now) or datetime.now(timezone.utc)
        with self.sessionMaker() as session:
            result = session.execute(
                delete(VendorSession).where(VendorSession.expires_at <= now)
            )
            session.commit()
            return result.rowcount
