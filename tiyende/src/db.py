from secrets import token_hex
from sqlalchemy import (
    TEXT,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    func,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from tiyende.src.enums import BookingStatus, PaymentStatus, TripStatus


ORMbase = declarative_base()


def isMemoryURL(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def makeEngine(url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine for the given database URL.

    In-memory SQLite databases ("sqlite://" or "sqlite:///:memory:") are
    bound to a single shared connection so every ORM session sees the same
    data, which is what the test-suite and local demos rely on.

    Args:
        url (str): SQLAlchemy database URL.
        echo (bool): Log emitted SQL statements.

    Returns:
        Engine: The configured engine.
    """
    if isMemoryURL(url):
        return create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url=url, echo=echo)


# ----------------------------------- Account DB Models ---------------------------------------#
class Vendor(ORMbase):
    """
    Represents a vendor account, the holder of a transport business on the platform.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the vendor.

        username (String(32)):
            Unique login name.
            It should start with an alphabet (uppercase or lowercase).
            It should be 4-32 characters long.
            May include hyphen (-), period (.), at symbol (@), and underscore (_).

        password (TEXT):
            Argon2 hash of the password. Plaintext is never stored here.

        name (TEXT):
            Display name of the vendor.

        email (String(256)):
            Contact email address. Must be unique across vendors.

        phone (TEXT):
            Optional contact number, saved in RFC3966 format.

        company_name (TEXT):
            Optional name of the bus company operated by the vendor.

        address (TEXT), city (TEXT):
            Optional postal details.

        profile_image (TEXT):
            Optional avatar reference (URL).

        updated_on (DateTime):
            Timestamp of the last profile or credential change.

        created_on (DateTime):
            Timestamp of when the vendor account was created.
    """

    __tablename__ = "vendor"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    username = Column(String(32), nullable=False, unique=True)
    password = Column(TEXT, nullable=False)
    name = Column(TEXT, nullable=False)
    email = Column(String(256), nullable=False, unique=True)
    # Contact details
    phone = Column(TEXT)
    company_name = Column(TEXT)
    address = Column(TEXT)
    city = Column(TEXT)
    profile_image = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class VendorSession(ORMbase):
    """
    Represents a server-side login session of a vendor.

    The opaque `access_token` travels to the client as a cookie; everything
    else stays on the server. A session is alive while `expires_at` is in
    the future and every authenticated request slides `expires_at` forward
    by the inactivity window.

    Columns:
        id (Integer):
            Primary key. Unique identifier for this session record.

        vendor_id (Integer):
            Foreign key referencing `vendor.id`.
            Cascades on delete, removing a vendor removes its sessions.

        access_token (String(64)):
            Unique, securely generated 64-character hexadecimal token.

        expires_at (DateTime):
            Date and time after which the session becomes invalid.

        client_details (TEXT):
            Optional description of the client (user agent).
            Maximum 1024 characters long.

        updated_on (DateTime):
            Timestamp of the last activity on this session.

        created_on (DateTime):
            Timestamp of when the session was opened.
    """

    __tablename__ = "vendor_session"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    vendor_id = Column(
        Integer,
        ForeignKey("vendor.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    access_token = Column(
        String(64), unique=True, nullable=False, default=lambda: token_hex(32)
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    client_details = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Fleet DB Models -----------------------------------------#
class Route(ORMbase):
    """
    Represents a fixed origin to destination path owned by a vendor.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the route.

        vendor_id (Integer):
            Foreign key referencing the vendor that owns the route.
            A route belongs to exactly one vendor for its lifetime.

        origin (TEXT), destination (TEXT):
            Names of the starting and ending places.

        distance (Float):
            Optional length of the route in kilometres.

        duration (Integer):
            Optional travel time in minutes.

        price (Float):
            Default fare of the route. Must be non-negative.

        is_active (Boolean):
            Whether the route is offered. Defaults to true.

        has_stops (Boolean):
            Whether intermediate stops are defined. Maintained by the storage
            whenever the stop list is replaced.

        updated_on (DateTime), created_on (DateTime):
            Metadata timestamps.
    """

    __tablename__ = "route"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    vendor_id = Column(
        Integer, ForeignKey("vendor.id"), nullable=False, index=True
    )
    origin = Column(TEXT, nullable=False)
    destination = Column(TEXT, nullable=False)
    distance = Column(Float)
    duration = Column(Integer)
    price = Column(Float, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    has_stops = Column(Boolean, nullable=False, default=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class RouteStop(ORMbase):
    """
    Represents an ordered waypoint on a route.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the stop.

        route_id (Integer):
            Foreign key referencing the associated route.
            Deletion of the route cascades to its stops.

        name (TEXT):
            Name of the stop.

        distance_from_origin (Float):
            Distance in kilometres from the origin of the route.
            Strictly increases with `order` within a route.

        order (Integer):
            1-based position of the stop. Must be unique per route.

        created_on (DateTime):
            Timestamp indicating when the stop was created.
    """

    __tablename__ = "route_stop"
    __table_args__ = (
        UniqueConstraint("route_id", "order"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True)
    route_id = Column(
        Integer, ForeignKey("route.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(TEXT, nullable=False)
    distance_from_origin = Column(Float, nullable=False)
    order = Column(Integer, nullable=False)
    # Metadata
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Bus(ORMbase):
    """
    Represents a vehicle in a vendor's fleet.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the bus.

        vendor_id (Integer):
            Foreign key referencing the vendor that owns the bus.

        name (String(32)):
            Display name or label for the bus.

        registration_number (String(16)):
            Vehicle registration number.

        capacity (Integer):
            Seating capacity of the bus. Must be greater than zero.

        type (TEXT):
            Optional class label, eg: Standard, Executive, Luxury.

        is_active (Boolean):
            Whether the bus is in service. Defaults to true.

        updated_on (DateTime), created_on (DateTime):
            Metadata timestamps.
    """

    __tablename__ = "bus"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    vendor_id = Column(
        Integer, ForeignKey("vendor.id"), nullable=False, index=True
    )
    name = Column(String(32), nullable=False)
    registration_number = Column(String(16), nullable=False, index=True)
    capacity = Column(Integer, nullable=False)
    type = Column(TEXT)
    is_active = Column(Boolean, nullable=False, default=True)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Trip(ORMbase):
    """
    Represents a scheduled journey of a bus over a route.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the trip.

        vendor_id (Integer):
            Foreign key referencing the vendor that operates the trip.

        route_id (Integer), bus_id (Integer):
            Foreign keys referencing the route travelled and the bus used.
            Both must belong to the same vendor as the trip.

        departure_time (DateTime), arrival_time (DateTime):
            Schedule of the trip. Arrival must be after departure.

        status (String(16)):
            Lifecycle status, mapped from the `TripStatus` enum.
            Defaults to `TripStatus.SCHEDULED`.

        available_seats (Integer):
            Seats still open for booking. Never exceeds the bus capacity.
            Decremented by bookings and restored by their cancellation.

        price (Float):
            Fare per seat for this trip.

        updated_on (DateTime), created_on (DateTime):
            Metadata timestamps.
    """

    __tablename__ = "trip"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    vendor_id = Column(
        Integer, ForeignKey("vendor.id"), nullable=False, index=True
    )
    route_id = Column(Integer, ForeignKey("route.id"), nullable=False)
    bus_id = Column(Integer, ForeignKey("bus.id"), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False, index=True)
    arrival_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(16), nullable=False, default=TripStatus.SCHEDULED.value)
    available_seats = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Sales DB Models -----------------------------------------#
class Customer(ORMbase):
    """
    Represents an end buyer. Customers are shared across vendors and their
    email is not unique; lookups by email return the first match.
    """

    __tablename__ = "customer"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    name = Column(TEXT, nullable=False)
    email = Column(String(256), nullable=False, index=True)
    phone = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Booking(ORMbase):
    """
    Represents a customer's reservation of seats on a trip.

    Columns:
        vendor_id (Integer):
            Copied from the trip at creation time for query convenience.
            Not re-derived if the trip changes afterwards.

        seat_count (Integer):
            Number of reserved seats. Defaults to 1.

        status (String(16)):
            Lifecycle status, mapped from the `BookingStatus` enum.

        total_price (Float):
            Amount due for the booking.

        booking_date (DateTime):
            When the reservation was made. Used for recency ordering.
    """

    __tablename__ = "booking"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    trip_id = Column(Integer, ForeignKey("trip.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customer.id"), nullable=False)
    vendor_id = Column(
        Integer, ForeignKey("vendor.id"), nullable=False, index=True
    )
    seat_count = Column(Integer, nullable=False, default=1)
    status = Column(String(16), nullable=False, default=BookingStatus.PENDING.value)
    total_price = Column(Float, nullable=False)
    booking_date = Column(DateTime(timezone=True), nullable=False, default=func.now())
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Payment(ORMbase):
    """
    Represents a monetary transaction settling a booking.

    Columns:
        vendor_id (Integer):
            Copied from the booking at creation time.

        payment_method (String(16)):
            Mapped from the `PaymentMethod` enum.

        status (String(16)):
            Lifecycle status, mapped from the `PaymentStatus` enum.
            Only `completed` payments count towards revenue.

        transaction_id (TEXT):
            Optional reference issued by the external payment provider.
    """

    __tablename__ = "payment"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("booking.id"), nullable=False, index=True)
    vendor_id = Column(
        Integer, ForeignKey("vendor.id"), nullable=False, index=True
    )
    amount = Column(Float, nullable=False)
    payment_method = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value)
    transaction_id = Column(TEXT)
    payment_date = Column(DateTime(timezone=True), nullable=False, default=func.now())
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())
