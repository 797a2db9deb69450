# File: src/ecocharge/domain/models.py
"""
Domain Models for the EcoCharge Reservation & Pricing Engine

This module contains:
1. Value Objects: Coordinates, PeakHours, Connector, VehicleDetails
2. Records: Station, User, Booking, Review
3. Enums: Station status, user role, booking status, payment method
4. Utility functions: time slot generation, identifier generation

All records are immutable. State changes produce a new record through the
``with_*`` methods, so a caller holding an older record never observes a
half-applied update.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from enum import Enum
import re
import uuid


TIME_OF_DAY_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def to_decimal(value: Any) -> Decimal:
    """Convert int/float/str/Decimal to Decimal without float artifacts"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None


def is_time_of_day(value: Optional[str]) -> bool:
    """True for zero-padded 24h "HH:MM" strings"""
    return bool(value) and TIME_OF_DAY_PATTERN.match(value) is not None


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class StationStatus(Enum):
    """Operational status of a charging station"""
    ONLINE = "online"
    MAINTENANCE = "maintenance"
    OFFLINE = "offline"

    def __str__(self) -> str:
        return self.value.title()


class UserRole(Enum):
    """Account role"""
    USER = "user"
    ADMIN = "admin"


class BookingStatus(Enum):
    """
    Booking lifecycle status
    The engine only ever creates CONFIRMED bookings; the other states are
    set by administrative flows outside this package.
    """
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    """Payment method recorded on a booking (no payment is processed)"""
    CARD = "card"
    WALLET = "wallet"


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class Coordinates:
    """Value Object: geographic position of a station"""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude must be between -90 and 90: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude must be between -180 and 180: {self.longitude}")

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class PeakHours:
    """
    Value Object: time-of-day window during which a price multiplier applies

    Bounds are zero-padded "HH:MM" strings, so plain string comparison
    orders them chronologically. Both bounds are inclusive.
    """
    start: str
    end: str
    multiplier: Decimal

    def __post_init__(self):
        if not is_time_of_day(self.start):
            raise ValueError(f"Peak start must be HH:MM, got: {self.start!r}")
        if not is_time_of_day(self.end):
            raise ValueError(f"Peak end must be HH:MM, got: {self.end!r}")

        multiplier = to_decimal(self.multiplier)
        if multiplier < Decimal('1'):
            raise ValueError(f"Peak multiplier must be at least 1, got: {multiplier}")
        object.__setattr__(self, 'multiplier', multiplier)

    def contains(self, time_of_day: Optional[str]) -> bool:
        """Check if a "HH:MM" time falls inside the window"""
        if not time_of_day:
            return False
        return self.start <= time_of_day <= self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "multiplier": float(self.multiplier)
        }


@dataclass(frozen=True)
class Connector:
    """
    Value Object: a charging port at a station
    ``available`` is the only field that changes, and only via an admin toggle.
    """
    type: str
    power: str
    price: Decimal
    available: bool = True

    def __post_init__(self):
        if not self.type or not self.type.strip():
            raise ValueError("Connector type cannot be empty")

        price = to_decimal(self.price)
        if price <= Decimal('0'):
            raise ValueError(f"Connector price must be positive, got: {price}")
        object.__setattr__(self, 'price', price)

    def with_availability(self, available: bool) -> 'Connector':
        return replace(self, available=available)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "power": self.power,
            "price": float(self.price),
            "available": self.available
        }


@dataclass(frozen=True)
class VehicleDetails:
    """Value Object: the vehicle a session is booked for"""
    make: str
    model: str
    battery_size_kwh: Decimal
    current_charge: Decimal

    def __post_init__(self):
        if not self.make or not self.make.strip():
            raise ValueError("Vehicle make cannot be empty")
        if not self.model or not self.model.strip():
            raise ValueError("Vehicle model cannot be empty")

        battery = to_decimal(self.battery_size_kwh)
        if battery <= Decimal('0'):
            raise ValueError(f"Battery size must be positive, got: {battery}")
        charge = to_decimal(self.current_charge)
        if not Decimal('0') <= charge <= Decimal('100'):
            raise ValueError(f"Current charge must be between 0 and 100, got: {charge}")

        object.__setattr__(self, 'battery_size_kwh', battery)
        object.__setattr__(self, 'current_charge', charge)

    @property
    def description(self) -> str:
        return f"{self.make} {self.model} ({self.battery_size_kwh} kWh)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "make": self.make,
            "model": self.model,
            "battery_size_kwh": str(self.battery_size_kwh),
            "current_charge": str(self.current_charge)
        }


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True)
class Booking:
    """
    A committed charging session reservation
    Never changed by the engine after it is created.
    """
    id: str
    station_id: str
    station_name: str
    connector_type: str
    date: date
    time: str
    duration_hours: Decimal
    vehicle: VehicleDetails
    total_cost: Decimal
    loyalty_points_earned: int
    status: BookingStatus = BookingStatus.CONFIRMED
    payment_method: PaymentMethod = PaymentMethod.CARD
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.total_cost < Decimal('0'):
            raise ValueError("Booking total cost cannot be negative")
        if self.loyalty_points_earned < 0:
            raise ValueError("Loyalty points earned cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "station_name": self.station_name,
            "connector_type": self.connector_type,
            "date": self.date.isoformat(),
            "time": self.time,
            "duration_hours": str(self.duration_hours),
            "vehicle": self.vehicle.to_dict(),
            "total_cost": str(self.total_cost),
            "loyalty_points_earned": self.loyalty_points_earned,
            "status": self.status.value,
            "payment_method": self.payment_method.value,
            "created_at": self.created_at.isoformat()
        }


@dataclass(frozen=True)
class Review:
    """A user's rating and comment for one station"""
    id: str
    station_id: str
    station_name: str
    user_id: str
    user_name: str
    rating: int
    comment: str
    date: date
    likes: int = 0

    def __post_init__(self):
        if isinstance(self.rating, bool) or not isinstance(self.rating, int) or not 1 <= self.rating <= 5:
            raise ValueError(f"Rating must be an integer from 1 to 5, got: {self.rating!r}")
        if not self.comment or not self.comment.strip():
            raise ValueError("Review comment cannot be empty")
        if self.likes < 0:
            raise ValueError("Likes cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "station_name": self.station_name,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "rating": self.rating,
            "comment": self.comment,
            "date": self.date.isoformat(),
            "likes": self.likes
        }


@dataclass(frozen=True)
class Station:
    """
    A charging station with its connectors

    ``rating`` and ``review_count`` are cached aggregates of the station's
    reviews; they are refreshed by the catalog when a review is added.
    """
    id: str
    name: str
    address: str
    coordinates: Coordinates
    connectors: Tuple[Connector, ...] = ()
    amenities: Tuple[str, ...] = ()
    operating_hours: str = "24/7"
    status: StationStatus = StationStatus.ONLINE
    rating: float = 0.0
    review_count: int = 0
    loyalty_points: int = 5
    peak_hours: Optional[PeakHours] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Station id cannot be empty")
        if not self.name or not self.name.strip():
            raise ValueError("Station name cannot be empty")
        if not 0 <= self.rating <= 5:
            raise ValueError(f"Station rating must be between 0 and 5, got: {self.rating}")
        if self.review_count < 0:
            raise ValueError("Review count cannot be negative")

        # Accept lists from callers but store tuples
        object.__setattr__(self, 'connectors', tuple(self.connectors))
        object.__setattr__(self, 'amenities', tuple(self.amenities))

    @property
    def available_connectors(self) -> Tuple[Connector, ...]:
        return tuple(c for c in self.connectors if c.available)

    def find_connector(self, connector_type: str) -> Optional[Connector]:
        """First connector of the given type, available or not"""
        return next((c for c in self.connectors if c.type == connector_type), None)

    def find_available_connector(self, connector_type: str) -> Optional[Connector]:
        return next(
            (c for c in self.connectors if c.type == connector_type and c.available),
            None
        )

    def has_amenity(self, amenity: str) -> bool:
        return amenity in self.amenities

    def with_status(self, status: StationStatus) -> 'Station':
        return replace(self, status=status)

    def connector_at(self, index: int) -> Connector:
        if not 0 <= index < len(self.connectors):
            raise IndexError(f"Station {self.id} has no connector at index {index}")
        return self.connectors[index]

    def with_connector_availability(self, index: int, available: bool) -> 'Station':
        """Return a copy with connector ``index`` set to ``available``"""
        connector = self.connector_at(index)
        connectors = list(self.connectors)
        connectors[index] = connector.with_availability(available)
        return replace(self, connectors=tuple(connectors))

    def with_rating(self, rating: float, review_count: int) -> 'Station':
        return replace(self, rating=rating, review_count=review_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "coordinates": list(self.coordinates.as_tuple()),
            "connectors": [c.to_dict() for c in self.connectors],
            "amenities": list(self.amenities),
            "operating_hours": self.operating_hours,
            "status": self.status.value,
            "rating": self.rating,
            "review_count": self.review_count,
            "loyalty_points": self.loyalty_points,
            "peak_hours": self.peak_hours.to_dict() if self.peak_hours else None
        }

    def __str__(self) -> str:
        return f"{self.name} ({self.status}) - {len(self.available_connectors)}/{len(self.connectors)} available"


@dataclass(frozen=True)
class User:
    """
    An account holder

    Bookings and reviews are append-only; the loyalty balance only grows
    inside this package (redemption is handled elsewhere).
    """
    id: str
    name: str
    email: str
    phone: str = ""
    role: UserRole = UserRole.USER
    loyalty_points: int = 0
    bookings: Tuple[Booking, ...] = ()
    reviews: Tuple[Review, ...] = ()

    def __post_init__(self):
        if not self.id:
            raise ValueError("User id cannot be empty")
        if not self.email or '@' not in self.email:
            raise ValueError(f"Invalid email address: {self.email!r}")
        if self.loyalty_points < 0:
            raise ValueError("Loyalty points cannot be negative")

        object.__setattr__(self, 'bookings', tuple(self.bookings))
        object.__setattr__(self, 'reviews', tuple(self.reviews))

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def total_spent(self) -> Decimal:
        return sum((b.total_cost for b in self.bookings), Decimal('0'))

    def with_booking(self, booking: Booking) -> 'User':
        """
        Append a booking and credit its loyalty points in one replacement
        The returned user carries both changes or, if construction fails,
        neither does.
        """
        return replace(
            self,
            bookings=self.bookings + (booking,),
            loyalty_points=self.loyalty_points + booking.loyalty_points_earned
        )

    def with_review(self, review: Review) -> 'User':
        return replace(self, reviews=self.reviews + (review,))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role.value,
            "loyalty_points": self.loyalty_points,
            "bookings": [b.to_dict() for b in self.bookings],
            "reviews": [r.to_dict() for r in self.reviews]
        }

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email})"


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def generate_id(prefix: str) -> str:
    """Random unique identifier such as ``booking-3f0c...``"""
    return f"{prefix}-{uuid.uuid4().hex}"


def generate_time_slots(
    first_hour: int = 6,
    last_hour: int = 22,
    step_minutes: int = 30
) -> List[str]:
    """
    Generate bookable "HH:MM" start times
    Every hour from first_hour to last_hour inclusive gets a slot at each
    step, so the defaults yield 06:00, 06:30, ... 22:30.
    """
    if step_minutes <= 0 or 60 % step_minutes:
        raise ValueError(f"Slot step must divide an hour, got: {step_minutes}")

    slots = []
    for hour in range(first_hour, last_hour + 1):
        for minute in range(0, 60, step_minutes):
            slots.append(f"{hour:02d}:{minute:02d}")
    return slots
