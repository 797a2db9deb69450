# File: src/ecocharge/application/admin_service.py
"""
Operator Application Service

Read side (any caller):
- usage_statistics() - station, user, booking and revenue totals
- all_bookings() - every booking flattened with its owner's name

Write side (admin users only):
- add / delete stations
- toggle a station between online and offline
- toggle a single connector's availability

Every change replaces the station record in the catalog and publishes an
event on the bus when one is configured.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, List, Dict, Any, Iterable, Sequence, Tuple
import logging

from ..domain.models import (
    Station, User, Booking, Connector, Coordinates, PeakHours,
    StationStatus, generate_id
)
from ..domain.exceptions import UnauthenticatedError, PermissionDeniedError
from ..infrastructure.messaging import EventBus, DomainEvent, EventType


@dataclass(frozen=True)
class UsageStatistics:
    total_stations: int
    online_stations: int
    total_users: int
    total_bookings: int
    total_revenue: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_stations": self.total_stations,
            "online_stations": self.online_stations,
            "total_users": self.total_users,
            "total_bookings": self.total_bookings,
            "total_revenue": float(self.total_revenue)
        }


@dataclass(frozen=True)
class BookingView:
    """A booking together with the name of the user who made it"""
    booking: Booking
    user_id: str
    user_name: str

    def to_dict(self) -> Dict[str, Any]:
        data = self.booking.to_dict()
        data["user_id"] = self.user_id
        data["user_name"] = self.user_name
        return data


def usage_statistics(stations: Iterable[Station], users: Iterable[User]) -> UsageStatistics:
    stations = list(stations)
    users = list(users)
    bookings = [b for u in users for b in u.bookings]
    return UsageStatistics(
        total_stations=len(stations),
        online_stations=sum(1 for s in stations if s.status == StationStatus.ONLINE),
        total_users=len(users),
        total_bookings=len(bookings),
        total_revenue=sum((b.total_cost for b in bookings), Decimal('0'))
    )


def all_bookings(users: Iterable[User]) -> List[BookingView]:
    """Bookings of every user, grouped by user in catalog order"""
    return [
        BookingView(booking=b, user_id=u.id, user_name=u.name)
        for u in users
        for b in u.bookings
    ]


@dataclass
class NewStation:
    """Details an operator supplies for a station; the rest use defaults"""
    name: str
    address: str
    coordinates: Tuple[float, float] = (0.0, 0.0)
    connectors: Sequence[Connector] = field(default_factory=tuple)
    amenities: Sequence[str] = field(default_factory=tuple)
    operating_hours: str = "24/7"
    loyalty_points: int = 5
    peak_hours: Optional[PeakHours] = None


class AdminService:
    """Station management for operator accounts"""

    def __init__(self, catalog, event_bus: Optional[EventBus] = None):
        self.catalog = catalog
        self.event_bus = event_bus
        self.logger = logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------ reading

    def statistics(self) -> UsageStatistics:
        return usage_statistics(self.catalog.stations, self.catalog.users)

    def bookings(self) -> List[BookingView]:
        return all_bookings(self.catalog.users)

    # ------------------------------------------------------------------ writing

    def add_station(self, admin: Optional[User], details: NewStation) -> Station:
        self._require_admin(admin, "add stations")
        latitude, longitude = details.coordinates
        station = Station(
            id=generate_id("station"),
            name=details.name.strip(),
            address=details.address.strip(),
            coordinates=Coordinates(latitude, longitude),
            connectors=tuple(details.connectors),
            amenities=tuple(details.amenities),
            operating_hours=details.operating_hours,
            status=StationStatus.ONLINE,
            loyalty_points=details.loyalty_points,
            peak_hours=details.peak_hours
        )
        self.catalog.add_station(station)
        self.logger.info(f"Admin {admin.id} added station {station.id} ({station.name})")
        self._publish(EventType.STATION_ADDED, station.id, {"name": station.name})
        return station

    def delete_station(self, admin: Optional[User], station_id: str) -> Station:
        self._require_admin(admin, "delete stations")
        station = self.catalog.remove_station(station_id)
        self.logger.info(f"Admin {admin.id} deleted station {station_id}")
        self._publish(EventType.STATION_REMOVED, station_id, {"name": station.name})
        return station

    def toggle_station_status(self, admin: Optional[User], station_id: str) -> Station:
        """Online stations go offline; any other status goes online"""
        self._require_admin(admin, "change station status")
        station = self.catalog.get_station(station_id)
        new_status = StationStatus.OFFLINE if station.status == StationStatus.ONLINE else StationStatus.ONLINE
        updated = self.catalog.replace_station(station.with_status(new_status))
        self.logger.info(f"Station {station_id} status {station.status.value} -> {new_status.value}")
        self._publish(
            EventType.STATION_STATUS_CHANGED,
            station_id,
            {"from": station.status.value, "to": new_status.value}
        )
        return updated

    def toggle_connector(self, admin: Optional[User], station_id: str, index: int) -> Station:
        self._require_admin(admin, "change connector availability")
        station = self.catalog.get_station(station_id)
        available = not station.connector_at(index).available
        updated = self.catalog.replace_station(station.with_connector_availability(index, available))
        self.logger.info(f"Station {station_id} connector {index} available={available}")
        self._publish(
            EventType.CONNECTOR_AVAILABILITY_CHANGED,
            station_id,
            {"index": index, "available": available}
        )
        return updated

    # ------------------------------------------------------------------ helpers

    def _require_admin(self, user: Optional[User], action: str) -> None:
        if user is None:
            raise UnauthenticatedError(f"Please login to {action}")
        if not user.is_admin:
            self.logger.warning(f"User {user.id} attempted to {action} without admin role")
            raise PermissionDeniedError(f"Only administrators can {action}")

    def _publish(self, event_type: EventType, aggregate_id: str, data: Dict[str, Any]) -> None:
        if self.event_bus is None:
            return
        try:
            self.event_bus.publish(DomainEvent(event_type=event_type, aggregate_id=aggregate_id, data=data))
        except Exception as e:
            self.logger.error(f"Event {event_type.value} for {aggregate_id} was not fully delivered: {e}")
