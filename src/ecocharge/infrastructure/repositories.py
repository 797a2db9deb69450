# File: src/ecocharge/infrastructure/repositories.py
"""
Repository Pattern Implementation for the EcoCharge engine

1. Catalog - the in-memory store of stations, users and reviews that the
   services read from. It is owned by whoever creates it and passed to the
   services explicitly; records are replaced, never edited in place.
2. Snapshot stores - key-value persistence of full User records:
   - InMemorySnapshotStore - for testing and development
   - SQLAlchemySnapshotStore - any SQLAlchemy database URL
   - RedisSnapshotStore - Redis SET/GET
3. SnapshotMapper - converts User records to and from plain dictionaries
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Iterable, Union
from datetime import datetime, date, timezone
import json
import logging

from sqlalchemy import create_engine, Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
import redis

from ..domain.models import (
    Station, User, Booking, Review, VehicleDetails,
    UserRole, BookingStatus, PaymentMethod, to_decimal
)
from ..domain.reviews import aggregate
from ..domain.exceptions import (
    StationNotFoundError, UserNotFoundError, SnapshotStoreError
)


# ============================================================================
# CATALOG
# ============================================================================

class Catalog:
    """
    Stations, users and reviews for one session

    Lookups return the current record. Updates go through ``replace_*``,
    which swap in a new immutable record and return it.
    """

    def __init__(
        self,
        stations: Iterable[Station] = (),
        users: Iterable[User] = (),
        reviews: Iterable[Review] = ()
    ):
        self._stations: Dict[str, Station] = {}
        self._users: Dict[str, User] = {}
        self._reviews: Dict[str, List[Review]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

        for station in stations:
            self.add_station(station)
        for user in users:
            self.add_user(user)
        for review in reviews:
            self._reviews.setdefault(review.station_id, []).append(review)

        # Seeded aggregates are kept for stations the feed has no review
        # records for; otherwise they are derived from the records.
        for station_id in list(self._reviews):
            if station_id in self._stations:
                self.refresh_station_rating(station_id)

    # ------------------------------------------------------------------ stations

    @property
    def stations(self) -> List[Station]:
        return list(self._stations.values())

    def get_station(self, station_id: str) -> Station:
        station = self._stations.get(station_id)
        if station is None:
            self._logger.warning(f"Station lookup failed: {station_id}")
            raise StationNotFoundError(station_id)
        return station

    def has_station(self, station_id: str) -> bool:
        return station_id in self._stations

    def add_station(self, station: Station) -> Station:
        if station.id in self._stations:
            raise ValueError(f"Duplicate station id: {station.id}")
        self._stations[station.id] = station
        self._logger.debug(f"Added station {station.id}")
        return station

    def replace_station(self, station: Station) -> Station:
        if station.id not in self._stations:
            raise StationNotFoundError(station.id)
        self._stations[station.id] = station
        self._logger.debug(f"Replaced station {station.id}")
        return station

    def remove_station(self, station_id: str) -> Station:
        station = self.get_station(station_id)
        del self._stations[station_id]
        self._logger.debug(f"Removed station {station_id}")
        return station

    # --------------------------------------------------------------------- users

    @property
    def users(self) -> List[User]:
        return list(self._users.values())

    def get_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def find_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        return next((u for u in self._users.values() if u.email.lower() == wanted), None)

    def add_user(self, user: User) -> User:
        if user.id in self._users:
            raise ValueError(f"Duplicate user id: {user.id}")
        if self.find_user_by_email(user.email) is not None:
            raise ValueError(f"Email already registered: {user.email}")
        self._users[user.id] = user
        self._logger.debug(f"Added user {user.id}")
        return user

    def replace_user(self, user: User) -> User:
        if user.id not in self._users:
            raise UserNotFoundError(user.id)
        self._users[user.id] = user
        self._logger.debug(f"Replaced user {user.id}")
        return user

    # ------------------------------------------------------------------- reviews

    def reviews_for_station(self, station_id: str) -> List[Review]:
        return list(self._reviews.get(station_id, []))

    def add_review(self, review: Review) -> Station:
        """Append a review and return the station with refreshed aggregates"""
        self.get_station(review.station_id)
        self._reviews.setdefault(review.station_id, []).append(review)
        return self.refresh_station_rating(review.station_id)

    def merge_reviews(self, reviews: Iterable[Review]) -> List[Station]:
        """
        Add review records not yet held for their station
        Records for unknown stations are skipped. Returns the stations whose
        aggregates were refreshed.
        """
        touched: List[str] = []
        for review in reviews:
            if review.station_id not in self._stations:
                self._logger.debug(f"Skipping review {review.id} for unknown station {review.station_id}")
                continue
            held = self._reviews.setdefault(review.station_id, [])
            if any(r.id == review.id for r in held):
                continue
            held.append(review)
            if review.station_id not in touched:
                touched.append(review.station_id)
        return [self.refresh_station_rating(station_id) for station_id in touched]

    def refresh_station_rating(self, station_id: str) -> Station:
        station = self.get_station(station_id)
        summary = aggregate(self._reviews.get(station_id, []))
        updated = station.with_rating(round(summary.average, 2), summary.total)
        self._stations[station_id] = updated
        return updated

    def __len__(self) -> int:
        return len(self._stations)


# ============================================================================
# SNAPSHOT MAPPER
# ============================================================================

def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


def field_value(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Look up a snake_case key, falling back to its camelCase spelling"""
    if key in data:
        return data[key]
    return data.get(_camel(key), default)


def parse_date(value: Union[str, date]) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def parse_datetime(value: Union[str, datetime, None]) -> datetime:
    if value is None:
        return datetime.now()
    if isinstance(value, datetime):
        return value
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return datetime.fromisoformat(value)


class SnapshotMapper:
    """
    Maps User records to JSON-compatible dictionaries and back
    Reading accepts both the snake_case keys written here and the camelCase
    keys of the web client feed.
    """

    @staticmethod
    def user_to_dict(user: User) -> Dict[str, Any]:
        return user.to_dict()

    @staticmethod
    def user_from_dict(data: Dict[str, Any]) -> User:
        return User(
            id=str(data["id"]),
            name=data["name"],
            email=data["email"],
            phone=data.get("phone", ""),
            role=UserRole(data.get("role", UserRole.USER.value)),
            loyalty_points=int(field_value(data, "loyalty_points", 0)),
            bookings=tuple(SnapshotMapper.booking_from_dict(b) for b in data.get("bookings", [])),
            reviews=tuple(SnapshotMapper.review_from_dict(r) for r in data.get("reviews", []))
        )

    @staticmethod
    def booking_from_dict(data: Dict[str, Any]) -> Booking:
        vehicle = data["vehicle"]
        return Booking(
            id=str(data["id"]),
            station_id=str(field_value(data, "station_id")),
            station_name=field_value(data, "station_name", ""),
            connector_type=field_value(data, "connector_type"),
            date=parse_date(data["date"]),
            time=data["time"],
            duration_hours=to_decimal(field_value(data, "duration_hours", data.get("duration"))),
            vehicle=VehicleDetails(
                make=vehicle["make"],
                model=vehicle["model"],
                battery_size_kwh=field_value(vehicle, "battery_size_kwh", field_value(vehicle, "battery_size")),
                current_charge=field_value(vehicle, "current_charge", 50)
            ),
            total_cost=to_decimal(field_value(data, "total_cost", 0)),
            loyalty_points_earned=int(field_value(data, "loyalty_points_earned", 0)),
            status=BookingStatus(data.get("status", BookingStatus.CONFIRMED.value)),
            payment_method=PaymentMethod(field_value(data, "payment_method", PaymentMethod.CARD.value)),
            created_at=parse_datetime(field_value(data, "created_at"))
        )

    @staticmethod
    def review_from_dict(data: Dict[str, Any]) -> Review:
        return Review(
            id=str(data["id"]),
            station_id=str(field_value(data, "station_id")),
            station_name=field_value(data, "station_name", ""),
            user_id=str(field_value(data, "user_id")),
            user_name=field_value(data, "user_name", ""),
            rating=int(data["rating"]),
            comment=data["comment"],
            date=parse_date(data["date"]),
            likes=int(data.get("likes", 0))
        )


# ============================================================================
# SNAPSHOT STORES
# ============================================================================

class UserSnapshotStore(ABC):
    """Key-value store holding the latest full record of each user"""

    @abstractmethod
    def save(self, user: User) -> None:
        """Store the full user record, replacing any previous snapshot"""
        pass

    @abstractmethod
    def load(self, user_id: str) -> Optional[User]:
        """Latest snapshot of a user, or None"""
        pass

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        """Remove a snapshot; True if one existed"""
        pass


class InMemorySnapshotStore(UserSnapshotStore):
    """In-memory snapshot store for testing"""

    def __init__(self):
        self._storage: Dict[str, str] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def save(self, user: User) -> None:
        self._storage[user.id] = json.dumps(SnapshotMapper.user_to_dict(user))
        self._logger.debug(f"Saved snapshot for {user.id}")

    def load(self, user_id: str) -> Optional[User]:
        payload = self._storage.get(user_id)
        if payload is None:
            return None
        return SnapshotMapper.user_from_dict(json.loads(payload))

    def delete(self, user_id: str) -> bool:
        return self._storage.pop(user_id, None) is not None

    def count(self) -> int:
        return len(self._storage)

    def clear(self):
        """Clear all data (for testing)"""
        self._storage.clear()


Base = declarative_base()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserSnapshotModel(Base):
    """SQLAlchemy model for a user snapshot"""
    __tablename__ = 'user_snapshots'

    key = Column(String(64), primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)


class SQLAlchemySnapshotStore(UserSnapshotStore):
    """Snapshot store backed by a relational database"""

    def __init__(self, url: str = "sqlite:///:memory:", engine: Any = None):
        self.engine = engine or create_engine(url)
        Base.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(bind=self.engine)
        self._logger = logging.getLogger(self.__class__.__name__)

    def save(self, user: User) -> None:
        payload = json.dumps(SnapshotMapper.user_to_dict(user))
        session = self._session_factory()
        try:
            session.merge(UserSnapshotModel(key=user.id, payload=payload, updated_at=_utc_now()))
            session.commit()
            self._logger.debug(f"Saved snapshot for {user.id}")
        except SQLAlchemyError as e:
            session.rollback()
            self._logger.error(f"Database error saving snapshot for {user.id}: {e}")
            raise SnapshotStoreError(f"Could not save snapshot for {user.id}") from e
        finally:
            session.close()

    def load(self, user_id: str) -> Optional[User]:
        session = self._session_factory()
        try:
            model = session.get(UserSnapshotModel, user_id)
            if model is None:
                return None
            return SnapshotMapper.user_from_dict(json.loads(model.payload))
        except SQLAlchemyError as e:
            self._logger.error(f"Database error loading snapshot for {user_id}: {e}")
            raise SnapshotStoreError(f"Could not load snapshot for {user_id}") from e
        finally:
            session.close()

    def delete(self, user_id: str) -> bool:
        session = self._session_factory()
        try:
            model = session.get(UserSnapshotModel, user_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            self._logger.error(f"Database error deleting snapshot for {user_id}: {e}")
            raise SnapshotStoreError(f"Could not delete snapshot for {user_id}") from e
        finally:
            session.close()


class RedisSnapshotStore(UserSnapshotStore):
    """Snapshot store backed by Redis string keys"""

    def __init__(self, client: Any = None, redis_url: str = "redis://localhost:6379/0",
                 key_prefix: str = "ecocharge:user:"):
        self.client = client if client is not None else redis.Redis.from_url(redis_url)
        self.key_prefix = key_prefix
        self._logger = logging.getLogger(self.__class__.__name__)

    def _key(self, user_id: str) -> str:
        return f"{self.key_prefix}{user_id}"

    def save(self, user: User) -> None:
        try:
            self.client.set(self._key(user.id), json.dumps(SnapshotMapper.user_to_dict(user)))
            self._logger.debug(f"Saved snapshot for {user.id}")
        except redis.RedisError as e:
            self._logger.error(f"Redis error saving snapshot for {user.id}: {e}")
            raise SnapshotStoreError(f"Could not save snapshot for {user.id}") from e

    def load(self, user_id: str) -> Optional[User]:
        try:
            payload = self.client.get(self._key(user_id))
        except redis.RedisError as e:
            self._logger.error(f"Redis error loading snapshot for {user_id}: {e}")
            raise SnapshotStoreError(f"Could not load snapshot for {user_id}") from e
        if payload is None:
            return None
        if isinstance(payload, bytes):
            payload = payload.decode('utf-8')
        return SnapshotMapper.user_from_dict(json.loads(payload))

    def delete(self, user_id: str) -> bool:
        try:
            return bool(self.client.delete(self._key(user_id)))
        except redis.RedisError as e:
            self._logger.error(f"Redis error deleting snapshot for {user_id}: {e}")
            raise SnapshotStoreError(f"Could not delete snapshot for {user_id}") from e
