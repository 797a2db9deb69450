# File: src/ecocharge/infrastructure/factories.py
"""
Factory Pattern Implementation for the EcoCharge engine

1. CatalogLoader - builds a Catalog from the station/user JSON feed
2. SnapshotStoreFactory - picks a snapshot store from a URL
3. ServiceFactory - wires the application services from one EngineConfig

The feed uses the camelCase keys of the web client (``operatingHours``,
``loyaltyPoints``, ``peakHours`` ...). snake_case keys are accepted too,
so snapshots written by this package load back through the same code.
"""

from typing import Optional, Dict, List, Any, Union
from pathlib import Path
import json
import logging

from ..config import EngineConfig
from ..domain.models import (
    Station, Review, Connector, Coordinates, PeakHours, StationStatus
)
from ..domain.strategies import PricingCalculator
from .repositories import (
    Catalog, UserSnapshotStore, InMemorySnapshotStore,
    SQLAlchemySnapshotStore, RedisSnapshotStore, SnapshotMapper, field_value
)
from .messaging import EventBus


logger = logging.getLogger(__name__)


def _review_count(data: Dict[str, Any]) -> int:
    count = field_value(data, "review_count", data.get("reviews", 0))
    if isinstance(count, list):
        return len(count)
    return int(count or 0)


# ============================================================================
# CATALOG LOADER
# ============================================================================

class CatalogLoader:
    """
    Builds domain records from the JSON feed

    Accepted shapes:
    - {"stations": [...], "users": [...], "reviews": [...]} (users and
      reviews optional)
    - a bare list of stations

    Review records are collected from the top-level "reviews" list and from
    each user's "reviews"; a station with review records gets its rating and
    review count recomputed from them. Password fields are ignored.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    # ---------------------------------------------------------------- sources

    def from_json_file(self, path: Union[str, Path]) -> Catalog:
        path = Path(path)
        self.logger.info(f"Loading catalog from {path}")
        with path.open(encoding='utf-8') as fh:
            return self.from_dict(json.load(fh))

    def from_json_files(self, stations_path: Union[str, Path],
                        users_path: Optional[Union[str, Path]] = None) -> Catalog:
        """Load stations and users kept in separate files"""
        with Path(stations_path).open(encoding='utf-8') as fh:
            stations = json.load(fh)
        users: List[Dict[str, Any]] = []
        if users_path is not None:
            with Path(users_path).open(encoding='utf-8') as fh:
                users = json.load(fh)
        return self.from_dict({"stations": stations, "users": users})

    def from_dict(self, data: Union[Dict[str, Any], List[Dict[str, Any]]]) -> Catalog:
        if isinstance(data, list):
            data = {"stations": data}

        stations = [self.station_from_dict(s) for s in data.get("stations", [])]
        users = [self.user_from_dict(u) for u in data.get("users", [])]

        reviews: Dict[str, Review] = {}
        for review in (self.review_from_dict(r) for r in data.get("reviews", [])):
            reviews.setdefault(review.id, review)
        for user in users:
            for review in user.reviews:
                reviews.setdefault(review.id, review)

        catalog = Catalog(stations=stations, users=users, reviews=reviews.values())
        self.logger.info(
            f"Catalog loaded: {len(stations)} stations, {len(users)} users, {len(reviews)} reviews"
        )
        return catalog

    # ---------------------------------------------------------------- records

    @staticmethod
    def station_from_dict(data: Dict[str, Any]) -> Station:
        coordinates = field_value(data, "coordinates", [0.0, 0.0])
        if isinstance(coordinates, dict):
            coordinates = [coordinates.get("latitude", coordinates.get("lat")),
                           coordinates.get("longitude", coordinates.get("lng"))]
        peak = field_value(data, "peak_hours")
        return Station(
            id=str(data["id"]),
            name=data["name"],
            address=data.get("address", ""),
            coordinates=Coordinates(float(coordinates[0]), float(coordinates[1])),
            connectors=tuple(CatalogLoader.connector_from_dict(c) for c in data.get("connectors", [])),
            amenities=tuple(data.get("amenities", [])),
            operating_hours=field_value(data, "operating_hours", "24/7"),
            status=StationStatus(data.get("status", StationStatus.ONLINE.value)),
            rating=float(data.get("rating", 0.0)),
            review_count=_review_count(data),
            loyalty_points=int(field_value(data, "loyalty_points", 5)),
            peak_hours=PeakHours(peak["start"], peak["end"], peak["multiplier"]) if peak else None
        )

    @staticmethod
    def connector_from_dict(data: Dict[str, Any]) -> Connector:
        return Connector(
            type=data["type"],
            power=str(data.get("power", "")),
            price=data["price"],
            available=bool(data.get("available", True))
        )

    user_from_dict = staticmethod(SnapshotMapper.user_from_dict)
    booking_from_dict = staticmethod(SnapshotMapper.booking_from_dict)
    review_from_dict = staticmethod(SnapshotMapper.review_from_dict)


# ============================================================================
# SNAPSHOT STORE FACTORY
# ============================================================================

class SnapshotStoreFactory:
    """Creates the snapshot store named by a URL"""

    MEMORY_SCHEME = "memory://"
    REDIS_SCHEMES = ("redis://", "rediss://", "unix://")

    @classmethod
    def from_url(cls, url: Optional[str]) -> UserSnapshotStore:
        """
        memory:// (or empty) - InMemorySnapshotStore
        redis://, rediss://, unix:// - RedisSnapshotStore
        anything else - SQLAlchemySnapshotStore (e.g. sqlite:///ecocharge.db)
        """
        if not url or url == cls.MEMORY_SCHEME:
            logger.debug("Using in-memory snapshot store")
            return InMemorySnapshotStore()
        if url.startswith(cls.REDIS_SCHEMES):
            logger.debug("Using Redis snapshot store")
            return RedisSnapshotStore(redis_url=url)
        logger.debug("Using SQLAlchemy snapshot store")
        return SQLAlchemySnapshotStore(url)


# ============================================================================
# SERVICE FACTORY
# ============================================================================

class ServiceFactory:
    """Factory for creating application services"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    @classmethod
    def create_with_config(cls, config: Dict[str, Any]) -> 'ServiceFactory':
        return cls(EngineConfig.from_dict(config))

    def create_pricing_calculator(self) -> PricingCalculator:
        return PricingCalculator(self.config.loyalty_points_per_currency_unit)

    def create_booking_service(self):
        from ..application.booking_service import BookingService
        return BookingService(self.config, calculator=self.create_pricing_calculator())

    def create_review_service(self):
        from ..application.review_service import ReviewService
        return ReviewService()

    def create_catalog(self, catalog_path: Optional[str] = None) -> Catalog:
        path = catalog_path or self.config.catalog_path
        if path is None:
            return Catalog()
        return CatalogLoader().from_json_file(path)

    def create_snapshot_store(self) -> UserSnapshotStore:
        return SnapshotStoreFactory.from_url(self.config.snapshot_url)

    def create_account_session(
        self,
        catalog: Optional[Catalog] = None,
        snapshot_store: Optional[UserSnapshotStore] = None,
        event_bus: Optional[EventBus] = None
    ):
        from ..application.account import AccountSession
        return AccountSession(
            catalog if catalog is not None else self.create_catalog(),
            snapshot_store=snapshot_store or self.create_snapshot_store(),
            event_bus=event_bus or EventBus(),
            config=self.config,
            booking_service=self.create_booking_service(),
            review_service=self.create_review_service()
        )
