# File: src/ecocharge/domain/search.py
"""
Station filtering

Each active criterion becomes one predicate over a station; a station is
kept only when every predicate holds. A criterion left empty contributes no
predicate, so empty criteria keep the whole catalog. Filtering is stable:
the result lists stations in catalog order.
"""

from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional
from decimal import Decimal
from enum import Enum
import logging

from .models import Station, StationStatus


LOW_PRICE_CEILING = Decimal('10')
MEDIUM_PRICE_CEILING = Decimal('15')

StationPredicate = Callable[[Station], bool]

logger = logging.getLogger(__name__)


class PriceRange(Enum):
    """Per-kWh price bands used by the station finder"""
    LOW = "low"        # price <= 10
    MEDIUM = "medium"  # 10 < price <= 15
    HIGH = "high"      # price > 15

    def contains(self, price: Decimal) -> bool:
        if self == PriceRange.LOW:
            return price <= LOW_PRICE_CEILING
        if self == PriceRange.MEDIUM:
            return LOW_PRICE_CEILING < price <= MEDIUM_PRICE_CEILING
        return price > MEDIUM_PRICE_CEILING


@dataclass(frozen=True)
class StationCriteria:
    """Normalised search criteria; None or empty means unconstrained"""
    free_text: Optional[str] = None
    connector_type: Optional[str] = None
    price_range: Optional[PriceRange] = None
    status: Optional[StationStatus] = None
    amenities: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.free_text or self.connector_type or self.price_range
                    or self.status or self.amenities)


class StationFilter:
    """Conjunction of the predicates for the active criteria"""

    def __init__(self, criteria: StationCriteria):
        self.criteria = criteria
        self._predicates: List[StationPredicate] = self._build_predicates(criteria)

    @staticmethod
    def _build_predicates(criteria: StationCriteria) -> List[StationPredicate]:
        predicates: List[StationPredicate] = []

        if criteria.free_text:
            needle = criteria.free_text.lower()
            predicates.append(
                lambda s: needle in s.name.lower() or needle in s.address.lower()
            )

        if criteria.connector_type:
            connector_type = criteria.connector_type
            predicates.append(
                lambda s: s.find_available_connector(connector_type) is not None
            )

        if criteria.price_range:
            # Price bands look at every connector, available or not
            band = criteria.price_range
            predicates.append(
                lambda s: any(band.contains(c.price) for c in s.connectors)
            )

        if criteria.status:
            status = criteria.status
            predicates.append(lambda s: s.status == status)

        if criteria.amenities:
            wanted = criteria.amenities
            predicates.append(lambda s: all(s.has_amenity(a) for a in wanted))

        return predicates

    def matches(self, station: Station) -> bool:
        return all(predicate(station) for predicate in self._predicates)

    def apply(self, stations: Iterable[Station]) -> List[Station]:
        stations = list(stations)
        if not self._predicates:
            return stations
        result = [s for s in stations if self.matches(s)]
        logger.debug(f"Filter kept {len(result)} of {len(stations)} stations")
        return result


def connector_types(stations: Iterable[Station]) -> List[str]:
    """Distinct connector types across stations, in first-seen order"""
    seen = {}
    for station in stations:
        for connector in station.connectors:
            seen.setdefault(connector.type, None)
    return list(seen)


def amenities(stations: Iterable[Station]) -> List[str]:
    """Distinct amenity tags across stations, in first-seen order"""
    seen = {}
    for station in stations:
        for amenity in station.amenities:
            seen.setdefault(amenity, None)
    return list(seen)
