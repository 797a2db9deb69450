# File: src/ecocharge/application/station_finder.py
"""
Station finder use case

Turns a SearchQuery (or the raw dictionary a search form posts) into the
ordered list of matching stations, and lists the filter options the
catalog offers.
"""

from typing import Any, Dict, Iterable, List, Union
import logging

from ..domain.models import Station
from ..domain.search import StationFilter, connector_types, amenities
from .dtos import SearchQuery


QueryData = Union[SearchQuery, Dict[str, Any], None]

logger = logging.getLogger(__name__)


def as_query(query: QueryData) -> SearchQuery:
    """Normalise ``query``; None and unreadable values mean no constraint"""
    if query is None:
        return SearchQuery()
    if isinstance(query, SearchQuery):
        return query
    return SearchQuery.model_validate(query)


def search(stations: Iterable[Station], query: QueryData = None) -> List[Station]:
    """Stations matching every active filter, in catalog order"""
    query = as_query(query)
    result = StationFilter(query.to_criteria()).apply(stations)
    logger.debug(f"Search {query.to_dict(exclude_none=True)} returned {len(result)} stations")
    return result


class StationFinder:
    """Search over a catalog's current stations"""

    def __init__(self, catalog):
        self.catalog = catalog

    def search(self, query: QueryData = None) -> List[Station]:
        return search(self.catalog.stations, query)

    def facets(self) -> Dict[str, List[str]]:
        """Connector types and amenities present in the catalog"""
        stations = self.catalog.stations
        return {
            "connector_types": connector_types(stations),
            "amenities": amenities(stations)
        }
