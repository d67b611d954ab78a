"""
Station Catalog

Parses the CODiS station list and answers the two questions the
pipeline needs: which stations are active automatic (C0) stations,
and when a given station started reporting.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .config import AUTOMATIC_STATION_PREFIX
from .dates import parse_date
from .exceptions import DateParseError, MalformedResponseError, StationNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationItem:
    """One entry of the station list"""
    station_id: str
    station_name: str
    county_name: str
    area: str
    start_date: str
    end_date: str

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "StationItem":
        """Build from a raw station-list item; missing keys become empty strings"""
        def text(key: str) -> str:
            value = item.get(key)
            return "" if value is None else str(value)

        return cls(
            station_id=text("stationID"),
            station_name=text("stationName"),
            county_name=text("countryName"),  # API calls the county "country"
            area=text("area"),
            start_date=text("stationStartDate"),
            end_date=text("stationEndDate"),
        )

    @property
    def is_active(self) -> bool:
        return self.end_date == ""

    @property
    def is_automatic(self) -> bool:
        return self.station_id.startswith(AUTOMATIC_STATION_PREFIX)

    def parsed_start_date(self) -> Optional[date]:
        """Station start date, or None if the catalog value is blank/unparseable"""
        try:
            return parse_date(self.start_date)
        except DateParseError:
            return None


def parse_station_list(payload: Any) -> List[StationItem]:
    """
    Extract station items from a station-list payload.

    Expected shape: {"data": [_, {"item": [StationItem, ...]}]}

    Raises:
        MalformedResponseError: If the payload does not have that shape
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list) or len(data) < 2:
        raise MalformedResponseError("Unexpected station list structure: need at least 2 'data' entries")

    second = data[1]
    items = second.get("item") if isinstance(second, dict) else None
    if not isinstance(items, list):
        raise MalformedResponseError("Unexpected station list structure: data[1].item is not a list")

    stations = [StationItem.from_api(item) for item in items if isinstance(item, dict)]
    logger.debug(f"Parsed {len(stations)} stations from station list")
    return stations


def filter_active_automatic(stations: Iterable[StationItem]) -> List[StationItem]:
    """Keep automatic (C0) stations that are still in operation"""
    return [s for s in stations if s.is_automatic and s.is_active]


def find_station(stations: Iterable[StationItem], station_id: str) -> StationItem:
    """
    Look up a station by ID.

    Raises:
        StationNotFoundError: If no station has that ID
    """
    for station in stations:
        if station.station_id == station_id:
            return station
    raise StationNotFoundError(station_id)
