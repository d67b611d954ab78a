from datetime import date

import pytest

from codis_orchestration.station_data.exceptions import (
    MalformedResponseError,
    StationNotFoundError,
)
from codis_orchestration.station_data.stations import (
    StationItem,
    filter_active_automatic,
    find_station,
    parse_station_list,
)

from .conftest import station_list_payload

ITEMS = [
    {"stationID": "C0A520", "stationName": "Shanjia", "countryName": "New Taipei",
     "area": "North", "stationStartDate": "1995-01-01", "stationEndDate": ""},
    {"stationID": "C0A530", "stationName": "Closed", "countryName": "New Taipei",
     "area": "North", "stationStartDate": "1990-01-01", "stationEndDate": "2010-05-31"},
    {"stationID": "466920", "stationName": "Taipei", "countryName": "Taipei",
     "area": "North", "stationStartDate": "1896-01-01", "stationEndDate": ""},
    {"stationID": "C0B010", "stationName": "No Start", "countryName": "Keelung",
     "area": "North", "stationStartDate": None, "stationEndDate": ""},
]


def test_parse_station_list():
    stations = parse_station_list(station_list_payload(*ITEMS, "junk"))

    assert [s.station_id for s in stations] == ["C0A520", "C0A530", "466920", "C0B010"]
    assert stations[3].start_date == ""


@pytest.mark.parametrize("payload", [
    {}, {"data": [{}]}, {"data": [{}, {"item": "x"}]}, {"data": [{}, "x"]}, None,
])
def test_parse_station_list_rejects_bad_shapes(payload):
    with pytest.raises(MalformedResponseError):
        parse_station_list(payload)


def test_filter_active_automatic():
    stations = parse_station_list(station_list_payload(*ITEMS))

    assert [s.station_id for s in filter_active_automatic(stations)] == ["C0A520", "C0B010"]


def test_find_station():
    stations = parse_station_list(station_list_payload(*ITEMS))

    assert find_station(stations, "466920").station_name == "Taipei"
    with pytest.raises(StationNotFoundError):
        find_station(stations, "C0ZZZZ")


def test_parsed_start_date():
    assert StationItem.from_api(ITEMS[0]).parsed_start_date() == date(1995, 1, 1)
    assert StationItem.from_api(ITEMS[3]).parsed_start_date() is None
