"""
Observation Flattening: CODiS JSON -> Flat Rows

Flattens one nested "dts" observation into a fixed set of string columns.
Unlike a schema-on-read flatten, the column set here is fixed so every
CSV has the same header regardless of which groups a station reports.
"""
import json
from typing import Any, Dict, List, Mapping, Tuple

ObservationRecord = Dict[str, str]

# Output column order of the CSV file
CSV_COLUMNS: List[str] = [
    "DataDate", "WindSpeed", "WindDirection", "SunshineDuration",
    "MaxAirTemperature", "MeanAirTemperature", "MinAirTemperature",
    "MaxAirTemperatureTime", "MinAirTemperatureTime",
    "MaxStationPressure", "MinStationPressure", "MeanStationPressure",
    "MaxStationPressureTime", "MinStationPressureTime",
    "MaxRelativeHumidity", "MinRelativeHumidity", "MeanRelativeHumidity",
    "MaxRelativeHumidityTime", "MinRelativeHumidityTime",
    "MaxPeakGust", "MaxPeakGustTime", "MaxPeakGustDirection",
    "AccumulationPrecipitation", "HourlyMaxPrecipitation", "HourlyMaxPrecipitationTime",
    "MeltFlagPrecipitation",
    "AccumulationGlobalSolarRadiation", "HourlyMaximumGlobalSolarRadiation",
    "HourlyMaximumGlobalSolarRadiationTime",
]

# Upstream group -> [(sub-field, output column), ...]
GROUP_FIELDS: Dict[str, List[Tuple[str, str]]] = {
    "AirTemperature": [
        ("Maximum", "MaxAirTemperature"),
        ("Mean", "MeanAirTemperature"),
        ("Minimum", "MinAirTemperature"),
        ("MaximumTime", "MaxAirTemperatureTime"),
        ("MinimumTime", "MinAirTemperatureTime"),
    ],
    "WindSpeed": [
        ("Mean", "WindSpeed"),
    ],
    "WindDirection": [
        ("Prevailing", "WindDirection"),
    ],
    "StationPressure": [
        ("Maximum", "MaxStationPressure"),
        ("Minimum", "MinStationPressure"),
        ("Mean", "MeanStationPressure"),
        ("MaximumTime", "MaxStationPressureTime"),
        ("MinimumTime", "MinStationPressureTime"),
    ],
    "RelativeHumidity": [
        ("Maximum", "MaxRelativeHumidity"),
        ("Minimum", "MinRelativeHumidity"),
        ("Mean", "MeanRelativeHumidity"),
        ("MaximumTime", "MaxRelativeHumidityTime"),
        ("MinimumTime", "MinRelativeHumidityTime"),
    ],
    "PeakGust": [
        ("Maximum", "MaxPeakGust"),
        ("MaximumTime", "MaxPeakGustTime"),
        ("Direction", "MaxPeakGustDirection"),
    ],
    "Precipitation": [
        ("Accumulation", "AccumulationPrecipitation"),
        ("HourlyMaximum", "HourlyMaxPrecipitation"),
        ("HourlyMaximumTime", "HourlyMaxPrecipitationTime"),
        ("MeltFlag", "MeltFlagPrecipitation"),
    ],
    "SunshineDuration": [
        ("Total", "SunshineDuration"),
    ],
    "GlobalSolarRadiation": [
        ("Accumulation", "AccumulationGlobalSolarRadiation"),
        ("HourlyMaximum", "HourlyMaximumGlobalSolarRadiation"),
        ("HourlyMaximumTime", "HourlyMaximumGlobalSolarRadiationTime"),
    ],
}

DATA_DATE_KEY = "DataDate"


def stringify(value: Any) -> str:
    """
    Render an upstream leaf value as a CSV cell.

    The API mixes numbers and numeric strings for the same field, so
    everything is coerced to text instead of being type-checked.
    Missing values (None) become an empty cell.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def empty_record() -> ObservationRecord:
    """A record with every column present and blank"""
    return {column: "" for column in CSV_COLUMNS}


def flatten_observation(observation: Mapping[str, Any]) -> ObservationRecord:
    """
    Flatten one CODiS observation to the fixed column set.

    Groups that are missing or not a mapping leave their columns blank
    rather than failing the whole record.

    Args:
        observation: One element of data[0].dts from the station API

    Returns:
        Mapping with all CSV_COLUMNS as keys and string values
    """
    record = empty_record()

    for group_name, fields in GROUP_FIELDS.items():
        group = observation.get(group_name)
        if not isinstance(group, Mapping):
            continue
        for source_key, column in fields:
            record[column] = stringify(group.get(source_key))

    if DATA_DATE_KEY in observation:
        record[DATA_DATE_KEY] = stringify(observation[DATA_DATE_KEY])

    return record


def flatten_observations(observations: List[Any]) -> List[ObservationRecord]:
    """Flatten a dts list, skipping elements that are not objects"""
    return [flatten_observation(obs) for obs in observations if isinstance(obs, Mapping)]
