"""
Station Data Retrieval Module

Sequential retrieval of CODiS station observations.
Long ranges are loaded in 366-day chunks and written to one CSV per run.
"""

from .api_client import CodisClient, RetryPolicy
from .dates import parse_date
from .flatten import CSV_COLUMNS, flatten_observation
from .station_pipeline import StationPipeline, StationQuery, process_station_data
from .storage import write_records_csv

__all__ = [
    'CodisClient',
    'RetryPolicy',
    'parse_date',
    'CSV_COLUMNS',
    'flatten_observation',
    'StationPipeline',
    'StationQuery',
    'process_station_data',
    'write_records_csv',
]
