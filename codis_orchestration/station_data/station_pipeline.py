"""
Station Pipeline - Chunked Retrieval for One Station

The API only answers look-backs of up to 366 days, so longer ranges are
walked in 366-day strides. Strides are fetched one after another and the
results are written as a single CSV once every stride has succeeded.
"""
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .api_client import CodisClient
from .config import MAX_CHUNK_DAYS
from .dates import to_midnight
from .exceptions import FetchError, InvalidRangeError, PipelineError
from .flatten import ObservationRecord
from .stations import StationItem
from .storage import get_output_path, write_records_csv
from .structured_logger import StructuredLogger

logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)


@dataclass(frozen=True)
class StationQuery:
    """One retrieval request: a station and an inclusive calendar range"""
    station_id: str
    range_start: date
    range_end: date

    def __post_init__(self):
        if self.range_start > self.range_end:
            raise InvalidRangeError(
                f"Start date {self.range_start} cannot be after end date {self.range_end}"
            )


@dataclass(frozen=True)
class Chunk:
    """A sub-range of at most MAX_CHUNK_DAYS; `skipped` marks strides starting in the future"""
    start: datetime
    end: datetime
    skipped: bool = False


def plan_chunks(start: datetime, end: datetime, now: datetime,
                max_days: int = MAX_CHUNK_DAYS) -> List[Chunk]:
    """
    Split [start, end] into strides the API will accept.

    A range of at most max_days is returned as a single chunk. Longer
    ranges are walked in max_days strides from start; the last stride is
    clipped to end, and strides starting after `now` are marked skipped.

    Args:
        start: Range start (midnight-anchored)
        end: Range end (midnight-anchored)
        now: Current time, used to spot future strides
        max_days: Stride length in days

    Returns:
        Chunks in chronological order
    """
    stride = timedelta(days=max_days)
    if end - start <= stride:
        return [Chunk(start, end)]

    total_days = (end - start).days
    chunks = []
    for offset in range(0, total_days, max_days):
        chunk_start = start + timedelta(days=offset)
        # Clamp before adding so open-ended ends (e.g. 9999-12-31) cannot overflow
        chunk_end = chunk_start + min(stride, end - chunk_start)
        chunks.append(Chunk(chunk_start, chunk_end, skipped=chunk_start > now))
    return chunks


def validate_against_station(query: StationQuery, station: StationItem) -> None:
    """
    Reject ranges that begin before the station started reporting.

    Stations with a blank or unparseable start date are not checked.

    Raises:
        InvalidRangeError: If range_start precedes the station start date
    """
    station_start = station.parsed_start_date()
    if station_start is not None and query.range_start < station_start:
        raise InvalidRangeError(
            f"Start date {query.range_start} is before station {station.station_id} "
            f"started reporting ({station.start_date})"
        )


class StationPipeline:
    """
    Sequential pipeline for retrieving one station's observations.

    Handles:
    - Splitting the requested range into 366-day chunks
    - Skipping chunks that start in the future
    - Fetching each chunk from the CODiS API
    - Writing all records to one CSV (only if every chunk succeeded)
    """

    def __init__(self, client: Optional[CodisClient] = None,
                 output_dir: Optional[Path] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Args:
            client: API client (default: CodisClient with config retry policy)
            output_dir: Directory for CSV output (default: from config)
            clock: Returns the current local time
        """
        self.client = client or CodisClient()
        self.output_dir = output_dir
        self.clock = clock
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.station_id = None
        self.output_path = None
        self.total_chunks = 0
        self.fetched_chunks = 0
        self.skipped_chunks = 0
        self.total_records = 0
        self.elapsed_seconds = 0.0

    def run(self, query: StationQuery, station: Optional[StationItem] = None) -> Path:
        """
        Retrieve all observations for the query and write them to CSV.

        Args:
            query: Station and date range
            station: Catalog entry; if given, the range is checked against its start date

        Returns:
            Path of the written CSV file

        Raises:
            InvalidRangeError: If the range starts before the station does
            PipelineError: If a chunk fetch or the CSV write fails; nothing is written
                after a fetch failure
        """
        self._reset_counters()
        if station is not None:
            validate_against_station(query, station)

        self.station_id = query.station_id
        self.output_path = get_output_path(query.station_id, query.range_start,
                                           query.range_end, self.output_dir)

        start_time = time.time()
        chunks = plan_chunks(to_midnight(query.range_start), to_midnight(query.range_end),
                             self.clock())
        self.total_chunks = len(chunks)

        logger.info(f"Loading {query.station_id}: {query.range_start} -> {query.range_end} "
                    f"({self.total_chunks} chunk{'s' if self.total_chunks != 1 else ''})")

        all_records: List[ObservationRecord] = []
        for chunk in chunks:
            if chunk.skipped:
                logger.debug(f"  Skipping {chunk.start:%Y-%m-%d} -> {chunk.end:%Y-%m-%d} (starts in the future)")
                structured_logger.log_chunk_skipped(query.station_id, chunk.start, chunk.end)
                self.skipped_chunks += 1
                continue

            try:
                all_records.extend(self._fetch_chunk(query.station_id, chunk))
            except FetchError as e:
                self.elapsed_seconds = time.time() - start_time
                logger.error(f"[FAIL] {query.station_id} {chunk.start:%Y-%m-%d} -> "
                             f"{chunk.end:%Y-%m-%d}: {e}")
                structured_logger.log_run_complete(
                    station_id=query.station_id,
                    output_path=str(self.output_path),
                    total_records=len(all_records),
                    chunks_fetched=self.fetched_chunks,
                    chunks_skipped=self.skipped_chunks,
                    duration_sec=self.elapsed_seconds,
                    success=False,
                    error=str(e)
                )
                raise PipelineError(
                    "fetch",
                    f"{query.station_id} {chunk.start:%Y-%m-%d} -> {chunk.end:%Y-%m-%d}: {e}"
                ) from e

        if self.skipped_chunks:
            logger.info(f"  Skipped {self.skipped_chunks} chunk(s) starting in the future")

        self.total_records = len(all_records)

        try:
            write_records_csv(all_records, self.output_path)
        except OSError as e:
            logger.error(f"[FAIL] Could not write {self.output_path}: {e}")
            raise PipelineError("write", f"{self.output_path}: {e}") from e

        self.elapsed_seconds = time.time() - start_time

        logger.info(f"[OK] {query.station_id} complete: {self.total_records} records, "
                    f"{self.fetched_chunks} fetched, {self.skipped_chunks} skipped -> "
                    f"{self.output_path} ({self.elapsed_seconds:.1f}s)")

        structured_logger.log_run_complete(
            station_id=query.station_id,
            output_path=str(self.output_path),
            total_records=self.total_records,
            chunks_fetched=self.fetched_chunks,
            chunks_skipped=self.skipped_chunks,
            duration_sec=self.elapsed_seconds
        )

        return self.output_path

    def _fetch_chunk(self, station_id: str, chunk: Chunk) -> List[ObservationRecord]:
        """Fetch one chunk and update counters"""
        logger.info(f"  Fetching {station_id} {chunk.start:%Y-%m-%d} -> {chunk.end:%Y-%m-%d}...")
        chunk_start_time = time.time()

        records = self.client.fetch_station_data(station_id, chunk.start, chunk.end)

        duration = time.time() - chunk_start_time
        logger.info(f"  [OK] {len(records)} records ({duration:.1f}s)")
        structured_logger.log_chunk_fetched(station_id, chunk.start, chunk.end,
                                            len(records), duration)

        self.fetched_chunks += 1
        return records

    def get_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the most recent run.

        Returns:
            Dictionary with counts, output path and timing
        """
        return {
            'station_id': self.station_id,
            'output_path': str(self.output_path) if self.output_path else None,
            'total_chunks': self.total_chunks,
            'fetched_chunks': self.fetched_chunks,
            'skipped_chunks': self.skipped_chunks,
            'total_records': self.total_records,
            'elapsed_seconds': round(self.elapsed_seconds, 2)
        }


def process_station_data(station_id: str, range_start: date, range_end: date,
                         client: Optional[CodisClient] = None,
                         output_dir: Optional[Path] = None) -> Path:
    """
    Retrieve a station's observations for a date range and write them to CSV.

    Args:
        station_id: CODiS station ID (e.g., "C0A520")
        range_start: First day of the range
        range_end: Last day of the range
        client: API client (default: new CodisClient)
        output_dir: Directory for the CSV (default: from config)

    Returns:
        Path of the written CSV file
    """
    query = StationQuery(station_id, range_start, range_end)
    return StationPipeline(client=client, output_dir=output_dir).run(query)
