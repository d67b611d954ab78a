"""
Structured JSON Logging for Station Data Retrieval

Provides both human-readable console logs and structured JSON logs for analysis.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if provided
        if hasattr(record, 'extra_data'):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Logger that outputs both human-readable and structured JSON logs.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.json_log_file = None

    def setup_json_logging(self, log_file: Path):
        """
        Setup JSON logging to a separate file.

        Args:
            log_file: Path to JSON log file
        """
        self.json_log_file = log_file

        json_handler = logging.FileHandler(log_file, encoding="utf-8")
        json_handler.setLevel(logging.DEBUG)
        json_handler.setFormatter(JSONFormatter())

        self.logger.addHandler(json_handler)

    def log_event(self, level: str, message: str, **extra_data):
        """
        Log an event with structured data.

        Args:
            level: Log level (INFO, WARNING, ERROR, etc.)
            message: Human-readable message
            **extra_data: Additional structured data to log
        """
        log_method = getattr(self.logger, level.lower())
        extra = {'extra_data': extra_data} if extra_data else {}
        log_method(message, extra=extra)

    def log_chunk_fetched(self, station_id: str, chunk_start: datetime, chunk_end: datetime,
                          records: int, duration_sec: float):
        """
        Log a successfully fetched chunk with structured data.

        Args:
            station_id: CODiS station ID
            chunk_start: Start of the sub-range
            chunk_end: End of the sub-range
            records: Number of records returned
            duration_sec: Time taken including retries
        """
        self.log_event(
            'INFO',
            f"{station_id} {chunk_start:%Y-%m-%d} -> {chunk_end:%Y-%m-%d} fetched",
            event_type="chunk_fetched",
            station_id=station_id,
            chunk_start=chunk_start.isoformat(),
            chunk_end=chunk_end.isoformat(),
            records=records,
            duration_seconds=round(duration_sec, 2)
        )

    def log_chunk_skipped(self, station_id: str, chunk_start: datetime, chunk_end: datetime):
        """Log a chunk that starts in the future and was not requested"""
        self.log_event(
            'DEBUG',
            f"{station_id} {chunk_start:%Y-%m-%d} -> {chunk_end:%Y-%m-%d} skipped (future)",
            event_type="chunk_skipped",
            station_id=station_id,
            chunk_start=chunk_start.isoformat(),
            chunk_end=chunk_end.isoformat()
        )

    def log_run_complete(self, station_id: str, output_path: str, total_records: int,
                         chunks_fetched: int, chunks_skipped: int, duration_sec: float,
                         success: bool = True, error: str = None):
        """
        Log run completion (or abort) with structured data.

        Args:
            station_id: CODiS station ID
            output_path: CSV path (written or intended)
            total_records: Records collected
            chunks_fetched: Chunks requested successfully
            chunks_skipped: Future chunks skipped
            duration_sec: Total time taken
            success: False if the run aborted
            error: Error message for aborted runs
        """
        self.log_event(
            'INFO' if success else 'ERROR',
            f"{station_id} run {'complete' if success else 'aborted'}: {total_records} records",
            event_type="run_complete",
            station_id=station_id,
            output_path=output_path,
            total_records=total_records,
            chunks_fetched=chunks_fetched,
            chunks_skipped=chunks_skipped,
            duration_seconds=round(duration_sec, 2),
            success=success,
            error=error
        )
