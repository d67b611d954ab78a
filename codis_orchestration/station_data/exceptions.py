"""
Error types raised by the station data pipeline.

Transient fetch errors are retried inside the client; everything else
propagates to the caller with the failing stage attached.
"""
from typing import Optional


class CodisError(Exception):
    """Base class for all pipeline errors"""


class DateParseError(CodisError, ValueError):
    """A date literal matched none of the accepted formats"""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Invalid date: {text!r} (expected YYYY-MM-DD or YYYY/MM/DD)")


class InvalidRangeError(CodisError, ValueError):
    """A requested date range cannot be queried"""


class FetchError(CodisError):
    """
    Retrieval from the CODiS API failed.

    Attributes:
        exhausted_retries: True if the request was retried until the policy gave up
        last_cause: Exception raised by the final attempt, if any
        status_code: HTTP status of the failing response, if there was one
    """

    def __init__(self, message: str, *, exhausted_retries: bool = False,
                 last_cause: Optional[BaseException] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.exhausted_retries = exhausted_retries
        self.last_cause = last_cause
        self.status_code = status_code


class TransientFetchError(FetchError):
    """Network failure or 5xx response; worth retrying"""


class PermanentFetchError(FetchError):
    """Request rejected for a reason retrying cannot fix (e.g. 4xx)"""


class MalformedResponseError(PermanentFetchError):
    """Response body violates the expected JSON contract"""


class StationNotFoundError(CodisError, LookupError):
    """Station ID is not in the station catalog"""

    def __init__(self, station_id: str):
        self.station_id = station_id
        super().__init__(f"Unknown station: {station_id}")


class PipelineError(CodisError):
    """A pipeline run aborted; `stage` names the step that failed"""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"{stage} failed: {message}")
