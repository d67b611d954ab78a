"""
CODiS API Client with Robust Retry Logic

Handles all interactions with the CODiS station API including:
- Retry logic with exponential backoff
- Server error handling (5xx errors)
- Network error handling
- Validation of the JSON contract (HTML error pages served as 200, bad shapes)
"""
import json
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import requests
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from .config import (
    MAX_RETRIES,
    REPORT_TYPE,
    REQUEST_DATETIME_FORMAT,
    REQUEST_TIMEOUT,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_WAIT,
    RETRY_MULTIPLIER,
    STATION_DATA_URL,
    STATION_LIST_URL,
    STATION_TYPE,
)
from .exceptions import (
    MalformedResponseError,
    PermanentFetchError,
    TransientFetchError,
)
from .flatten import ObservationRecord, flatten_observations
from .stations import StationItem, parse_station_list

# Set up logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry/backoff settings for one client.

    With the defaults a failing request is attempted 4 times, sleeping
    1s, 2s and 4s between attempts.

    Attributes:
        max_retries: Attempts allowed after the first one
        initial_wait: Seconds to wait before the first retry
        multiplier: Factor applied to the wait after every retry
        max_wait: Upper bound for a single wait
        request_timeout: Per-request timeout in seconds (None = no timeout)
        max_elapsed: Give up once this many seconds have passed (None = only count attempts)
    """
    max_retries: int = MAX_RETRIES
    initial_wait: float = RETRY_INITIAL_WAIT
    multiplier: float = RETRY_MULTIPLIER
    max_wait: float = RETRY_MAX_WAIT
    request_timeout: Optional[float] = REQUEST_TIMEOUT
    max_elapsed: Optional[float] = None


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an exception should trigger a retry.

    Retryable errors:
    - 5xx server errors (temporary server issues)
    - Network errors (connection errors, timeouts)

    Non-retryable errors:
    - 4xx client errors
    - Invalid responses (HTML pages, bad JSON, unexpected shape)
    """
    return isinstance(exception, TransientFetchError)


def build_station_data_form(station_id: str, start: date, end: date) -> Dict[str, str]:
    """
    Build the form body for a monthly report query.

    Args:
        station_id: CODiS station ID (e.g., "C0A520")
        start: Start of the range (date or datetime)
        end: End of the range (date or datetime)
    """
    return {
        "type": REPORT_TYPE,
        "stn_ID": station_id,
        "stn_type": STATION_TYPE,
        "more": "",
        "start": start.strftime(REQUEST_DATETIME_FORMAT),
        "end": end.strftime(REQUEST_DATETIME_FORMAT),
        "item": "",
    }


def decode_json_body(response: requests.Response) -> Any:
    """
    Decode a 200 response body as JSON.

    Raises:
        MalformedResponseError: If the body is markup or not JSON at all
    """
    text = response.text or ""
    if text.lstrip().startswith("<"):
        raise MalformedResponseError(f"Received HTML instead of JSON: {text[:200]}")
    try:
        return json.loads(text)
    except ValueError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e}") from e


def extract_observations(payload: Any) -> List[Any]:
    """
    Return data[0].dts from a station data payload.

    Raises:
        MalformedResponseError: If any level of the path is missing or has the wrong type
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list) or not data:
        raise MalformedResponseError("Unexpected JSON structure: 'data' is missing or empty")

    first = data[0]
    if not isinstance(first, dict):
        raise MalformedResponseError("Unexpected JSON structure: data[0] is not an object")

    dts = first.get("dts")
    if not isinstance(dts, list):
        raise MalformedResponseError("Unexpected JSON structure: data[0].dts is not a list")

    return dts


class CodisClient:
    """
    Client for the CODiS station endpoints.

    Requests are made one at a time; transient failures are retried
    in-line according to the RetryPolicy, blocking the caller.
    """

    def __init__(self, policy: Optional[RetryPolicy] = None,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            policy: Retry settings (default: values from config)
            session: HTTP session to reuse (default: new requests.Session)
            sleep: Function used to wait between attempts
        """
        self.policy = policy or RetryPolicy()
        self.session = session or requests.Session()
        self._sleep = sleep

    def __enter__(self) -> "CodisClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        """Issue one request and classify the outcome"""
        try:
            response = self.session.request(
                method, url, timeout=self.policy.request_timeout, **kwargs
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.warning(f"Network error on {method} {url}: {type(e).__name__}: {e}")
            raise TransientFetchError(f"Network error: {type(e).__name__}: {e}",
                                      last_cause=e) from e
        except requests.exceptions.RequestException as e:
            raise PermanentFetchError(f"Request could not be sent: {e}", last_cause=e) from e

        status_code = response.status_code
        if status_code >= 500:
            logger.warning(f"Retryable server error {status_code} on {method} {url}")
            raise TransientFetchError(f"Server error {status_code}", status_code=status_code)

        if status_code != 200:
            logger.error(f"Non-retryable error on {method} {url}: "
                         f"{status_code} - {(response.text or '')[:200]}")
            raise PermanentFetchError(f"Request rejected with status {status_code}",
                                      status_code=status_code)

        return response

    def _stop_condition(self):
        stop = stop_after_attempt(self.policy.max_retries + 1)
        if self.policy.max_elapsed is not None:
            stop = stop | stop_after_delay(self.policy.max_elapsed)
        return stop

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Send a request, retrying transient failures with exponential backoff.

        Returns:
            The 200 response

        Raises:
            TransientFetchError: With exhausted_retries=True once the policy gives up
            PermanentFetchError: Immediately, on non-retryable failures
        """
        retrying = Retrying(
            stop=self._stop_condition(),
            wait=wait_exponential(
                multiplier=self.policy.initial_wait,
                exp_base=self.policy.multiplier,
                min=0,
                max=self.policy.max_wait,
            ),
            retry=retry_if_exception(is_retryable_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
        )

        try:
            return retrying(self._send, method, url, **kwargs)
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            cause = e.last_attempt.exception()
            logger.error(f"[FAIL] {method} {url} gave up after {attempts} attempts: {cause}")
            raise TransientFetchError(
                f"Gave up after {attempts} attempts: {cause}",
                exhausted_retries=True,
                last_cause=cause,
                status_code=getattr(cause, "status_code", None),
            ) from cause

    def fetch_station_data(self, station_id: str, start: date, end: date) -> List[ObservationRecord]:
        """
        Fetch and flatten observations for one station and one sub-range.

        The range must already fit in the API's look-back window
        (see config.MAX_CHUNK_DAYS); chunking is the pipeline's job.

        Args:
            station_id: CODiS station ID (e.g., "C0A520")
            start: Start of the sub-range
            end: End of the sub-range

        Returns:
            Flattened observation records, in API order

        Raises:
            FetchError: On any retrieval or validation failure
        """
        form = build_station_data_form(station_id, start, end)
        logger.debug(f"Fetching {station_id} {form['start']} -> {form['end']}")

        response = self.request("POST", STATION_DATA_URL, data=form)
        observations = extract_observations(decode_json_body(response))
        records = flatten_observations(observations)

        logger.debug(f"Successfully fetched {station_id} {form['start']} -> {form['end']} "
                     f"({len(records)} records, {len(response.content)} bytes)")
        return records

    def fetch_station_list(self) -> List[StationItem]:
        """
        Fetch the full station catalog.

        Raises:
            FetchError: On any retrieval or validation failure
        """
        response = self.request("GET", STATION_LIST_URL)
        return parse_station_list(decode_json_body(response))
