import json

import pytest

from codis_orchestration.station_data.api_client import CodisClient, RetryPolicy


class FakeResponse:
    def __init__(self, status_code=200, text="", payload=None):
        if payload is not None:
            text = json.dumps(payload)
        self.status_code = status_code
        self.text = text
        self.content = text.encode("utf-8")


class FakeSession:
    """Serves queued responses (or raises queued exceptions) in order"""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.outcomes:
            raise AssertionError(f"Unexpected request: {method} {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def data_payload(*observations):
    return {"code": 200, "data": [{"StationID": "C0A520", "dts": list(observations)}]}


def station_list_payload(*items):
    return {"code": 200, "data": [{"stationAttribute": "cwb"}, {"item": list(items)}]}


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_client(sleeps):
    def _make(*outcomes, **policy_overrides):
        session = FakeSession(outcomes)
        client = CodisClient(policy=RetryPolicy(**policy_overrides), session=session,
                             sleep=sleeps.append)
        return client, session
    return _make
