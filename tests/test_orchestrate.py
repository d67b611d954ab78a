import pytest

from codis_orchestration.station_data import orchestrate
from codis_orchestration.station_data.api_client import CodisClient

from .conftest import FakeResponse, FakeSession, data_payload, station_list_payload

STATION = {"stationID": "C0A520", "stationName": "Shanjia", "countryName": "New Taipei",
           "area": "North", "stationStartDate": "1995-01-01", "stationEndDate": ""}


@pytest.fixture
def fake_client(monkeypatch):
    """Patch the CLI to build clients around a FakeSession with the given outcomes"""
    sessions = []

    def install(*outcomes):
        session = FakeSession(outcomes)
        sessions.append(session)

        def factory(policy=None, **_):
            return CodisClient(policy=policy, session=session, sleep=lambda _s: None)

        monkeypatch.setattr(orchestrate, "CodisClient", factory)
        return session

    return install


def test_fetch_writes_csv(tmp_path, fake_client, capsys):
    session = fake_client(
        FakeResponse(payload=station_list_payload(STATION)),
        FakeResponse(payload=data_payload({"DataDate": "2023-01-01"}, {"DataDate": "2023-02-01"})),
    )

    code = orchestrate.main(["fetch", "--station", "C0A520", "--start", "2023/1/1",
                             "--end", "2023-02-28", "--output-dir", str(tmp_path),
                             "--no-log-file"])

    assert code == orchestrate.EXIT_OK
    assert (tmp_path / "C0A520_20230101_20230228.csv").exists()
    assert [call["method"] for call in session.calls] == ["GET", "POST"]
    assert "Saved 2 records" in capsys.readouterr().out


def test_fetch_without_validation_skips_station_list(tmp_path, fake_client):
    session = fake_client(FakeResponse(payload=data_payload()))

    code = orchestrate.main(["fetch", "--station", "C0XXXX", "--start", "2023-01-01",
                             "--end", "2023-01-31", "--output-dir", str(tmp_path),
                             "--no-validate", "--no-log-file"])

    assert code == orchestrate.EXIT_OK
    assert [call["method"] for call in session.calls] == ["POST"]


def test_bad_date_is_bad_input(tmp_path, fake_client, capsys):
    session = fake_client()

    code = orchestrate.main(["fetch", "--station", "C0A520", "--start", "01.01.2023",
                             "--end", "2023-02-28", "--output-dir", str(tmp_path),
                             "--no-log-file"])

    assert code == orchestrate.EXIT_BAD_INPUT
    assert session.calls == []
    assert "Invalid date" in capsys.readouterr().out


def test_reversed_range_is_bad_input(tmp_path, fake_client):
    fake_client()

    code = orchestrate.main(["fetch", "--station", "C0A520", "--start", "2023-03-01",
                             "--end", "2023-02-28", "--output-dir", str(tmp_path),
                             "--no-log-file"])

    assert code == orchestrate.EXIT_BAD_INPUT


def test_unknown_station_is_bad_input(tmp_path, fake_client):
    fake_client(FakeResponse(payload=station_list_payload(STATION)))

    code = orchestrate.main(["fetch", "--station", "C0ZZZZ", "--start", "2023-01-01",
                             "--end", "2023-02-28", "--output-dir", str(tmp_path),
                             "--no-log-file"])

    assert code == orchestrate.EXIT_BAD_INPUT


def test_fetch_failure_exits_with_error(tmp_path, fake_client):
    fake_client(FakeResponse(payload=station_list_payload(STATION)), FakeResponse(400, "bad"))

    code = orchestrate.main(["fetch", "--station", "C0A520", "--start", "2023-01-01",
                             "--end", "2023-02-28", "--output-dir", str(tmp_path),
                             "--no-log-file"])

    assert code == orchestrate.EXIT_FAILED
    assert list(tmp_path.iterdir()) == []


def test_stations_lists_active_automatic(fake_client, capsys):
    closed = dict(STATION, stationID="C0A530", stationEndDate="2010-01-01")
    manual = dict(STATION, stationID="466920")
    fake_client(FakeResponse(payload=station_list_payload(STATION, closed, manual)))

    code = orchestrate.main(["stations", "--no-log-file"])

    out = capsys.readouterr().out
    assert code == orchestrate.EXIT_OK
    assert "C0A520" in out
    assert "C0A530" not in out
    assert "466920" not in out
    assert "TOTAL: 1" in out


def test_stations_html_response_fails(fake_client):
    fake_client(FakeResponse(200, "<html>down for maintenance</html>"))

    assert orchestrate.main(["stations", "--no-log-file"]) == orchestrate.EXIT_FAILED


def test_far_future_end_date_skips_future_chunks(tmp_path, fake_client):
    session = fake_client()

    code = orchestrate.main(["fetch", "--station", "C0A520", "--start", "9000-01-01",
                             "--end", "9999-12-31", "--output-dir", str(tmp_path),
                             "--no-validate", "--no-log-file"])

    assert code == orchestrate.EXIT_OK
    assert session.calls == []
    csv_path = tmp_path / "C0A520_90000101_99991231.csv"
    assert len(csv_path.read_text(encoding="utf-8").splitlines()) == 1
