import csv

from codis_orchestration.station_data.flatten import CSV_COLUMNS, flatten_observation
from codis_orchestration.station_data.storage import get_output_path, write_records_csv


def read_lines(path):
    return path.read_text(encoding="utf-8").splitlines()


def test_two_records_give_header_plus_two_rows(tmp_path):
    path = tmp_path / "out.csv"
    records = [
        flatten_observation({"DataDate": "2023-01-01", "AirTemperature": {"Mean": 21.3}}),
        flatten_observation({"DataDate": "2023-02-01", "WindSpeed": {"Mean": 3}}),
    ]

    write_records_csv(records, path)

    lines = read_lines(path)
    assert len(lines) == 3
    assert lines[0] == ",".join(CSV_COLUMNS)
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows[0]["DataDate"] == "2023-01-01"
    assert rows[0]["MeanAirTemperature"] == "21.3"
    assert rows[1]["WindSpeed"] == "3"
    assert rows[1]["MeanAirTemperature"] == ""


def test_empty_record_list_writes_header_only(tmp_path):
    path = tmp_path / "empty.csv"

    write_records_csv([], path)

    assert read_lines(path) == [",".join(CSV_COLUMNS)]


def test_missing_and_extra_keys(tmp_path):
    path = tmp_path / "partial.csv"

    write_records_csv([{"DataDate": "2023-03-01", "Bogus": "x"}], path)

    lines = read_lines(path)
    assert lines[1] == "2023-03-01" + "," * (len(CSV_COLUMNS) - 1)


def test_existing_file_is_overwritten(tmp_path):
    path = tmp_path / "out.csv"
    path.write_text("old content\n", encoding="utf-8")

    write_records_csv([{"DataDate": "2023-01-01"}], path)

    lines = read_lines(path)
    assert lines[0] == ",".join(CSV_COLUMNS)
    assert len(lines) == 2
    assert list(tmp_path.iterdir()) == [path]


def test_output_path_naming(tmp_path):
    from datetime import date

    path = get_output_path("C0A520", date(2020, 1, 5), date(2023, 6, 30), tmp_path)

    assert path == tmp_path / "C0A520_20200105_20230630.csv"
