import io
from datetime import datetime, timedelta, timezone

from smfarm.display.export import HEADER, export_csv, export_filename, select_for_export
from conftest import make_record

RECORDS = [
    make_record(timestamp=datetime(2024, 1, 15, 10, 30), device="farm-2", nitrogen=8.0),
    make_record(timestamp=datetime(2024, 1, 15, 10, 20), device="farm-1", battery_percent=None),
    make_record(timestamp=None, device="farm-1"),
    make_record(timestamp=datetime(2024, 1, 14, 9, 0), device="farm-1"),
]


def test_export_csv_writes_header_and_rows():
    stream = io.StringIO()
    count = export_csv(RECORDS[:2], stream)

    lines = stream.getvalue().splitlines()
    assert count == 2
    assert lines[0] == ",".join(HEADER)
    assert lines[1] == "2024-01-15 10:30:00,farm-2,800.0,5.8,8.0,70.0,300.0,70.0,88.0"
    assert lines[2].endswith(",70.0,")


def test_export_filters_by_device():
    stream = io.StringIO()
    assert export_csv(RECORDS, stream, device="farm-1") == 3
    assert "farm-2" not in stream.getvalue()


def test_time_bounds_include_time_of_day():
    selected = select_for_export(
        RECORDS,
        start=datetime(2024, 1, 15, 10, 20),
        end=datetime(2024, 1, 15, 10, 25),
    )
    assert [r.device for r in selected] == ["farm-1"]


def test_empty_export_still_has_header():
    stream = io.StringIO()
    assert export_csv([], stream) == 0
    assert stream.getvalue() == ",".join(HEADER) + "\n"


def test_export_filename():
    assert export_filename() == "smfarm-all-start_to_end.csv"
    assert export_filename(
        "farm-1", datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 7, 23, 59)
    ) == "smfarm-farm-1-2024-01-01_00-00_to_2024-01-07_23-59.csv"


def test_offset_timestamps_compare_with_plain_bounds(builder):
    from conftest import make_row

    record = builder.build(make_row(ts="2024-01-15T10:30:00+07:00"))
    local = datetime(2024, 1, 15, 10, 30, tzinfo=timezone(timedelta(hours=7))).astimezone().replace(tzinfo=None)

    assert select_for_export([record], start=datetime(2024, 1, 1)) == [record]
    assert select_for_export([record], end=local - timedelta(seconds=1)) == []
