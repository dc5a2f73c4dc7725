from datetime import date, datetime

import pytest

from smfarm.shared.store import ReadingStore, device_sort_key, latest_of, sort_devices
from conftest import make_record


@pytest.fixture
def store():
    return ReadingStore([
        make_record(timestamp=datetime(2024, 1, 20, 23, 59), device=""),
        make_record(timestamp=datetime(2024, 1, 20, 8, 0), device="farm-2"),
        make_record(timestamp=datetime(2024, 1, 19, 12, 0), device="farm-1"),
        make_record(timestamp=None, device="farm-1"),
        make_record(timestamp=datetime(2024, 1, 18, 0, 0), device="farm-10"),
    ])


def test_latest_skips_records_without_device(store):
    assert store.latest().device == "farm-2"


def test_latest_of_empty_is_none():
    assert ReadingStore().latest() is None
    assert latest_of([make_record(device="")]) is None


def test_filter_by_device_is_exact(store):
    assert [r.device for r in store.filter(device="farm-1")] == ["farm-1", "farm-1"]
    assert store.filter(device="farm") == []


def test_empty_device_means_all(store):
    assert len(store.filter(device="")) == len(store)
    assert len(store.filter()) == len(store)


def test_date_bounds_are_inclusive_calendar_dates(store):
    rows = store.filter(start_date=date(2024, 1, 19), end_date=date(2024, 1, 20))
    assert [r.timestamp for r in rows] == [
        datetime(2024, 1, 20, 23, 59),
        datetime(2024, 1, 20, 8, 0),
        datetime(2024, 1, 19, 12, 0),
    ]


def test_date_filter_drops_records_without_timestamp(store):
    rows = store.filter(device="farm-1", start_date=date(2024, 1, 1))
    assert len(rows) == 1
    assert rows[0].timestamp is not None


def test_datetime_bounds_compare_by_date(store):
    rows = store.filter(end_date=datetime(2024, 1, 18, 0, 0))
    assert [r.device for r in rows] == ["farm-10"]


def test_window(store):
    assert [r.device for r in store.window(2)] == ["", "farm-2"]
    assert store.window(0) == []
    assert store.window(-3) == []
    assert len(store.window(100)) == len(store)


def test_devices_sorted_by_name_then_number(store):
    assert store.devices() == ["farm-1", "farm-2", "farm-10"]


def test_sort_devices_example():
    assert sort_devices(["farm-2", "farm-10", "farm-1", "plot-1"]) == [
        "farm-1", "farm-2", "farm-10", "plot-1",
    ]


def test_sort_devices_without_numbers_and_case():
    assert sort_devices(["plot-1", "Beta", "alpha-2", "alpha", "", "plot-1"]) == [
        "alpha", "alpha-2", "Beta", "plot-1",
    ]


def test_device_sort_key():
    assert device_sort_key("Farm12") == ("farm", 12)
    assert device_sort_key("farm-12") == ("farm", 12)
    assert device_sort_key("gateway") == ("gateway", 0)


def test_replace_all_swaps_generation(store):
    old_generation = store.records
    store.replace_all([make_record(device="plot-1")])

    assert len(store) == 1
    assert store.latest().device == "plot-1"
    # readers holding the previous generation keep a complete view
    assert len(old_generation) == 5


def test_replace_with_empty_set(store):
    store.replace_all([])
    assert store.latest() is None
    assert store.devices() == []


def test_window_of_filtered_view(store):
    assert [r.device for r in store.window(5, device="farm-1")] == ["farm-1", "farm-1"]
    assert [r.device for r in store.window(1, device="farm-1")] == ["farm-1"]
    assert [r.device for r in store.window(5, start_date=date(2024, 1, 20))] == ["", "farm-2"]
    assert store.window(0, device="farm-1") == []
