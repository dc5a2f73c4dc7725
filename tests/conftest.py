from datetime import datetime
from typing import Any, List

import pytest

from smfarm.advisor.engine import AdvisoryEngine
from smfarm.collector.builder import ReadingBuilder
from smfarm.collector.readers.base import RowQuery, RowSource
from smfarm.collector.units import UnitConverter
from smfarm.shared.models import ReadingRecord


def make_record(**overrides) -> ReadingRecord:
    """A reading where every parameter sits in its ok band."""
    values = dict(
        timestamp=datetime(2024, 1, 15, 10, 0, 0),
        device="farm-1",
        device_secondary_id="70B3D57ED0000001",
        conductivity=800.0,
        ph=5.8,
        nitrogen=25.0,
        phosphorus=70.0,
        potassium=300.0,
        moisture=70.0,
        signal_strength=-97.0,
        signal_to_noise=7.5,
        battery_percent=88.0,
    )
    values.update(overrides)
    return ReadingRecord(**values)


def make_row(ts="Date(2024,0,15,10,30,0)", device="farm-1", **overrides) -> List[Any]:
    """A raw sheet row in source column order."""
    row = [ts, device, "70B3D57ED0000001", 1500, 6.2, 8, 45, 250, 55, -97, 7.5, 3700, 88]
    columns = {"ec": 3, "ph": 4, "n": 5, "p": 6, "k": 7, "moi": 8, "bat_mv": 11, "bat": 12}
    for name, value in overrides.items():
        row[columns[name]] = value
    return row


class FakeSource(RowSource):
    """In-memory row source that records queries."""

    def __init__(self, rows=None, error: Exception = None):
        self.rows = rows or []
        self.error = error
        self.queries: List[RowQuery] = []

    async def fetch_rows(self, query: RowQuery):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.rows)

    async def check_health(self) -> bool:
        return self.error is None


@pytest.fixture
def converter():
    return UnitConverter()


@pytest.fixture
def builder(converter):
    return ReadingBuilder(converter)


@pytest.fixture
def engine():
    return AdvisoryEngine()


@pytest.fixture
def ok_record():
    return make_record()
