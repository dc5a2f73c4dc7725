import random
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

from .base import RowQuery, RowSource

logger = logging.getLogger(__name__)

# (base value, step) per raw column, in sheet units
DEFAULT_PROFILE = {
    "ec": (1800.0, 60.0),  # mV-scale probe
    "ph": (5.8, 0.05),
    "n": (18.0, 1.0),
    "p": (65.0, 2.0),
    "k": (250.0, 8.0),
    "moi": (62.0, 1.5),
    "rssi": (-95.0, 2.0),
    "snr": (7.5, 0.5),
    "bat": (88.0, 0.2),
}


class DummyReader(RowSource):
    def __init__(self, devices: List[str], interval_seconds: int = 600,
                 history: int = 500, seed: Optional[int] = None):
        """
        Simulated sheet with one row per device every interval_seconds,
        e.g. DummyReader(['farm-1', 'farm-2'], history=200).
        """
        self.devices = devices
        self.interval = timedelta(seconds=interval_seconds)
        self.history = history
        self.random = random.Random(seed)
        self.last_values: Dict[str, float] = {}
        logger.info(f"Initialized DummyReader with {len(devices)} simulated devices")

    def _get_value(self, series: str, base_value: float, variation: float) -> float:
        """Random walk with mean reversion"""
        current = self.last_values.get(series, base_value)
        new_value = current + self.random.uniform(-variation, variation)
        new_value = new_value * 0.9 + base_value * 0.1
        self.last_values[series] = new_value
        return new_value

    def _make_row(self, ts: datetime, device: str, index: int) -> List[Any]:
        values = {
            name: round(self._get_value(f"{device}_{name}", base, step), 2)
            for name, (base, step) in DEFAULT_PROFILE.items()
        }
        return [
            ts.strftime("%Y-%m-%d %H:%M:%S"),
            device,
            f"70B3D57ED00{index:05X}",
            values["ec"],
            values["ph"],
            values["n"],
            values["p"],
            values["k"],
            values["moi"],
            values["rssi"],
            values["snr"],
            None,  # legacy battery mV column
            values["bat"],
        ]

    async def fetch_rows(self, query: RowQuery) -> List[List[Any]]:
        now = datetime.now().replace(microsecond=0)
        rows = []
        for step in range(self.history):
            ts = now - self.interval * step
            day = ts.date()
            if query.start_date and day < query.start_date:
                break
            if query.end_date and day > query.end_date:
                continue
            for index, device in enumerate(self.devices):
                if query.device and device != query.device:
                    continue
                rows.append(self._make_row(ts, device, index))
            if query.limit and len(rows) >= query.limit:
                break
        return rows[:query.limit] if query.limit else rows

    async def check_health(self) -> bool:
        # Dummy reader is always healthy
        return True
