"""In-memory reading cache."""

import logging
import re
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import ReadingRecord

logger = logging.getLogger(__name__)

# "farm-12" / "farm12" -> ("farm", 12)
_DEVICE_ID_RE = re.compile(r"^(.+?)-?(\d+)$")


def device_sort_key(device: str) -> Tuple[str, int]:
    """Sort key for device ids: name (case-insensitive), then trailing number.

    Ids without a trailing number sort as number 0.
    """
    match = _DEVICE_ID_RE.match(device)
    if match:
        return match.group(1).lower(), int(match.group(2))
    return device.lower(), 0


def sort_devices(devices: Iterable[str]) -> List[str]:
    """Distinct, non-empty device ids in display order."""
    return sorted({d for d in devices if d}, key=device_sort_key)


def latest_of(records: Sequence[ReadingRecord]) -> Optional[ReadingRecord]:
    """First record that carries a device id."""
    return next((r for r in records if r.device), None)


def _as_date(value: Optional[date]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def filter_records(
    records: Iterable[ReadingRecord],
    device: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[ReadingRecord]:
    """Filter records by device and inclusive calendar-date bounds.

    An empty device means all devices. When either bound is given, records
    without a timestamp are dropped.
    """
    start_date = _as_date(start_date)
    end_date = _as_date(end_date)

    filtered = list(records)
    if device:
        filtered = [r for r in filtered if r.device == device]

    if start_date or end_date:
        def in_range(record: ReadingRecord) -> bool:
            if record.timestamp is None:
                return False
            day = record.timestamp.date()
            if start_date and day < start_date:
                return False
            if end_date and day > end_date:
                return False
            return True

        filtered = [r for r in filtered if in_range(r)]

    return filtered


class ReadingStore:
    """Holds one generation of readings, newest first.

    replace_all() swaps the whole generation by rebinding a reference to an
    immutable tuple, so readers never see a partially replaced store.
    """

    def __init__(self, records: Iterable[ReadingRecord] = ()):
        self._records: Tuple[ReadingRecord, ...] = tuple(records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> Tuple[ReadingRecord, ...]:
        return self._records

    def replace_all(self, records: Iterable[ReadingRecord]) -> None:
        generation = tuple(records)
        self._records = generation
        logger.debug(f"Store replaced with {len(generation)} records")

    def latest(self) -> Optional[ReadingRecord]:
        return latest_of(self._records)

    def filter(
        self,
        device: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[ReadingRecord]:
        return filter_records(self._records, device, start_date, end_date)

    def window(
        self,
        n: int,
        device: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[ReadingRecord]:
        """First n records in store order, optionally of a filtered view."""
        if n <= 0:
            return []
        if device or start_date or end_date:
            return self.filter(device, start_date, end_date)[:n]
        return list(self._records[:n])

    def devices(self) -> List[str]:
        return sort_devices(r.device for r in self._records)
