"""Builds ReadingRecords from raw sheet rows."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

from smfarm.shared.models import ReadingRecord
from .units import UnitConverter, to_number_or_none

logger = logging.getLogger(__name__)


# Source column layout. Column 11 holds the legacy battery millivolt value and
# is never read; battery percent comes from column 12 only.
COLUMNS = {
    "timestamp": 0,
    "device": 1,
    "device_secondary_id": 2,
    "conductivity": 3,
    "ph": 4,
    "nitrogen": 5,
    "phosphorus": 6,
    "potassium": 7,
    "moisture": 8,
    "signal_strength": 9,
    "signal_to_noise": 10,
    "battery_percent": 12,
}

# Date(2024,0,15,10,30,0) with a 0-based month, time part optional
DATE_TOKEN_RE = re.compile(
    r"^Date\((\d+),(\d+),(\d+)(?:,(\d+),(\d+),(\d+)(?:,(\d+))?)?\)$"
)

DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%Y-%m-%d",
]


class CellKind(Enum):
    """Kinds of raw cell values."""
    EMPTY = "empty"
    NUMBER = "number"
    DATE_TOKEN = "date_token"
    DATETIME = "datetime"
    STRING = "string"


@dataclass(frozen=True)
class Cell:
    """A decoded raw cell."""
    kind: CellKind
    value: Any = None

    def as_number(self) -> Optional[float]:
        if self.kind in (CellKind.NUMBER, CellKind.STRING):
            return to_number_or_none(self.value)
        return None

    def as_text(self) -> str:
        if self.kind is CellKind.EMPTY:
            return ""
        if self.kind is CellKind.NUMBER and isinstance(self.value, float) and self.value.is_integer():
            return str(int(self.value))
        return str(self.value)

    def as_datetime(self) -> Optional[datetime]:
        if self.kind is CellKind.DATETIME:
            return to_local_naive(self.value)
        if self.kind is CellKind.DATE_TOKEN:
            return _parse_date_token(self.value)
        if self.kind is CellKind.STRING:
            return parse_date_string(self.value)
        return None


EMPTY_CELL = Cell(CellKind.EMPTY)


def decode_cell(raw: Any) -> Cell:
    """Classify one raw cell value."""
    if raw is None:
        return EMPTY_CELL
    if isinstance(raw, datetime):
        return Cell(CellKind.DATETIME, raw)
    if isinstance(raw, bool):
        return Cell(CellKind.STRING, str(raw).lower())
    if isinstance(raw, (int, float)):
        return Cell(CellKind.NUMBER, raw)
    text = str(raw).strip()
    if not text:
        return EMPTY_CELL
    match = DATE_TOKEN_RE.match(text)
    if match:
        return Cell(CellKind.DATE_TOKEN, match)
    return Cell(CellKind.STRING, text)


def to_local_naive(dt: datetime) -> Optional[datetime]:
    """Offset-aware datetimes become naive local time, like the sheet's own cells."""
    if dt.tzinfo is None:
        return dt
    try:
        return dt.astimezone().replace(tzinfo=None)
    except (OverflowError, OSError):
        logger.debug(f"Cannot convert {dt} to local time")
        return None


def _parse_date_token(match: "re.Match") -> Optional[datetime]:
    parts = [int(g) if g is not None else 0 for g in match.groups()]
    year, month, day, hour, minute, second, millis = parts
    try:
        return datetime(year, month + 1, day, hour, minute, second, millis * 1000)
    except (ValueError, OverflowError):
        logger.debug(f"Out of range date token: {match.group(0)}")
        return None


def parse_date_string(text: str) -> Optional[datetime]:
    """Parse a generic date string, None if no known layout matches."""
    try:
        return to_local_naive(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    logger.debug(f"Unparsable timestamp: {text!r}")
    return None


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse a raw timestamp cell (date token, datetime or date string)."""
    return decode_cell(raw).as_datetime()


class ReadingBuilder:
    """Turns raw rows into unit-normalized ReadingRecords.

    Never rejects a row: unparsable cells become None fields.
    """

    def __init__(self, converter: Optional[UnitConverter] = None):
        self.converter = converter or UnitConverter()

    def build(self, row: Optional[Sequence[Any]]) -> ReadingRecord:
        cells = [decode_cell(raw) for raw in (row or [])]

        def cell(name: str) -> Cell:
            index = COLUMNS[name]
            return cells[index] if index < len(cells) else EMPTY_CELL

        def number(name: str) -> Optional[float]:
            return cell(name).as_number()

        convert = self.converter
        return ReadingRecord(
            timestamp=cell("timestamp").as_datetime(),
            device=cell("device").as_text(),
            device_secondary_id=cell("device_secondary_id").as_text(),
            conductivity=convert.to_canonical_conductivity(number("conductivity")),
            ph=number("ph"),
            nitrogen=convert.to_canonical_concentration(number("nitrogen"), "N"),
            phosphorus=convert.to_canonical_concentration(number("phosphorus"), "P"),
            potassium=convert.to_canonical_concentration(number("potassium"), "K"),
            moisture=number("moisture"),
            signal_strength=number("signal_strength"),
            signal_to_noise=number("signal_to_noise"),
            battery_percent=number("battery_percent"),
        )

    def build_all(self, rows: Iterable[Optional[Sequence[Any]]]) -> List[ReadingRecord]:
        """Build records for all rows, preserving order."""
        return [self.build(row) for row in rows]
