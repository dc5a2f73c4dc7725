"""CSV export of stored readings."""

import csv
import logging
from datetime import datetime
from typing import Iterable, List, Optional, TextIO

from smfarm.shared.models import ReadingRecord

logger = logging.getLogger(__name__)

HEADER = ["Time", "Device", "EC(ppm)", "pH", "N(ppm)", "P(ppm)", "K(ppm)", "MOI(%)", "BAT(%)"]


def _fmt1(value: Optional[float]) -> str:
    return f"{value:.1f}" if value is not None else ""


def select_for_export(
    records: Iterable[ReadingRecord],
    device: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[ReadingRecord]:
    """Records of one device (or all) inside inclusive datetime bounds.

    Unlike the dashboard filter these bounds include the time of day.
    """
    selected = [r for r in records if not device or r.device == device]
    if start or end:
        selected = [
            r for r in selected
            if r.timestamp is not None
            and (start is None or r.timestamp >= start)
            and (end is None or r.timestamp <= end)
        ]
    return selected


def export_row(record: ReadingRecord) -> List[str]:
    return [
        record.timestamp.strftime("%Y-%m-%d %H:%M:%S") if record.timestamp else "",
        record.device,
        _fmt1(record.conductivity),
        _fmt1(record.ph),
        _fmt1(record.nitrogen),
        _fmt1(record.phosphorus),
        _fmt1(record.potassium),
        _fmt1(record.moisture),
        _fmt1(record.battery_percent),
    ]


def export_csv(
    records: Iterable[ReadingRecord],
    stream: TextIO,
    device: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> int:
    """Write readings as CSV.

    Returns:
        Number of data rows written.
    """
    selected = select_for_export(records, device, start, end)
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(HEADER)
    writer.writerows(export_row(r) for r in selected)
    logger.info(f"Exported {len(selected)} readings")
    return len(selected)


def export_filename(
    device: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> str:
    """File name like smfarm-farm-1-2024-01-01_00-00_to_2024-01-07_23-59.csv"""
    sn = start.strftime("%Y-%m-%d_%H-%M") if start else "start"
    en = end.strftime("%Y-%m-%d_%H-%M") if end else "end"
    return f"smfarm-{device or 'all'}-{sn}_to_{en}.csv"
