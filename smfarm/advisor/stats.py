"""Summary statistics over reading views."""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from smfarm.shared.models import ReadingRecord

SUMMARY_METRICS = ("ec", "ph", "n", "p", "k", "moi", "bat")


@dataclass(frozen=True)
class MetricSummary:
    avg: float
    min: float
    max: float
    count: int


def _finite(values: Iterable[Optional[float]]) -> List[float]:
    return [v for v in values if v is not None and math.isfinite(v)]


def percentile(values: Iterable[Optional[float]], p: float) -> Optional[float]:
    """Percentile with linear interpolation between closest ranks.

    Non-finite and None values are ignored; returns None when nothing is left.
    """
    data = sorted(_finite(values))
    if not data:
        return None
    index = (len(data) - 1) * p
    lo, hi = math.floor(index), math.ceil(index)
    if lo == hi:
        return data[lo]
    return data[lo] + (data[hi] - data[lo]) * (index - lo)


def median(values: Iterable[Optional[float]]) -> Optional[float]:
    return percentile(values, 0.5)


def summarize(
    records: Sequence[ReadingRecord],
    metrics: Sequence[str] = SUMMARY_METRICS,
) -> Dict[str, MetricSummary]:
    """Average, min and max per metric. Metrics without values are left out."""
    summary = {}
    for metric in metrics:
        values = _finite(r.value_for(metric) for r in records)
        if not values:
            continue
        summary[metric] = MetricSummary(
            avg=sum(values) / len(values),
            min=min(values),
            max=max(values),
            count=len(values),
        )
    return summary
