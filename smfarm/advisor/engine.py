"""Threshold-based soil advisory engine.

Each parameter has an ordered list of bands. Band predicates are mutually
exclusive and together cover the whole real line, so every finite reading
lands in exactly one band. Missing values get a "no data" warning card.
"""

import logging
import math
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from smfarm.shared.models import (
    PARAMETER_LABELS,
    PARAMETER_ORDER,
    AdvisoryCard,
    ReadingRecord,
    Severity,
)
from .stats import median
from .thresholds import NutrientThresholds, Thresholds

logger = logging.getLogger(__name__)

# Window records considered for the baseline statistics
BASELINE_LIMIT = 300


class Band(NamedTuple):
    """One numeric interval of a parameter and the advice that goes with it."""
    name: str
    predicate: Callable[[float], bool]
    severity: Severity
    title: str
    message: Callable[[float], str]
    rationale: str
    actions: Tuple[str, ...] = ()

    def matches(self, value: float) -> bool:
        return self.predicate(value)

    def card(self, key: str, value: float) -> AdvisoryCard:
        return AdvisoryCard(
            parameter_key=key,
            severity=self.severity,
            title=self.title,
            message=self.message(value),
            rationale=self.rationale,
            recommended_actions=self.actions,
        )


def _fmt1(value: float) -> str:
    return f"{value:.1f}"


def _fmt(value: float) -> str:
    """Print a number as measured: 50 stays '50', 6.2 stays '6.2'."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _finite_or_none(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _nitrogen_bands(t: NutrientThresholds) -> List[Band]:
    a, w = t.action_lt, t.warn_lt
    return [
        Band(
            "low", lambda v: v < a, Severity.ACTION, "N low",
            lambda v: f"N {_fmt1(v)} ppm < {_fmt(a)} ppm",
            "Low nitrogen limits growth",
            ("Urea 46-0-0", "Ammonium sulfate 21-0-0"),
        ),
        Band(
            "fairly_low", lambda v: a <= v < w, Severity.WARN, "N fairly low",
            lambda v: f"N {_fmt1(v)} ppm is within {_fmt(a)}-{_fmt(w)} ppm",
            "Watch closely, deficiency may be starting",
            ("Adjust N fertilizer plan", "Re-test"),
        ),
        Band(
            "normal", lambda v: v >= w, Severity.OK, "N normal",
            lambda v: f"N {_fmt1(v)} ppm is in the suitable range (>= {_fmt(w)} ppm)",
            "Soil N status is good",
        ),
    ]


def _nutrient_bands(
    label: str,
    t: NutrientThresholds,
    low_rationale: str,
    low_actions: Tuple[str, ...],
    high_rationale: str,
    high_actions: Tuple[str, ...],
    elevated_rationale: str,
) -> List[Band]:
    """Five-band layout shared by phosphorus and potassium."""
    a, w, hi, gt = t.action_lt, t.warn_lt, t.ok_hi, t.warn_high_gt
    return [
        Band(
            "low", lambda v: v < a, Severity.ACTION, f"{label} low",
            lambda v: f"{label} {_fmt1(v)} ppm < {_fmt(a)} ppm",
            low_rationale, low_actions,
        ),
        Band(
            "fairly_low", lambda v: a <= v < w, Severity.WARN, f"{label} fairly low",
            lambda v: f"{label} {_fmt1(v)} ppm is within {_fmt(a)}-{_fmt(w)} ppm",
            "Monitor and plan to replenish",
            (f"Adjust {label} rate", "Re-test"),
        ),
        Band(
            "normal", lambda v: w <= v <= hi, Severity.OK, f"{label} normal",
            lambda v: f"{label} {_fmt1(v)} ppm is within the target range {_fmt(w)}-{_fmt(hi)} ppm",
            f"Soil {label} status is good",
        ),
        Band(
            "high", lambda v: v > gt, Severity.WARN, f"{label} high",
            lambda v: f"{label} {_fmt1(v)} ppm > {_fmt(gt)} ppm",
            high_rationale, high_actions,
        ),
        Band(
            "fairly_high", lambda v: hi < v <= gt, Severity.WARN, f"{label} fairly high",
            lambda v: f"{label} {_fmt1(v)} ppm is within {_fmt(hi)}-{_fmt(gt)} ppm",
            elevated_rationale,
            (f"Reduce {label} rate", "Re-test"),
        ),
    ]


def _conductivity_bands(thresholds: Thresholds) -> List[Band]:
    t = thresholds.ec
    water = _fmt(t.water_max_ppm)
    return [
        Band(
            "high", lambda v: v >= t.alert_ppm, Severity.ACTION, "Soil salinity high",
            lambda v: f"EC {_fmt1(v)} ppm >= {_fmt(t.alert_ppm)} ppm",
            f"High salt lowers plant water potential and causes stress "
            f"(irrigation water should not exceed {water} ppm)",
            ("Leach salts", "Adjust irrigation and drainage", "Avoid KCl, use K₂SO₄"),
        ),
        Band(
            "rising", lambda v: t.warn_ppm <= v < t.alert_ppm, Severity.WARN, "Salinity rising",
            lambda v: f"EC {_fmt1(v)} ppm >= {_fmt(t.warn_ppm)} ppm",
            f"Watch for salt accumulation (irrigation water should not exceed {water} ppm)",
            ("Check water quality", "Reduce salty fertilizers", "Add organic matter"),
        ),
        Band(
            "normal", lambda v: v < t.warn_ppm, Severity.OK, "Salinity normal",
            lambda v: f"EC {_fmt1(v)} ppm is in the suitable range (< {_fmt(t.warn_ppm)} ppm)",
            f"Soil EC status is good (irrigation water reference <= {water} ppm)",
        ),
    ]


def _moisture_bands(thresholds: Thresholds) -> List[Band]:
    t = thresholds.moi
    target = f"{_fmt(t.ok_min_pct)}-{_fmt(t.ok_max_pct)}%"
    return [
        Band(
            "refill", lambda v: v <= t.refill_pct, Severity.ACTION, "Irrigation needed",
            lambda v: f"MOI {_fmt(v)}% <= {_fmt(t.refill_pct)}% (refill water)",
            "Moisture is below the refill point, risk of water stress",
            ("Irrigate", "Mulch to reduce evaporation"),
        ),
        Band(
            "dry", lambda v: t.refill_pct < v < t.ok_min_pct, Severity.WARN, "Soil fairly dry",
            lambda v: f"MOI {_fmt(v)}% < target range {target}",
            "Approaching the refill point, keep watching",
            ("Measure more often", "Adjust irrigation schedule"),
        ),
        Band(
            "wet", lambda v: v > t.ok_max_pct, Severity.WARN, "Soil too wet",
            lambda v: f"MOI {_fmt(v)}% > target range {target}",
            "Low soil aeration, risk of root oxygen stress",
            ("Irrigate less often", "Improve drainage"),
        ),
        Band(
            "normal", lambda v: t.ok_min_pct <= v <= t.ok_max_pct, Severity.OK, "Moisture normal",
            lambda v: f"MOI {_fmt(v)}% is within target range {target}",
            "Soil moisture status is good",
        ),
    ]


def _ph_bands(thresholds: Thresholds) -> List[Band]:
    t = thresholds.ph
    return [
        Band(
            "acidic", lambda v: v < t.ok_min, Severity.ACTION, "pH strongly acidic",
            lambda v: f"pH {_fmt(v)} < {_fmt(t.ok_min)}",
            "Strong acidity reduces uptake of P, K and micronutrients",
            ("Apply dolomite or agricultural lime", "Soil test to set the rate",
             "Adjust ammonium-form fertilizers"),
        ),
        Band(
            "alkaline", lambda v: v > t.warn_high, Severity.WARN, "pH too alkaline",
            lambda v: f"pH {_fmt(v)} > {_fmt(t.warn_high)}",
            "Excess alkalinity can lock up P and micronutrients",
            ("Elemental sulfur (S)", "Use acidifying fertilizer (AS)", "Soil test"),
        ),
        Band(
            "normal", lambda v: t.ok_min <= v <= t.ok_max, Severity.OK, "pH normal",
            lambda v: f"pH {_fmt(v)} is within target range {_fmt(t.ok_min)}-{_fmt(t.ok_max)}",
            "Soil pH status is good",
        ),
        Band(
            "mildly_alkaline", lambda v: t.ok_max < v <= t.warn_high, Severity.WARN,
            "pH mildly alkaline",
            lambda v: f"pH {_fmt(v)} > {_fmt(t.ok_max)} but not above {_fmt(t.warn_high)}",
            "Near the upper edge of the suitable range, keep watching",
            ("Measure regularly", "Avoid pH-raising fertilizers"),
        ),
    ]


# Per-parameter "no data" texts: (message, rationale)
_NO_DATA_TEXT: Dict[str, Tuple[str, str]] = {
    "n": ("No recent reading found", "Nutrient level cannot be assessed"),
    "p": ("No recent reading found", "Nutrient level cannot be assessed"),
    "k": ("No recent reading found", "Nutrient level cannot be assessed"),
    "ec": ("No recent salinity reading found", "Soil salt level cannot be assessed"),
    "moi": ("No recent moisture reading found", "Soil moisture level cannot be assessed"),
    "ph": ("No recent pH reading found", "Soil acidity cannot be assessed"),
}


def no_data_card(key: str, message: Optional[str] = None, rationale: Optional[str] = None) -> AdvisoryCard:
    default_message, default_rationale = _NO_DATA_TEXT[key]
    return AdvisoryCard(
        parameter_key=key,
        severity=Severity.WARN,
        title=f"{PARAMETER_LABELS[key]} no data",
        message=message or default_message,
        rationale=rationale or default_rationale,
        recommended_actions=(),
    )


class AdvisoryEngine:
    """Classifies the latest reading into one advisory card per parameter."""

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds or Thresholds()
        self.thresholds.validate()
        t = self.thresholds
        self._bands: Dict[str, List[Band]] = {
            "n": _nitrogen_bands(t.n),
            "p": _nutrient_bands(
                "P", t.p,
                "Low phosphorus affects roots and flowering",
                ("TSP 0-46-0", "Rock phosphate", "Add organic matter"),
                "High P can interfere with micronutrient uptake",
                ("Skip or reduce P fertilizer", "Add organic matter", "Check Zn/Fe"),
                "Close to the high range, watch for accumulation",
            ),
            "k": _nutrient_bands(
                "K", t.k,
                "Low potassium reduces yield quality",
                ("K₂SO₄ 0-0-50", "Add organic matter"),
                "High K can raise salinity and upset the cation balance",
                ("Skip KCl fertilizer", "Consider leaching", "Add organic matter"),
                "Close to the high range, watch salinity and cation balance",
            ),
            "ec": _conductivity_bands(t),
            "moi": _moisture_bands(t),
            "ph": _ph_bands(t),
        }

    def bands_for(self, key: str) -> List[Band]:
        """Ordered bands for a parameter key."""
        return list(self._bands[key])

    def classify(self, key: str, value) -> AdvisoryCard:
        """Card for a single parameter value."""
        number = _finite_or_none(value)
        if number is None:
            return no_data_card(key)
        for band in self._bands[key]:
            if band.matches(number):
                return band.card(key, number)
        # Unreachable while the bands partition the real line
        logger.error(f"No band matched {key}={number}")
        return no_data_card(key)

    def baseline(self, window: Sequence[ReadingRecord]) -> Dict[str, Optional[float]]:
        """Median of each parameter over the recent window.

        Reserved for window-relative rules; severities do not use it.
        """
        base = list(window)[:BASELINE_LIMIT]
        return {key: median(r.value_for(key) for r in base) for key in PARAMETER_ORDER}

    def evaluate(
        self,
        latest: Optional[ReadingRecord],
        window: Sequence[ReadingRecord] = (),
    ) -> List[AdvisoryCard]:
        """Evaluate the latest reading.

        Args:
            latest: Most recent reading, or None when there is no data.
            window: Recent readings, newest first.

        Returns:
            Exactly one card per parameter, in PARAMETER_ORDER.
        """
        if latest is None:
            return [
                no_data_card(key, "No recent reading found", "Soil condition cannot be assessed")
                for key in PARAMETER_ORDER
            ]

        logger.debug(f"Window baseline: {self.baseline(window)}")
        return [self.classify(key, latest.value_for(key)) for key in PARAMETER_ORDER]
