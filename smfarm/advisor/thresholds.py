"""Advisory threshold configuration.

Nutrient values are ppm after conversion. For potassium,
1 cmol(+)/kg is roughly 391 ppm K. Conductivity ppm = dS/m x 640.
"""

import math
from dataclasses import dataclass, field
from typing import Optional


def _check_number(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"Threshold {name} must be a finite number, got {value!r}")


def _check_order(section: str, **cutoffs) -> None:
    """Cutoffs must be numbers in non-decreasing order, as given."""
    for name, value in cutoffs.items():
        _check_number(f"{section}.{name}", value)
    names = list(cutoffs)
    for lower, upper in zip(names, names[1:]):
        if cutoffs[lower] > cutoffs[upper]:
            raise ValueError(
                f"Threshold {section}.{lower} ({cutoffs[lower]}) must not exceed "
                f"{section}.{upper} ({cutoffs[upper]})"
            )


@dataclass(frozen=True)
class NutrientThresholds:
    """Cutoffs for a nutrient in ppm.

    ok_hi and warn_high_gt are only set for nutrients with upper bands, and
    then both must be set.
    """
    action_lt: float
    warn_lt: float
    ok_hi: Optional[float] = None
    warn_high_gt: Optional[float] = None

    @property
    def has_upper_bands(self) -> bool:
        return self.ok_hi is not None or self.warn_high_gt is not None

    def validate(self, section: str) -> None:
        if self.has_upper_bands:
            _check_order(
                section,
                action_lt=self.action_lt,
                warn_lt=self.warn_lt,
                ok_hi=self.ok_hi,
                warn_high_gt=self.warn_high_gt,
            )
        else:
            _check_order(section, action_lt=self.action_lt, warn_lt=self.warn_lt)

    @classmethod
    def from_dict(cls, data: Optional[dict], default: "NutrientThresholds") -> "NutrientThresholds":
        data = data or {}
        return cls(
            action_lt=data.get("action_lt", default.action_lt),
            warn_lt=data.get("warn_lt", default.warn_lt),
            ok_hi=data.get("ok_hi", default.ok_hi),
            warn_high_gt=data.get("warn_high_gt", default.warn_high_gt),
        )


@dataclass(frozen=True)
class ConductivityThresholds:
    warn_ppm: float = 1280
    alert_ppm: float = 2560
    water_max_ppm: float = 960  # irrigation water reference, shown in rationale only

    def validate(self) -> None:
        _check_order("ec", warn_ppm=self.warn_ppm, alert_ppm=self.alert_ppm)
        _check_number("ec.water_max_ppm", self.water_max_ppm)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ConductivityThresholds":
        data = data or {}
        return cls(
            warn_ppm=data.get("warn_ppm", 1280),
            alert_ppm=data.get("alert_ppm", 2560),
            water_max_ppm=data.get("water_max_ppm", 960),
        )


@dataclass(frozen=True)
class MoistureThresholds:
    """Soil moisture in percent of field capacity."""
    ok_min_pct: float = 60
    ok_max_pct: float = 80
    refill_pct: float = 50

    def validate(self) -> None:
        _check_order(
            "moi",
            refill_pct=self.refill_pct,
            ok_min_pct=self.ok_min_pct,
            ok_max_pct=self.ok_max_pct,
        )

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "MoistureThresholds":
        data = data or {}
        return cls(
            ok_min_pct=data.get("ok_min_pct", 60),
            ok_max_pct=data.get("ok_max_pct", 80),
            refill_pct=data.get("refill_pct", 50),
        )


@dataclass(frozen=True)
class PhThresholds:
    ok_min: float = 5.5
    ok_max: float = 6.0
    warn_high: float = 6.5

    def validate(self) -> None:
        _check_order("ph", ok_min=self.ok_min, ok_max=self.ok_max, warn_high=self.warn_high)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PhThresholds":
        data = data or {}
        return cls(
            ok_min=data.get("ok_min", 5.5),
            ok_max=data.get("ok_max", 6.0),
            warn_high=data.get("warn_high", 6.5),
        )


DEFAULT_NITROGEN = NutrientThresholds(action_lt=10, warn_lt=20)
DEFAULT_PHOSPHORUS = NutrientThresholds(action_lt=30, warn_lt=60, ok_hi=80, warn_high_gt=100)
DEFAULT_POTASSIUM = NutrientThresholds(action_lt=117, warn_lt=196, ok_hi=391, warn_high_gt=587)


@dataclass(frozen=True)
class Thresholds:
    """All advisory cutoffs. Read-only once loaded."""
    n: NutrientThresholds = DEFAULT_NITROGEN
    p: NutrientThresholds = DEFAULT_PHOSPHORUS
    k: NutrientThresholds = DEFAULT_POTASSIUM
    ec: ConductivityThresholds = field(default_factory=ConductivityThresholds)
    moi: MoistureThresholds = field(default_factory=MoistureThresholds)
    ph: PhThresholds = field(default_factory=PhThresholds)

    def validate(self) -> None:
        """Raise ValueError unless every band boundary is usable.

        Phosphorus and potassium always have upper bands.
        """
        self.n.validate("n")
        for section, nutrient in (("p", self.p), ("k", self.k)):
            if not nutrient.has_upper_bands:
                raise ValueError(f"Threshold {section} needs ok_hi and warn_high_gt")
            nutrient.validate(section)
        self.ec.validate()
        self.moi.validate()
        self.ph.validate()

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Thresholds":
        """Create thresholds from the 'thresholds' config section.

        Missing sections and keys keep their defaults.

        Raises:
            ValueError: If a cutoff is not a number or cutoffs are out of order.
        """
        data = data or {}
        thresholds = cls(
            n=NutrientThresholds.from_dict(data.get("n"), DEFAULT_NITROGEN),
            p=NutrientThresholds.from_dict(data.get("p"), DEFAULT_PHOSPHORUS),
            k=NutrientThresholds.from_dict(data.get("k"), DEFAULT_POTASSIUM),
            ec=ConductivityThresholds.from_dict(data.get("ec")),
            moi=MoistureThresholds.from_dict(data.get("moi")),
            ph=PhThresholds.from_dict(data.get("ph")),
        )
        thresholds.validate()
        return thresholds
