"""Raw sensor unit conversion.

Nutrient sensors report the available (dissolved) form in mg/L; the
advisory thresholds are expressed as lab-comparable ppm. Conductivity comes
from two sensor generations: older probes report a millivolt-scale signal,
newer ones report µS/cm. There is no unit tag in the feed, so the raw
magnitude selects the conversion.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def to_number_or_none(value: Any) -> Optional[float]:
    """Convert a numeric-looking value to float, None otherwise.

    Never returns NaN or infinity. Booleans are not numbers here.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (ValueError, TypeError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like the dashboards do: halves go up, not to even."""
    scale = 10 ** digits
    scaled = value * scale + 0.5
    if not math.isfinite(scaled):
        # too large to have a fractional part worth rounding
        return value
    return math.floor(scaled) / scale


def _default_factors() -> Dict[str, float]:
    # sensor x factor ~= lab value; calibrate per site
    return {"N": 1.0, "P": 1.0, "K": 1.0}


@dataclass(frozen=True)
class ConversionConfig:
    """Conversion constants for nutrients and conductivity."""
    nutrient_factors: Dict[str, float] = field(default_factory=_default_factors)
    ec_slope: float = 0.001  # mV -> mS/cm
    ec_offset: float = 0.0
    ec_to_ppm: float = 640.0  # mS/cm -> ppm
    ec_direct_factor: float = 0.64  # µS/cm -> ppm
    ec_regime_cutoff: float = 10000.0
    ec_clamp_max: float = 65535.0

    def factor_for(self, nutrient: str) -> float:
        return self.nutrient_factors.get(nutrient, 1.0)

    def with_factor(self, nutrient: str, factor: float) -> "ConversionConfig":
        """Return a copy with one nutrient factor replaced.

        Unknown nutrients return the config unchanged.
        """
        if nutrient not in self.nutrient_factors:
            return self
        factors = dict(self.nutrient_factors)
        factors[nutrient] = factor
        return replace(self, nutrient_factors=factors)

    @classmethod
    def from_dict(cls, data: dict) -> "ConversionConfig":
        """Create config from dictionary (the 'conversion' config section)."""
        factors = _default_factors()
        for nutrient, factor in (data.get("factors") or {}).items():
            key = str(nutrient).upper()
            if key in factors:
                factors[key] = float(factor)
            else:
                logger.warning(f"Ignoring conversion factor for unknown nutrient: {nutrient}")

        return cls(
            nutrient_factors=factors,
            ec_slope=data.get("ec_slope", 0.001),
            ec_offset=data.get("ec_offset", 0.0),
            ec_to_ppm=data.get("ec_to_ppm", 640.0),
            ec_direct_factor=data.get("ec_direct_factor", 0.64),
        )


class UnitConverter:
    """Converts raw sensor values into canonical agronomic units.

    The converter owns a single ConversionConfig. update_conversion_factor()
    swaps it for a new value, so records built before the update keep the
    values they were built with. Only the refresh owner should call it.
    """

    def __init__(self, config: Optional[ConversionConfig] = None):
        self.config = config or ConversionConfig()

    def to_canonical_concentration(self, raw_value: Any, nutrient: str) -> Optional[float]:
        """Convert a nutrient reading from mg/L to ppm, rounded to 0.1.

        Args:
            raw_value: Raw sensor value.
            nutrient: 'N', 'P' or 'K'. Unknown kinds use a factor of 1.0.

        Returns:
            Converted value, or None for missing/non-numeric input.
        """
        value = to_number_or_none(raw_value)
        if value is None:
            return None
        converted = value * self.config.factor_for(nutrient)
        if not math.isfinite(converted):
            logger.debug(f"{nutrient} value {value} out of range after conversion")
            return None
        return round_half_up(converted, 1)

    def to_canonical_conductivity(self, raw_value: Any) -> Optional[float]:
        """Convert a raw conductivity reading to ppm.

        Values below the regime cutoff are treated as a mV signal: converted
        to mS/cm, then to ppm and clamped to the sensor range. Values at or
        above it are already µS/cm and only get the direct factor.
        """
        value = to_number_or_none(raw_value)
        if value is None:
            return None

        config = self.config
        if value < config.ec_regime_cutoff:
            ec_ms_cm = value * config.ec_slope + config.ec_offset
            ppm = ec_ms_cm * config.ec_to_ppm
            return max(0.0, min(config.ec_clamp_max, ppm))

        ppm = value * config.ec_direct_factor
        return ppm if math.isfinite(ppm) else None

    def update_conversion_factor(self, nutrient: str, factor: float) -> bool:
        """Replace the conversion factor for a nutrient.

        Affects conversions made after the call only.

        Returns:
            True if the factor was updated, False for unknown nutrients or
            non-finite factors.
        """
        if nutrient not in self.config.nutrient_factors:
            logger.warning(f"Unknown nutrient {nutrient!r}, conversion factor not updated")
            return False
        number = to_number_or_none(factor)
        if number is None:
            logger.warning(f"Invalid conversion factor {factor!r} for {nutrient}")
            return False

        self.config = self.config.with_factor(nutrient, number)
        logger.info(f"Updated {nutrient} conversion factor to {number}")
        return True
