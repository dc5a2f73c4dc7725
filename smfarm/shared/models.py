"""Core data models for soil readings and advisory results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# Fixed evaluation and display order of the monitored parameters
PARAMETER_ORDER: Tuple[str, ...] = ("n", "p", "k", "ec", "moi", "ph")

PARAMETER_LABELS: Dict[str, str] = {
    "n": "N",
    "p": "P",
    "k": "K",
    "ec": "EC",
    "moi": "MOI",
    "ph": "pH",
    "bat": "BAT",
}

# Parameter key -> ReadingRecord attribute
_FIELD_BY_KEY: Dict[str, str] = {
    "n": "nitrogen",
    "p": "phosphorus",
    "k": "potassium",
    "ec": "conductivity",
    "moi": "moisture",
    "ph": "ph",
    "bat": "battery_percent",
    "rssi": "signal_strength",
    "snr": "signal_to_noise",
}


class Severity(Enum):
    """Advisory severity levels."""
    OK = "ok"
    WARN = "warn"
    ACTION = "action"


@dataclass(frozen=True)
class ReadingRecord:
    """One unit-normalized sensor sample.

    Concentrations (nitrogen, phosphorus, potassium, conductivity) are in ppm,
    moisture is percent, pH is unitless. Any value missing from the source
    row is None.
    """
    timestamp: Optional[datetime]
    device: str = ""
    device_secondary_id: str = ""
    conductivity: Optional[float] = None
    ph: Optional[float] = None
    nitrogen: Optional[float] = None
    phosphorus: Optional[float] = None
    potassium: Optional[float] = None
    moisture: Optional[float] = None
    signal_strength: Optional[float] = None
    signal_to_noise: Optional[float] = None
    battery_percent: Optional[float] = None

    def value_for(self, key: str) -> Optional[float]:
        """Get the value of a parameter by its short key ('n', 'ec', ...)."""
        attr = _FIELD_BY_KEY.get(key)
        if attr is None:
            raise KeyError(f"Unknown parameter key: {key}")
        return getattr(self, attr)


@dataclass(frozen=True)
class AdvisoryCard:
    """Evaluation result for one parameter."""
    parameter_key: str
    severity: Severity
    title: str
    message: str
    rationale: str
    recommended_actions: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON/MQTT."""
        return {
            "parameter_key": self.parameter_key,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "rationale": self.rationale,
            "recommended_actions": list(self.recommended_actions),
        }
