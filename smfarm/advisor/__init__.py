"""Threshold-based soil advisories."""

from .engine import AdvisoryEngine, Band
from .thresholds import Thresholds

__all__ = ["AdvisoryEngine", "Band", "Thresholds"]
