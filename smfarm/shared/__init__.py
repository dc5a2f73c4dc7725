"""Shared utilities for smfarm services."""

from .models import AdvisoryCard, ReadingRecord, Severity, PARAMETER_ORDER
from .store import ReadingStore, sort_devices
from .config import load_yaml_config, resolve_config_path
from .mqtt import MQTTConfig
from .logging import setup_logging

__all__ = [
    "AdvisoryCard",
    "ReadingRecord",
    "Severity",
    "PARAMETER_ORDER",
    "ReadingStore",
    "sort_devices",
    "load_yaml_config",
    "resolve_config_path",
    "MQTTConfig",
    "setup_logging",
]
