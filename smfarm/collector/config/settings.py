from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
import logging

from smfarm.advisor.thresholds import Thresholds
from smfarm.collector.units import ConversionConfig
from smfarm.shared.config import env_override, get_log_level, load_yaml_config
from smfarm.shared.mqtt import MQTTConfig

logger = logging.getLogger(__name__)


@dataclass
class SheetConfig:
    sheet_id: str
    sheet_name: str = "data"
    timeout: float = 15.0  # seconds per request


@dataclass
class SourceConfig:
    type: str = "gviz"  # 'gviz' or 'dummy'
    sheet: Optional[SheetConfig] = None
    # Only used by the dummy source
    devices: List[str] = field(default_factory=lambda: ["farm-1", "farm-2"])


@dataclass
class ViewFilters:
    """Filters applied to the store for one refresh.

    device: '' or None shows all devices.
    advisor_device: None follows the latest reading's device, '' means all.
    """
    device: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    points: int = 100
    advisor_device: Optional[str] = None

    @property
    def has_range(self) -> bool:
        return bool(self.start_date or self.end_date)

    def fetch_limit(self) -> Optional[int]:
        """Row limit for the upstream query.

        Date-bounded views fetch everything in range; the all-devices view
        fetches more rows so each device still gets enough points.
        """
        if self.has_range:
            return None
        return self.points * (1 if self.device else 8)


@dataclass
class Config:
    source: SourceConfig
    view: ViewFilters = field(default_factory=ViewFilters)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    thresholds: Thresholds = field(default_factory=Thresholds)
    mqtt: Optional[MQTTConfig] = None
    refresh_interval: int = 10
    log_level: str = "INFO"


def _parse_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def config_from_dict(config_data: dict) -> Config:
    """Build a Config from the parsed YAML document."""
    source_data = config_data.get("source") or {}
    source = SourceConfig(
        type=source_data.get("type", "gviz"),
        devices=source_data.get("devices") or ["farm-1", "farm-2"],
    )

    sheet_id = env_override("SMFARM_SHEET_ID", source_data.get("sheet_id"))
    if sheet_id:
        source.sheet = SheetConfig(
            sheet_id=sheet_id,
            sheet_name=source_data.get("sheet_name", "data"),
            timeout=source_data.get("timeout", 15.0),
        )
    elif source.type == "gviz":
        raise ValueError("source.sheet_id (or SMFARM_SHEET_ID) is required for the gviz source")

    view_data = config_data.get("view") or {}
    view = ViewFilters(
        device=view_data.get("device"),
        start_date=_parse_date(view_data.get("start_date")),
        end_date=_parse_date(view_data.get("end_date")),
        points=view_data.get("points", 100),
        advisor_device=view_data.get("advisor_device"),
    )

    mqtt_config = None
    if "mqtt" in config_data:
        mqtt_config = MQTTConfig.from_dict(config_data["mqtt"] or {})
        mqtt_config.broker = env_override("MQTT_BROKER", mqtt_config.broker)

    return Config(
        source=source,
        view=view,
        conversion=ConversionConfig.from_dict(config_data.get("conversion") or {}),
        thresholds=Thresholds.from_dict(config_data.get("thresholds")),
        mqtt=mqtt_config,
        refresh_interval=config_data.get("refresh_interval", 10),
        log_level=get_log_level(config_data),
    )


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from YAML file with environment variable support"""
    config_data = load_yaml_config(path)
    return config_from_dict(config_data)
