"""Service configuration."""

from .settings import Config, SheetConfig, SourceConfig, ViewFilters, load_config

__all__ = ["Config", "SheetConfig", "SourceConfig", "ViewFilters", "load_config"]
