"""Locating and reading the smfarm YAML config and its .env file.

Lookup order for the config file:
    1. an explicit path (``--config`` on the command line)
    2. ``SMFARM_CONFIG``
    3. ``config/config-<SMFARM_ENV>.yaml`` in the repo, SMFARM_ENV defaulting to 'smfarm'

Secrets such as the sheet id live in a ``.env`` next to the chosen config
file (see config/.env.example). Variables already set in the process win.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# repo_root/smfarm/shared/config.py -> repo_root/config/
CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"

DEFAULT_ENV = "smfarm"


def resolve_config_path(
    path: Optional[Union[str, Path]] = None,
    config_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """Pick the config file to load (see module docstring for the order)."""
    if path:
        return Path(path)
    if os.getenv("SMFARM_CONFIG"):
        return Path(os.environ["SMFARM_CONFIG"])
    env = os.getenv("SMFARM_ENV") or DEFAULT_ENV
    return Path(config_dir or CONFIG_DIR) / f"config-{env}.yaml"


def load_env_file(config_path: Path) -> bool:
    """Load the .env beside a config file, if there is one."""
    env_path = config_path.parent / ".env"
    if not env_path.is_file():
        return False
    logger.debug(f"Loading environment from {env_path}")
    return load_dotenv(env_path, override=False)


def load_yaml_config(
    path: Optional[Union[str, Path]] = None,
    load_env: bool = True,
) -> dict:
    """Read the config document.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping.
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if load_env:
        load_env_file(config_path)

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a mapping, got {type(data).__name__}")
    logger.info(f"Loaded config from {config_path}")
    return data


def env_override(name: str, value=None):
    """Value of environment variable `name` if set and non-empty, else `value`."""
    return os.getenv(name) or value


def get_log_level(config: dict) -> str:
    """LOG_LEVEL from the environment, else the file's log_level, else INFO."""
    return str(env_override("LOG_LEVEL", config.get("log_level") or "INFO")).upper()
