"""Configuration loader for anthos-hub."""

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from anthos_hub.config.schema import Config

DEFAULT_CONFIG_DIR = Path.home() / ".anthos-hub"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file and environment variables.

    Values in the file are passed as init arguments; sections missing from
    the file are filled from ``ANTHOS_HUB_*`` environment variables.

    Args:
        config_path: Optional path to config file. Defaults to ~/.anthos-hub/config.json.

    Returns:
        Loaded configuration.
    """
    path = config_path or DEFAULT_CONFIG_FILE

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            config = Config(**data)
            logger.debug(f"Config loaded from {path}")
            return config
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Failed to load config from {path}: {e}, using defaults")

    return Config()


def save_default_config(config_path: Path | None = None) -> Path:
    """
    Save default configuration to file.

    Args:
        config_path: Optional path to save config. Defaults to ~/.anthos-hub/config.json.

    Returns:
        Path where config was saved.
    """
    path = config_path or DEFAULT_CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    config = Config()
    data = config.model_dump(mode="json")
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info(f"Default config saved to {path}")
    return path
