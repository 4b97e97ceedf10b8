"""Configuration module."""

from anthos_hub.config.schema import Config
from anthos_hub.config.loader import load_config, save_default_config

__all__ = ["Config", "load_config", "save_default_config"]
