"""Utility functions."""

from anthos_hub.utils.helpers import encode_secret_value, format_error, truncate_output
from anthos_hub.utils.log import setup_logging

__all__ = ["encode_secret_value", "format_error", "truncate_output", "setup_logging"]
