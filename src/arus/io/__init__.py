"""Input/output handlers for arus."""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
