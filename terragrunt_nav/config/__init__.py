"""
Configuration management for terragrunt-nav.

This module handles settings, defaults, persistence and the
NavigatorConfig handed to the navigation core.
"""

from .settings import Settings, NavigatorConfig
from .defaults import DEFAULT_SETTINGS, FEATURE_TOGGLES

__all__ = ["Settings", "NavigatorConfig", "DEFAULT_SETTINGS", "FEATURE_TOGGLES"]
