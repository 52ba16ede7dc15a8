"""
Settings management for terragrunt-nav.

Handles loading, saving, and accessing navigator configuration.
"""

import copy
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from .defaults import DEFAULT_SETTINGS, FEATURE_TOGGLES
from ..core.models import ReplacementRule

logger = logging.getLogger(__name__)


class Settings:
    """
    Navigator settings manager.

    Settings are stored as JSON in the user's config directory.

    Path:
        Linux/macOS: ~/.config/terragrunt-nav/settings.json
        Windows: %APPDATA%\\terragrunt-nav\\settings.json
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_dir: Override for the configuration directory
        """
        self.config_dir = Path(config_dir) if config_dir else self._get_config_dir()
        self.config_file = self.config_dir / "settings.json"
        self._settings: Dict[str, Any] = {}
        self.load()

    @staticmethod
    def _get_config_dir() -> Path:
        """
        Get platform-specific configuration directory.

        Returns:
            Path to configuration directory
        """
        if os.name == 'nt':  # Windows
            base = os.environ.get('APPDATA', os.path.expanduser('~'))
        else:  # Linux/macOS
            base = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
        return Path(base) / 'terragrunt-nav'

    def load(self):
        """
        Load settings from file.

        A missing file means first run; an invalid one is logged.
        Either way defaults are used and nothing is written back.
        """
        self._settings = copy.deepcopy(DEFAULT_SETTINGS)

        if not self.config_file.exists():
            logger.info("No config file found, using defaults")
            return

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded_settings = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to load settings: {e}, using defaults")
            return

        if not isinstance(loaded_settings, dict):
            logger.error(f"Ignoring settings file {self.config_file}: not a JSON object")
            return

        self._deep_update(self._settings, loaded_settings)
        logger.info(f"Loaded settings from {self.config_file}")

    def save(self):
        """
        Save current settings to file.

        Creates parent directories if needed.
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self._settings, f, indent=2)

            logger.info(f"Saved settings to {self.config_file}")

        except IOError as e:
            logger.error(f"Failed to save settings: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get setting value.

        Supports nested keys with dot notation: "feature_toggles.ReplaceStrings"

        Args:
            key: Setting key (use dots for nested values)
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        value = self._settings

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """
        Set setting value.

        Supports nested keys with dot notation: "feature_toggles.ReplaceStrings"

        Args:
            key: Setting key (use dots for nested values)
            value: Value to set
        """
        keys = key.split('.')
        target = self._settings

        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]

        target[keys[-1]] = value

    def set_max_cache_size(self, size: int):
        """Set how many module directories the cache keeps (at least 1)."""
        self.set("max_cache_size", self._positive_int(size, "max_cache_size"))
        self.save()

    def set_quick_replace_strings_count(self, count: int):
        """Set how many replacement rules the quick editor shows (at least 1)."""
        self.set("quick_replace_strings_count", self._positive_int(count, "quick_replace_strings_count"))
        self.save()

    def get_replacement_rules(self) -> List[ReplacementRule]:
        rules = [
            ReplacementRule.from_dict(item)
            for item in self.get("replacement_strings", [])
            if isinstance(item, dict)
        ]
        return rules or [ReplacementRule()]

    def set_replacement_rules(self, rules: List[ReplacementRule]):
        """Replace the ordered rewrite rules; an empty list keeps one blank rule."""
        if not rules:
            rules = [ReplacementRule()]
        self.set("replacement_strings", [rule.to_dict() for rule in rules])
        self.save()

    def toggle_feature(self, name: str) -> bool:
        """
        Flip a feature toggle and persist it.

        Args:
            name: One of FEATURE_TOGGLES

        Returns:
            The new state

        Raises:
            ValueError: If the feature is unknown
        """
        if name not in FEATURE_TOGGLES:
            raise ValueError(f"Unknown feature toggle: {name}")

        enabled = not bool(self.get(f"feature_toggles.{name}", True))
        self.set(f"feature_toggles.{name}", enabled)
        self.save()
        logger.info(f"Feature \"{name}\" is now {'enabled' if enabled else 'disabled'}")
        return enabled

    def get_last_cloned_map(self) -> Dict[str, float]:
        value = self.get("last_cloned_map", {})
        return dict(value) if isinstance(value, dict) else {}

    def set_last_cloned_map(self, timestamps: Dict[str, float]):
        """Persist the clone ledger."""
        self.set("last_cloned_map", dict(timestamps))
        self.save()

    @staticmethod
    def _positive_int(value: Any, name: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        if number < 1:
            raise ValueError(f"{name} must be at least 1, got {number}")
        return number

    @staticmethod
    def _deep_update(base: dict, updates: dict):
        """
        Recursively update base dict with values from updates dict.

        Args:
            base: Dictionary to update
            updates: Dictionary with new values
        """
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                Settings._deep_update(base[key], value)
            else:
                base[key] = value


@dataclass
class NavigatorConfig:
    """
    Options injected into the Navigator.

    Attributes:
        replace_strings: Apply replacement_rules to locator paths
        add_cache_to_workspace: Add the repo cache to the workspace on git navigation
        replacement_rules: Ordered find/replace rules
        max_cache_size: Module directories kept in the cache
        quick_replace_strings_count: Rules offered by the quick editor
        clone_cooldown: Seconds before a cloned repo is eligible for re-cloning
        clone_timeout: Seconds before a clone is abandoned
        repo_cache_dir: Root for cloned repos; empty means the default location
    """
    replace_strings: bool = True
    add_cache_to_workspace: bool = True
    replacement_rules: List[ReplacementRule] = field(default_factory=lambda: [ReplacementRule()])
    max_cache_size: int = 10
    quick_replace_strings_count: int = 1
    clone_cooldown: float = 3000.0
    clone_timeout: int = 300
    repo_cache_dir: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "NavigatorConfig":
        return cls(
            replace_strings=bool(settings.get("feature_toggles.ReplaceStrings", True)),
            add_cache_to_workspace=bool(settings.get("feature_toggles.AddTerragruntCacheToWorkspace", True)),
            replacement_rules=settings.get_replacement_rules(),
            max_cache_size=max(1, int(settings.get("max_cache_size", 10))),
            quick_replace_strings_count=max(1, int(settings.get("quick_replace_strings_count", 1))),
            clone_cooldown=float(settings.get("clone_cooldown_seconds", 3000)),
            clone_timeout=int(settings.get("clone_timeout_seconds", 300)),
            repo_cache_dir=str(settings.get("repo_cache_dir", "") or ""),
        )
