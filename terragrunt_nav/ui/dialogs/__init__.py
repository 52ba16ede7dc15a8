"""Dialog windows for terragrunt-nav."""

from .settings_dialog import SettingsDialog
from .replacement_dialog import ReplacementRulesDialog

__all__ = ["SettingsDialog", "ReplacementRulesDialog"]
