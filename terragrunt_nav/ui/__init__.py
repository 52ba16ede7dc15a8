"""Qt user interface for terragrunt-nav settings."""

from .dialogs import SettingsDialog, ReplacementRulesDialog

__all__ = ["SettingsDialog", "ReplacementRulesDialog"]
