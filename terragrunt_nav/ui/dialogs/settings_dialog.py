"""
Settings dialog for terragrunt-nav.

Allows users to adjust the module cache capacity, the number of
quick replacement rules and the feature toggles.
"""

from typing import Optional

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout,
    QSpinBox, QCheckBox, QPushButton, QGroupBox,
    QWidget,
)

from ...config import Settings


class SettingsDialog(QDialog):
    """Navigator preferences dialog."""

    def __init__(self, settings: Settings, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.settings = settings
        self._init_ui()
        self._load_values()

    def _init_ui(self):
        """Build the dialog UI."""
        self.setWindowTitle("Terragrunt Navigator Preferences")
        self.setMinimumWidth(400)

        layout = QVBoxLayout(self)

        # Cache settings
        cache_group = QGroupBox("Cache")
        cache_form = QFormLayout()

        self.cache_size_spin = QSpinBox()
        self.cache_size_spin.setRange(1, 1000)
        cache_form.addRow("Module directories to keep:", self.cache_size_spin)

        self.quick_count_spin = QSpinBox()
        self.quick_count_spin.setRange(1, 100)
        cache_form.addRow("Quick replacement rules:", self.quick_count_spin)

        cache_group.setLayout(cache_form)
        layout.addWidget(cache_group)

        # Feature toggles
        toggle_group = QGroupBox("Features")
        toggle_layout = QVBoxLayout()

        self.replace_strings_check = QCheckBox("Apply replacement strings to paths")
        toggle_layout.addWidget(self.replace_strings_check)

        self.add_cache_check = QCheckBox("Add repo cache to workspace")
        toggle_layout.addWidget(self.add_cache_check)

        toggle_group.setLayout(toggle_layout)
        layout.addWidget(toggle_group)

        # Buttons
        button_layout = QHBoxLayout()
        button_layout.addStretch()

        self.save_button = QPushButton("Save")
        self.save_button.clicked.connect(self._on_save)
        button_layout.addWidget(self.save_button)

        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self.reject)
        button_layout.addWidget(self.cancel_button)

        layout.addLayout(button_layout)

    def _load_values(self):
        """Load current settings into form fields."""
        self.cache_size_spin.setValue(int(self.settings.get("max_cache_size", 10)))
        self.quick_count_spin.setValue(int(self.settings.get("quick_replace_strings_count", 1)))
        self.replace_strings_check.setChecked(bool(self.settings.get("feature_toggles.ReplaceStrings", True)))
        self.add_cache_check.setChecked(
            bool(self.settings.get("feature_toggles.AddTerragruntCacheToWorkspace", True))
        )

    def _on_save(self):
        """Save form values to settings."""
        self.settings.set("max_cache_size", self.cache_size_spin.value())
        self.settings.set("quick_replace_strings_count", self.quick_count_spin.value())
        self.settings.set("feature_toggles.ReplaceStrings", self.replace_strings_check.isChecked())
        self.settings.set("feature_toggles.AddTerragruntCacheToWorkspace", self.add_cache_check.isChecked())
        self.settings.save()
        self.accept()
