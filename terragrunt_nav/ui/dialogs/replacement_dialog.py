"""
Editor for the path replacement rules.

Shows the first ``quick_replace_strings_count`` rules as find/replace
field pairs; rules beyond that are kept unchanged.
"""

from typing import List, Optional, Tuple

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QGridLayout,
    QLabel, QLineEdit, QPushButton, QWidget,
)

from ...config import Settings
from ...core.models import ReplacementRule


class ReplacementRulesDialog(QDialog):
    """Quick editor for replacement strings."""

    def __init__(self, settings: Settings, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.settings = settings
        self.rules: List[ReplacementRule] = settings.get_replacement_rules()
        self._fields: List[Tuple[QLineEdit, QLineEdit]] = []
        self._init_ui()

    def _init_ui(self):
        self.setWindowTitle("Replacement Strings")
        self.setMinimumWidth(480)

        layout = QVBoxLayout(self)

        grid = QGridLayout()
        grid.addWidget(QLabel("Find"), 0, 0)
        grid.addWidget(QLabel("Replace"), 0, 1)

        count = min(int(self.settings.get("quick_replace_strings_count", 1)), len(self.rules))
        for row, rule in enumerate(self.rules[:count], start=1):
            find_edit = QLineEdit(rule.find)
            replace_edit = QLineEdit(rule.replace)
            grid.addWidget(find_edit, row, 0)
            grid.addWidget(replace_edit, row, 1)
            self._fields.append((find_edit, replace_edit))

        layout.addLayout(grid)

        button_layout = QHBoxLayout()
        button_layout.addStretch()

        self.save_button = QPushButton("Save")
        self.save_button.clicked.connect(self._on_save)
        button_layout.addWidget(self.save_button)

        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self.reject)
        button_layout.addWidget(self.cancel_button)

        layout.addLayout(button_layout)

    def edited_rules(self) -> List[ReplacementRule]:
        """Rules with the edited fields applied, in their original order."""
        rules = [ReplacementRule(rule.find, rule.replace) for rule in self.rules]
        for index, (find_edit, replace_edit) in enumerate(self._fields):
            rules[index] = ReplacementRule(find_edit.text(), replace_edit.text())
        return rules

    def _on_save(self):
        edited = self.edited_rules()
        if edited != self.rules:
            self.settings.set_replacement_rules(edited)
        self.accept()
