"""
Contracts for the parser and evaluator collaborators.

The navigation core never parses HCL or evaluates expressions itself;
it calls an object implementing ConfigCollaborator.
"""

from typing import Any, Dict, Optional, Protocol

from .models import ParseContext


class EvaluationError(Exception):
    """Raised when an expression references an unknown name or function."""
    pass


class ConfigCollaborator(Protocol):
    """Parser/evaluator operations consumed by the navigation core."""

    def parse_module_file(self, path: str, context: ParseContext) -> ParseContext:
        ...

    def evaluate_expression(self, expr: str, context: ParseContext, quiet: bool = False) -> Any:
        ...

    def find_in_parent_folders(self, pattern: str, context: ParseContext) -> Optional[str]:
        ...

    def overlay_cached_variables(self, cached: Optional[ParseContext], inputs: Optional[Dict[str, Any]]):
        ...
