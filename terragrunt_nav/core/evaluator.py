"""
Expression evaluator for Terragrunt/Terraform interpolations.

Handles the subset needed to annotate values and resolve paths:
quoted templates, literals, ``local.*``/``var.*``/``dependency.*``
references with index and splat segments, and a few Terragrunt
helper functions. Anything else raises EvaluationError.
"""

import logging
import os
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from .collaborators import EvaluationError
from .models import ParseContext

logger = logging.getLogger(__name__)

REFERENCE_ROOTS = ("local", "var", "dependency")

_REFERENCE_PATTERN = re.compile(r'^(local|var|dependency)((?:\.[\w\-*]+|\[[^\]]*\])+)$')
_SEGMENT_PATTERN = re.compile(r'\.([\w\-*]+)|\[\s*([^\]]*?)\s*\]')
_FUNCTION_PATTERN = re.compile(r'^([A-Za-z_][\w]*)\((.*)\)$', re.DOTALL)
_NUMBER_PATTERN = re.compile(r'^-?\d+(\.\d+)?$')

MAX_EVAL_DEPTH = 32

_SPLAT = object()


def _split_args(text: str) -> List[str]:
    """Split a function argument list on top-level commas."""
    args = []
    depth = 0
    in_string = False
    current = []
    for char in text:
        if char == '"' and (not current or current[-1] != "\\"):
            in_string = not in_string
        elif not in_string and char in "([{":
            depth += 1
        elif not in_string and char in ")]}":
            depth -= 1
        elif char == "," and depth == 0 and not in_string:
            args.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail:
        args.append(tail)
    return args


def _find_interpolations(text: str) -> List[Tuple[int, int]]:
    """Return (start, end) spans of every top-level ``${...}`` in text."""
    spans = []
    index = 0
    while True:
        start = text.find("${", index)
        if start < 0:
            return spans
        depth = 0
        end = -1
        for pos in range(start + 1, len(text)):
            if text[pos] == "{":
                depth += 1
            elif text[pos] == "}":
                depth -= 1
                if depth == 0:
                    end = pos + 1
                    break
        if end < 0:
            raise EvaluationError(f"Unterminated interpolation in: {text}")
        spans.append((start, end))
        index = end


def _parse_segments(path: str) -> List[Any]:
    segments: List[Any] = []
    for name, index in _SEGMENT_PATTERN.findall(path):
        token = name or index
        if token == "*":
            segments.append(_SPLAT)
        elif token.isdigit():
            segments.append(int(token))
        else:
            segments.append(token.strip('"'))
    return segments


def _walk(value: Any, segments: List[Any], expr: str) -> Any:
    """Follow attribute/index segments into value, applying splats."""
    for position, segment in enumerate(segments):
        if segment is _SPLAT:
            if not isinstance(value, list):
                value = [value]
            rest = segments[position + 1:]
            return [_walk(item, rest, expr) for item in value]
        if isinstance(value, dict) and not isinstance(segment, int) and segment in value:
            value = value[segment]
        elif isinstance(value, dict) and isinstance(segment, int) and str(segment) in value:
            value = value[str(segment)]
        elif isinstance(value, list) and isinstance(segment, int) and segment < len(value):
            value = value[segment]
        else:
            raise EvaluationError(f"Undefined reference '{segment}' in {expr}")
    return value


class ExpressionEvaluator:
    """
    Evaluates interpolation expressions against a ParseContext.

    Lookups consult the context first, then its ``tf_cache`` snapshot.
    """

    def __init__(self, find_in_parent_folders: Optional[Callable[[str, ParseContext], Optional[str]]] = None):
        self._find_in_parent_folders = find_in_parent_folders
        self._depth = 0
        self._functions: Dict[str, Callable[[List[Any], ParseContext], Any]] = {
            "get_terragrunt_dir": self._fn_get_terragrunt_dir,
            "find_in_parent_folders": self._fn_find_in_parent_folders,
            "get_env": self._fn_get_env,
        }

    def evaluate(self, expr: str, context: ParseContext, quiet: bool = False) -> Any:
        """
        Evaluate an expression string.

        Args:
            expr: Expression text, e.g. ``"${local.env}/x"`` or ``var.region``
            context: Context holding configs, inputs and tf_cache
            quiet: Return ``expr`` unchanged instead of raising on failure

        Returns:
            The evaluated value

        Raises:
            EvaluationError: If a name or function is unknown and not quiet
        """
        if self._depth >= MAX_EVAL_DEPTH:
            raise EvaluationError(f"Expression nesting too deep: {expr}")

        self._depth += 1
        try:
            return self._evaluate(expr.strip(), context)
        except EvaluationError as e:
            if quiet:
                logger.debug(f"Leaving {expr} unevaluated: {e}")
                return expr
            raise
        finally:
            self._depth -= 1

    def _evaluate(self, expr: str, context: ParseContext) -> Any:
        if len(expr) >= 2 and expr.startswith('"') and expr.endswith('"'):
            return self._render_template(expr[1:-1], context)

        if "${" in expr:
            return self._render_template(expr, context)

        if expr == "true":
            return True
        if expr == "false":
            return False
        if expr == "null":
            return None
        if _NUMBER_PATTERN.match(expr):
            return float(expr) if "." in expr else int(expr)

        reference = _REFERENCE_PATTERN.match(expr)
        if reference:
            return self._resolve_reference(reference.group(1), _parse_segments(reference.group(2)), expr, context)

        call = _FUNCTION_PATTERN.match(expr)
        if call:
            name = call.group(1)
            if name not in self._functions:
                raise EvaluationError(f"Unknown function: {name}")
            args = [self._evaluate(arg, context) for arg in _split_args(call.group(2))]
            return self._functions[name](args, context)

        raise EvaluationError(f"Cannot evaluate expression: {expr}")

    def _render_template(self, template: str, context: ParseContext) -> Any:
        spans = _find_interpolations(template)
        if len(spans) == 1 and spans[0] == (0, len(template)):
            return self._evaluate_value(template[2:-1].strip(), context)

        parts = []
        last = 0
        for start, end in spans:
            parts.append(template[last:start])
            value = self._evaluate_value(template[start + 2:end - 1].strip(), context)
            parts.append(value if isinstance(value, str) else _to_text(value))
            last = end
        parts.append(template[last:])
        return "".join(parts)

    def _evaluate_value(self, expr: str, context: ParseContext) -> Any:
        value = self._evaluate(expr, context)
        return self._settle(value, context)

    def _settle(self, value: Any, context: ParseContext) -> Any:
        """Evaluate a looked-up value that still holds interpolations."""
        if isinstance(value, str) and "${" in value:
            return self.evaluate(value, context)
        return value

    def _resolve_reference(self, root: str, segments: List[Any], expr: str, context: ParseContext) -> Any:
        if not segments or segments[0] is _SPLAT or isinstance(segments[0], int):
            raise EvaluationError(f"Incomplete reference: {expr}")

        for scope in (context, context.tf_cache):
            if scope is None:
                continue
            found, value, consumed = self._lookup(root, segments, scope)
            if found:
                value = _walk(self._settle(value, context), segments[consumed:], expr)
                return self._settle(value, context)

        raise EvaluationError(f"Undefined reference: {expr}")

    def _lookup(self, root: str, segments: List[Any], scope: ParseContext) -> Tuple[bool, Any, int]:
        """
        Find the value named by the leading segments of a reference.

        Returns (found, value, number of segments consumed).
        """
        name = segments[0]
        configs = scope.configs or {}

        if root == "local":
            locals_block = configs.get("locals")
            if isinstance(locals_block, dict) and name in locals_block:
                return True, locals_block[name], 1
            return False, None, 0

        if root == "var":
            if scope.inputs and name in scope.inputs:
                return True, scope.inputs[name], 1
            variables = configs.get("variable")
            if isinstance(variables, dict) and isinstance(variables.get(name), dict):
                definition = variables[name]
                if "default" in definition:
                    return True, definition["default"], 1
            return False, None, 0

        dependencies = configs.get("dependency")
        if not isinstance(dependencies, dict) or name not in dependencies:
            return False, None, 0
        block = dependencies[name]
        if len(segments) > 1 and segments[1] == "outputs" and isinstance(block, dict):
            # outputs of an unapplied dependency are only known through mocks
            return True, block.get("mock_outputs", {}), 2
        return True, block, 1

    def _fn_get_terragrunt_dir(self, args: List[Any], context: ParseContext) -> str:
        return os.path.dirname(os.path.abspath(context.file_path)) if context.file_path else os.getcwd()

    def _fn_find_in_parent_folders(self, args: List[Any], context: ParseContext) -> str:
        if self._find_in_parent_folders is None:
            raise EvaluationError("find_in_parent_folders is not available")
        name = args[0] if args else ""
        found = self._find_in_parent_folders(str(name), context)
        if found is None:
            if len(args) > 1:
                return args[1]
            raise EvaluationError(f"No file named '{name or 'terragrunt.hcl'}' in parent folders")
        return found

    def _fn_get_env(self, args: List[Any], context: ParseContext) -> Any:
        if not args:
            raise EvaluationError("get_env requires a variable name")
        default = args[1] if len(args) > 1 else ""
        return os.environ.get(str(args[0]), default)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)
