"""
HCL configuration reader.

This module parses Terragrunt/Terraform HCL files with python-hcl2 into
ParseContext ``configs`` trees and locates the source range of every key
so annotations can be attached to the right spans.
"""

import glob
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

import hcl2

from .evaluator import ExpressionEvaluator
from .models import RANGE_KEY, ParseContext, SourceRange

logger = logging.getLogger(__name__)

DEFAULT_PARENT_CONFIG = "terragrunt.hcl"

Position = Tuple[int, int]

_OPENERS = {"{": "}", "[": "]"}


def _clean(value: Any) -> Any:
    """Drop hcl2 metadata keys and unwrap quoted strings."""
    if isinstance(value, dict):
        return {k: _clean(v) for k, v in value.items() if not str(k).startswith("__")}
    if isinstance(value, list):
        return [_clean(v) for v in value]
    if isinstance(value, str) and len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def _deep_merge(base: dict, updates: dict):
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def _is_block_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0 and all(isinstance(v, dict) for v in value)


def normalize_blocks(parsed: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten hcl2 output so each top-level block type is a single mapping.

    hcl2 returns every block as a list of mappings, e.g.
    ``{"locals": [{"a": 1}, {"b": 2}]}``; these are deep-merged into
    ``{"locals": {"a": 1, "b": 2}}``. Labels become nested keys.
    """
    configs: Dict[str, Any] = {}
    for key, value in parsed.items():
        if str(key).startswith("__"):
            continue
        if _is_block_list(value):
            merged: Dict[str, Any] = {}
            for block in value:
                _deep_merge(merged, _clean(block))
            configs[key] = merged
        else:
            configs[key] = _clean(value)
    return configs


def _shape(value: Any) -> Any:
    """Range node with the same shape as value but no markers."""
    if isinstance(value, dict):
        return {k: _shape(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_shape(v) for v in value]
    return {}


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _in_string(text: str, pos: int) -> bool:
    """True if pos falls inside a double-quoted string on this line."""
    in_string = False
    for index in range(pos):
        if text[index] == '"' and (index == 0 or text[index - 1] != "\\"):
            in_string = not in_string
    return in_string


class RangeLocator:
    """
    Finds source ranges for a configs tree by scanning the file text.

    Keys get the span of the key token; sequence elements get the span
    of their literal (or opening bracket). Anything that cannot be found
    keeps its shape in the ranges tree without a ``__range`` marker.
    """

    def __init__(self, text: str):
        self.lines = text.splitlines()

    def locate(self, configs: Dict[str, Any]) -> Dict[str, Any]:
        if not self.lines:
            return _shape(configs)
        return self._mapping(configs, (0, 0), len(self.lines) - 1, top_level=True)

    def _mapping(self, value: Dict[str, Any], start: Position, end_line: int, top_level: bool = False) -> Dict[str, Any]:
        node: Dict[str, Any] = {}
        last_line = len(self.lines) - 1
        # siblings appear in source order, so each search starts past the previous value
        cursor = start
        for key, child in value.items():
            found = self._find_key(str(key), start if top_level else cursor, end_line)
            if found is None:
                node[key] = _shape(child)
                continue

            line, col = found
            key_range = SourceRange(line, col, line, col + len(str(key)))
            key_end = col + len(str(key))
            if self.lines[line][key_end:key_end + 1] == '"':
                key_end += 1
            after_key = (line, key_end)

            if top_level and isinstance(child, dict):
                # merged top-level blocks may continue in a later block
                child_end = last_line
            else:
                value_end = self._statement_end(after_key, end_line)
                child_end = value_end[0]
                cursor = value_end
            node[key] = self._attach(child, key_range, after_key, child_end)
        return node

    def _attach(self, child: Any, key_range: SourceRange, start: Position, end_line: int) -> Any:
        if isinstance(child, dict):
            node = self._mapping(child, start, end_line)
            node[RANGE_KEY] = key_range
            return node
        if isinstance(child, list):
            return self._sequence(child, start, end_line)
        return {RANGE_KEY: key_range}

    def _sequence(self, items: List[Any], start: Position, end_line: int) -> List[Any]:
        ranges: List[Any] = []
        cursor = start
        for item in items:
            if isinstance(item, dict):
                token = "{"
            elif isinstance(item, list):
                token = "["
            else:
                token = _literal(item)

            found = self._find_text(token, cursor, end_line) if token else None
            if found is None:
                ranges.append(_shape(item))
                continue

            line, col = found
            item_range = SourceRange(line, col, line, col + len(token))
            cursor = (line, col + len(token))

            if isinstance(item, (dict, list)):
                close = self._match_bracket((line, col))
                item_end = close[0] if close else end_line
                if isinstance(item, dict):
                    node = self._mapping(item, cursor, item_end)
                    node[RANGE_KEY] = item_range
                else:
                    node = self._sequence(item, cursor, item_end)
                ranges.append(node)
                if close:
                    cursor = (close[0], close[1] + 1)
            else:
                ranges.append({RANGE_KEY: item_range})
        return ranges

    def _find_key(self, key: str, start: Position, end_line: int) -> Optional[Position]:
        name = re.escape(key)
        pattern = re.compile(r'(?<![\w.\-])(?:"' + name + r'"|' + name + r')\s*(?:=(?!=)|:|\{|")')
        for line, offset, text in self._scan(start, end_line):
            stripped = text.lstrip()
            if stripped.startswith("#") or stripped.startswith("//"):
                continue
            for match in pattern.finditer(text, offset):
                col = match.start()
                if _in_string(text, col):
                    continue
                if text[col] == '"':
                    col += 1
                return line, col
        return None

    def _find_text(self, token: str, start: Position, end_line: int) -> Optional[Position]:
        for line, offset, text in self._scan(start, end_line):
            col = text.find(token, offset)
            if col >= 0:
                return line, col
        return None

    def _scan(self, start: Position, end_line: int):
        first_line, first_col = start
        for line in range(first_line, min(end_line, len(self.lines) - 1) + 1):
            yield line, first_col if line == first_line else 0, self.lines[line]

    def _statement_end(self, start: Position, end_line: int) -> Position:
        """Position just past the value of the statement whose key ends at start."""
        line, col = start
        text = self.lines[line]
        in_string = False
        for pos in range(col, len(text)):
            char = text[pos]
            if char == '"' and (pos == 0 or text[pos - 1] != "\\"):
                in_string = not in_string
            elif not in_string and char in _OPENERS:
                close = self._match_bracket((line, pos))
                return (close[0], close[1] + 1) if close else (end_line, 0)
            elif not in_string and char == "#":
                break
        return start

    def _match_bracket(self, start: Position) -> Optional[Position]:
        """Position of the bracket closing the one at start, skipping strings."""
        line, col = start
        opener = self.lines[line][col]
        closer = _OPENERS[opener]
        depth = 0
        in_string = False
        for current in range(line, len(self.lines)):
            text = self.lines[current]
            begin = col if current == line else 0
            for pos in range(begin, len(text)):
                char = text[pos]
                if char == '"' and (pos == 0 or text[pos - 1] != "\\"):
                    in_string = not in_string
                elif in_string:
                    continue
                elif char == opener:
                    depth += 1
                elif char == closer:
                    depth -= 1
                    if depth == 0:
                        return current, pos
        return None


class HclConfigReader:
    """
    Default parser/evaluator collaborator backed by python-hcl2.

    Implements the ConfigCollaborator contract used by the cache
    manager, the locator resolver and the annotation builder.
    """

    def __init__(self):
        self.evaluator = ExpressionEvaluator(self.find_in_parent_folders)

    def parse_module_file(self, path: str, context: ParseContext) -> ParseContext:
        """
        Parse one file and merge its keys into ``context.configs``/``ranges``.

        Args:
            path: Path to the .tf/.hcl file
            context: Context to accumulate into

        Returns:
            The same context, updated
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
            parsed = hcl2.loads(text if text.endswith("\n") else text + "\n")
        except Exception as e:
            logger.error(f"HCL parse error in {path}: {e}")
            return context

        if context.fresh_start and not context.file_path:
            context.file_path = path

        configs = normalize_blocks(parsed)
        ranges = RangeLocator(text).locate(configs)

        _deep_merge(context.configs, configs)
        _deep_merge(context.ranges, ranges)

        if context.do_eval:
            self._evaluate_in_place(context.configs, context)

        context.fresh_start = False
        return context

    def _evaluate_in_place(self, node: Any, context: ParseContext):
        items = node.items() if isinstance(node, dict) else enumerate(node)
        for key, value in list(items):
            if isinstance(value, (dict, list)):
                self._evaluate_in_place(value, context)
            elif isinstance(value, str) and "${" in value:
                node[key] = self.evaluator.evaluate(value, context, quiet=True)

    def evaluate_expression(self, expr: str, context: ParseContext, quiet: bool = False) -> Any:
        return self.evaluator.evaluate(expr, context, quiet)

    def find_in_parent_folders(self, pattern: str, context: ParseContext) -> Optional[str]:
        """
        Walk up from the active file's parent directory looking for pattern.

        Args:
            pattern: File name or glob; empty means terragrunt.hcl
            context: Context whose ``file_path`` anchors the search

        Returns:
            Absolute path of the first match, or None
        """
        name = pattern or DEFAULT_PARENT_CONFIG
        anchor = os.path.dirname(os.path.abspath(context.file_path)) if context.file_path else os.getcwd()
        current = os.path.dirname(anchor)

        while True:
            matches = sorted(glob.glob(os.path.join(glob.escape(current), name)))
            if matches:
                return matches[0]
            parent = os.path.dirname(current)
            if parent == current:
                logger.debug(f"{name} not found above {anchor}")
                return None
            current = parent

    def overlay_cached_variables(self, cached: Optional[ParseContext], inputs: Optional[Dict[str, Any]]):
        """Apply externally supplied variable values to a cached snapshot."""
        if cached is None or not inputs:
            return

        merged = dict(cached.inputs or {})
        merged.update(inputs)
        cached.inputs = merged

        variables = cached.configs.get("variable")
        if not isinstance(variables, dict):
            return
        for name, value in inputs.items():
            if isinstance(variables.get(name), dict):
                variables[name]["default"] = value
