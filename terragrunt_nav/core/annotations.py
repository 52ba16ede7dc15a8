"""
Hover annotations for configuration keys and interpolated values.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .models import ConfigNode, Mapping, ParseContext, Scalar, Sequence, SourceRange, build_tree

logger = logging.getLogger(__name__)

VALUE_REFERENCE_PATTERN = re.compile(
    r'\$\{(?:local|var|dependency)\.[^}]+\}'
    r'|(?:local|var|dependency)\.[A-Za-z_][\w\-]*(?:\.[\w\-*]+|\[[^\]\s]*\])*'
)


@dataclass
class Annotation:
    range: SourceRange
    content: str


def format_hover(value: Any) -> str:
    """Pretty-print a value as a fenced JSON block."""
    return f"```json\n{json.dumps(value, indent=2, default=str)}\n```"


def _annotate(annotations: List[Annotation], value: Any, source_range: Optional[SourceRange]):
    if source_range is not None:
        annotations.append(Annotation(range=source_range, content=format_hover(value)))


def _walk_children(annotations: List[Annotation], children: Dict[str, ConfigNode]):
    for node in children.values():
        _walk_node(annotations, node)


def _walk_node(annotations: List[Annotation], node: ConfigNode):
    if isinstance(node, Sequence):
        _annotate(annotations, node.value, node.range)
        for item in node.items:
            if isinstance(item, Mapping):
                _walk_children(annotations, item.children)
            else:
                _walk_node(annotations, item)
    elif isinstance(node, Mapping):
        _annotate(annotations, node.value, node.range)
        _walk_children(annotations, node.children)
    elif isinstance(node, Scalar):
        _annotate(annotations, node.value, node.range)


def build_key_annotations(configs: Optional[Dict[str, Any]], ranges: Optional[Dict[str, Any]]) -> List[Annotation]:
    """
    Walk ``configs`` paired with ``ranges`` and annotate every located node.

    A sequence gets one aggregate annotation at its last element's range
    plus one per element; a mapping gets one annotation at its own range
    before its children. Nodes without a range are skipped.
    """
    annotations: List[Annotation] = []
    _walk_children(annotations, build_tree(configs, ranges))
    return annotations


def build_value_annotations(
    lines: List[str],
    context: ParseContext,
    evaluate: Callable[..., Any],
    is_locator_line: Callable[[int, str], bool],
) -> List[Annotation]:
    """
    Annotate every ``local.``/``var.``/``dependency.`` reference with its value.

    Args:
        lines: Document text split into lines
        context: Request context the references are evaluated against
        evaluate: ``evaluate(expr, context, quiet)`` from the collaborator
        is_locator_line: Returns True for lines handled as locators

    Returns:
        Annotations at the exact span of each reference
    """
    annotations: List[Annotation] = []
    for line_no, text in enumerate(lines):
        if is_locator_line(line_no, text):
            continue

        matches = list(VALUE_REFERENCE_PATTERN.finditer(text))
        if not matches:
            continue

        try:
            for match in matches:
                value = evaluate(match.group(0).strip(), context, True)
                _annotate(annotations, value, SourceRange(line_no, match.start(), line_no, match.end()))
        except Exception as e:
            logger.warning(f"Failed for line {line_no + 1} '{text.strip()}': {e}")
    return annotations
