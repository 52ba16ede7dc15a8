"""
Data model shared by the navigation core.

ParseContext is the per-directory state handed to the parser and
evaluator collaborators. ConfigNode is the tagged tree view of a
context's parallel ``configs``/``ranges`` structures.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

RANGE_KEY = "__range"


@dataclass(frozen=True)
class SourceRange:
    """Zero-based character span within a document."""
    start_line: int
    start_col: int
    end_line: int
    end_col: int


@dataclass
class ReplacementRule:
    """One find/replace step of the path rewrite pipeline."""
    find: str = ""
    replace: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"find": self.find, "replace": self.replace}

    @classmethod
    def from_dict(cls, data: dict) -> "ReplacementRule":
        return cls(find=str(data.get("find", "")), replace=str(data.get("replace", "")))


@dataclass
class ParseContext:
    """
    State passed to the parser/evaluator for one document directory.

    Attributes:
        file_path: Active file the context was built for
        fresh_start: Reset before each file read
        do_eval: Whether interpolations are evaluated during the pass
        use_cache: False for raw .hcl includes, which always parse standalone
        configs: Parsed key tree
        ranges: Tree congruent to ``configs`` carrying ``__range`` markers
        inputs: Variable overrides (e.g. from input.json)
        tf_cache: Snapshot of the directory-level context, if any
    """
    file_path: str = ""
    fresh_start: bool = True
    do_eval: bool = True
    use_cache: bool = True
    configs: Dict[str, Any] = field(default_factory=dict)
    ranges: Dict[str, Any] = field(default_factory=dict)
    inputs: Optional[Dict[str, Any]] = None
    tf_cache: Optional["ParseContext"] = None

    def reset_trees(self):
        """Clear configs and ranges before a new parse pass."""
        self.configs = {}
        self.ranges = {}

    def snapshot(self) -> "ParseContext":
        """
        Return a deep, alias-free copy suitable for the module cache.

        The nested ``tf_cache`` is dropped so snapshots never chain.
        """
        return ParseContext(
            file_path=self.file_path,
            fresh_start=self.fresh_start,
            do_eval=self.do_eval,
            use_cache=self.use_cache,
            configs=copy.deepcopy(self.configs),
            ranges=copy.deepcopy(self.ranges),
            inputs=copy.deepcopy(self.inputs),
            tf_cache=None,
        )


@dataclass
class Scalar:
    value: Any
    range: Optional[SourceRange] = None


@dataclass
class Sequence:
    items: List["ConfigNode"]
    value: List[Any]
    range: Optional[SourceRange] = None


@dataclass
class Mapping:
    children: Dict[str, "ConfigNode"]
    value: Dict[str, Any]
    range: Optional[SourceRange] = None


ConfigNode = Union[Scalar, Sequence, Mapping]


def _range_of(range_node: Any) -> Optional[SourceRange]:
    if isinstance(range_node, dict):
        marker = range_node.get(RANGE_KEY)
        if isinstance(marker, SourceRange):
            return marker
    return None


def build_node(value: Any, range_node: Any) -> ConfigNode:
    """
    Pair one configs value with its ranges node.

    A sequence takes the range of its last element, since that is where
    the aggregate annotation is attached.
    """
    if isinstance(value, list):
        range_items = range_node if isinstance(range_node, list) else []
        items = []
        for index, item in enumerate(value):
            item_range = range_items[index] if index < len(range_items) else None
            items.append(build_node(item, item_range))
        last_range = _range_of(range_items[-1]) if range_items else None
        return Sequence(items=items, value=value, range=last_range)

    if isinstance(value, dict):
        return Mapping(
            children=build_tree(value, range_node if isinstance(range_node, dict) else {}),
            value=value,
            range=_range_of(range_node),
        )

    return Scalar(value=value, range=_range_of(range_node))


def build_tree(configs: Optional[Dict[str, Any]], ranges: Optional[Dict[str, Any]]) -> Dict[str, ConfigNode]:
    """
    Build the tagged tree for every key present in both ``configs`` and ``ranges``.

    Keys missing from either side are skipped.
    """
    if not configs or not ranges:
        return {}

    tree: Dict[str, ConfigNode] = {}
    for key, range_node in ranges.items():
        if key == RANGE_KEY or key not in configs:
            continue
        tree[key] = build_node(configs[key], range_node)
    return tree
