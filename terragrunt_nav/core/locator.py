"""
Source locator classification and resolution.

A locator is a reference on one line of configuration text to another
resource: a git module source, a local path, or the argument of a
path-taking function. Lines are classified against an ordered pattern
table where the first match wins.
"""

import enum
import logging
import os
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple

from .collaborators import ConfigCollaborator
from .models import ParseContext, ReplacementRule, SourceRange

logger = logging.getLogger(__name__)


class LocatorKind(enum.Enum):
    GIT = "git"
    LOCAL = "local"
    ENCLOSED = "enclosed"


# Order is part of the contract: a git source also matches the local pattern.
LOCATOR_PATTERNS: Tuple[Tuple[Pattern, LocatorKind], ...] = (
    (
        re.compile(r'(source\s*=\s*)"git::(ssh://|)(.*)//([^#\r\n"?]+)(\?ref=(.*)")'),
        LocatorKind.GIT,
    ),
    (
        re.compile(r'((source|config_path)\s*=\s*")([^#\r\n"]+)'),
        LocatorKind.LOCAL,
    ),
    (
        re.compile(r'((find_in_parent_folders|file|read_terragrunt_config)\(")([^#\r\n"]+)'),
        LocatorKind.ENCLOSED,
    ),
)

FIND_IN_PARENT_FOLDERS = "find_in_parent_folders"


@dataclass
class LocatorMatch:
    """
    One classified line.

    Attributes:
        kind: Which pattern matched
        raw: Captured path, URL or function argument
        start: Column where the navigable span begins
        end: Column where the navigable span ends
        function: Function name for enclosed locators
        repo_url: Repository part of a git source
        module_path: Module subpath of a git source
        ref: Raw ``?ref=`` value of a git source
    """
    kind: LocatorKind
    raw: str
    start: int
    end: int
    function: Optional[str] = None
    repo_url: Optional[str] = None
    module_path: Optional[str] = None
    ref: Optional[str] = None

    def range(self, line: int) -> SourceRange:
        return SourceRange(line, self.start, line, self.end)


@dataclass
class ResolvedLocator:
    """A locator whose target string has been rewritten and evaluated."""
    match: LocatorMatch
    target: str
    range: SourceRange


def classify_line(text: str) -> Optional[LocatorMatch]:
    """
    Classify one line against LOCATOR_PATTERNS.

    Returns:
        The first matching LocatorMatch, or None when no pattern matches
    """
    for pattern, kind in LOCATOR_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue

        start = match.start() + len(match.group(1))
        end = match.start() + len(match.group(0).rstrip())

        if kind is LocatorKind.GIT:
            return LocatorMatch(
                kind=kind,
                raw=match.group(3).strip(),
                start=start,
                end=end,
                repo_url=match.group(3),
                module_path=match.group(4).strip(),
                ref=match.group(6),
            )
        if kind is LocatorKind.ENCLOSED:
            return LocatorMatch(
                kind=kind,
                raw=match.group(3).strip(),
                start=start,
                end=end,
                function=match.group(2).strip(),
            )
        return LocatorMatch(kind=kind, raw=match.group(3).strip(), start=start, end=end)
    return None


def apply_replacements(path: str, rules: Sequence[ReplacementRule]) -> str:
    """
    Run path through the replacement pipeline.

    Each rule replaces the first occurrence of ``find`` in the previous
    rule's output. Rules with an empty ``find`` are skipped.
    """
    for rule in rules:
        if rule.find:
            path = path.replace(rule.find, rule.replace, 1)
    return path


class SourceLocatorResolver:
    """
    Turns a LocatorMatch into an evaluated navigation target.

    Args:
        collaborator: Parser/evaluator collaborator
        replace_strings: Whether the replacement pipeline is applied
        replacement_rules: Ordered find/replace rules
    """

    def __init__(
        self,
        collaborator: ConfigCollaborator,
        replace_strings: bool = True,
        replacement_rules: Optional[List[ReplacementRule]] = None,
    ):
        self.collaborator = collaborator
        self.replace_strings = replace_strings
        self.replacement_rules = list(replacement_rules or [])

    def resolve(self, match: LocatorMatch, line: int, context: ParseContext) -> Optional[ResolvedLocator]:
        """
        Resolve a classified line to its target.

        Returns:
            ResolvedLocator, or None when the locator cannot be resolved
            (find_in_parent_folders miss, evaluation failure)
        """
        src_path = match.raw
        if match.kind is LocatorKind.ENCLOSED and match.function == FIND_IN_PARENT_FOLDERS:
            found = self.collaborator.find_in_parent_folders(match.raw, context)
            if not found:
                logger.debug(f"find_in_parent_folders('{match.raw}') found nothing")
                return None
            src_path = found

        if self.replace_strings:
            src_path = apply_replacements(src_path, self.replacement_rules)

        try:
            target = self.collaborator.evaluate_expression(f'"{src_path}"', context)
        except Exception as e:
            logger.warning(f"Failed to evaluate locator '{src_path}' on line {line + 1}: {e}")
            return None

        if not isinstance(target, str):
            logger.warning(f"Locator '{src_path}' on line {line + 1} did not evaluate to a path")
            return None

        return ResolvedLocator(match=match, target=target, range=match.range(line))


def resolve_local_path(target: str, file_path: str) -> str:
    """Anchor a relative local target at the active file's directory."""
    expanded = os.path.expanduser(target)
    if os.path.isabs(expanded):
        return os.path.normpath(expanded)
    return os.path.normpath(os.path.join(os.path.dirname(os.path.abspath(file_path)), expanded))
