"""
Navigation core for terragrunt-nav.

This module provides the resolution engine behind links and hovers:
- Classifying and resolving source locators on a line
- Caching parsed module directories
- Resolving and cloning remote git modules
- Building key and value annotations
"""

from .models import ParseContext, ReplacementRule, SourceRange
from .collaborators import ConfigCollaborator, EvaluationError
from .evaluator import ExpressionEvaluator
from .hcl_reader import HclConfigReader
from .module_cache import ModuleCacheStore, ModuleConfigManager
from .locator import LocatorKind, LocatorMatch, SourceLocatorResolver, classify_line
from .remote import CloneLedger, CloneOutcome, CloneStatus, GitCloner, RemoteModuleResolver
from .annotations import Annotation, build_key_annotations, build_value_annotations

__all__ = [
    "ParseContext",
    "ReplacementRule",
    "SourceRange",
    "ConfigCollaborator",
    "EvaluationError",
    "ExpressionEvaluator",
    "HclConfigReader",
    "ModuleCacheStore",
    "ModuleConfigManager",
    "LocatorKind",
    "LocatorMatch",
    "SourceLocatorResolver",
    "classify_line",
    "CloneLedger",
    "CloneOutcome",
    "CloneStatus",
    "GitCloner",
    "RemoteModuleResolver",
    "Annotation",
    "build_key_annotations",
    "build_value_annotations",
]
