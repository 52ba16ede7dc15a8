"""
Host-facing navigation surface.

Navigator ties the module cache, the locator resolver, the remote
module resolver and the annotation builder together behind the two
operations an editor host calls: document links and go-to-definition.
"""

import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

from .config import NavigatorConfig, Settings
from .core.annotations import Annotation, build_key_annotations, build_value_annotations
from .core.collaborators import ConfigCollaborator
from .core.hcl_reader import HclConfigReader
from .core.locator import (
    LocatorKind,
    LocatorMatch,
    ResolvedLocator,
    SourceLocatorResolver,
    classify_line,
    resolve_local_path,
)
from .core.models import ParseContext, SourceRange
from .core.module_cache import INPUT_JSON_FILENAME, ModuleCacheStore, ModuleConfigManager
from .core.remote import (
    REPO_CACHE_DIRNAME,
    CloneLedger,
    GitCloner,
    RemoteModuleResolver,
    default_repo_cache_dir,
    open_file_from_directory,
    parse_git_source,
)

logger = logging.getLogger(__name__)


class Workspace:
    """The editor's open top-level folders."""

    def __init__(self, folders: Optional[List[str]] = None):
        self.folders: List[str] = [os.path.abspath(f) for f in (folders or [])]

    def add_folder(self, path: str):
        if path not in self.folders:
            self.folders.insert(0, path)
            logger.info(f"Added {path} to workspace")

    def find_repo_cache(self) -> Optional[str]:
        for folder in self.folders:
            if folder.rstrip(os.sep).endswith(REPO_CACHE_DIRNAME):
                return folder
        return None


@dataclass
class DocumentLink:
    range: SourceRange
    target: str
    hover: str


@dataclass
class DocumentAnnotations:
    """Everything produced for one document by provide_document_links()."""
    links: List[DocumentLink] = field(default_factory=list)
    key_annotations: List[Annotation] = field(default_factory=list)
    value_annotations: List[Annotation] = field(default_factory=list)


class Navigator:
    """
    Resolves links and definitions for Terragrunt/Terraform documents.

    Requests are served one at a time; the caches and ledgers held here
    are only touched from the calling thread.
    """

    def __init__(
        self,
        config: Optional[NavigatorConfig] = None,
        collaborator: Optional[ConfigCollaborator] = None,
        workspace: Optional[Workspace] = None,
        clone_ledger: Optional[CloneLedger] = None,
        cloner: Optional[GitCloner] = None,
        notify: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or NavigatorConfig()
        self.collaborator = collaborator or HclConfigReader()
        self.workspace = workspace or Workspace()
        self.notify = notify or logger.info

        self.cache_manager = ModuleConfigManager(
            self.collaborator,
            ModuleCacheStore(self.config.max_cache_size),
            clock=clock,
        )
        self.locator_resolver = SourceLocatorResolver(
            self.collaborator,
            replace_strings=self.config.replace_strings,
            replacement_rules=self.config.replacement_rules,
        )

        workspace_cache = self.workspace.find_repo_cache()
        self._cache_in_workspace = workspace_cache is not None
        repo_cache_dir = workspace_cache or self.config.repo_cache_dir or default_repo_cache_dir()
        if not self._cache_in_workspace and not os.path.exists(repo_cache_dir):
            try:
                os.makedirs(repo_cache_dir, exist_ok=True)
                logger.info(f"Created terragrunt repo cache directory {repo_cache_dir}")
            except OSError as e:
                logger.error(f"Failed to create repo cache {repo_cache_dir}: {e}")

        self.remote_resolver = RemoteModuleResolver(
            ledger=clone_ledger or CloneLedger(),
            cloner=cloner or GitCloner(timeout=self.config.clone_timeout),
            repo_cache_dir=repo_cache_dir,
            cooldown=self.config.clone_cooldown,
            notify=self.notify,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "Navigator":
        """Build a navigator whose clone ledger persists into settings."""
        ledger = CloneLedger(settings.get_last_cloned_map(), persist=settings.set_last_cloned_map)
        return cls(NavigatorConfig.from_settings(settings), clone_ledger=ledger, **kwargs)

    @property
    def context(self) -> ParseContext:
        return self.cache_manager.context

    def apply_config(self, config: NavigatorConfig):
        """Re-apply settings after the user changed them."""
        self.config = config
        self.cache_manager.max_cache_size = config.max_cache_size
        self.locator_resolver.replace_strings = config.replace_strings
        self.locator_resolver.replacement_rules = list(config.replacement_rules)
        self.remote_resolver.cooldown = config.clone_cooldown
        if isinstance(self.remote_resolver.cloner, GitCloner):
            self.remote_resolver.cloner.timeout = config.clone_timeout

    def provide_document_links(self, file_path: str, text: str) -> DocumentAnnotations:
        """
        Build links and hover annotations for a document.

        Args:
            file_path: Absolute path of the document
            text: Current document text

        Returns:
            DocumentAnnotations for the document
        """
        logger.debug(f"Providing document links for {file_path}")
        result = DocumentAnnotations()
        context = self.cache_manager.resolve_context(file_path)

        try:
            result.key_annotations = build_key_annotations(context.configs, context.ranges)
        except Exception as e:
            logger.error(f"Failed to decorate keys: {e}")

        lines = text.splitlines()
        locator_lines: Set[int] = set()
        for line_no, line_text in enumerate(lines):
            match = classify_line(line_text)
            if match is None:
                continue
            locator_lines.add(line_no)
            try:
                resolved = self.locator_resolver.resolve(match, line_no, context)
            except Exception as e:
                logger.warning(f"Failed to decorate links for {line_text.strip()}: {e}")
                continue
            if resolved is not None:
                target = self._link_target(resolved, file_path)
                result.links.append(DocumentLink(
                    range=resolved.range,
                    target=target,
                    hover=f"[{target}]({target}): Ctrl+click to Open",
                ))

        result.value_annotations = build_value_annotations(
            lines,
            context,
            self.collaborator.evaluate_expression,
            lambda line_no, _text: line_no in locator_lines,
        )
        return result

    def provide_definition(self, file_path: str, text: str, line: int) -> Optional[str]:
        """
        Resolve the locator on ``line`` to a file to open.

        Args:
            file_path: Absolute path of the document
            text: Current document text
            line: Zero-based line of the cursor

        Returns:
            Path to open, or None when the line has no resolvable locator
        """
        lines = text.splitlines()
        if line < 0 or line >= len(lines):
            return None

        match = classify_line(lines[line])
        if match is None:
            return None

        try:
            return self._definition_target(match, file_path, line)
        except Exception as e:
            logger.error(f"Failed to resolve definition on line {line + 1} of {file_path}: {e}")
            return None

    def _definition_target(self, match: LocatorMatch, file_path: str, line: int) -> Optional[str]:
        context = self.cache_manager.resolve_context(file_path)
        resolved = self.locator_resolver.resolve(match, line, context)
        if resolved is None:
            return None

        if match.kind is LocatorKind.GIT:
            target = self._resolve_git(match.repo_url or "", match.ref or "", match.module_path or "", context)
            if target is None:
                return None
        else:
            target = resolve_local_path(resolved.target, file_path)

        if os.path.isdir(target):
            target = open_file_from_directory(target)

        inputs = context.configs.get("inputs")
        context.inputs = inputs if isinstance(inputs, dict) else None
        return target

    def _resolve_git(self, repo_url: str, raw_ref: str, module_path: str, context: ParseContext) -> Optional[str]:
        if self.config.add_cache_to_workspace and not self._cache_in_workspace:
            self.workspace.add_folder(self.remote_resolver.repo_cache_dir)
            self._cache_in_workspace = True

        ref = self.collaborator.evaluate_expression(raw_ref, context, True)
        module = parse_git_source(repo_url, str(ref), module_path)
        if module is None:
            return None
        return self.remote_resolver.resolve(module, self.workspace.folders).path

    def _link_target(self, resolved: ResolvedLocator, file_path: str) -> str:
        if resolved.match.kind is LocatorKind.GIT:
            return resolved.target
        return resolve_local_path(resolved.target, file_path)

    def on_document_changed(self, file_path: str):
        """Invalidate cached state after an edit to ``file_path``."""
        self.cache_manager.on_document_changed(file_path)

    def save_input_json(self, file_path: str) -> Optional[str]:
        """
        Write the active file's ``inputs`` to input.json beside it.

        Returns:
            Path written, or None if the file defines no inputs
        """
        context = self.cache_manager.resolve_context(file_path)
        inputs = context.configs.get("inputs")
        if inputs is None:
            self.notify("No inputs found in the current file")
            return None

        input_json = os.path.join(os.path.dirname(os.path.abspath(file_path)), INPUT_JSON_FILENAME)
        with open(input_json, 'w', encoding='utf-8') as f:
            json.dump({"inputs": inputs}, f, indent=2, default=str)

        self.notify(f"Saved inputs to {input_json}")
        return input_json
