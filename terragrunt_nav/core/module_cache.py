"""
Module configuration cache.

Keeps one parsed snapshot per module directory so sibling ``.tf`` files
are not re-parsed on every request, bounded by a least-recently-used
capacity and invalidated when the cached directory's document changes.
"""

import json
import logging
import os
import time
from typing import Any, Callable, Dict, Optional

from .collaborators import ConfigCollaborator
from .models import ParseContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_CACHE_SIZE = 10
INPUT_JSON_FILENAME = "input.json"
TERRAFORM_SUFFIX = ".tf"
RAW_INCLUDE_SUFFIX = ".hcl"


class ModuleCacheStore:
    """
    Owned store for module snapshots and their access ledger.

    ``entries`` and ``access_times`` always share the same key set.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_CACHE_SIZE):
        self.entries: Dict[str, ParseContext] = {}
        self.access_times: Dict[str, float] = {}
        self.max_size = max_size
        self.last_module_path: Optional[str] = None

    def __contains__(self, directory: str) -> bool:
        return directory in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, directory: str) -> Optional[ParseContext]:
        return self.entries.get(directory)

    def put(self, directory: str, snapshot: ParseContext, accessed_at: float):
        """Store a snapshot, touch its ledger entry and enforce capacity."""
        self.entries[directory] = snapshot
        self.access_times[directory] = accessed_at
        self.enforce_capacity()

    def enforce_capacity(self):
        """Evict the least recently accessed directories until within capacity."""
        if len(self.access_times) <= self.max_size:
            return

        oldest_first = sorted(self.access_times.items(), key=lambda item: item[1])
        while len(self.access_times) > self.max_size and oldest_first:
            directory, _ = oldest_first.pop(0)
            self.entries.pop(directory, None)
            del self.access_times[directory]
            logger.info(f"Removed oldest cache directory: {directory}")

    def invalidate(self, directory: str):
        """Drop one directory's snapshot and forget the last-queried marker."""
        self.entries.pop(directory, None)
        self.access_times.pop(directory, None)
        if self.last_module_path == directory:
            self.last_module_path = None

    def clear(self):
        self.entries.clear()
        self.access_times.clear()
        self.last_module_path = None


class ModuleConfigManager:
    """
    Builds the request ParseContext for an active file.

    The directory-level snapshot avoids re-parsing sibling files; the
    active file itself is always re-parsed with evaluation enabled.
    """

    def __init__(
        self,
        collaborator: ConfigCollaborator,
        store: Optional[ModuleCacheStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.collaborator = collaborator
        self.store = store if store is not None else ModuleCacheStore()
        self.clock = clock
        self.context = ParseContext()

    @property
    def max_cache_size(self) -> int:
        return self.store.max_size

    @max_cache_size.setter
    def max_cache_size(self, value: int):
        self.store.max_size = value
        self.store.enforce_capacity()

    def resolve_context(self, file_path: str) -> ParseContext:
        """
        Return the ParseContext for a request on ``file_path``.

        Args:
            file_path: Absolute path of the active document

        Returns:
            Context whose configs/ranges describe the active file
        """
        context = self.context
        base_dir = os.path.dirname(os.path.abspath(file_path))
        file_name = os.path.basename(file_path)
        context.file_path = file_path
        context.use_cache = not file_name.endswith(RAW_INCLUDE_SUFFIX)

        try:
            if context.use_cache and base_dir != self.store.last_module_path:
                self._parse_module_dir(base_dir)

            self._overlay_input_json(base_dir)

            if context.use_cache:
                context.tf_cache = self.store.get(base_dir)
                self.collaborator.overlay_cached_variables(context.tf_cache, context.inputs)
            else:
                context.tf_cache = None

            context.reset_trees()
            context.do_eval = True
            context.fresh_start = True
            self.collaborator.parse_module_file(file_path, context)
        except Exception as e:
            logger.error(f"Failed to read terragrunt config for {file_path}: {e}")

        return context

    def _parse_module_dir(self, base_dir: str):
        """Parse every .tf file in base_dir into a fresh cache snapshot."""
        context = self.context
        context.reset_trees()
        context.do_eval = False
        context.tf_cache = None

        logger.info(f"Parsing module in {base_dir}")
        tf_files = sorted(
            name for name in os.listdir(base_dir)
            if name.endswith(TERRAFORM_SUFFIX) and os.path.isfile(os.path.join(base_dir, name))
        )
        for name in tf_files:
            context.fresh_start = True
            self.collaborator.parse_module_file(os.path.join(base_dir, name), context)

        self.store.last_module_path = base_dir
        self.store.put(base_dir, context.snapshot(), self.clock())

    def _overlay_input_json(self, base_dir: str):
        """Load ``inputs`` from an adjacent input.json, ignoring malformed files."""
        input_json = os.path.join(base_dir, INPUT_JSON_FILENAME)
        if not os.path.exists(input_json):
            return

        logger.info(f"Reading input file: {input_json}")
        try:
            with open(input_json, 'r', encoding='utf-8') as f:
                data: Any = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to parse {input_json}: {e}")
            return

        if not isinstance(data, dict) or not isinstance(data.get("inputs"), dict):
            logger.error(f"No inputs object in {input_json}, ignoring")
            return

        merged = dict(self.context.inputs or {})
        merged.update(data["inputs"])
        self.context.inputs = merged

    def on_document_changed(self, file_path: str):
        """
        Invalidate the cached directory when its document is edited.

        Edits in other directories leave the cache untouched.
        """
        directory = os.path.dirname(os.path.abspath(file_path))
        if self.store.last_module_path and self.store.last_module_path == directory:
            logger.debug(f"Invalidating module cache for {directory}")
            self.store.invalidate(directory)
