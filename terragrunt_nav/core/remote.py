"""
Remote module resolution.

Maps a ``git::`` module source to a local directory: an already open
workspace folder when one matches the repository name, otherwise a
clone under the repo cache that is refreshed at most once per cooldown
window.
"""

import enum
import logging
import os
import re
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

from ..security.sanitizer import InputSanitizer, SecurityError
from ..utils import subprocess_creation_flags
from ..utils.validators import validate_clone_shell

logger = logging.getLogger(__name__)

DEFAULT_CLONE_COOLDOWN = 3000.0  # seconds
DEFAULT_CLONE_TIMEOUT = 300
REPO_CACHE_DIRNAME = ".terragrunt-repo-cache"
PREFERRED_ENTRY_FILES = ("terragrunt.hcl", "main.tf")

_URL_PATH_TRIM = re.compile(r'(^/|\.git$)')


def default_repo_cache_dir() -> str:
    """Return ~/.terragrunt-repo-cache (USERPROFILE on Windows)."""
    if os.name == 'nt':
        base = os.environ.get('USERPROFILE', os.path.expanduser('~'))
    else:
        base = os.environ.get('HOME', os.path.expanduser('~'))
    return os.path.join(base, REPO_CACHE_DIRNAME)


def default_clone_script() -> str:
    """Path of the bundled get-code.sh helper."""
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "scripts", "get-code.sh")


@dataclass
class GitModuleRef:
    """
    A parsed git module source.

    Attributes:
        repo_url: URL handed to the clone helper (``host:path`` form for ssh)
        ref: Branch, tag or commit
        url_path: Repository path without leading slash or ``.git``
        module_path: Module subdirectory inside the repository
    """
    repo_url: str
    ref: str
    url_path: str
    module_path: str

    @property
    def repo_name(self) -> str:
        return self.url_path.split("/")[-1]


def parse_git_source(repo_url: str, ref: str, module_path: str) -> Optional[GitModuleRef]:
    """
    Normalize a git source into a GitModuleRef.

    ``git@host:path`` URLs are read as ``https://host/path`` to extract the
    path; the clone URL keeps the ssh ``git@host:path`` form.

    Returns:
        GitModuleRef, or None if the URL cannot be parsed
    """
    original = repo_url.strip()
    candidate = original
    if original.startswith("git@"):
        candidate = original.replace(":", "/", 1).replace("git@", "https://", 1)

    try:
        url = urlparse(candidate)
        hostname = url.hostname
    except ValueError as e:
        logger.error(f"Failed to parse URL {repo_url}: {e}")
        return None

    if not url.scheme or not hostname:
        logger.error(f"Failed to parse URL: {repo_url}")
        return None

    url_path = _URL_PATH_TRIM.sub("", url.path)
    if not url_path:
        logger.error(f"No repository path in URL: {repo_url}")
        return None

    clone_url = f"git@{hostname}:{url_path}" if original.startswith("git@") else original
    return GitModuleRef(repo_url=clone_url, ref=ref, url_path=url_path, module_path=module_path.strip())


class CloneStatus(enum.Enum):
    CLONED = "cloned"
    ALREADY_FRESH = "already_fresh"
    IN_WORKSPACE = "in_workspace"
    FAILED = "failed"


@dataclass
class CloneOutcome:
    status: CloneStatus
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not CloneStatus.FAILED

    @classmethod
    def failed(cls, reason: str) -> "CloneOutcome":
        return cls(CloneStatus.FAILED, reason)


@dataclass
class ResolvedModule:
    """Local directory for a git module plus how it was obtained."""
    path: str
    repo_dir: str
    outcome: CloneOutcome


class CloneLedger:
    """
    Last-clone timestamps per clone target directory.

    Changes are handed to ``persist`` immediately; reads never write.
    """

    def __init__(
        self,
        timestamps: Optional[Dict[str, float]] = None,
        persist: Optional[Callable[[Dict[str, float]], None]] = None,
    ):
        self._timestamps: Dict[str, float] = {}
        for directory, stamp in (timestamps or {}).items():
            try:
                self._timestamps[directory] = float(stamp)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring bad clone timestamp for {directory}: {stamp!r}")
        self._persist = persist

    def get(self, directory: str) -> Optional[float]:
        return self._timestamps.get(directory)

    def is_fresh(self, directory: str, now: float, cooldown: float) -> bool:
        stamp = self._timestamps.get(directory)
        return stamp is not None and now - stamp < cooldown

    def record(self, directory: str, now: float):
        self._timestamps[directory] = now
        if self._persist is not None:
            self._persist(dict(self._timestamps))

    def as_dict(self) -> Dict[str, float]:
        return dict(self._timestamps)


class GitCloner:
    """
    Runs the clone helper script as ``bash get-code.sh <url> <ref> <dir>``.

    Same subprocess discipline as the other runners: shell=False,
    validated arguments and a timeout.
    """

    def __init__(self, script_path: Optional[str] = None, timeout: int = DEFAULT_CLONE_TIMEOUT):
        self.script_path = script_path or default_clone_script()
        self.timeout = timeout

    def build_command(self, repo_url: str, ref: str, target_dir: str) -> List[str]:
        InputSanitizer.sanitize_clone_arg(repo_url, "repository URL")
        InputSanitizer.sanitize_clone_arg(ref, "ref")
        InputSanitizer.sanitize_clone_arg(target_dir, "target directory")
        shell = "git-bash.exe" if sys.platform == "win32" else "bash"
        return [shell, self.script_path, repo_url, ref, target_dir]

    def clone(self, repo_url: str, ref: str, target_dir: str) -> CloneOutcome:
        try:
            cmd = self.build_command(repo_url, ref, target_dir)
        except SecurityError as e:
            return CloneOutcome.failed(str(e))

        if not validate_clone_shell(cmd[0]):
            return CloneOutcome.failed(f"{cmd[0]} not found")

        logger.info(f"Cloning {repo_url} ({ref}) to {target_dir}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                shell=False,
                creationflags=subprocess_creation_flags(),
            )
        except subprocess.TimeoutExpired:
            return CloneOutcome.failed("Clone timed out")
        except OSError as e:
            return CloneOutcome.failed(str(e))

        if result.returncode != 0:
            return CloneOutcome.failed(result.stderr.strip() or f"exit code {result.returncode}")

        logger.debug(f"Repo cloned. stdout: {result.stdout}")
        return CloneOutcome(CloneStatus.CLONED)


def find_repo_dir_in_workspace(repo_name: str, folders: List[str]) -> Optional[str]:
    """
    Find an open folder (or a direct subfolder of one) named like the repo.

    Returns:
        Matching directory path, or None
    """
    logger.debug(f"Checking workspace folders for {repo_name}")
    for folder in folders:
        if folder.rstrip(os.sep).endswith(repo_name):
            return folder

    logger.debug(f"Didn't find {repo_name} in workspace folders. Checking one level deep")
    for folder in folders:
        try:
            subdirs = sorted(entry.path for entry in os.scandir(folder) if entry.is_dir())
        except OSError as e:
            logger.warning(f"Cannot list {folder}: {e}")
            continue
        for subdir in subdirs:
            if subdir.endswith(repo_name):
                logger.debug(f"Found {repo_name} in {subdir}")
                return subdir
    return None


def open_file_from_directory(directory: str) -> Optional[str]:
    """
    Choose the file to open for a directory target.

    Prefers terragrunt.hcl, then main.tf, then the first listed entry.

    Returns:
        File path, or None for an empty directory
    """
    files = sorted(os.listdir(directory))
    if not files:
        return None
    for name in PREFERRED_ENTRY_FILES:
        if name in files:
            return os.path.join(directory, name)
    return os.path.join(directory, files[0])


class RemoteModuleResolver:
    """
    Resolves git module sources to local directories.

    Args:
        ledger: Persisted clone timestamps
        cloner: Object with ``clone(repo_url, ref, target_dir) -> CloneOutcome``
        repo_cache_dir: Root of cloned repositories
        cooldown: Seconds during which an existing clone is not refreshed
        notify: Receives user-visible messages
        clock: Time source
    """

    def __init__(
        self,
        ledger: CloneLedger,
        cloner: Optional[GitCloner] = None,
        repo_cache_dir: Optional[str] = None,
        cooldown: float = DEFAULT_CLONE_COOLDOWN,
        notify: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ledger = ledger
        self.cloner = cloner or GitCloner()
        self.repo_cache_dir = repo_cache_dir or default_repo_cache_dir()
        self.cooldown = cooldown
        self.notify = notify or logger.info
        self.clock = clock

    def resolve(self, module: GitModuleRef, workspace_folders: List[str]) -> ResolvedModule:
        """
        Return the local directory holding ``module``, cloning if needed.

        A failed clone is reported through ``notify``; the path that the
        clone would have produced is still returned.
        """
        repo_dir = find_repo_dir_in_workspace(module.repo_name, workspace_folders)
        if repo_dir:
            outcome = CloneOutcome(CloneStatus.IN_WORKSPACE)
        else:
            repo_dir = os.path.join(self.repo_cache_dir, module.url_path)
            now = self.clock()
            if os.path.exists(repo_dir) and self.ledger.is_fresh(repo_dir, now, self.cooldown):
                outcome = CloneOutcome(CloneStatus.ALREADY_FRESH)
            else:
                self.ledger.record(repo_dir, now)
                self.notify(f"Cloning {module.repo_url} to {repo_dir}")
                outcome = self.cloner.clone(module.repo_url, module.ref, repo_dir)
                if not outcome.ok:
                    logger.error(f"Error cloning {module.repo_url}: {outcome.reason}")
                    self.notify(f"Error cloning repository: {outcome.reason}")

        return ResolvedModule(
            path=os.path.join(repo_dir, module.module_path),
            repo_dir=repo_dir,
            outcome=outcome,
        )
