"""
Validation utilities for terragrunt-nav.
"""

import shutil


def validate_clone_shell(shell: str = "bash") -> bool:
    """
    Check if the shell that runs the clone helper is available.

    Args:
        shell: Name or path of the shell binary

    Returns:
        True if the binary exists in PATH (or at the given path)
    """
    return shutil.which(shell) is not None
