"""
Security module for terragrunt-nav.

This module validates inputs that end up on a subprocess command line.
"""

from .sanitizer import InputSanitizer, SecurityError

__all__ = ["InputSanitizer", "SecurityError"]
