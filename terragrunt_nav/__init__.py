"""
terragrunt-nav - link and hover resolution for Terragrunt/Terraform trees.
"""

__version__ = "0.9.0"

from .navigator import Navigator, Workspace, DocumentAnnotations, DocumentLink

__all__ = ["Navigator", "Workspace", "DocumentAnnotations", "DocumentLink", "__version__"]
