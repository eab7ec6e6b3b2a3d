"""
Utilities for the GitOps Compliance Engine.
"""

from gitops_compliance.utils.cache import IaCFileCache, hash_content
from gitops_compliance.utils.files import (
    FILE_PATTERNS,
    IGNORED_DIRECTORIES,
    find_iac_files,
    matches_any_glob,
    matches_glob,
)

__all__ = [
    "FILE_PATTERNS",
    "IGNORED_DIRECTORIES",
    "IaCFileCache",
    "find_iac_files",
    "hash_content",
    "matches_any_glob",
    "matches_glob",
]
