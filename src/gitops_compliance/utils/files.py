"""
File discovery and glob matching.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path

from gitops_compliance.errors import InputError
from gitops_compliance.models import IaCFormat

logger = logging.getLogger(__name__)

FILE_PATTERNS: dict[IaCFormat | None, tuple[str, ...]] = {
    IaCFormat.TERRAFORM: ("*.tf", "*.tfvars"),
    IaCFormat.PULUMI: ("Pulumi.yaml", "Pulumi.*.yaml", "Pulumi.yml", "Pulumi.*.yml"),
    IaCFormat.CLOUDFORMATION: (
        "*.template.json",
        "*.template.yaml",
        "*.template.yml",
        "cloudformation.json",
        "cloudformation.yaml",
        "cloudformation.yml",
    ),
    None: ("*.tf", "*.yaml", "*.yml", "*.json"),
}

IGNORED_DIRECTORIES = frozenset({
    "node_modules",
    ".terraform",
    ".git",
    "dist",
    "build",
})


def _match_segments(parts: list[str], pattern_parts: list[str]) -> bool:
    if not pattern_parts:
        return not parts

    head, rest = pattern_parts[0], pattern_parts[1:]
    if head == "**":
        return any(_match_segments(parts[i:], rest) for i in range(len(parts) + 1))

    return (
        bool(parts)
        and fnmatch.fnmatchcase(parts[0], head)
        and _match_segments(parts[1:], rest)
    )


def matches_glob(value: str, pattern: str, basename: bool = False) -> bool:
    """
    Match a value against a glob pattern.

    Patterns are matched one ``/`` segment at a time: ``*``, ``?`` and
    ``[...]`` stay within a segment and ``**`` spans any number of
    segments, so ``**/test/**`` matches ``test/main.tf`` but ``infra/*.tf``
    does not match ``infra/modules/vpc/main.tf``.

    Args:
        value: Path, resource type or resource id
        pattern: Glob pattern (``*``, ``**``, ``?``, ``[...]``)
        basename: Also match the pattern against the last path segment,
            for file patterns such as ``legacy.tf``

    Returns:
        True if the value matches
    """
    parts = value.replace("\\", "/").split("/")
    pattern_parts = pattern.split("/")

    if _match_segments(parts, pattern_parts):
        return True
    return basename and _match_segments(parts[-1:], pattern_parts)


def matches_any_glob(value: str, patterns: list[str], basename: bool = False) -> bool:
    """Check a value against several glob patterns."""
    return any(matches_glob(value, pattern, basename) for pattern in patterns)


def find_iac_files(
    path: str | Path,
    iac_format: IaCFormat | None = None,
    exclude: list[str] | None = None,
) -> list[str]:
    """
    Find IaC files under a path.

    Args:
        path: File or directory to search
        iac_format: Format whose file patterns to use, None for all
        exclude: File globs to skip

    Returns:
        Sorted list of file paths

    Raises:
        InputError: If the path does not exist or no files match
    """
    root = Path(path)
    if not root.exists():
        raise InputError(f"Path does not exist: {path}", str(path))

    if root.is_file():
        return [str(root)]

    patterns = FILE_PATTERNS[iac_format]
    exclude = exclude or []
    found: list[str] = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
        for filename in filenames:
            if not any(fnmatch.fnmatchcase(filename, p) for p in patterns):
                continue
            file_path = os.path.join(dirpath, filename)
            relative = os.path.relpath(file_path, root)
            if exclude and matches_any_glob(relative, exclude, basename=True):
                logger.debug(f"Skipping excluded file {file_path}")
                continue
            found.append(file_path)

    if not found:
        format_name = iac_format.value if iac_format else "IaC"
        raise InputError(
            f"No {format_name} files found in {path}. "
            f"Patterns searched: {', '.join('**/' + p for p in patterns)}",
            str(path),
        )

    logger.debug(f"Found {len(found)} files in {path}")
    return sorted(found)
