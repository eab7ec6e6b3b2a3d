"""
Base class for IaC parsers.

Every parser turns the text of one file into an IaCParseResult whose
resources carry their file path and, where the source format allows it,
the line of their declaration.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from gitops_compliance.errors import ParseError
from gitops_compliance.models import IaCFormat, IaCParseResult

logger = logging.getLogger(__name__)


class IaCParser(ABC):
    """
    Abstract base class for IaC parsers.

    Subclasses implement ``parse_content``; ``parse_file`` handles reading
    and error wrapping.
    """

    @property
    @abstractmethod
    def format(self) -> IaCFormat:
        """Return the IaC format this parser handles."""
        pass

    @abstractmethod
    def parse_content(self, content: str, file_path: str = "<string>") -> IaCParseResult:
        """
        Parse IaC content from a string.

        Args:
            content: The IaC content to parse
            file_path: Path recorded in resource locations

        Returns:
            Parsed IaCParseResult

        Raises:
            ParseError: If the content cannot be parsed
        """
        pass

    def parse_file(self, file_path: str | Path) -> IaCParseResult:
        """
        Parse an IaC file.

        Args:
            file_path: Path to the file to parse

        Returns:
            Parsed IaCParseResult

        Raises:
            ParseError: If the file cannot be read or parsed
        """
        path = Path(file_path)

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Failed to read file: {e}", str(path)) from e

        return self.parse_content(content, str(path))


def find_line(content: str, pattern: str, flags: int = re.MULTILINE) -> int | None:
    """
    Find the 1-indexed line of the first regex match in content.

    Args:
        content: Source text
        pattern: Regular expression
        flags: Regex flags

    Returns:
        Line number, or None if there is no match
    """
    match = re.search(pattern, content, flags)
    if match is None:
        return None
    return content[: match.start()].count("\n") + 1
