"""
Base report functionality.

A reporter renders a ValidationSummary as text in one output format and
can write it to disk.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from gitops_compliance.errors import InputError
from gitops_compliance.models import ValidationSummary

logger = logging.getLogger(__name__)

REPORT_TITLE = "GitOps Compliance Report"


class ReportFormat(Enum):
    """Supported report formats."""

    JSON = "json"
    YAML = "yaml"
    MARKDOWN = "markdown"
    HTML = "html"

    @classmethod
    def from_string(cls, value: str) -> ReportFormat:
        """
        Create ReportFormat from string value.

        Args:
            value: Format name (case-insensitive)

        Returns:
            Matching ReportFormat

        Raises:
            ValueError: If the format is not supported
        """
        value_lower = value.lower()
        for report_format in cls:
            if report_format.value == value_lower:
                return report_format
        raise ValueError(f"Unsupported report format: {value}")


class BaseReporter(ABC):
    """Abstract base class for reporters."""

    def __init__(self, generated_at: datetime | None = None) -> None:
        """
        Initialize the reporter.

        Args:
            generated_at: Timestamp printed in reports, now when None
        """
        self._generated_at = generated_at

    @property
    @abstractmethod
    def format(self) -> ReportFormat:
        """Return the format this reporter produces."""
        pass

    @abstractmethod
    def render(self, summary: ValidationSummary) -> str:
        """
        Render a summary.

        Args:
            summary: Finalized validation summary

        Returns:
            Report text
        """
        pass

    @property
    def generated_at(self) -> datetime:
        """Get the report timestamp."""
        return self._generated_at or datetime.now(timezone.utc)

    def write(self, summary: ValidationSummary, output_path: str | Path) -> Path:
        """
        Render a summary and write it to a file.

        Args:
            summary: Finalized validation summary
            output_path: Destination file; parent directories are created

        Returns:
            Path written
        """
        content = self.render(summary)
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.debug(f"Wrote {len(content.encode('utf-8'))} bytes to {path}")
        return path


def get_reporter(
    report_format: ReportFormat | str,
    generated_at: datetime | None = None,
) -> BaseReporter:
    """
    Get a reporter for a format.

    Args:
        report_format: Format enum or name
        generated_at: Timestamp printed in reports

    Returns:
        Reporter instance

    Raises:
        InputError: If the format is not supported
    """
    from gitops_compliance.reporting.html_reporter import HTMLReporter
    from gitops_compliance.reporting.json_reporter import JSONReporter
    from gitops_compliance.reporting.markdown_reporter import MarkdownReporter
    from gitops_compliance.reporting.yaml_reporter import YAMLReporter

    if isinstance(report_format, str):
        try:
            report_format = ReportFormat.from_string(report_format)
        except ValueError as e:
            raise InputError(str(e)) from None

    reporters: dict[ReportFormat, type[BaseReporter]] = {
        ReportFormat.JSON: JSONReporter,
        ReportFormat.YAML: YAMLReporter,
        ReportFormat.MARKDOWN: MarkdownReporter,
        ReportFormat.HTML: HTMLReporter,
    }
    return reporters[report_format](generated_at=generated_at)
