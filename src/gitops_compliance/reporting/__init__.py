"""
Report generation for the GitOps Compliance Engine.

Formats:
- json: machine-readable summary
- yaml: the same document as YAML
- markdown: human-readable report for pull requests and wikis
- html: standalone styled page
"""

from gitops_compliance.reporting.base import (
    REPORT_TITLE,
    BaseReporter,
    ReportFormat,
    get_reporter,
)
from gitops_compliance.reporting.html_reporter import HTMLReporter
from gitops_compliance.reporting.json_reporter import JSONReporter
from gitops_compliance.reporting.markdown_reporter import MarkdownReporter
from gitops_compliance.reporting.yaml_reporter import YAMLReporter

__all__ = [
    "REPORT_TITLE",
    "BaseReporter",
    "HTMLReporter",
    "JSONReporter",
    "MarkdownReporter",
    "ReportFormat",
    "YAMLReporter",
    "get_reporter",
]
