"""
YAML report output.
"""

from __future__ import annotations

import yaml

from gitops_compliance.models import ValidationSummary
from gitops_compliance.reporting.base import BaseReporter, ReportFormat


class YAMLReporter(BaseReporter):
    """Renders the same document as the JSON report, as YAML."""

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.YAML

    def render(self, summary: ValidationSummary) -> str:
        """Render the summary as YAML."""
        document = {
            **summary.to_dict(),
            "generated_at": self.generated_at.isoformat(),
        }
        return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)
