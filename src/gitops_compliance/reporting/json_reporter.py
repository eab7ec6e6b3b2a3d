"""
JSON report output.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from gitops_compliance.models import ValidationSummary
from gitops_compliance.reporting.base import BaseReporter, ReportFormat


class JSONReporter(BaseReporter):
    """
    Renders the summary as indented JSON.

    The document is ``ValidationSummary.to_dict()`` plus a
    ``generated_at`` timestamp.
    """

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.JSON

    def build(self, summary: ValidationSummary) -> dict[str, Any]:
        """Build the report document."""
        return {
            **summary.to_dict(),
            "generated_at": self.generated_at,
        }

    def render(self, summary: ValidationSummary) -> str:
        """Render the summary as JSON."""
        return json.dumps(self.build(summary), indent=2, default=self._json_serializer)

    def _json_serializer(self, obj: Any) -> Any:
        """Custom JSON serializer for non-standard types."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, "value"):  # Enum
            return obj.value
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
