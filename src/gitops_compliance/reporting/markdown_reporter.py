"""
Markdown report output.
"""

from __future__ import annotations

from gitops_compliance.models import PolicyCategory, Severity, ValidationSummary, Violation
from gitops_compliance.reporting.base import REPORT_TITLE, BaseReporter, ReportFormat

SEVERITY_MARKERS = {
    Severity.ERROR: "🔴",
    Severity.WARNING: "🟡",
    Severity.INFO: "🔵",
}


class MarkdownReporter(BaseReporter):
    """
    Renders the summary as a Markdown document.

    Sections: summary bullets, severity table, category table (non-zero
    categories only), per-file violation details and a generation footer.
    """

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.MARKDOWN

    def render(self, summary: ValidationSummary) -> str:
        """Render the summary as Markdown."""
        lines: list[str] = [f"# {REPORT_TITLE}", ""]

        status = "✅ PASSED" if summary.passed else "❌ FAILED"
        lines.extend([
            "## Summary",
            "",
            f"- **Files Scanned:** {summary.total_files}",
            f"- **Resources Checked:** {summary.total_resources}",
            f"- **Total Violations:** {summary.total_violations}",
            f"- **Status:** {status}",
            "",
        ])

        lines.extend([
            "## Violations by Severity",
            "",
            "| Severity | Count |",
            "|----------|-------|",
        ])
        for severity in Severity:
            count = summary.violations_by_severity.get(severity, 0)
            lines.append(f"| {severity.value.capitalize()} | {count} |")
        lines.append("")

        lines.extend([
            "## Violations by Category",
            "",
            "| Category | Count |",
            "|----------|-------|",
        ])
        for category in PolicyCategory:
            count = summary.violations_by_category.get(category, 0)
            if count > 0:
                lines.append(f"| {category.value.capitalize()} | {count} |")
        lines.append("")

        if summary.total_violations > 0:
            lines.extend(["## Detailed Violations", ""])
            for result in summary.results:
                if not result.violations:
                    continue
                lines.extend([f"### {result.file}", ""])
                for violation in result.violations:
                    lines.extend(self._render_violation(violation))

        lines.extend([
            "---",
            "",
            f"*Generated on {self.generated_at.isoformat()}*",
            "",
        ])
        return "\n".join(lines)

    def _render_violation(self, violation: Violation) -> list[str]:
        location = violation.resource.location
        lines = [
            f"{SEVERITY_MARKERS[violation.severity]} **{violation.rule_name}** "
            f"({violation.severity.value})",
            "",
            f"- **Resource:** {violation.resource.type} `{violation.resource.id}`",
            f"- **Location:** {location.file}:{location.line or 0}",
            f"- **Category:** {violation.category.value}",
            f"- **Message:** {violation.message}",
        ]
        if violation.remediation:
            lines.append(f"- **Remediation:** {violation.remediation}")
        lines.append("")
        return lines
