"""
HTML report output.

Generates a single self-contained page with embedded CSS. All values that
come from IaC files or rules are escaped.
"""

from __future__ import annotations

import html

from gitops_compliance.models import Severity, ValidationSummary, Violation
from gitops_compliance.reporting.base import REPORT_TITLE, BaseReporter, ReportFormat


class HTMLReporter(BaseReporter):
    """Renders the summary as a styled HTML page."""

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.HTML

    def render(self, summary: ValidationSummary) -> str:
        """Render the summary as HTML."""
        status_class = "passed" if summary.passed else "failed"
        status_text = "PASSED ✅" if summary.passed else "FAILED ❌"

        severity_rows = "\n".join(
            f"""        <tr>
          <td><span class="badge {severity.value}">{severity.value.capitalize()}</span></td>
          <td>{summary.violations_by_severity.get(severity, 0)}</td>
        </tr>"""
            for severity in Severity
        )

        details = ""
        if summary.total_violations > 0:
            sections = ['  <h2 class="details-title">Detailed Violations</h2>']
            for result in summary.results:
                if not result.violations:
                    continue
                sections.append(f'  <h3 class="file-title">{self._escape_html(result.file)}</h3>')
                sections.extend(self._render_violation(v) for v in result.violations)
            details = "\n".join(sections)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{REPORT_TITLE}</title>
{self._get_base_styles()}
</head>
<body>
  <div class="header">
    <h1>{REPORT_TITLE}</h1>
    <div class="status {status_class}">{status_text}</div>
  </div>

  <div class="summary-grid">
    <div class="summary-card">
      <h3>Files Scanned</h3>
      <div class="value">{summary.total_files}</div>
    </div>
    <div class="summary-card">
      <h3>Resources Checked</h3>
      <div class="value">{summary.total_resources}</div>
    </div>
    <div class="summary-card">
      <h3>Total Violations</h3>
      <div class="value">{summary.total_violations}</div>
    </div>
  </div>

  <div class="violations-table">
    <h2>Violations by Severity</h2>
    <table>
      <thead>
        <tr><th>Severity</th><th>Count</th></tr>
      </thead>
      <tbody>
{severity_rows}
      </tbody>
    </table>
  </div>
{details}
  <div class="footer">
    Generated on {self.generated_at.isoformat()}
  </div>
</body>
</html>
"""

    def _render_violation(self, violation: Violation) -> str:
        severity = violation.severity.value
        location = violation.resource.location
        remediation = ""
        if violation.remediation:
            remediation = f"""
    <div class="remediation">
      <strong>Remediation:</strong> {self._escape_html(violation.remediation)}
    </div>"""

        return f"""  <div class="violation-item {severity}">
    <div class="violation-header">
      <div class="violation-title">{self._escape_html(violation.rule_name)}</div>
      <span class="badge {severity}">{severity}</span>
    </div>
    <div class="violation-details">
      <p><strong>Resource:</strong> {self._escape_html(violation.resource.type)} <code>{self._escape_html(violation.resource.id)}</code></p>
      <p><strong>Location:</strong> {self._escape_html(location.file)}:{location.line or 0}</p>
      <p><strong>Category:</strong> {violation.category.value}</p>
      <p><strong>Message:</strong> {self._escape_html(violation.message)}</p>
    </div>{remediation}
  </div>"""

    def _escape_html(self, text: str | None) -> str:
        """Escape HTML special characters."""
        if not text:
            return ""
        return html.escape(str(text), quote=True)

    def _get_base_styles(self) -> str:
        """Return embedded CSS."""
        return """  <style>
    body {
      font-family: system-ui, -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      line-height: 1.6;
      max-width: 1200px;
      margin: 0 auto;
      padding: 20px;
      background-color: #f5f5f5;
    }
    .header {
      background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
      color: white;
      padding: 30px;
      border-radius: 10px;
      margin-bottom: 30px;
    }
    .header h1 { margin: 0 0 10px 0; }
    .status { font-size: 24px; font-weight: bold; margin-top: 10px; }
    .status.passed { color: #10b981; }
    .status.failed { color: #ef4444; }
    .summary-grid {
      display: grid;
      grid-template-columns: repeat(auto-fit, minmax(250px, 1fr));
      gap: 20px;
      margin-bottom: 30px;
    }
    .summary-card, .violations-table {
      background: white;
      padding: 20px;
      border-radius: 8px;
      box-shadow: 0 2px 4px rgba(0,0,0,0.1);
    }
    .summary-card h3 { margin: 0 0 10px 0; color: #666; font-size: 14px; text-transform: uppercase; }
    .summary-card .value { font-size: 32px; font-weight: bold; color: #333; }
    .violations-table { margin-bottom: 30px; }
    table { width: 100%; border-collapse: collapse; }
    th, td { padding: 12px; text-align: left; border-bottom: 1px solid #e5e7eb; }
    th { background-color: #f9fafb; font-weight: 600; color: #374151; }
    .details-title { margin-top: 40px; }
    .file-title { margin-top: 30px; }
    .violation-item {
      background: white;
      border-left: 4px solid #3b82f6;
      padding: 15px;
      margin-bottom: 15px;
      border-radius: 4px;
      box-shadow: 0 1px 3px rgba(0,0,0,0.1);
    }
    .violation-item.error { border-left-color: #ef4444; }
    .violation-item.warning { border-left-color: #f59e0b; }
    .violation-item.info { border-left-color: #3b82f6; }
    .violation-header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 10px; }
    .violation-title { font-weight: bold; font-size: 16px; }
    .badge {
      display: inline-block;
      padding: 4px 8px;
      border-radius: 4px;
      font-size: 12px;
      font-weight: bold;
      text-transform: uppercase;
    }
    .badge.error { background-color: #fee2e2; color: #991b1b; }
    .badge.warning { background-color: #fef3c7; color: #92400e; }
    .badge.info { background-color: #dbeafe; color: #1e40af; }
    .violation-details { color: #6b7280; font-size: 14px; }
    .remediation {
      background-color: #f0f9ff;
      border-left: 3px solid #0ea5e9;
      padding: 10px;
      margin-top: 10px;
      font-size: 14px;
    }
    .footer { text-align: center; color: #6b7280; margin-top: 40px; font-size: 14px; }
  </style>"""
