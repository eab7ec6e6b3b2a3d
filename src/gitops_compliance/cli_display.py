"""
Console rendering for the gce CLI.

Everything here writes to stdout except display_error, which writes to
stderr. Colors are only emitted when the stream is a terminal and
NO_COLOR is not set.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Mapping, TextIO

from gitops_compliance.models import Severity, ValidationResult, ValidationSummary, Violation
from gitops_compliance.policies import PolicyRule

COLORS = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
    "gray": "\033[90m",
    "bold": "\033[1m",
    "dim": "\033[2m",
}
RESET = "\033[0m"

SEVERITY_COLORS = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}

METADATA_INDENT = "      "


def _use_colors(stream: TextIO) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def colorize(text: str, color: str, stream: TextIO | None = None) -> str:
    """Wrap text in an ANSI color when the stream supports it."""
    stream = stream or sys.stdout
    if not _use_colors(stream):
        return text
    return f"{COLORS[color]}{text}{RESET}"


def display_results(
    summary: ValidationSummary,
    show_summary: bool = True,
    show_metadata: bool = False,
    policies: Mapping[str, PolicyRule] | None = None,
) -> None:
    """
    Print per-file results and, optionally, the run summary.

    Args:
        summary: Finalized validation summary
        show_summary: Print the summary block after the file results
        show_metadata: Print rule rationale, frameworks and references
            under each violation
        policies: Rules by id, used to look up metadata
    """
    print()
    for result in summary.results:
        display_file_result(result, show_metadata, policies)

    if show_summary:
        print()
        display_summary(summary)


def display_file_result(
    result: ValidationResult,
    show_metadata: bool = False,
    policies: Mapping[str, PolicyRule] | None = None,
) -> None:
    """Print one file's status line and its violations."""
    icon = colorize("✓", "green") if result.passed else colorize("✗", "red")
    print(f"{icon} {colorize(result.file, 'bold')} ({result.resource_count} resources)")

    if not result.violations:
        return

    for violation in result.violations:
        display_violation(violation)
        if show_metadata and policies:
            policy = policies.get(violation.rule_id)
            if policy is not None:
                display_policy_metadata(policy)
    print()


def display_violation(violation: Violation) -> None:
    """Print a violation with its resource location and remediation."""
    color = SEVERITY_COLORS[violation.severity]
    badge = colorize(f"[{violation.severity.value.upper()}]", color)
    location = violation.resource.location
    where = f"{location.file}:{location.line or 0}"

    print(f"  {badge} {violation.message}")
    print(
        "    "
        + colorize(
            f'└─ {violation.resource.type} "{violation.resource.id}" at {where}',
            "gray",
        )
    )
    if violation.remediation:
        print("    " + colorize(f"💡 {violation.remediation}", "cyan"))


def display_policy_metadata(policy: PolicyRule) -> None:
    """Print a rule's rationale, frameworks and references."""
    metadata = policy.metadata
    if metadata is None:
        return

    if metadata.rationale:
        print(f"{METADATA_INDENT}{colorize('Rationale:', 'dim')}")
        print(f"{METADATA_INDENT}{colorize(metadata.rationale, 'dim')}")

    if metadata.frameworks:
        frameworks = ", ".join(metadata.frameworks)
        print(f"{METADATA_INDENT}{colorize('Frameworks:', 'dim')} {colorize(frameworks, 'dim')}")

    if metadata.references:
        print(f"{METADATA_INDENT}{colorize('References:', 'dim')}")
        for ref in metadata.references:
            print(f"{METADATA_INDENT}{colorize(f'  • {ref}', 'dim')}")


def display_summary(summary: ValidationSummary) -> None:
    """Print totals, non-zero severity counts and the final verdict."""
    print(colorize("═══ Validation Summary ═══", "bold"))
    print()
    print(f"Files scanned:     {summary.total_files}")
    print(f"Resources checked: {summary.total_resources}")
    print(f"Total violations:  {summary.total_violations}")
    print()

    print(colorize("By Severity:", "bold"))
    for severity in Severity:
        count = summary.violations_by_severity.get(severity, 0)
        if count > 0:
            print(f"  {colorize(severity.value + ':', SEVERITY_COLORS[severity])} {count}")
    print()

    if summary.passed:
        print(colorize("✓ Validation PASSED", "green"))
    else:
        print(colorize("✗ Validation FAILED", "red"))
    print()


def display_error(message: str) -> None:
    """Print an error message to stderr."""
    print(colorize(f"✗ Error: {message}", "red", sys.stderr), file=sys.stderr)


def display_success(message: str) -> None:
    print(colorize(f"✓ {message}", "green"))


def display_info(message: str) -> None:
    print(colorize(f"ℹ {message}", "blue"))


def format_table(rows: list[dict[str, Any]]) -> str:
    """
    Format rows as a plain-text table.

    Args:
        rows: Dictionaries sharing the same keys

    Returns:
        Table string, empty when there are no rows
    """
    if not rows:
        return ""

    headers = list(rows[0].keys())
    widths = {h: len(str(h)) for h in headers}
    for row in rows:
        for h in headers:
            widths[h] = max(widths[h], len(str(row.get(h, ""))))

    lines = [
        " | ".join(str(h).ljust(widths[h]) for h in headers),
        "-+-".join("-" * widths[h] for h in headers),
    ]
    for row in rows:
        lines.append(" | ".join(str(row.get(h, "")).ljust(widths[h]) for h in headers))
    return "\n".join(lines)
