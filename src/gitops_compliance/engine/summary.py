"""
Aggregation of per-file results into a validation summary.
"""

from __future__ import annotations

import logging
from typing import Mapping

from gitops_compliance.models import Severity, ValidationResult, ValidationSummary

logger = logging.getLogger(__name__)


def should_pass(counts: Mapping[Severity, int], fail_on: Severity | str | None) -> bool:
    """
    Decide whether a run passes for a fail threshold.

    Args:
        counts: Violation count per severity
        fail_on: Threshold; violations at this severity or above fail

    Returns:
        True if no violation reaches the threshold. An unrecognized
        threshold never passes.
    """
    if isinstance(fail_on, str):
        try:
            fail_on = Severity.from_string(fail_on)
        except ValueError:
            return False

    errors = counts.get(Severity.ERROR, 0)
    warnings = counts.get(Severity.WARNING, 0)
    infos = counts.get(Severity.INFO, 0)

    if fail_on == Severity.ERROR:
        return errors == 0
    if fail_on == Severity.WARNING:
        return errors == 0 and warnings == 0
    if fail_on == Severity.INFO:
        return errors == 0 and warnings == 0 and infos == 0
    return False


class SummaryAggregator:
    """
    Builds a ValidationSummary one file at a time.

    Not thread-safe; results are added from the thread that owns the run.
    """

    def __init__(self) -> None:
        self._summary = ValidationSummary()

    @property
    def summary(self) -> ValidationSummary:
        """Get the summary built so far."""
        return self._summary

    def add_result(self, result: ValidationResult) -> None:
        """
        Add one file's result to the totals.

        Args:
            result: Validation result for a file
        """
        summary = self._summary
        summary.total_files += 1
        summary.total_resources += result.resource_count
        summary.total_violations += len(result.violations)

        for violation in result.violations:
            summary.violations_by_severity[violation.severity] += 1
            summary.violations_by_category[violation.category] += 1

        summary.results.append(result)

    def finalize(self, fail_on: Severity | str | None = Severity.ERROR) -> ValidationSummary:
        """
        Compute the pass/fail outcome.

        Args:
            fail_on: Fail threshold

        Returns:
            The completed summary
        """
        self._summary.passed = should_pass(self._summary.violations_by_severity, fail_on)
        logger.debug(
            f"Summary finalized: {self._summary.total_violations} violations, "
            f"passed={self._summary.passed}"
        )
        return self._summary
