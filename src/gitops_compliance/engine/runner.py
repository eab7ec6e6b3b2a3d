"""
Validation runner.

Parses and evaluates files on a thread pool, then aggregates the per-file
results on the calling thread in input order.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from gitops_compliance.engine.engine import PolicyEngine, RuleEvaluationError
from gitops_compliance.engine.summary import SummaryAggregator
from gitops_compliance.errors import InputError
from gitops_compliance.models import (
    IaCFormat,
    IaCParseResult,
    Severity,
    ValidationResult,
    ValidationSummary,
)
from gitops_compliance.observability.logging import get_logger
from gitops_compliance.parsers import parse_iac_file, read_iac_file
from gitops_compliance.policies import PolicyRule
from gitops_compliance.utils.cache import IaCFileCache

logger = logging.getLogger(__name__)
event_logger = get_logger(__name__)

DEFAULT_MAX_WORKERS = 8


@dataclass
class FileOutcome:
    """Result of parsing and evaluating one file."""

    result: ValidationResult
    errors: list[RuleEvaluationError] = field(default_factory=list)
    cached: bool = False


class ValidationRunner:
    """
    Runs a validation over a set of files.

    The rule list is resolved once per run, before any file is processed,
    so every file is evaluated against the same snapshot.
    """

    def __init__(
        self,
        engine: PolicyEngine,
        cache: IaCFileCache | None = None,
        max_workers: int | None = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            engine: Policy engine with custom policies already loaded
            cache: Parse cache, None to always parse
            max_workers: Thread pool size
        """
        self.engine = engine
        self.cache = cache
        self.max_workers = max_workers or DEFAULT_MAX_WORKERS
        self._errors: list[RuleEvaluationError] = []
        self._lock = threading.Lock()

    @property
    def errors(self) -> list[RuleEvaluationError]:
        """Get rule evaluation errors from the last run."""
        with self._lock:
            return list(self._errors)

    def run(
        self,
        files: Sequence[str | Path],
        iac_format: IaCFormat | str | None = None,
        fail_on: Severity | str | None = Severity.ERROR,
        fail_fast: bool = False,
    ) -> ValidationSummary:
        """
        Validate files and build a summary.

        Args:
            files: Files to validate
            iac_format: Format to parse every file as, detected per file
                when None
            fail_on: Fail threshold for the summary
            fail_fast: Stop aggregating after the first file with
                violations

        Returns:
            Finalized ValidationSummary

        Raises:
            InputError: If the format is not supported
            ParseError: If a file cannot be read or parsed
        """
        start_time = time.time()

        if isinstance(iac_format, str):
            try:
                iac_format = IaCFormat.from_string(iac_format)
            except ValueError as e:
                raise InputError(str(e)) from None

        policies = self.engine.get_policies()
        enabled_count = sum(1 for p in policies if p.enabled and p.evaluable)

        with self._lock:
            self._errors = []

        event_logger.validation_started(file_count=len(files), policy_count=enabled_count)

        aggregator = SummaryAggregator()

        if files:
            workers = min(self.max_workers, len(files))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                outcomes = executor.map(
                    lambda f: self._process_file(str(f), iac_format, policies),
                    files,
                )

                # Results arrive in input order
                for outcome in outcomes:
                    aggregator.add_result(outcome.result)
                    if fail_fast and outcome.result.violations:
                        logger.info(f"Stopping after {outcome.result.file} (fail-fast)")
                        break

        summary = aggregator.finalize(fail_on)

        event_logger.validation_completed(
            file_count=summary.total_files,
            resource_count=summary.total_resources,
            violation_count=summary.total_violations,
            passed=summary.passed,
            duration_seconds=round(time.time() - start_time, 3),
        )
        return summary

    def _process_file(
        self,
        file_path: str,
        iac_format: IaCFormat | None,
        policies: Sequence[PolicyRule],
    ) -> FileOutcome:
        parse_result, cached = self._parse(file_path, iac_format)

        evaluation = self.engine.evaluate_resources(parse_result.resources, policies)
        if evaluation.errors:
            with self._lock:
                self._errors.extend(evaluation.errors)

        result = ValidationResult(
            file=file_path,
            format=parse_result.format,
            violations=evaluation.violations,
            resource_count=parse_result.resource_count,
        )
        return FileOutcome(result=result, errors=evaluation.errors, cached=cached)

    def _parse(
        self,
        file_path: str,
        iac_format: IaCFormat | None,
    ) -> tuple[IaCParseResult, bool]:
        if self.cache is None or not self.cache.enabled:
            result = parse_iac_file(file_path, iac_format)
            event_logger.file_parsed(file_path, result.resource_count, cached=False)
            return result, False

        content = read_iac_file(file_path)
        cached = self.cache.get(file_path, content)
        if cached is not None and iac_format in (None, cached.format):
            event_logger.file_parsed(file_path, cached.resource_count, cached=True)
            return cached, True

        result = parse_iac_file(file_path, iac_format, content=content)
        self.cache.set(file_path, result, content)
        event_logger.file_parsed(file_path, result.resource_count, cached=False)
        return result, False
