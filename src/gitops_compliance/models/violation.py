"""
Violation and result data models for the GitOps Compliance Engine.

This module defines the Severity and PolicyCategory enums, the Violation
emitted by a rule, and the per-file and aggregate validation results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gitops_compliance.models.resource import IaCFormat, IaCLocation, IaCResource


class Severity(Enum):
    """Severity level of a violation."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def from_string(cls, value: str) -> Severity:
        """
        Create Severity from string value.

        Args:
            value: String representation (case-insensitive)

        Returns:
            Matching Severity enum value

        Raises:
            ValueError: If value is not a valid severity
        """
        value_lower = value.lower()
        for severity in cls:
            if severity.value == value_lower:
                return severity
        raise ValueError(f"Invalid severity: {value}")


class PolicyCategory(Enum):
    """Category of a compliance rule."""

    COST = "cost"
    SECURITY = "security"
    COMPLIANCE = "compliance"
    TAGGING = "tagging"
    NAMING = "naming"

    @classmethod
    def from_string(cls, value: str) -> PolicyCategory:
        """
        Create PolicyCategory from string value.

        Raises:
            ValueError: If value is not a valid category
        """
        value_lower = value.lower()
        for category in cls:
            if category.value == value_lower:
                return category
        raise ValueError(f"Invalid category: {value}")


@dataclass(frozen=True)
class ViolationResource:
    """Identity of the resource a violation was raised against."""

    id: str
    type: str
    location: IaCLocation

    @classmethod
    def of(cls, resource: IaCResource) -> ViolationResource:
        """Build from a full resource."""
        return cls(id=resource.id, type=resource.type, location=resource.location)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type,
            "location": self.location.to_dict(),
        }


@dataclass(frozen=True)
class Violation:
    """
    A single rule failure against a single resource.

    Severity and category are copied from the rule at evaluation time so a
    violation stays self-describing after the rule set changes.

    Attributes:
        rule_id: Identifier of the rule that fired
        rule_name: Human-readable rule name
        severity: Severity of the rule
        category: Category of the rule
        message: What is wrong with this specific resource
        resource: Identity and location of the offending resource
        remediation: How to fix it
    """

    rule_id: str
    rule_name: str
    severity: Severity
    category: PolicyCategory
    message: str
    resource: ViolationResource
    remediation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        result: dict[str, Any] = {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "resource": self.resource.to_dict(),
        }
        if self.remediation:
            result["remediation"] = self.remediation
        return result


def _empty_severity_counts() -> dict[Severity, int]:
    return {severity: 0 for severity in Severity}


def _empty_category_counts() -> dict[PolicyCategory, int]:
    return {category: 0 for category in PolicyCategory}


@dataclass
class ValidationResult:
    """
    Validation outcome for one file.

    Attributes:
        file: Path of the validated file
        format: IaC format the file was parsed as
        violations: Violations in resource-major, rule-minor order
        resource_count: Number of resources parsed, before exclusions
    """

    file: str
    format: IaCFormat
    violations: list[Violation] = field(default_factory=list)
    resource_count: int = 0

    @property
    def passed(self) -> bool:
        """A file passes when it has no violations at all."""
        return len(self.violations) == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "file": self.file,
            "format": self.format.value,
            "passed": self.passed,
            "resource_count": self.resource_count,
            "violations": [v.to_dict() for v in self.violations],
        }


@dataclass
class ValidationSummary:
    """
    Aggregate outcome of a validation run.

    Attributes:
        total_files: Number of files aggregated
        total_resources: Sum of per-file resource counts
        total_violations: Number of violations across all files
        violations_by_severity: Violation count per severity
        violations_by_category: Violation count per category
        passed: Whether the run passed the fail threshold
        results: Per-file results in aggregation order
    """

    total_files: int = 0
    total_resources: int = 0
    total_violations: int = 0
    violations_by_severity: dict[Severity, int] = field(
        default_factory=_empty_severity_counts
    )
    violations_by_category: dict[PolicyCategory, int] = field(
        default_factory=_empty_category_counts
    )
    passed: bool = True
    results: list[ValidationResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total_files": self.total_files,
            "total_resources": self.total_resources,
            "total_violations": self.total_violations,
            "violations_by_severity": {
                k.value: v for k, v in self.violations_by_severity.items()
            },
            "violations_by_category": {
                k.value: v for k, v in self.violations_by_category.items()
            },
            "passed": self.passed,
            "results": [r.to_dict() for r in self.results],
        }
