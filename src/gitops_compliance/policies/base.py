"""
Rule model for the GitOps Compliance Engine.

A PolicyRule couples identity and classification (id, category, severity)
with a check function. Check functions are pure: they look at one
resource and report at most one failure. They may report it as a
CheckFailure (message and remediation only), a fully built Violation, or a
mapping; PolicyRule.evaluate normalizes all three into a Violation that
carries the rule's identity.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from gitops_compliance.models import (
    IaCResource,
    PolicyCategory,
    Severity,
    Violation,
    ViolationResource,
)


@dataclass(frozen=True)
class CheckFailure:
    """Outcome of a check function that found a problem."""

    message: str
    remediation: str | None = None


@dataclass(frozen=True)
class PolicyMetadata:
    """
    Descriptive metadata for a rule.

    Attributes:
        rationale: Why the rule exists
        references: Links to documentation or benchmarks
        frameworks: Compliance frameworks the rule maps to
    """

    rationale: str | None = None
    references: tuple[str, ...] = ()
    frameworks: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        result: dict[str, Any] = {}
        if self.rationale:
            result["rationale"] = self.rationale
        if self.references:
            result["references"] = list(self.references)
        if self.frameworks:
            result["frameworks"] = list(self.frameworks)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PolicyMetadata:
        """Create PolicyMetadata from a dictionary."""
        references = data.get("references") or ()
        frameworks = data.get("frameworks") or ()
        if isinstance(references, str):
            references = [references]
        if isinstance(frameworks, str):
            frameworks = [frameworks]
        return cls(
            rationale=data.get("rationale"),
            references=tuple(str(r) for r in references),
            frameworks=tuple(str(f) for f in frameworks),
        )


CheckFunction = Callable[[IaCResource], Any]


@dataclass(frozen=True)
class PolicyRule:
    """
    A compliance rule.

    Attributes:
        id: Globally unique rule identifier
        name: Human-readable rule name
        description: What the rule checks
        category: Rule category
        severity: Severity of violations from this rule
        check: Function returning None when compliant or not applicable,
            otherwise a CheckFailure, Violation or mapping
        enabled: Whether the rule runs unless explicitly enabled by config
        metadata: Rationale, references and framework mappings
        source: File the rule was loaded from, for custom rules
    """

    id: str
    name: str
    description: str
    category: PolicyCategory
    severity: Severity
    check: CheckFunction | None = field(default=None, compare=False, repr=False)
    enabled: bool = True
    metadata: PolicyMetadata | None = None
    source: str | None = None

    @property
    def evaluable(self) -> bool:
        """Whether the rule has a check function to run."""
        return self.check is not None

    @property
    def frameworks(self) -> tuple[str, ...]:
        """Compliance frameworks the rule maps to."""
        if self.metadata is None:
            return ()
        return self.metadata.frameworks

    def matches_frameworks(self, tokens: list[str]) -> bool:
        """
        Check whether the rule maps to any of the given frameworks.

        A token matches when it is a case-insensitive substring of one of
        the rule's framework names. Rules without frameworks never match.

        Args:
            tokens: Upper-cased framework filter tokens

        Returns:
            True if some framework name contains some token
        """
        names = [name.upper() for name in self.frameworks]
        return any(token in name for name in names for token in tokens)

    def with_enabled(self, enabled: bool) -> PolicyRule:
        """Return a copy with a different enabled flag."""
        return dataclasses.replace(self, enabled=enabled)

    def create_violation(
        self,
        resource: IaCResource,
        message: str,
        remediation: str | None = None,
    ) -> Violation:
        """
        Build a violation of this rule for a resource.

        Args:
            resource: The offending resource
            message: Resource-specific description of the problem
            remediation: How to fix it

        Returns:
            Violation carrying this rule's identity, severity and category
        """
        return Violation(
            rule_id=self.id,
            rule_name=self.name,
            severity=self.severity,
            category=self.category,
            message=message,
            resource=ViolationResource.of(resource),
            remediation=remediation,
        )

    def evaluate(self, resource: IaCResource) -> Violation | None:
        """
        Evaluate the rule against a resource.

        Args:
            resource: Resource to evaluate

        Returns:
            A Violation, or None when compliant or not applicable

        Raises:
            TypeError: If the check function returns an unrecognized shape
            ValueError: If a returned mapping has no usable message
            Exception: Whatever the check function itself raises
        """
        if self.check is None:
            return None

        outcome = self.check(resource)

        if outcome is None:
            return None
        if isinstance(outcome, Violation):
            return outcome
        if isinstance(outcome, CheckFailure):
            return self.create_violation(resource, outcome.message, outcome.remediation)
        if isinstance(outcome, Mapping):
            return self._violation_from_mapping(resource, outcome)

        raise TypeError(
            f"Rule {self.id} returned unsupported result type "
            f"{type(outcome).__name__}"
        )

    def _violation_from_mapping(
        self,
        resource: IaCResource,
        data: Mapping[str, Any],
    ) -> Violation:
        """Normalize a mapping result, filling gaps from the rule."""
        message = data.get("message")
        if not isinstance(message, str) or not message:
            raise ValueError(f"Rule {self.id} returned a result without a message")

        severity = self.severity
        if isinstance(data.get("severity"), str):
            try:
                severity = Severity.from_string(data["severity"])
            except ValueError:
                pass

        category = self.category
        if isinstance(data.get("category"), str):
            try:
                category = PolicyCategory.from_string(data["category"])
            except ValueError:
                pass

        remediation = data.get("remediation")

        return Violation(
            rule_id=self.id,
            rule_name=self.name,
            severity=severity,
            category=category,
            message=message,
            resource=ViolationResource.of(resource),
            remediation=remediation if isinstance(remediation, str) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation (check function omitted)."""
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "severity": self.severity.value,
            "enabled": self.enabled,
        }
        if self.metadata is not None:
            result["metadata"] = self.metadata.to_dict()
        if self.source:
            result["source"] = self.source
        if not self.evaluable:
            result["evaluable"] = False
        return result

