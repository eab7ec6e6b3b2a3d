"""
Policy engine for the GitOps Compliance Engine.

The engine owns the rule catalog (built-ins merged with custom rules),
resolves it against the configuration and the framework filter, and
evaluates resources against the resolved rules.

Resolution order:

1. Merged catalog (custom rules replace built-ins with the same id)
2. Framework filter, when active: keep rules whose frameworks contain a
   filter token (case-insensitive substring); rules without frameworks
   are dropped
3. ``policies.enabled`` allow-list, when present: listed rules are kept
   and force-enabled, everything else is dropped
4. ``policies.disabled`` deny-list: listed rules are dropped, even when
   the allow-list named them

Evaluation runs only rules that end up enabled and have a check. A rule
that raises, or returns something that is not a violation, is recorded
as a RuleEvaluationError and does not stop the remaining rules.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from gitops_compliance.config import ValidationConfig
from gitops_compliance.models import IaCResource, Violation
from gitops_compliance.observability.logging import get_logger
from gitops_compliance.policies import DEFAULT_POLICIES, PolicyRule
from gitops_compliance.policies.loader import load_custom_policies, merge_policies
from gitops_compliance.utils.files import matches_any_glob

logger = logging.getLogger(__name__)
event_logger = get_logger(__name__)


@dataclass(frozen=True)
class RuleEvaluationError:
    """
    A rule that failed while evaluating a resource.

    Attributes:
        rule_id: Rule that failed
        resource_id: Resource being evaluated
        resource_type: Type of that resource
        file: File the resource came from
        error: Error description
    """

    rule_id: str
    resource_id: str
    resource_type: str
    file: str
    error: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary representation."""
        return {
            "rule_id": self.rule_id,
            "resource_id": self.resource_id,
            "resource_type": self.resource_type,
            "file": self.file,
            "error": self.error,
        }


@dataclass
class EvaluationOutcome:
    """Violations and evaluation errors from one evaluation pass."""

    violations: list[Violation] = field(default_factory=list)
    errors: list[RuleEvaluationError] = field(default_factory=list)


class PolicyEngine:
    """
    Resolves and evaluates compliance rules.

    The resolved rule list is computed lazily and cached until the
    catalog or the framework filter changes. Evaluation only reads the
    resolved snapshot, so one engine can serve concurrent evaluations
    once custom policies are loaded.
    """

    def __init__(
        self,
        config: ValidationConfig | None = None,
        builtin_policies: Sequence[PolicyRule] | None = None,
    ) -> None:
        """
        Initialize the policy engine.

        Args:
            config: Validation configuration, defaults when None
            builtin_policies: Rule catalog to start from, the built-in
                catalog when None
        """
        self._config = config or ValidationConfig()
        self._catalog: list[PolicyRule] = list(
            DEFAULT_POLICIES if builtin_policies is None else builtin_policies
        )
        self._frameworks: list[str] = []
        self._resolved: tuple[PolicyRule, ...] | None = None
        self._lock = threading.Lock()

        if self._config.frameworks:
            self.set_framework_filter(self._config.frameworks)

    @property
    def config(self) -> ValidationConfig:
        """Get the configuration the engine was built with."""
        return self._config

    @property
    def framework_filter(self) -> list[str]:
        """Get the active framework filter tokens (upper-cased)."""
        return list(self._frameworks)

    @property
    def catalog(self) -> list[PolicyRule]:
        """Get the merged catalog before resolution."""
        with self._lock:
            return list(self._catalog)

    def set_framework_filter(self, frameworks: Iterable[str] | None) -> None:
        """
        Set the compliance framework filter.

        Args:
            frameworks: Framework names; None or empty clears the filter
        """
        tokens = [f.strip().upper() for f in frameworks or [] if f and f.strip()]
        with self._lock:
            self._frameworks = tokens
            self._resolved = None
        if tokens:
            logger.debug(f"Framework filter set to {', '.join(tokens)}")

    def add_custom_policies(self, policies: Iterable[PolicyRule]) -> None:
        """
        Merge custom policies into the catalog.

        Args:
            policies: Validated custom rules
        """
        policies = list(policies)
        with self._lock:
            self._catalog = merge_policies(self._catalog, policies)
            self._resolved = None
        logger.debug(f"Merged {len(policies)} custom policies into catalog")

    def load_custom_policies_from_files(
        self,
        file_paths: Iterable[str | Path],
    ) -> list[PolicyRule]:
        """
        Load and merge custom policies from files.

        Every file is loaded and validated before anything is merged, so a
        failure leaves the catalog unchanged.

        Args:
            file_paths: Policy files to load

        Returns:
            All loaded rules, in file order

        Raises:
            PolicyLoadError: If any file fails to load
        """
        loaded: list[PolicyRule] = []
        for file_path in file_paths:
            loaded.extend(load_custom_policies(file_path))

        self.add_custom_policies(loaded)
        return loaded

    def get_available_frameworks(self) -> list[str]:
        """
        Get every framework name mentioned by the catalog.

        Returns:
            Sorted, de-duplicated framework names
        """
        names: set[str] = set()
        for policy in self.catalog:
            names.update(policy.frameworks)
        return sorted(names)

    def get_policies(self) -> tuple[PolicyRule, ...]:
        """
        Get the resolved rule list.

        Returns:
            Rules in catalog order with config and framework filter applied
        """
        with self._lock:
            if self._resolved is None:
                self._resolved = self._resolve()
            return self._resolved

    def get_enabled_policies(self) -> tuple[PolicyRule, ...]:
        """Get the resolved rules that will actually be evaluated."""
        return tuple(p for p in self.get_policies() if p.enabled and p.evaluable)

    def get_non_evaluable_policies(self) -> list[PolicyRule]:
        """Get catalog rules that have no check and are never evaluated."""
        return [p for p in self.catalog if not p.evaluable]

    def _resolve(self) -> tuple[PolicyRule, ...]:
        policies = list(self._catalog)

        if self._frameworks:
            policies = [p for p in policies if p.matches_frameworks(self._frameworks)]

        enabled = self._config.policies.enabled
        if enabled is not None:
            allowed = set(enabled)
            policies = [p.with_enabled(True) for p in policies if p.id in allowed]

        disabled = self._config.policies.disabled
        if disabled:
            denied = set(disabled)
            policies = [p for p in policies if p.id not in denied]

        logger.debug(
            f"Resolved {len(policies)} policies "
            f"({sum(1 for p in policies if p.enabled)} enabled)"
        )
        return tuple(policies)

    def should_exclude_resource(self, resource: IaCResource) -> bool:
        """
        Check whether a resource is excluded by configuration.

        Args:
            resource: Resource to check

        Returns:
            True if its file matches a file glob, or its type or id matches
            a resource glob
        """
        exclude = self._config.exclude
        if exclude.files and matches_any_glob(
            resource.location.file, exclude.files, basename=True
        ):
            return True
        if exclude.resources and (
            matches_any_glob(resource.type, exclude.resources)
            or matches_any_glob(resource.id, exclude.resources)
        ):
            return True
        return False

    def evaluate_resources(
        self,
        resources: Iterable[IaCResource],
        policies: Sequence[PolicyRule] | None = None,
    ) -> EvaluationOutcome:
        """
        Evaluate resources and collect violations and rule errors.

        Args:
            resources: Resources to evaluate
            policies: Resolved rules to use, the engine's own when None

        Returns:
            EvaluationOutcome with violations in resource-major,
            rule-minor order
        """
        if policies is None:
            policies = self.get_policies()
        active = [p for p in policies if p.enabled and p.evaluable]

        outcome = EvaluationOutcome()

        for resource in resources:
            if self.should_exclude_resource(resource):
                logger.debug(f"Skipping excluded resource {resource.address}")
                continue

            for policy in active:
                try:
                    violation = policy.evaluate(resource)
                except Exception as e:
                    event_logger.rule_evaluation_failed(policy.id, resource.address, str(e))
                    outcome.errors.append(RuleEvaluationError(
                        rule_id=policy.id,
                        resource_id=resource.id,
                        resource_type=resource.type,
                        file=resource.location.file,
                        error=str(e),
                    ))
                    continue

                if violation is not None:
                    outcome.violations.append(violation)

        return outcome

    def validate_resources(
        self,
        resources: Iterable[IaCResource],
        policies: Sequence[PolicyRule] | None = None,
    ) -> list[Violation]:
        """
        Evaluate resources against the resolved rules.

        Args:
            resources: Resources to evaluate
            policies: Resolved rules to use, the engine's own when None

        Returns:
            Violations in resource-major, rule-minor order
        """
        return self.evaluate_resources(resources, policies).violations
