"""
Naming rules.
"""

from __future__ import annotations

import re

from gitops_compliance.models import IaCResource, PolicyCategory, Severity
from gitops_compliance.policies.base import CheckFailure, PolicyMetadata, PolicyRule

NAME_PATTERN = re.compile(r"[a-z0-9-]+")


def _check_naming_convention(resource: IaCResource) -> CheckFailure | None:
    name = resource.id
    # Data sources are addressed as data.<name>
    if resource.type.startswith("data.") and name.startswith("data."):
        name = name[len("data."):]

    if NAME_PATTERN.fullmatch(name):
        return None

    return CheckFailure(
        message=f'Resource name "{name}" does not follow naming convention',
        remediation="Use lowercase letters, numbers, and hyphens only",
    )


NAMING_CONVENTION = PolicyRule(
    id="naming-convention",
    name="Naming Convention",
    description="Resource names must use lowercase letters, numbers and hyphens",
    category=PolicyCategory.NAMING,
    severity=Severity.INFO,
    check=_check_naming_convention,
    metadata=PolicyMetadata(
        rationale="Consistent names keep resources searchable and valid across providers with strict naming rules.",
    ),
)

NAMING_POLICIES: list[PolicyRule] = [NAMING_CONVENTION]
