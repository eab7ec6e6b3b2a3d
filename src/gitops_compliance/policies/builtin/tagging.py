"""
Tagging rules.
"""

from __future__ import annotations

from gitops_compliance.models import IaCResource, PolicyCategory, Severity
from gitops_compliance.policies.base import CheckFailure, PolicyMetadata, PolicyRule
from gitops_compliance.policies.helpers import get_tags

REQUIRED_TAG_KEYS = ("Environment", "Owner", "Project")


def _check_required_tags(resource: IaCResource) -> CheckFailure | None:
    # Data sources read existing infrastructure and cannot carry tags
    if resource.type.startswith("data."):
        return None

    tags = get_tags(resource) or {}
    missing = [key for key in REQUIRED_TAG_KEYS if not tags.get(key)]
    if not missing:
        return None

    return CheckFailure(
        message=f"Resource is missing required tags: {', '.join(missing)}",
        remediation=f"Add tags: {', '.join(f'{key}=<value>' for key in missing)}",
    )


REQUIRED_TAGS = PolicyRule(
    id="required-tags",
    name="Required Tags",
    description="Resources must carry Environment, Owner and Project tags",
    category=PolicyCategory.TAGGING,
    severity=Severity.WARNING,
    check=_check_required_tags,
    metadata=PolicyMetadata(
        rationale=(
            "Tags drive cost allocation, ownership lookup during incidents "
            "and environment-scoped automation."
        ),
        references=(
            "https://docs.aws.amazon.com/whitepapers/latest/tagging-best-practices/tagging-best-practices.html",
        ),
    ),
)

TAGGING_POLICIES: list[PolicyRule] = [REQUIRED_TAGS]
