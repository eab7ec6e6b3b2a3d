"""
Data models for the GitOps Compliance Engine.

This package provides the resource model produced by parsers and the
violation/result model produced by the policy engine.
"""

from gitops_compliance.models.resource import (
    IaCFormat,
    IaCLocation,
    IaCParseResult,
    IaCResource,
    as_bool,
    as_list,
    as_map,
    as_number,
    as_str,
    is_false,
    is_true,
)
from gitops_compliance.models.violation import (
    PolicyCategory,
    Severity,
    ValidationResult,
    ValidationSummary,
    Violation,
    ViolationResource,
)

__all__ = [
    # Resource model
    "IaCFormat",
    "IaCLocation",
    "IaCParseResult",
    "IaCResource",
    "as_bool",
    "as_list",
    "as_map",
    "as_number",
    "as_str",
    "is_false",
    "is_true",
    # Violation model
    "PolicyCategory",
    "Severity",
    "ValidationResult",
    "ValidationSummary",
    "Violation",
    "ViolationResource",
]
