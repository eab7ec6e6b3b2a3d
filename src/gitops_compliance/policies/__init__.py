"""
Compliance rules for the GitOps Compliance Engine.

This package provides the rule model, the built-in rule catalog, the
declarative check language used by document-defined rules, and the
custom policy loader.
"""

from gitops_compliance.policies.base import (
    CheckFailure,
    PolicyMetadata,
    PolicyRule,
)
from gitops_compliance.policies.builtin import DEFAULT_POLICIES
from gitops_compliance.policies.checks import PropertyCheck, evaluate_check, parse_check
from gitops_compliance.policies.frameworks import FRAMEWORK_DESCRIPTIONS, describe_framework
from gitops_compliance.policies.loader import (
    load_custom_policies,
    merge_policies,
    validate_policy_structure,
)

__all__ = [
    # Rule model
    "CheckFailure",
    "PolicyMetadata",
    "PolicyRule",
    # Built-ins
    "DEFAULT_POLICIES",
    "FRAMEWORK_DESCRIPTIONS",
    "describe_framework",
    # Declarative checks
    "PropertyCheck",
    "evaluate_check",
    "parse_check",
    # Loader
    "load_custom_policies",
    "merge_policies",
    "validate_policy_structure",
]
