"""
Built-in rule catalog.

The catalog order below is the evaluation order: tagging, security,
naming, cost, then compliance.
"""

from __future__ import annotations

from gitops_compliance.policies.base import PolicyRule
from gitops_compliance.policies.builtin.compliance import COMPLIANCE_POLICIES
from gitops_compliance.policies.builtin.cost import COST_POLICIES
from gitops_compliance.policies.builtin.naming import NAMING_POLICIES
from gitops_compliance.policies.builtin.security import SECURITY_POLICIES
from gitops_compliance.policies.builtin.tagging import TAGGING_POLICIES

DEFAULT_POLICIES: tuple[PolicyRule, ...] = (
    *TAGGING_POLICIES,
    *SECURITY_POLICIES,
    *NAMING_POLICIES,
    *COST_POLICIES,
    *COMPLIANCE_POLICIES,
)


__all__ = [
    "COMPLIANCE_POLICIES",
    "COST_POLICIES",
    "DEFAULT_POLICIES",
    "NAMING_POLICIES",
    "SECURITY_POLICIES",
    "TAGGING_POLICIES",
]
