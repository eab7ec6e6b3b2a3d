"""
Policy evaluation engine for the GitOps Compliance Engine.

This package resolves the rule catalog against configuration, evaluates
resources, aggregates per-file results and runs whole validations.
"""

from gitops_compliance.engine.engine import (
    EvaluationOutcome,
    PolicyEngine,
    RuleEvaluationError,
)
from gitops_compliance.engine.runner import FileOutcome, ValidationRunner
from gitops_compliance.engine.summary import SummaryAggregator, should_pass

__all__ = [
    "EvaluationOutcome",
    "FileOutcome",
    "PolicyEngine",
    "RuleEvaluationError",
    "SummaryAggregator",
    "ValidationRunner",
    "should_pass",
]
