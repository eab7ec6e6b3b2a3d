"""
GitOps Compliance Engine - policy-as-code validation for Infrastructure as Code

Checks Terraform, Pulumi YAML and CloudFormation templates against a
catalog of tagging, security, naming, cost and compliance rules before
anything is deployed.

Key Features:
- Offline: parses files locally, never calls a cloud API
- 25 built-in rules with HIPAA, PCI-DSS, GDPR and SOC2 mappings
- Custom rules from Python modules or JSON/YAML documents
- JSON, YAML, Markdown and HTML reports

Quick Start:
    >>> from gitops_compliance.engine import PolicyEngine
    >>> from gitops_compliance.parsers import parse_iac_file
    >>>
    >>> result = parse_iac_file("main.tf")
    >>> violations = PolicyEngine().validate_resources(result.resources)
    >>> print(f"Found {len(violations)} violations")
"""

from __future__ import annotations

__version__ = "0.1.0"

# Core models
from gitops_compliance.models import (
    IaCFormat,
    IaCLocation,
    IaCParseResult,
    IaCResource,
    PolicyCategory,
    Severity,
    ValidationResult,
    ValidationSummary,
    Violation,
)

# Errors
from gitops_compliance.errors import (
    ComplianceEngineError,
    ConfigError,
    InputError,
    ParseError,
    PolicyLoadError,
    ValidationError,
)

# Configuration
from gitops_compliance.config import ValidationConfig, load_config

# Rules
from gitops_compliance.policies import DEFAULT_POLICIES, PolicyMetadata, PolicyRule

# Engine
from gitops_compliance.engine import PolicyEngine, SummaryAggregator, ValidationRunner

# Parsers
from gitops_compliance.parsers import detect_format, parse_iac_file

__all__ = [
    "__version__",
    # Models
    "IaCFormat",
    "IaCLocation",
    "IaCParseResult",
    "IaCResource",
    "PolicyCategory",
    "Severity",
    "ValidationResult",
    "ValidationSummary",
    "Violation",
    # Errors
    "ComplianceEngineError",
    "ConfigError",
    "InputError",
    "ParseError",
    "PolicyLoadError",
    "ValidationError",
    # Configuration
    "ValidationConfig",
    "load_config",
    # Rules
    "PolicyMetadata",
    "PolicyRule",
    "DEFAULT_POLICIES",
    # Engine
    "PolicyEngine",
    "SummaryAggregator",
    "ValidationRunner",
    # Parsers
    "detect_format",
    "parse_iac_file",
]
