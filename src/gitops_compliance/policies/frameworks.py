"""
Compliance framework names used by the built-in rules.
"""

from __future__ import annotations

HIPAA = "HIPAA"
PCI_DSS = "PCI-DSS"
GDPR = "GDPR"
SOC2 = "SOC2"
CIS_AWS = "CIS AWS Foundations"
AWS_WELL_ARCHITECTED = "AWS Well-Architected"
FINOPS = "FinOps"

FRAMEWORK_DESCRIPTIONS: dict[str, str] = {
    HIPAA: "Health Insurance Portability and Accountability Act (protected health information)",
    PCI_DSS: "Payment Card Industry Data Security Standard (cardholder data)",
    GDPR: "EU General Data Protection Regulation (personal data of EU residents)",
    SOC2: "Service Organization Control 2 trust services criteria",
    CIS_AWS: "Center for Internet Security AWS Foundations Benchmark",
    AWS_WELL_ARCHITECTED: "AWS Well-Architected Framework (security and cost pillars)",
    FINOPS: "FinOps cloud cost management practices",
}


def describe_framework(name: str) -> str:
    """Get a description for a framework name, or an empty string."""
    return FRAMEWORK_DESCRIPTIONS.get(name, "")
