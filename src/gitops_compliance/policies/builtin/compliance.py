"""
Compliance rules.

All rules here are disabled by default. Enable them through the config
``policies.enabled`` list. The framework-specific rules only apply to
resources tagged as in scope, either through a ``DataClassification`` tag
or a ``<Framework>-Applicable = true`` tag.
"""

from __future__ import annotations

from typing import Any

from gitops_compliance.models import (
    IaCResource,
    PolicyCategory,
    Severity,
    as_map,
    is_true,
)
from gitops_compliance.policies.base import CheckFailure, PolicyMetadata, PolicyRule
from gitops_compliance.policies.frameworks import (
    AWS_WELL_ARCHITECTED,
    GDPR,
    HIPAA,
    PCI_DSS,
    SOC2,
)
from gitops_compliance.policies.helpers import (
    DATABASE_TYPES,
    backup_retention_days,
    encryption_state,
    first_present,
    get_region,
    has_framework_marker,
    has_logging,
    is_eu_region,
    is_public,
)

LOGGING_CAPABLE_TYPES = frozenset({
    "aws_s3_bucket",
    "aws_lb",
    "aws_alb",
    "aws_elb",
    "aws_cloudfront_distribution",
    "aws_api_gateway_stage",
    "aws_db_instance",
    "AWS::S3::Bucket",
    "AWS::ElasticLoadBalancing::LoadBalancer",
    "AWS::CloudFront::Distribution",
    "AWS::ApiGateway::Stage",
    "AWS::RDS::DBInstance",
    "aws:s3/bucket:Bucket",
    "aws:lb/loadBalancer:LoadBalancer",
    "aws:cloudfront/distribution:Distribution",
})

S3_TYPES = frozenset({
    "aws_s3_bucket",
    "AWS::S3::Bucket",
    "aws:s3/bucket:Bucket",
    "aws:s3:Bucket",
})

MIN_BACKUP_RETENTION_DAYS = 7

GDPR_CLASSIFICATIONS = ("GDPR", "PII", "Personal", "PersonalData")
HIPAA_CLASSIFICATIONS = ("PHI", "HIPAA")
PCI_CLASSIFICATIONS = ("PCI", "PCI-DSS", "CardholderData")
SOC2_CLASSIFICATIONS = ("SOC2", "Confidential")

_ENCRYPTION_REMEDIATION = (
    "Enable encryption at rest (encrypted / storage_encrypted / "
    "server_side_encryption_configuration) with a customer-managed KMS key"
)
_LOGGING_REMEDIATION = (
    "Enable access or audit logging (logging, access_logs or "
    "enabled_cloudwatch_logs_exports) to a retained log destination"
)


def _check_logging_enabled(resource: IaCResource) -> CheckFailure | None:
    if resource.type not in LOGGING_CAPABLE_TYPES or has_logging(resource):
        return None
    return CheckFailure(
        message=f"Logging is not enabled for {resource.type}",
        remediation=_LOGGING_REMEDIATION,
    )


def _versioning_enabled(value: Any) -> bool:
    if isinstance(value, list):
        return any(_versioning_enabled(item) for item in value)
    config = as_map(value)
    if config is None:
        return is_true(value)
    status = config.get("Status", config.get("status"))
    if status is not None:
        return str(status).lower() == "enabled"
    return is_true(config.get("enabled", config.get("Enabled")))


def _check_s3_versioning(resource: IaCResource) -> CheckFailure | None:
    if resource.type not in S3_TYPES:
        return None
    if _versioning_enabled(first_present(resource, ("versioning", "VersioningConfiguration"))):
        return None
    return CheckFailure(
        message="S3 bucket does not enable versioning",
        remediation="Enable versioning (versioning { enabled = true }) to recover from deletes and overwrites",
    )


def _requires_encryption(
    framework: str,
    classifications: tuple[str, ...],
    label: str,
):
    def check(resource: IaCResource) -> CheckFailure | None:
        if not has_framework_marker(resource, framework, classifications):
            return None
        if encryption_state(resource) == "enabled":
            return None
        return CheckFailure(
            message=f"Resource holding {label} does not enable encryption at rest",
            remediation=_ENCRYPTION_REMEDIATION,
        )

    return check


def _requires_logging(
    framework: str,
    classifications: tuple[str, ...],
    label: str,
):
    def check(resource: IaCResource) -> CheckFailure | None:
        if not has_framework_marker(resource, framework, classifications):
            return None
        if has_logging(resource):
            return None
        return CheckFailure(
            message=f"Resource holding {label} does not enable audit logging",
            remediation=_LOGGING_REMEDIATION,
        )

    return check


def _requires_backup_retention(
    framework: str,
    classifications: tuple[str, ...],
):
    def check(resource: IaCResource) -> CheckFailure | None:
        if resource.type not in DATABASE_TYPES:
            return None
        if not has_framework_marker(resource, framework, classifications):
            return None
        days = backup_retention_days(resource)
        if days is not None and days >= MIN_BACKUP_RETENTION_DAYS:
            return None
        declared = "not set" if days is None else f"{int(days)} days"
        return CheckFailure(
            message=(
                f"Backup retention is {declared}; {framework} requires at least "
                f"{MIN_BACKUP_RETENTION_DAYS} days"
            ),
            remediation=f"Set backup_retention_period to {MIN_BACKUP_RETENTION_DAYS} or more",
        )

    return check


def _check_gdpr_residency(resource: IaCResource) -> CheckFailure | None:
    if not has_framework_marker(resource, GDPR, GDPR_CLASSIFICATIONS):
        return None
    region = get_region(resource)
    if region is None or is_eu_region(region):
        return None
    return CheckFailure(
        message=f'Resource holding GDPR personal data is deployed in non-EU region "{region}"',
        remediation=(
            "Deploy personal data to an EU region (e.g. eu-west-1) or document "
            "an approved transfer mechanism"
        ),
    )


def _check_pci_network_isolation(resource: IaCResource) -> CheckFailure | None:
    if not has_framework_marker(resource, PCI_DSS, PCI_CLASSIFICATIONS):
        return None
    if not is_public(resource):
        return None
    return CheckFailure(
        message="Resource in the cardholder data environment is publicly accessible",
        remediation="Place cardholder data resources in private subnets with public access disabled",
    )


LOGGING_ENABLED = PolicyRule(
    id="logging-enabled",
    name="Logging Enabled",
    description="Buckets, load balancers, CDNs, API stages and databases must enable logging",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.ERROR,
    check=_check_logging_enabled,
    enabled=False,
    metadata=PolicyMetadata(
        rationale="Access logs are the primary evidence source for incident investigation and audits.",
        frameworks=(SOC2, HIPAA, PCI_DSS),
    ),
)

S3_VERSIONING = PolicyRule(
    id="s3-versioning",
    name="S3 Versioning",
    description="S3 buckets must enable versioning",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.WARNING,
    check=_check_s3_versioning,
    enabled=False,
    metadata=PolicyMetadata(
        rationale="Versioning protects against accidental deletion and ransomware overwrites.",
        references=("https://docs.aws.amazon.com/AmazonS3/latest/userguide/Versioning.html",),
        frameworks=(SOC2, AWS_WELL_ARCHITECTED),
    ),
)

GDPR_DATA_RESIDENCY = PolicyRule(
    id="gdpr-data-residency",
    name="GDPR Data Residency",
    description="Resources tagged as holding personal data must be deployed in the EU",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.ERROR,
    check=_check_gdpr_residency,
    enabled=False,
    metadata=PolicyMetadata(
        rationale="GDPR Chapter V restricts transfers of personal data outside the EU.",
        references=("https://gdpr-info.eu/chapter-5/",),
        frameworks=(GDPR,),
    ),
)

GDPR_ENCRYPTION = PolicyRule(
    id="gdpr-encryption",
    name="GDPR Encryption",
    description="Resources tagged as holding personal data must enable encryption at rest",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.ERROR,
    check=_requires_encryption(GDPR, GDPR_CLASSIFICATIONS, "GDPR personal data"),
    enabled=False,
    metadata=PolicyMetadata(
        rationale="GDPR Article 32 names encryption as an appropriate technical measure.",
        references=("https://gdpr-info.eu/art-32-gdpr/",),
        frameworks=(GDPR,),
    ),
)

HIPAA_PHI_ENCRYPTION = PolicyRule(
    id="hipaa-phi-encryption",
    name="HIPAA PHI Encryption",
    description="Resources tagged as holding PHI must enable encryption at rest",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.ERROR,
    check=_requires_encryption(HIPAA, HIPAA_CLASSIFICATIONS, "PHI"),
    enabled=False,
    metadata=PolicyMetadata(
        rationale="The HIPAA Security Rule addresses encryption of ePHI at rest (164.312(a)(2)(iv)).",
        references=("https://www.hhs.gov/hipaa/for-professionals/security/index.html",),
        frameworks=(HIPAA,),
    ),
)

HIPAA_AUDIT_LOGGING = PolicyRule(
    id="hipaa-audit-logging",
    name="HIPAA Audit Logging",
    description="Resources tagged as holding PHI must enable audit logging",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.ERROR,
    check=_requires_logging(HIPAA, HIPAA_CLASSIFICATIONS, "PHI"),
    enabled=False,
    metadata=PolicyMetadata(
        rationale="HIPAA audit controls (164.312(b)) require recording access to ePHI.",
        frameworks=(HIPAA,),
    ),
)

HIPAA_BACKUP_RETENTION = PolicyRule(
    id="hipaa-backup-retention",
    name="HIPAA Backup Retention",
    description=f"Databases holding PHI must retain backups for {MIN_BACKUP_RETENTION_DAYS}+ days",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.ERROR,
    check=_requires_backup_retention(HIPAA, HIPAA_CLASSIFICATIONS),
    enabled=False,
    metadata=PolicyMetadata(
        rationale="The HIPAA contingency plan standard requires retrievable exact copies of ePHI.",
        frameworks=(HIPAA,),
    ),
)

PCI_DSS_ENCRYPTION = PolicyRule(
    id="pci-dss-encryption",
    name="PCI-DSS Encryption",
    description="Resources in the cardholder data environment must enable encryption at rest",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.ERROR,
    check=_requires_encryption(PCI_DSS, PCI_CLASSIFICATIONS, "cardholder data"),
    enabled=False,
    metadata=PolicyMetadata(
        rationale="PCI-DSS requirement 3 mandates protection of stored account data.",
        references=("https://www.pcisecuritystandards.org/document_library/",),
        frameworks=(PCI_DSS,),
    ),
)

PCI_DSS_NETWORK_ISOLATION = PolicyRule(
    id="pci-dss-network-isolation",
    name="PCI-DSS Network Isolation",
    description="Resources in the cardholder data environment must not be publicly accessible",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.ERROR,
    check=_check_pci_network_isolation,
    enabled=False,
    metadata=PolicyMetadata(
        rationale="PCI-DSS requirement 1 restricts connections between untrusted networks and the CDE.",
        frameworks=(PCI_DSS,),
    ),
)

SOC2_AUDIT_LOGGING = PolicyRule(
    id="soc2-audit-logging",
    name="SOC2 Audit Logging",
    description="Resources in SOC2 scope must enable audit logging",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.WARNING,
    check=_requires_logging(SOC2, SOC2_CLASSIFICATIONS, "SOC2-scoped data"),
    enabled=False,
    metadata=PolicyMetadata(
        rationale="SOC2 CC7.2 requires monitoring of system components for anomalies.",
        frameworks=(SOC2,),
    ),
)

SOC2_BACKUP_RETENTION = PolicyRule(
    id="soc2-backup-retention",
    name="SOC2 Backup Retention",
    description=f"Databases in SOC2 scope must retain backups for {MIN_BACKUP_RETENTION_DAYS}+ days",
    category=PolicyCategory.COMPLIANCE,
    severity=Severity.WARNING,
    check=_requires_backup_retention(SOC2, SOC2_CLASSIFICATIONS),
    enabled=False,
    metadata=PolicyMetadata(
        rationale="SOC2 A1.2 covers backup and recovery of data supporting availability commitments.",
        frameworks=(SOC2,),
    ),
)

COMPLIANCE_POLICIES: list[PolicyRule] = [
    LOGGING_ENABLED,
    S3_VERSIONING,
    GDPR_DATA_RESIDENCY,
    GDPR_ENCRYPTION,
    HIPAA_PHI_ENCRYPTION,
    HIPAA_AUDIT_LOGGING,
    HIPAA_BACKUP_RETENTION,
    PCI_DSS_ENCRYPTION,
    PCI_DSS_NETWORK_ISOLATION,
    SOC2_AUDIT_LOGGING,
    SOC2_BACKUP_RETENTION,
]
