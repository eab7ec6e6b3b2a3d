"""
Property helpers shared by the built-in rules.

Terraform, CloudFormation and Pulumi spell the same attribute differently
(``storage_encrypted``, ``StorageEncrypted``, ``storageEncrypted``). The
helpers here look across the known spellings so the rules themselves stay
format-agnostic.
"""

from __future__ import annotations

from typing import Any

from gitops_compliance.models import (
    IaCResource,
    as_list,
    as_map,
    as_number,
    as_str,
    is_false,
    is_true,
)

ENCRYPTION_KEYS = (
    "encrypted",
    "storage_encrypted",
    "encryption",
    "encryption_at_rest",
    "encryption_configuration",
    "kms_key_id",
    "kms_key_arn",
    "server_side_encryption_configuration",
    "server_side_encryption",
    "sse_specification",
    "Encrypted",
    "StorageEncrypted",
    "KmsKeyId",
    "BucketEncryption",
    "SSESpecification",
    "EncryptionConfiguration",
    "storageEncrypted",
    "kmsKeyId",
    "serverSideEncryptionConfiguration",
)

LOGGING_KEYS = (
    "logging",
    "access_logs",
    "access_log_settings",
    "logging_config",
    "logging_configuration",
    "enabled_cloudwatch_logs_exports",
    "Logging",
    "LoggingConfiguration",
    "LoggingConfig",
    "AccessLoggingPolicy",
    "AccessLogSetting",
    "EnableCloudwatchLogsExports",
    "loggings",
    "accessLogs",
)

# Nested flags that switch a configuration block on or off
_BLOCK_FLAGS = ("enabled", "Enabled", "SSEEnabled")

BACKUP_RETENTION_KEYS = (
    "backup_retention_period",
    "BackupRetentionPeriod",
    "backupRetentionPeriod",
)

REGION_KEYS = (
    "region",
    "Region",
    "location",
    "availability_zone",
    "AvailabilityZone",
)

DATABASE_TYPES = frozenset({
    "aws_db_instance",
    "aws_rds_cluster",
    "aws_docdb_cluster",
    "aws_neptune_cluster",
    "aws_redshift_cluster",
    "AWS::RDS::DBInstance",
    "AWS::RDS::DBCluster",
    "AWS::DocDB::DBCluster",
    "AWS::Redshift::Cluster",
    "aws:rds/instance:Instance",
    "aws:rds/cluster:Cluster",
})

# Azure region names that are in the EU
_EU_LOCATIONS = frozenset({
    "westeurope",
    "northeurope",
    "francecentral",
    "germanywestcentral",
    "swedencentral",
    "italynorth",
    "polandcentral",
})


def get_tags(resource: IaCResource) -> dict[str, str] | None:
    """
    Extract tags from a resource.

    Handles map-style tags (Terraform, Pulumi) and CloudFormation
    ``[{"Key": ..., "Value": ...}]`` lists.

    Args:
        resource: Resource to inspect

    Returns:
        Tag map, or None when the resource declares no tags at all
    """
    for key in ("tags", "Tags"):
        if key not in resource.properties:
            continue
        value = resource.properties[key]

        tag_map = as_map(value)
        if tag_map is not None:
            return {str(k): _tag_value(v) for k, v in tag_map.items()}

        tag_list = as_list(value)
        if tag_list is not None:
            tags: dict[str, str] = {}
            for item in tag_list:
                item_map = as_map(item)
                if item_map is None:
                    continue
                tag_key = item_map.get("Key", item_map.get("key"))
                if isinstance(tag_key, str) and tag_key:
                    tags[tag_key] = _tag_value(item_map.get("Value", item_map.get("value")))
            return tags

    return None


def _tag_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def first_value(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the value of the first key present in a mapping, or None."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def first_present(resource: IaCResource, keys: tuple[str, ...]) -> Any:
    """Return the value of the first declared property, or None."""
    return first_value(resource.properties, keys)


def indicator_enabled(value: Any) -> bool:
    """
    Check whether a configuration indicator is switched on.

    A flag is on when truthy; a configuration block is on when non-empty
    and not explicitly disabled; a key reference is on when non-empty.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return bool(value.strip()) and not is_false(value)
    if isinstance(value, dict):
        for flag in _BLOCK_FLAGS:
            if flag in value:
                return is_true(value[flag])
        return bool(value)
    if isinstance(value, list):
        return any(indicator_enabled(item) for item in value)
    return False


def indicator_disabled(value: Any) -> bool:
    """Check whether a configuration indicator is explicitly switched off."""
    if is_false(value):
        return True
    if isinstance(value, dict):
        for flag in _BLOCK_FLAGS:
            if flag in value:
                return is_false(value[flag])
    return False


def encryption_state(resource: IaCResource) -> str | None:
    """
    Summarize the encryption indicators of a resource.

    Returns:
        "enabled" if any indicator is on, "disabled" if none is on and at
        least one is explicitly off, None if no indicator is declared
    """
    declared = [
        resource.properties[key] for key in ENCRYPTION_KEYS if key in resource.properties
    ]
    if any(indicator_enabled(value) for value in declared):
        return "enabled"
    if any(indicator_disabled(value) for value in declared):
        return "disabled"
    return None


def has_logging(resource: IaCResource) -> bool:
    """Check whether any logging indicator is switched on."""
    return any(
        indicator_enabled(resource.properties[key])
        for key in LOGGING_KEYS
        if key in resource.properties
    )


def backup_retention_days(resource: IaCResource) -> float | None:
    """Get the declared backup retention period in days."""
    return as_number(first_present(resource, BACKUP_RETENTION_KEYS))


def get_region(resource: IaCResource) -> str | None:
    """Get the declared region or location of a resource."""
    return as_str(first_present(resource, REGION_KEYS))


def is_eu_region(region: str) -> bool:
    """Check whether a region or location name is inside the EU."""
    normalized = region.strip().lower().replace(" ", "")
    return normalized.startswith(("eu-", "eu_", "europe-")) or normalized in _EU_LOCATIONS


def is_public(resource: IaCResource) -> bool:
    """Check the literal public-exposure flags."""
    return any(
        resource.properties.get(key) is True
        for key in ("public", "publicly_accessible", "PubliclyAccessible", "publiclyAccessible")
    )


def has_framework_marker(
    resource: IaCResource,
    framework: str,
    classifications: tuple[str, ...],
) -> bool:
    """
    Check whether a resource is tagged as in scope for a framework.

    A resource is in scope when its ``DataClassification`` tag is one of
    the given classifications, or when it carries a
    ``<framework>-Applicable`` tag set to true.

    Args:
        resource: Resource to inspect
        framework: Framework tag prefix (e.g. "HIPAA")
        classifications: Accepted DataClassification values

    Returns:
        True if the resource is in scope
    """
    tags = get_tags(resource)
    if not tags:
        return False

    classification = tags.get("DataClassification", "").strip().lower()
    if classification and classification in {c.lower() for c in classifications}:
        return True

    return is_true(tags.get(f"{framework}-Applicable"))


def collect_strings(value: Any, path: str = "") -> list[tuple[str, str, str]]:
    """
    Walk a property value and collect string leaves.

    Args:
        value: Property value to walk
        path: Dotted path of ``value``

    Returns:
        List of (path, last key, string value) tuples in declaration order
    """
    found: list[tuple[str, str, str]] = []
    if isinstance(value, dict):
        for key, item in value.items():
            child = f"{path}.{key}" if path else str(key)
            if isinstance(item, str):
                found.append((child, str(key), item))
            else:
                found.extend(collect_strings(item, child))
    elif isinstance(value, list):
        for idx, item in enumerate(value):
            child = f"{path}.{idx}" if path else str(idx)
            if isinstance(item, (dict, list)):
                found.extend(collect_strings(item, child))
    return found
