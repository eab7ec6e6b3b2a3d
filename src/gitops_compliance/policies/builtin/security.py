"""
Security rules.

Covers public exposure, encryption at rest, hardcoded credentials,
unrestricted security group ingress, plaintext load balancer listeners and
wildcard IAM actions.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from gitops_compliance.models import (
    IaCResource,
    PolicyCategory,
    Severity,
    as_list,
    as_map,
    as_number,
    as_str,
)
from gitops_compliance.policies.base import CheckFailure, PolicyMetadata, PolicyRule
from gitops_compliance.policies.frameworks import (
    CIS_AWS,
    GDPR,
    HIPAA,
    PCI_DSS,
    SOC2,
)
from gitops_compliance.policies.helpers import (
    collect_strings,
    encryption_state,
    first_present,
    first_value,
    is_public,
)

logger = logging.getLogger(__name__)


# no-public-access

def _check_public_access(resource: IaCResource) -> CheckFailure | None:
    if not is_public(resource):
        return None
    return CheckFailure(
        message="Resource is publicly accessible",
        remediation="Set public access to false and use VPN or private networking",
    )


NO_PUBLIC_ACCESS = PolicyRule(
    id="no-public-access",
    name="No Public Access",
    description="Resources must not be publicly accessible",
    category=PolicyCategory.SECURITY,
    severity=Severity.ERROR,
    check=_check_public_access,
    metadata=PolicyMetadata(
        rationale="Publicly reachable data stores and services are the most common breach vector.",
        references=(
            "https://docs.aws.amazon.com/AmazonRDS/latest/UserGuide/USER_VPC.WorkingWithRDSInstanceinaVPC.html",
        ),
        frameworks=(SOC2, PCI_DSS, CIS_AWS),
    ),
)


# encryption-at-rest

ENCRYPTION_REQUIRED_TYPES = frozenset({
    "aws_db_instance",
    "aws_rds_cluster",
    "aws_ebs_volume",
    "aws_efs_file_system",
    "aws_s3_bucket",
    "aws_dynamodb_table",
    "aws_redshift_cluster",
    "aws_elasticache_replication_group",
    "AWS::RDS::DBInstance",
    "AWS::RDS::DBCluster",
    "AWS::EC2::Volume",
    "AWS::EFS::FileSystem",
    "AWS::S3::Bucket",
    "AWS::DynamoDB::Table",
    "AWS::Redshift::Cluster",
    "aws:rds/instance:Instance",
    "aws:rds/cluster:Cluster",
    "aws:ebs/volume:Volume",
    "aws:efs/fileSystem:FileSystem",
    "aws:s3/bucket:Bucket",
    "aws:dynamodb/table:Table",
})


def _check_encryption_at_rest(resource: IaCResource) -> CheckFailure | None:
    if resource.type not in ENCRYPTION_REQUIRED_TYPES:
        return None
    if encryption_state(resource) != "disabled":
        return None
    return CheckFailure(
        message=f"Encryption at rest is disabled for {resource.type}",
        remediation=(
            "Enable encryption at rest (e.g. encrypted = true or "
            "storage_encrypted = true) and use a customer-managed KMS key"
        ),
    )


ENCRYPTION_AT_REST = PolicyRule(
    id="encryption-at-rest",
    name="Encryption at Rest",
    description="Storage and database resources must not disable encryption at rest",
    category=PolicyCategory.SECURITY,
    severity=Severity.ERROR,
    check=_check_encryption_at_rest,
    metadata=PolicyMetadata(
        rationale="Unencrypted volumes, snapshots and backups expose data if storage media or copies leak.",
        references=(
            "https://docs.aws.amazon.com/AmazonRDS/latest/UserGuide/Overview.Encryption.html",
        ),
        frameworks=(HIPAA, PCI_DSS, GDPR, SOC2),
    ),
)


# no-hardcoded-secrets

SECRET_KEYWORDS = (
    "password",
    "passwd",
    "secret",
    "api_key",
    "apikey",
    "access_key",
    "accesskey",
    "private_key",
    "privatekey",
    "token",
    "credential",
)

# Keys naming a secret rather than holding one
_REFERENCE_KEY_SUFFIXES = ("arn", "_id", "name", "_length", "_version")

_REFERENCE_VALUE_PREFIXES = (
    "var.",
    "local.",
    "data.",
    "module.",
    "${",
    "{{resolve:",
    "arn:",
    "random_password.",
    "aws_secretsmanager_",
    "aws_ssm_parameter.",
)


def _looks_like_reference(value: str) -> bool:
    stripped = value.strip()
    return not stripped or stripped.startswith(_REFERENCE_VALUE_PREFIXES)


def _check_hardcoded_secrets(resource: IaCResource) -> CheckFailure | None:
    offending: list[str] = []

    for key, value in resource.properties.items():
        if key in ("tags", "Tags"):
            continue
        if isinstance(value, str):
            leaves = [(key, key, value)]
        else:
            leaves = collect_strings(value, key)

        for path, leaf_key, leaf_value in leaves:
            lowered = leaf_key.lower()
            if not any(keyword in lowered for keyword in SECRET_KEYWORDS):
                continue
            if lowered.endswith(_REFERENCE_KEY_SUFFIXES):
                continue
            if _looks_like_reference(leaf_value):
                continue
            offending.append(path)

    if not offending:
        return None

    return CheckFailure(
        message=f"Potential hardcoded secret in properties: {', '.join(offending)}",
        remediation=(
            "Reference the secret from a secrets manager (AWS Secrets Manager, "
            "Vault) or pass it in as a sensitive variable"
        ),
    )


NO_HARDCODED_SECRETS = PolicyRule(
    id="no-hardcoded-secrets",
    name="No Hardcoded Secrets",
    description="Passwords, keys and tokens must not be written into IaC source",
    category=PolicyCategory.SECURITY,
    severity=Severity.ERROR,
    check=_check_hardcoded_secrets,
    metadata=PolicyMetadata(
        rationale="Secrets committed to version control are copied into every clone, fork and CI log.",
        references=(
            "https://developer.hashicorp.com/terraform/tutorials/configuration-language/sensitive-variables",
        ),
        frameworks=(PCI_DSS, SOC2, CIS_AWS),
    ),
)


# security-group-unrestricted

OPEN_CIDRS = ("0.0.0.0/0", "::/0")

# Ports that may be open to the internet
PUBLIC_PORTS = (80, 443)

_CIDR_KEYS = (
    "cidr_blocks",
    "ipv6_cidr_blocks",
    "cidr_ipv4",
    "cidr_ipv6",
    "CidrIp",
    "CidrIpv6",
    "cidrBlocks",
    "ipv6CidrBlocks",
    "cidrIpv4",
)


def _is_security_group(resource: IaCResource) -> bool:
    normalized = "".join(c for c in resource.type.lower() if c.isalnum())
    return "securitygroup" in normalized and "egress" not in normalized


def _ingress_rules(resource: IaCResource) -> list[dict[str, Any]]:
    for key in ("ingress", "SecurityGroupIngress"):
        if key not in resource.properties:
            continue
        value = resource.properties[key]
        if isinstance(value, dict):
            return [value]
        return [item for item in as_list(value) or [] if isinstance(item, dict)]

    # Standalone rule resources carry the rule in their own properties
    rule_type = as_str(resource.properties.get("type"))
    if rule_type is None or rule_type.lower() == "ingress":
        if any(key in resource.properties for key in _CIDR_KEYS):
            return [resource.properties]
    return []


def _open_cidr(rule: dict[str, Any]) -> str | None:
    for key in _CIDR_KEYS:
        value = rule.get(key)
        values = [value] if isinstance(value, str) else as_list(value) or []
        for cidr in values:
            if isinstance(cidr, str) and cidr.strip() in OPEN_CIDRS:
                return cidr.strip()
    return None


def _port_range(rule: dict[str, Any]) -> tuple[int, int] | None:
    """Get the rule's port range, or None for all ports."""
    protocol = rule.get("protocol", rule.get("IpProtocol", rule.get("ip_protocol")))
    if str(protocol).lower() in ("-1", "all"):
        return None

    from_port = as_number(first_value(rule, ("from_port", "FromPort", "fromPort")))
    to_port = as_number(first_value(rule, ("to_port", "ToPort", "toPort")))
    if from_port is None and to_port is None:
        return None
    if from_port is None:
        from_port = to_port
    if to_port is None:
        to_port = from_port
    return int(from_port), int(to_port)


def _check_security_group(resource: IaCResource) -> CheckFailure | None:
    if not _is_security_group(resource):
        return None

    for rule in _ingress_rules(resource):
        cidr = _open_cidr(rule)
        if cidr is None:
            continue

        ports = _port_range(rule)
        if ports is not None and ports[0] == ports[1] and ports[0] in PUBLIC_PORTS:
            continue

        if ports is None or ports == (0, 65535):
            port_desc = "all ports"
        elif ports[0] == ports[1]:
            port_desc = f"port {ports[0]}"
        else:
            port_desc = f"ports {ports[0]}-{ports[1]}"

        return CheckFailure(
            message=f"Security group allows unrestricted ingress from {cidr} on {port_desc}",
            remediation=(
                "Restrict the ingress source to known CIDR ranges or security "
                "groups; only ports 80 and 443 may be open to the internet"
            ),
        )

    return None


SECURITY_GROUP_UNRESTRICTED = PolicyRule(
    id="security-group-unrestricted",
    name="Unrestricted Security Group Ingress",
    description="Security groups must not allow ingress from anywhere except on ports 80 and 443",
    category=PolicyCategory.SECURITY,
    severity=Severity.ERROR,
    check=_check_security_group,
    metadata=PolicyMetadata(
        rationale="SSH, RDP and database ports open to 0.0.0.0/0 are scanned and brute-forced continuously.",
        references=(
            "https://docs.aws.amazon.com/securityhub/latest/userguide/ec2-controls.html",
        ),
        frameworks=(CIS_AWS, PCI_DSS, SOC2),
    ),
)


# load-balancer-https

LISTENER_TYPES = frozenset({
    "aws_lb_listener",
    "aws_alb_listener",
    "AWS::ElasticLoadBalancingV2::Listener",
    "aws:lb/listener:Listener",
    "aws:alb/listener:Listener",
})

CLASSIC_LB_TYPES = frozenset({
    "aws_elb",
    "AWS::ElasticLoadBalancing::LoadBalancer",
    "aws:elb/loadBalancer:LoadBalancer",
})


def _redirects_to_https(resource: IaCResource) -> bool:
    actions = first_present(resource, ("default_action", "DefaultActions", "defaultActions"))
    if isinstance(actions, dict):
        actions = [actions]
    for action in as_list(actions) or []:
        action_map = as_map(action) or {}
        action_type = str(action_map.get("type", action_map.get("Type", ""))).lower()
        if action_type != "redirect":
            continue
        redirect = as_map(first_value(
            action_map, ("redirect", "RedirectConfig", "redirectConfig")
        ))
        if isinstance(redirect, dict):
            protocol = redirect.get("protocol", redirect.get("Protocol", ""))
            if str(protocol).upper() == "HTTPS":
                return True
    return False


def _check_load_balancer_https(resource: IaCResource) -> CheckFailure | None:
    remediation = (
        'Use HTTPS (protocol = "HTTPS" with a certificate) or redirect HTTP '
        "traffic to HTTPS"
    )

    if resource.type in LISTENER_TYPES:
        protocol = as_str(first_present(resource, ("protocol", "Protocol")))
        if protocol and protocol.upper() == "HTTP" and not _redirects_to_https(resource):
            return CheckFailure(
                message="Load balancer listener accepts unencrypted HTTP traffic",
                remediation=remediation,
            )
        return None

    if resource.type in CLASSIC_LB_TYPES:
        listeners = first_present(resource, ("listener", "Listeners", "listeners"))
        if isinstance(listeners, dict):
            listeners = [listeners]
        for listener in as_list(listeners) or []:
            listener_map = as_map(listener) or {}
            protocol = first_value(
                listener_map, ("lb_protocol", "Protocol", "lbProtocol")
            )
            if str(protocol).upper() == "HTTP":
                return CheckFailure(
                    message="Classic load balancer listener accepts unencrypted HTTP traffic",
                    remediation=remediation,
                )

    return None


LOAD_BALANCER_HTTPS = PolicyRule(
    id="load-balancer-https",
    name="HTTPS Load Balancer Listeners",
    description="Load balancer listeners must terminate TLS or redirect to HTTPS",
    category=PolicyCategory.SECURITY,
    severity=Severity.ERROR,
    check=_check_load_balancer_https,
    metadata=PolicyMetadata(
        rationale="Plaintext listeners expose session cookies and credentials in transit.",
        references=(
            "https://docs.aws.amazon.com/elasticloadbalancing/latest/application/create-https-listener.html",
        ),
        frameworks=(PCI_DSS, HIPAA),
    ),
)


# iam-wildcard-actions

def _is_iam_resource(resource: IaCResource) -> bool:
    return "iam" in resource.type.lower()


def _policy_documents(resource: IaCResource) -> list[Any]:
    documents: list[Any] = []
    for key in ("policy", "PolicyDocument"):
        if key in resource.properties:
            documents.append(resource.properties[key])

    inline = first_present(resource, ("inline_policy", "Policies", "inlinePolicies"))
    if isinstance(inline, dict):
        inline = [inline]
    for item in as_list(inline) or []:
        item_map = as_map(item) or {}
        for key in ("policy", "PolicyDocument"):
            if key in item_map:
                documents.append(item_map[key])

    return documents


def _load_document(document: Any) -> dict[str, Any] | None:
    if isinstance(document, dict):
        return document
    if isinstance(document, str):
        try:
            loaded = json.loads(document)
        except ValueError:
            # Interpolated or function-built policies cannot be inspected
            logger.debug("Skipping non-JSON policy document")
            return None
        return loaded if isinstance(loaded, dict) else None
    return None


def _wildcard_actions(document: dict[str, Any]) -> list[str]:
    statements = document.get("Statement", document.get("statement"))
    if isinstance(statements, dict):
        statements = [statements]

    found: list[str] = []
    for statement in as_list(statements) or []:
        statement_map = as_map(statement)
        if statement_map is None:
            continue
        effect = statement_map.get("Effect", statement_map.get("effect", "Allow"))
        if str(effect).lower() != "allow":
            continue
        actions = statement_map.get("Action", statement_map.get("action"))
        if isinstance(actions, str):
            actions = [actions]
        for action in as_list(actions) or []:
            if isinstance(action, str) and (action == "*" or action.endswith(":*")):
                if action not in found:
                    found.append(action)
    return found


def _check_iam_wildcards(resource: IaCResource) -> CheckFailure | None:
    if not _is_iam_resource(resource):
        return None

    actions: list[str] = []
    for document in _policy_documents(resource):
        loaded = _load_document(document)
        if loaded is None:
            continue
        for action in _wildcard_actions(loaded):
            if action not in actions:
                actions.append(action)

    if not actions:
        return None

    return CheckFailure(
        message=f"IAM policy grants wildcard actions: {', '.join(actions)}",
        remediation="Grant only the specific actions the workload needs (least privilege)",
    )


IAM_WILDCARD_ACTIONS = PolicyRule(
    id="iam-wildcard-actions",
    name="IAM Wildcard Actions",
    description="IAM policies must not allow wildcard actions",
    category=PolicyCategory.SECURITY,
    severity=Severity.WARNING,
    check=_check_iam_wildcards,
    metadata=PolicyMetadata(
        rationale="Wildcard actions grant permissions that were never reviewed, including future API actions.",
        references=(
            "https://docs.aws.amazon.com/IAM/latest/UserGuide/best-practices.html#grant-least-privilege",
        ),
        frameworks=(CIS_AWS, SOC2),
    ),
)


SECURITY_POLICIES: list[PolicyRule] = [
    NO_PUBLIC_ACCESS,
    ENCRYPTION_AT_REST,
    NO_HARDCODED_SECRETS,
    SECURITY_GROUP_UNRESTRICTED,
    LOAD_BALANCER_HTTPS,
    IAM_WILDCARD_ACTIONS,
]
