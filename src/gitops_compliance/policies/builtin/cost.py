"""
Cost rules.

These flag configurations that are expensive by default. None of them is
an error: the resources may well be intentional, but someone should look.
"""

from __future__ import annotations

from gitops_compliance.models import (
    IaCResource,
    PolicyCategory,
    Severity,
    as_list,
    as_map,
    as_number,
    as_str,
    is_true,
)
from gitops_compliance.policies.base import CheckFailure, PolicyMetadata, PolicyRule
from gitops_compliance.policies.frameworks import AWS_WELL_ARCHITECTED, FINOPS
from gitops_compliance.policies.helpers import first_present, first_value

INSTANCE_TYPE_KEYS = ("instance_type", "InstanceType", "instanceType")

LARGE_INSTANCE_MARKERS = ("xlarge", "metal")

VOLUME_TYPES = frozenset({
    "aws_ebs_volume",
    "AWS::EC2::Volume",
    "aws:ebs/volume:Volume",
})

ATTACHMENT_KEYS = (
    "attachment",
    "attachments",
    "instance_id",
    "Attachments",
    "InstanceId",
    "instanceId",
)

VOLUME_TYPE_KEYS = ("volume_type", "VolumeType", "volumeType")

# Nested block devices that carry their own volume_type
BLOCK_DEVICE_KEYS = ("root_block_device", "ebs_block_device", "BlockDeviceMappings")

STORAGE_SIZE_KEYS = (
    "size",
    "Size",
    "allocated_storage",
    "AllocatedStorage",
    "allocatedStorage",
    "volume_size",
    "VolumeSize",
    "volumeSize",
)

# GB
LARGE_STORAGE_THRESHOLD = 1000

MULTI_AZ_KEYS = ("multi_az", "MultiAZ", "multiAz")

NAT_GATEWAY_TYPES = frozenset({
    "aws_nat_gateway",
    "AWS::EC2::NatGateway",
    "aws:ec2/natGateway:NatGateway",
})


def _check_large_instance(resource: IaCResource) -> CheckFailure | None:
    instance_type = as_str(first_present(resource, INSTANCE_TYPE_KEYS))
    if instance_type is None:
        return None
    if not any(marker in instance_type.lower() for marker in LARGE_INSTANCE_MARKERS):
        return None
    return CheckFailure(
        message=f'Instance type "{instance_type}" may incur high costs',
        remediation=(
            "Consider a smaller instance type, or Reserved or Spot capacity "
            "for sustained large workloads"
        ),
    )


def _check_unattached_volume(resource: IaCResource) -> CheckFailure | None:
    if resource.type not in VOLUME_TYPES:
        return None
    if first_present(resource, ATTACHMENT_KEYS):
        return None
    return CheckFailure(
        message="Volume is not attached to an instance",
        remediation=(
            "Attach the volume (e.g. with aws_volume_attachment) or delete it "
            "to stop paying for idle storage"
        ),
    )


def _volume_types(resource: IaCResource) -> list[str]:
    found: list[str] = []

    direct = as_str(first_present(resource, VOLUME_TYPE_KEYS))
    if direct is not None:
        found.append(direct)
    if resource.type in VOLUME_TYPES:
        declared = as_str(first_present(resource, ("type", "Type")))
        if declared is not None:
            found.append(declared)

    for key in BLOCK_DEVICE_KEYS:
        devices = resource.properties.get(key)
        if isinstance(devices, dict):
            devices = [devices]
        for device in as_list(devices) or []:
            device_map = as_map(device) or {}
            # CloudFormation nests the settings under Ebs
            device_map = as_map(device_map.get("Ebs")) or device_map
            nested = as_str(first_value(device_map, VOLUME_TYPE_KEYS))
            if nested is not None:
                found.append(nested)

    return found


def _check_gp2_volume(resource: IaCResource) -> CheckFailure | None:
    if not any(v.lower() == "gp2" for v in _volume_types(resource)):
        return None
    return CheckFailure(
        message="Volume uses gp2 storage; gp3 is cheaper with a higher performance baseline",
        remediation='Change the volume type to "gp3"',
    )


def _check_large_storage(resource: IaCResource) -> CheckFailure | None:
    for key in STORAGE_SIZE_KEYS:
        size = as_number(resource.properties.get(key))
        if size is not None and size > LARGE_STORAGE_THRESHOLD:
            display = int(size) if float(size).is_integer() else size
            return CheckFailure(
                message=f"Storage size {display} GB exceeds {LARGE_STORAGE_THRESHOLD} GB",
                remediation=(
                    "Verify the capacity is needed; consider storage autoscaling "
                    "or a cheaper storage tier"
                ),
            )
    return None


def _check_multi_az(resource: IaCResource) -> CheckFailure | None:
    if not is_true(first_present(resource, MULTI_AZ_KEYS)):
        return None
    return CheckFailure(
        message="Multi-AZ deployment roughly doubles the instance cost",
        remediation="Keep Multi-AZ for production; disable it for development and test environments",
    )


def _check_nat_gateway(resource: IaCResource) -> CheckFailure | None:
    if resource.type not in NAT_GATEWAY_TYPES:
        return None
    return CheckFailure(
        message="NAT gateways incur hourly and per-GB data processing charges",
        remediation=(
            "Share NAT gateways across subnets and use VPC endpoints for "
            "AWS service traffic"
        ),
    )


COST_LARGE_INSTANCE = PolicyRule(
    id="cost-large-instance",
    name="Large Instance Type",
    description="Flags xlarge and bare-metal instance types",
    category=PolicyCategory.COST,
    severity=Severity.WARNING,
    check=_check_large_instance,
    metadata=PolicyMetadata(
        rationale="Oversized instances are the largest single source of cloud waste.",
        references=("https://aws.amazon.com/ec2/pricing/on-demand/",),
        frameworks=(AWS_WELL_ARCHITECTED, FINOPS),
    ),
)

COST_UNATTACHED_VOLUME = PolicyRule(
    id="cost-unattached-volume",
    name="Unattached Volume",
    description="Flags block storage volumes declared without an attachment",
    category=PolicyCategory.COST,
    severity=Severity.WARNING,
    check=_check_unattached_volume,
    metadata=PolicyMetadata(
        rationale="Detached volumes keep billing for provisioned capacity.",
        frameworks=(FINOPS,),
    ),
)

COST_GP2_VOLUME = PolicyRule(
    id="cost-gp2-volume",
    name="gp2 Volume Type",
    description="Flags gp2 volumes that could use gp3",
    category=PolicyCategory.COST,
    severity=Severity.INFO,
    check=_check_gp2_volume,
    metadata=PolicyMetadata(
        rationale="gp3 costs less per GB than gp2 and decouples IOPS from size.",
        references=("https://aws.amazon.com/ebs/general-purpose/",),
        frameworks=(AWS_WELL_ARCHITECTED, FINOPS),
    ),
)

COST_LARGE_STORAGE = PolicyRule(
    id="cost-large-storage",
    name="Large Storage Allocation",
    description=f"Flags storage allocations above {LARGE_STORAGE_THRESHOLD} GB",
    category=PolicyCategory.COST,
    severity=Severity.WARNING,
    check=_check_large_storage,
    metadata=PolicyMetadata(
        rationale="Provisioned storage is billed whether or not it is used.",
        frameworks=(FINOPS,),
    ),
)

COST_MULTI_AZ = PolicyRule(
    id="cost-multi-az",
    name="Multi-AZ Deployment",
    description="Notes Multi-AZ deployments and their cost",
    category=PolicyCategory.COST,
    severity=Severity.INFO,
    check=_check_multi_az,
    metadata=PolicyMetadata(
        rationale="Standby replicas are billed at the full instance rate.",
        frameworks=(FINOPS,),
    ),
)

COST_NAT_GATEWAY = PolicyRule(
    id="cost-nat-gateway",
    name="NAT Gateway",
    description="Notes NAT gateways and their data processing charges",
    category=PolicyCategory.COST,
    severity=Severity.INFO,
    check=_check_nat_gateway,
    metadata=PolicyMetadata(
        rationale="NAT data processing charges grow silently with traffic.",
        references=("https://aws.amazon.com/vpc/pricing/",),
        frameworks=(FINOPS,),
    ),
)

COST_POLICIES: list[PolicyRule] = [
    COST_LARGE_INSTANCE,
    COST_UNATTACHED_VOLUME,
    COST_GP2_VOLUME,
    COST_LARGE_STORAGE,
    COST_MULTI_AZ,
    COST_NAT_GATEWAY,
]
