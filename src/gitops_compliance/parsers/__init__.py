"""
IaC parsers for the GitOps Compliance Engine.

Supported formats:
- Terraform (.tf, .tfvars)
- Pulumi YAML programs (Pulumi.yaml)
- CloudFormation templates (JSON and YAML)
"""

from __future__ import annotations

import logging
from pathlib import Path

from gitops_compliance.errors import InputError, ParseError
from gitops_compliance.models import IaCFormat, IaCParseResult
from gitops_compliance.parsers.base import IaCParser
from gitops_compliance.parsers.cloudformation import CloudFormationParser
from gitops_compliance.parsers.pulumi import PulumiParser
from gitops_compliance.parsers.terraform import TerraformParser

logger = logging.getLogger(__name__)

_PARSERS: dict[IaCFormat, type[IaCParser]] = {
    IaCFormat.TERRAFORM: TerraformParser,
    IaCFormat.PULUMI: PulumiParser,
    IaCFormat.CLOUDFORMATION: CloudFormationParser,
}


def get_parser(iac_format: IaCFormat | str) -> IaCParser:
    """
    Get a parser for a format.

    Args:
        iac_format: Format enum or name

    Returns:
        Parser instance

    Raises:
        InputError: If the format is not supported
    """
    if isinstance(iac_format, str):
        try:
            iac_format = IaCFormat.from_string(iac_format)
        except ValueError as e:
            raise InputError(str(e)) from None
    return _PARSERS[iac_format]()


def detect_format(file_path: str | Path, content: str) -> IaCFormat:
    """
    Detect the IaC format of a file, by name first and content second.

    Args:
        file_path: Path of the file
        content: File content

    Returns:
        Detected format; Terraform when nothing matches
    """
    name = str(file_path).lower()

    if name.endswith((".tf", ".tfvars")):
        return IaCFormat.TERRAFORM
    if "pulumi" in name and name.endswith((".yaml", ".yml")):
        return IaCFormat.PULUMI
    if "cloudformation" in name or name.endswith(
        (".template.json", ".template.yaml", ".template.yml")
    ):
        return IaCFormat.CLOUDFORMATION

    if 'resource "' in content or 'provider "' in content or "terraform {" in content:
        return IaCFormat.TERRAFORM
    if "AWSTemplateFormatVersion" in content or "Resources:" in content or '"Resources"' in content:
        return IaCFormat.CLOUDFORMATION
    if "runtime:" in content and "name:" in content:
        return IaCFormat.PULUMI

    return IaCFormat.TERRAFORM


def read_iac_file(file_path: str | Path) -> str:
    """
    Read an IaC file as UTF-8 text.

    Raises:
        ParseError: If the file cannot be read
    """
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"Failed to read file: {e}", str(file_path)) from e


def parse_iac_file(
    file_path: str | Path,
    iac_format: IaCFormat | str | None = None,
    content: str | None = None,
) -> IaCParseResult:
    """
    Parse an IaC file into resources.

    Args:
        file_path: Path of the file
        iac_format: Format to parse as, detected when None
        content: File content, read from disk when None

    Returns:
        Parsed IaCParseResult

    Raises:
        InputError: If the format is not supported
        ParseError: If the file cannot be read or parsed
    """
    parser = get_parser(iac_format) if iac_format is not None else None

    if content is None:
        content = read_iac_file(file_path)
    if parser is None:
        parser = get_parser(detect_format(file_path, content))

    logger.debug(f"Parsing {file_path} as {parser.format.value}")
    return parser.parse_content(content, str(file_path))


__all__ = [
    "CloudFormationParser",
    "IaCParser",
    "PulumiParser",
    "TerraformParser",
    "detect_format",
    "get_parser",
    "parse_iac_file",
    "read_iac_file",
]
