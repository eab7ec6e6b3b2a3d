"""
CloudFormation template parser.

Templates are read as JSON first and as YAML second. Short-form intrinsic
function tags (``!Ref``, ``!GetAtt``, ``!Sub``, ...) are loaded as their
long-form mappings so rules see the same structure for both syntaxes.

A ``Ref`` to a template parameter that declares a ``Default`` is replaced
by that default, so a property such as ``PubliclyAccessible: !Ref
PublicFlag`` is evaluated with the value a stack would get when the
parameter is not overridden. No other intrinsic function is evaluated.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import yaml

from gitops_compliance.errors import ParseError
from gitops_compliance.models import IaCFormat, IaCLocation, IaCParseResult, IaCResource
from gitops_compliance.parsers.base import IaCParser, find_line

logger = logging.getLogger(__name__)

# CloudFormation intrinsic function tags and their long-form keys
CFN_TAGS = {
    "!Ref": "Ref",
    "!Sub": "Fn::Sub",
    "!GetAtt": "Fn::GetAtt",
    "!Join": "Fn::Join",
    "!Select": "Fn::Select",
    "!Split": "Fn::Split",
    "!If": "Fn::If",
    "!Equals": "Fn::Equals",
    "!And": "Fn::And",
    "!Or": "Fn::Or",
    "!Not": "Fn::Not",
    "!Condition": "Condition",
    "!FindInMap": "Fn::FindInMap",
    "!Base64": "Fn::Base64",
    "!Cidr": "Fn::Cidr",
    "!ImportValue": "Fn::ImportValue",
    "!GetAZs": "Fn::GetAZs",
    "!Transform": "Fn::Transform",
    "!Length": "Fn::Length",
    "!ToJsonString": "Fn::ToJsonString",
}


class CloudFormationLoader(yaml.SafeLoader):
    """SafeLoader that understands CloudFormation short-form tags."""


def _construct_intrinsic(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> dict[str, Any]:
    tag = f"!{tag_suffix}"
    key = CFN_TAGS.get(tag, f"Fn::{tag_suffix}")

    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
        if tag == "!GetAtt" and isinstance(value, str):
            value = value.split(".", 1)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    return {key: value}


CloudFormationLoader.add_multi_constructor("!", _construct_intrinsic)


def load_template(content: str) -> Any:
    """
    Load a CloudFormation template from JSON or YAML text.

    Args:
        content: Template source

    Returns:
        Decoded template

    Raises:
        ValueError: If the content is neither valid JSON nor valid YAML
    """
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    try:
        return yaml.load(content, Loader=CloudFormationLoader)
    except yaml.YAMLError as e:
        raise ValueError(str(e)) from e


def _parameter_defaults(template: dict[str, Any]) -> dict[str, Any]:
    parameters = template.get("Parameters")
    if not isinstance(parameters, dict):
        return {}
    return {
        name: definition["Default"]
        for name, definition in parameters.items()
        if isinstance(definition, dict) and "Default" in definition
    }


def _coerce_default(value: Any) -> Any:
    # Parameter defaults are strings; "true"/"false" become booleans
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return value


def substitute_parameter_refs(value: Any, defaults: dict[str, Any]) -> Any:
    """
    Replace ``{"Ref": param}`` with the parameter's default value.

    Args:
        value: Property value, searched recursively
        defaults: Parameter defaults by name

    Returns:
        A copy of value with resolvable references substituted
    """
    if isinstance(value, dict):
        if len(value) == 1 and "Ref" in value:
            ref = value["Ref"]
            if isinstance(ref, str) and ref in defaults:
                return _coerce_default(defaults[ref])
        return {k: substitute_parameter_refs(v, defaults) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_parameter_refs(item, defaults) for item in value]
    return value


class CloudFormationParser(IaCParser):
    """
    Parser for AWS CloudFormation templates (JSON and YAML).

    Each entry under ``Resources`` becomes a resource whose id is its
    logical id, whose type is its ``Type`` and whose properties are its
    ``Properties``.
    """

    @property
    def format(self) -> IaCFormat:
        """Return CloudFormation format."""
        return IaCFormat.CLOUDFORMATION

    def parse_content(self, content: str, file_path: str = "<string>") -> IaCParseResult:
        """
        Parse CloudFormation content from a string.

        Args:
            content: The template content to parse
            file_path: Path recorded in resource locations

        Returns:
            Parsed IaCParseResult

        Raises:
            ParseError: If the template is neither valid JSON nor YAML
        """
        try:
            template = load_template(content)
        except ValueError as e:
            raise ParseError(f"Failed to parse CloudFormation template: {e}", file_path) from e

        if not isinstance(template, dict):
            logger.warning(f"{file_path} does not contain a CloudFormation template object")
            return IaCParseResult(format=IaCFormat.CLOUDFORMATION)

        defaults = _parameter_defaults(template)
        resources: list[IaCResource] = []

        section = template.get("Resources")
        if isinstance(section, dict):
            resources_offset = self._section_offset(content)
            for logical_id, definition in section.items():
                if not isinstance(definition, dict):
                    continue

                resource_type = definition.get("Type")
                properties = definition.get("Properties")
                properties = properties if isinstance(properties, dict) else {}

                resources.append(IaCResource(
                    id=str(logical_id),
                    type=resource_type if isinstance(resource_type, str) else "Unknown",
                    properties=substitute_parameter_refs(properties, defaults),
                    location=IaCLocation(
                        file=file_path,
                        line=self._find_resource_line(content, str(logical_id), resources_offset),
                    ),
                ))

        metadata: dict[str, Any] = {}
        version = template.get("AWSTemplateFormatVersion")
        if isinstance(version, str):
            metadata["version"] = version
        elif version is not None:
            # Unquoted YAML dates load as datetime.date
            metadata["version"] = str(version)
        description = template.get("Description")
        if isinstance(description, str):
            metadata["description"] = description

        logger.debug(f"Parsed {len(resources)} resources from {file_path}")

        return IaCParseResult(
            format=IaCFormat.CLOUDFORMATION,
            resources=resources,
            metadata=metadata,
        )

    def _section_offset(self, content: str) -> int:
        match = re.search(r'^\s*"?Resources"?\s*:', content, re.MULTILINE)
        return match.start() if match else 0

    def _find_resource_line(self, content: str, logical_id: str, offset: int) -> int | None:
        name = re.escape(logical_id)
        section = content[offset:]
        base_line = content[:offset].count("\n")

        for pattern in (rf'"{name}"\s*:\s*\{{', rf"^[ \t]+['\"]?{name}['\"]?\s*:"):
            line = find_line(section, pattern)
            if line is not None:
                return base_line + line
        return None
