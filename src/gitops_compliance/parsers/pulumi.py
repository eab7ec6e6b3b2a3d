"""
Pulumi YAML program parser.

Resources are read from the top-level ``resources`` mapping:

    resources:
      webServer:
        type: aws:ec2:Instance
        properties:
          instanceType: t3.micro
"""

from __future__ import annotations

import logging
import re
from typing import Any

import yaml

from gitops_compliance.errors import ParseError
from gitops_compliance.models import IaCFormat, IaCLocation, IaCParseResult, IaCResource
from gitops_compliance.parsers.base import IaCParser, find_line

logger = logging.getLogger(__name__)


class PulumiParser(IaCParser):
    """Parser for Pulumi YAML programs (``Pulumi.yaml``)."""

    @property
    def format(self) -> IaCFormat:
        """Return Pulumi format."""
        return IaCFormat.PULUMI

    def parse_content(self, content: str, file_path: str = "<string>") -> IaCParseResult:
        """
        Parse a Pulumi YAML program from a string.

        Args:
            content: YAML source
            file_path: Path recorded in resource locations

        Returns:
            Parsed IaCParseResult

        Raises:
            ParseError: If the content is not valid YAML
        """
        try:
            program = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse Pulumi configuration: {e}", file_path) from e

        if not isinstance(program, dict):
            return IaCParseResult(format=IaCFormat.PULUMI)

        resources: list[IaCResource] = []
        section = program.get("resources")

        if isinstance(section, dict):
            match = re.search(r"^resources\s*:", content, re.MULTILINE)
            offset = match.start() if match else 0
            base_line = content[:offset].count("\n")

            for name, definition in section.items():
                definition = definition if isinstance(definition, dict) else {}
                resource_type = definition.get("type")
                properties = definition.get("properties")

                line = find_line(content[offset:], rf"^[ \t]+{re.escape(str(name))}\s*:")

                resources.append(IaCResource(
                    id=str(name),
                    type=resource_type if isinstance(resource_type, str) else "Unknown",
                    properties=properties if isinstance(properties, dict) else {},
                    location=IaCLocation(
                        file=file_path,
                        line=None if line is None else base_line + line,
                    ),
                ))

        metadata: dict[str, Any] = {}
        for key in ("name", "runtime", "version"):
            value = program.get(key)
            if isinstance(value, str):
                metadata[key] = value
            elif isinstance(value, dict) and key == "runtime" and isinstance(value.get("name"), str):
                metadata[key] = value["name"]

        logger.debug(f"Parsed {len(resources)} resources from {file_path}")

        return IaCParseResult(format=IaCFormat.PULUMI, resources=resources, metadata=metadata)
