"""
Resource data model for the GitOps Compliance Engine.

This module defines IaCResource, the parser-neutral representation of a
resource declared in an IaC file, together with its source location and
the parse result produced by every parser.

Property bags are heterogeneous: the same logical attribute may be a bool
in Terraform, a string in CloudFormation and missing entirely in Pulumi.
The accessors here never raise; a missing key or a value of the wrong
shape reads as absent (None).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IaCFormat(Enum):
    """Supported IaC formats."""

    TERRAFORM = "terraform"
    PULUMI = "pulumi"
    CLOUDFORMATION = "cloudformation"

    @classmethod
    def from_string(cls, value: str) -> IaCFormat:
        """
        Create IaCFormat from string value.

        Args:
            value: String representation (case-insensitive)

        Returns:
            Matching IaCFormat enum value

        Raises:
            ValueError: If value is not a supported format
        """
        value_lower = value.lower()
        for iac_format in cls:
            if iac_format.value == value_lower:
                return iac_format
        raise ValueError(f"Unsupported IaC format: {value}")


@dataclass(frozen=True)
class IaCLocation:
    """
    Location of a resource in its source file.

    Attributes:
        file: Path to the IaC file
        line: Line of the resource declaration (1-indexed), if known
        column: Column of the declaration (1-indexed), if known
    """

    file: str
    line: int | None = None
    column: int | None = None

    def __str__(self) -> str:
        """Return a human-readable location string."""
        if self.line is None:
            return self.file
        if self.column is None:
            return f"{self.file}:{self.line}"
        return f"{self.file}:{self.line}:{self.column}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        result: dict[str, Any] = {"file": self.file}
        if self.line is not None:
            result["line"] = self.line
        if self.column is not None:
            result["column"] = self.column
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IaCLocation:
        """Create an IaCLocation from a dictionary."""
        return cls(
            file=data.get("file", ""),
            line=data.get("line"),
            column=data.get("column"),
        )


# Sentinel for missing values
_MISSING = object()


@dataclass(frozen=True)
class IaCResource:
    """
    A resource declared in an IaC file.

    Attributes:
        id: Resource name/logical identifier within its file
        type: Provider resource type (e.g., "aws_s3_bucket")
        properties: Declared configuration, keys in declaration order
        location: Where the resource is declared
    """

    id: str
    type: str
    properties: dict[str, Any] = field(default_factory=dict)
    location: IaCLocation = field(default_factory=lambda: IaCLocation(file=""))

    @property
    def address(self) -> str:
        """Return the resource address (e.g., aws_s3_bucket.logs)."""
        return f"{self.type}.{self.id}"

    def get(self, key: str) -> Any:
        """Get a top-level property, or None when absent."""
        return self.properties.get(key)

    def has(self, key: str) -> bool:
        """Check whether a top-level property is declared."""
        return key in self.properties

    def get_bool(self, key: str) -> bool | None:
        """Get a property only if it is a real boolean."""
        return as_bool(self.properties.get(key))

    def get_str(self, key: str) -> str | None:
        """Get a property only if it is a string."""
        return as_str(self.properties.get(key))

    def get_number(self, key: str) -> float | None:
        """Get a numeric property, accepting numeric strings."""
        return as_number(self.properties.get(key))

    def get_map(self, key: str) -> dict[str, Any] | None:
        """Get a property only if it is a mapping."""
        return as_map(self.properties.get(key))

    def get_list(self, key: str) -> list[Any] | None:
        """Get a property only if it is a list."""
        return as_list(self.properties.get(key))

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Get a nested property value using dot notation.

        Args:
            path: Dot-separated path (e.g., "versioning.enabled" or
                "ingress.0.cidr_blocks")
            default: Value returned when the path does not resolve

        Returns:
            Property value or default
        """
        current: Any = self.properties

        for part in path.split("."):
            if isinstance(current, dict):
                if part in current:
                    current = current[part]
                else:
                    return default
            elif isinstance(current, list) and part.isdigit():
                idx = int(part)
                if 0 <= idx < len(current):
                    current = current[idx]
                else:
                    return default
            else:
                return default

        return current

    def has_path(self, path: str) -> bool:
        """Check if a nested property path exists."""
        return self.get_path(path, _MISSING) is not _MISSING

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type,
            "properties": self.properties,
            "location": self.location.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IaCResource:
        """Create an IaCResource from a dictionary."""
        return cls(
            id=data["id"],
            type=data["type"],
            properties=dict(data.get("properties") or {}),
            location=IaCLocation.from_dict(data.get("location") or {}),
        )


@dataclass
class IaCParseResult:
    """
    Output of parsing one IaC file.

    Attributes:
        format: Format the file was parsed as
        resources: Resources in declaration order
        metadata: Optional provider, version and content_hash entries
    """

    format: IaCFormat
    resources: list[IaCResource] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def resource_count(self) -> int:
        """Get number of parsed resources."""
        return len(self.resources)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "format": self.format.value,
            "resources": [r.to_dict() for r in self.resources],
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IaCParseResult:
        """Create an IaCParseResult from a dictionary."""
        return cls(
            format=IaCFormat.from_string(data["format"]),
            resources=[IaCResource.from_dict(r) for r in data.get("resources", [])],
            metadata=dict(data.get("metadata") or {}),
        )


def as_bool(value: Any) -> bool | None:
    """Return value if it is a real boolean, else None."""
    return value if isinstance(value, bool) else None


def as_str(value: Any) -> str | None:
    """Return value if it is a string, else None."""
    return value if isinstance(value, str) else None


def as_map(value: Any) -> dict[str, Any] | None:
    """Return value if it is a mapping, else None."""
    return value if isinstance(value, dict) else None


def as_list(value: Any) -> list[Any] | None:
    """Return value if it is a list, else None."""
    return value if isinstance(value, list) else None


def as_number(value: Any) -> float | None:
    """Return value as a finite number, accepting numeric strings; else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    return None


def is_true(value: Any) -> bool:
    """Check for an enabled flag: True, or the strings "true"/"enabled"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "enabled")
    return False


def is_false(value: Any) -> bool:
    """Check for an explicitly disabled flag: False, or "false"/"disabled"."""
    if isinstance(value, bool):
        return not value
    if isinstance(value, str):
        return value.strip().lower() in ("false", "disabled")
    return False
