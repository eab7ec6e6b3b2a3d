"""
Validation configuration for the GitOps Compliance Engine.

A configuration file (JSON or YAML) controls which rules run, the
severity at which a run fails, which files and resources are excluded,
and an optional compliance framework filter:

    {
      "policies": {"enabled": [...], "disabled": [...]},
      "severity": {"failOn": "error"},
      "exclude": {"files": ["**/test/**"], "resources": ["aws_iam_*"]},
      "frameworks": ["HIPAA"],
      "customPolicies": ["policies/team.py"]
    }

Both camelCase and snake_case keys are accepted. Absent sections keep
their defaults; ``policies.enabled`` is only applied when present, and an
empty list keeps no rules at all.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from gitops_compliance.errors import ConfigError
from gitops_compliance.models import Severity

DEFAULT_CONFIG_FILES = (
    ".gce.json",
    ".gce.yaml",
    ".gce.yml",
    "gce.config.json",
    "gce.config.yaml",
)

_TOP_LEVEL_KEYS = {
    "policies",
    "severity",
    "exclude",
    "frameworks",
    "customPolicies",
    "custom_policies",
}


def _string_list(value: Any, field_name: str, config_path: str | None) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{field_name} must be a list of strings", config_path)
    return list(value)


@dataclass
class PoliciesConfig:
    """Rule enable/disable lists. None means the list is absent."""

    enabled: list[str] | None = None
    disabled: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {}
        if self.enabled is not None:
            result["enabled"] = self.enabled
        if self.disabled is not None:
            result["disabled"] = self.disabled
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_path: str | None = None) -> PoliciesConfig:
        """Create from dictionary."""
        enabled = data.get("enabled")
        disabled = data.get("disabled")
        return cls(
            enabled=None if enabled is None else _string_list(enabled, "policies.enabled", config_path),
            disabled=None if disabled is None else _string_list(disabled, "policies.disabled", config_path),
        )


@dataclass
class SeverityConfig:
    """Fail threshold. None means the caller's default applies."""

    fail_on: Severity | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        if self.fail_on is None:
            return {}
        return {"fail_on": self.fail_on.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_path: str | None = None) -> SeverityConfig:
        """Create from dictionary."""
        raw = data.get("failOn", data.get("fail_on"))
        if raw is None:
            return cls()
        try:
            return cls(fail_on=Severity.from_string(str(raw)))
        except ValueError:
            raise ConfigError(
                f"severity.failOn must be one of: error, warning, info (got {raw!r})",
                config_path,
            ) from None


@dataclass
class ExcludeConfig:
    """Glob patterns for excluded files and resources."""

    files: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"files": self.files, "resources": self.resources}

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_path: str | None = None) -> ExcludeConfig:
        """Create from dictionary."""
        return cls(
            files=_string_list(data.get("files", []), "exclude.files", config_path),
            resources=_string_list(data.get("resources", []), "exclude.resources", config_path),
        )


@dataclass
class ValidationConfig:
    """
    Complete validation configuration.

    Attributes:
        policies: Rule enable/disable lists
        severity: Fail threshold
        exclude: File and resource exclusion globs
        frameworks: Compliance framework filter, None for no filter
        custom_policies: Custom policy files to load
        source_path: File the configuration was loaded from
    """

    policies: PoliciesConfig = field(default_factory=PoliciesConfig)
    severity: SeverityConfig = field(default_factory=SeverityConfig)
    exclude: ExcludeConfig = field(default_factory=ExcludeConfig)
    frameworks: list[str] | None = None
    custom_policies: list[str] = field(default_factory=list)
    source_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "policies": self.policies.to_dict(),
            "severity": self.severity.to_dict(),
            "exclude": self.exclude.to_dict(),
        }
        if self.frameworks is not None:
            result["frameworks"] = self.frameworks
        if self.custom_policies:
            result["custom_policies"] = self.custom_policies
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        config_path: str | None = None,
    ) -> ValidationConfig:
        """
        Create from dictionary, validating shapes and enum values.

        Args:
            data: Parsed configuration document
            config_path: File the data came from, for error messages

        Returns:
            ValidationConfig instance

        Raises:
            ConfigError: If any section is malformed
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be an object", config_path)

        unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}", config_path)

        sections: dict[str, dict[str, Any]] = {}
        for name in ("policies", "severity", "exclude"):
            section = data.get(name, {})
            if section is None:
                section = {}
            if not isinstance(section, dict):
                raise ConfigError(f"{name} must be an object", config_path)
            sections[name] = section

        frameworks = data.get("frameworks")
        custom = data.get("customPolicies", data.get("custom_policies", []))

        return cls(
            policies=PoliciesConfig.from_dict(sections["policies"], config_path),
            severity=SeverityConfig.from_dict(sections["severity"], config_path),
            exclude=ExcludeConfig.from_dict(sections["exclude"], config_path),
            frameworks=None if frameworks is None else _string_list(frameworks, "frameworks", config_path),
            custom_policies=_string_list(custom, "customPolicies", config_path),
            source_path=config_path,
        )

    @classmethod
    def from_file(cls, path: str | Path) -> ValidationConfig:
        """
        Load configuration from a JSON or YAML file.

        Custom policy paths are resolved relative to the file's directory.

        Args:
            path: Configuration file path

        Returns:
            ValidationConfig instance

        Raises:
            ConfigError: If the file is missing, unparseable or invalid
        """
        config_path = Path(os.path.expanduser(str(path)))
        source = str(config_path)

        if not config_path.is_file():
            raise ConfigError(f"Config file does not exist: {source}", source)

        try:
            content = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read config file: {e}", source) from e

        if config_path.suffix.lower() == ".json":
            try:
                data = json.loads(content)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON: {e}", source) from e
        else:
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML: {e}", source) from e

        config = cls.from_dict(data if data is not None else {}, source)
        config.custom_policies = [
            str((config_path.parent / p)) if not os.path.isabs(p) else p
            for p in config.custom_policies
        ]
        return config


def load_config(path: str | Path | None = None) -> ValidationConfig:
    """
    Load a configuration file, or return defaults when no path is given.

    Args:
        path: Configuration file path

    Returns:
        ValidationConfig instance
    """
    if path is None:
        return ValidationConfig()
    return ValidationConfig.from_file(path)


def find_config_file(directory: str | Path = ".") -> str | None:
    """
    Look for a default configuration file in a directory.

    Args:
        directory: Directory to search

    Returns:
        Path of the first default config file found, or None
    """
    base = Path(directory)
    for name in DEFAULT_CONFIG_FILES:
        candidate = base / name
        if candidate.is_file():
            return str(candidate)
    return None


def load_config_from_env(default_config_file: str | None = None) -> ValidationConfig:
    """
    Load configuration from environment variables.

    Environment variables:
        GCE_CONFIG_FILE: Path to configuration file
        GCE_FAIL_ON: Fail threshold (error, warning, info)
        GCE_ENABLED_POLICIES: Comma-separated allow-list of rule ids
        GCE_DISABLED_POLICIES: Comma-separated deny-list of rule ids
        GCE_FRAMEWORKS: Comma-separated framework filter

    Values from individual variables override the config file.

    Args:
        default_config_file: File to load when GCE_CONFIG_FILE is unset

    Returns:
        ValidationConfig instance
    """
    config_file = os.getenv("GCE_CONFIG_FILE") or default_config_file
    config = load_config(config_file) if config_file else ValidationConfig()

    fail_on = os.getenv("GCE_FAIL_ON")
    if fail_on:
        config.severity = SeverityConfig.from_dict({"failOn": fail_on}, "GCE_FAIL_ON")

    enabled = os.getenv("GCE_ENABLED_POLICIES")
    if enabled is not None:
        config.policies.enabled = _split_csv(enabled)

    disabled = os.getenv("GCE_DISABLED_POLICIES")
    if disabled:
        config.policies.disabled = _split_csv(disabled)

    frameworks = os.getenv("GCE_FRAMEWORKS")
    if frameworks:
        config.frameworks = _split_csv(frameworks)

    return config


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]
