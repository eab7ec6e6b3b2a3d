"""
Custom policy loader for the GitOps Compliance Engine.

Custom rules come from two kinds of sources:

- Python modules (``.py``), imported from their file path. A module
  exposes its rules as ``policies``, as a ``default`` list, or as a
  ``default`` mapping with a ``policies`` list. Each rule is a PolicyRule
  or a dict with an ``evaluate`` callable.
- Policy documents (``.json``, ``.yaml``, ``.yml``), holding a list of
  rules or a mapping with a ``policies`` list. Documents cannot carry
  code; a rule may describe its test with a declarative ``check`` block,
  otherwise it is loaded as metadata only and never evaluated.

Validation is all-or-nothing per file: the first invalid rule aborts the
load with a PolicyLoadError naming the file.
"""

from __future__ import annotations

import dataclasses
import hashlib
import importlib.util
import json
import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable

import yaml

from gitops_compliance.errors import PolicyLoadError
from gitops_compliance.models import PolicyCategory, Severity
from gitops_compliance.policies.base import PolicyMetadata, PolicyRule
from gitops_compliance.policies.checks import compile_check, parse_check

logger = logging.getLogger(__name__)

MODULE_EXTENSIONS = (".py",)
DOCUMENT_EXTENSIONS = (".json", ".yaml", ".yml")

REQUIRED_FIELDS = ("id", "name", "description", "category", "severity", "evaluate")

_SEVERITY_VALUES = ", ".join(s.value for s in Severity)
_CATEGORY_VALUES = ", ".join(c.value for c in PolicyCategory)


def load_custom_policies(file_path: str | Path) -> list[PolicyRule]:
    """
    Load custom policies from a file.

    Args:
        file_path: Path to a .py, .json, .yaml or .yml policy file

    Returns:
        Validated rules in file order

    Raises:
        PolicyLoadError: If the file is missing, has an unsupported
            extension, cannot be read, or contains an invalid rule
    """
    path = Path(file_path)
    source = str(path)
    suffix = path.suffix.lower()

    if suffix not in MODULE_EXTENSIONS + DOCUMENT_EXTENSIONS:
        raise PolicyLoadError(
            f"Unsupported policy file format: {suffix or '(none)'}. "
            f"Supported: {', '.join(MODULE_EXTENSIONS + DOCUMENT_EXTENSIONS)}",
            source,
        )

    if not path.is_file():
        raise PolicyLoadError("Policy file not found", source)

    if suffix in MODULE_EXTENSIONS:
        candidates = _load_module_candidates(path)
        from_document = False
    else:
        candidates = _load_document_candidates(path)
        from_document = True

    policies = [
        validate_policy_structure(candidate, source, index, from_document=from_document)
        for index, candidate in enumerate(candidates)
    ]

    logger.info(f"Loaded {len(policies)} custom policies from {source}")
    return policies


def _load_module_candidates(path: Path) -> list[Any]:
    source = str(path)
    digest = hashlib.sha256(str(path.resolve()).encode()).hexdigest()[:12]
    module_name = f"gce_custom_policies_{path.stem}_{digest}"

    try:
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise PolicyLoadError("Cannot load module spec", source)

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)

    except PolicyLoadError:
        raise
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise PolicyLoadError(f"Failed to import policy module: {e}", source) from e

    default = getattr(module, "default", None)
    if isinstance(default, (list, tuple)):
        return list(default)
    if isinstance(default, Mapping) and isinstance(default.get("policies"), (list, tuple)):
        return list(default["policies"])

    named = getattr(module, "policies", None)
    if isinstance(named, (list, tuple)):
        return list(named)

    raise PolicyLoadError(
        "Module must export a 'policies' list, a 'default' list, "
        "or a 'default' mapping with a 'policies' list",
        source,
    )


def _load_document_candidates(path: Path) -> list[Any]:
    source = str(path)

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyLoadError(f"Failed to read policy file: {e}", source) from e

    if path.suffix.lower() == ".json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise PolicyLoadError(f"Invalid JSON: {e}", source) from e
    else:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise PolicyLoadError(f"Invalid YAML: {e}", source) from e

    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("policies"), list):
        return data["policies"]

    raise PolicyLoadError(
        "Policy file must contain a list of policies or an object with a 'policies' list",
        source,
    )


def validate_policy_structure(
    candidate: Any,
    source: str,
    index: int = 0,
    from_document: bool = False,
) -> PolicyRule:
    """
    Validate one custom policy and convert it to a PolicyRule.

    Checks run in a fixed order and the first failure is reported: object
    shape, required fields, id and name types, evaluate callable, severity
    value, category value.

    Args:
        candidate: PolicyRule instance or rule mapping
        source: File the candidate came from
        index: Position of the candidate in its file
        from_document: Whether the candidate came from a JSON/YAML document

    Returns:
        Validated PolicyRule tagged with its source

    Raises:
        PolicyLoadError: If the candidate is invalid
    """
    if isinstance(candidate, PolicyRule):
        if not candidate.evaluable:
            raise PolicyLoadError(f"Policy #{index}: Policy evaluate must be a function", source)
        return candidate if candidate.source else _with_source(candidate, source)

    if not isinstance(candidate, Mapping):
        raise PolicyLoadError(f"Policy #{index}: Each policy must be an object", source)

    required = REQUIRED_FIELDS
    if from_document:
        required = tuple(f for f in REQUIRED_FIELDS if f != "evaluate")

    for field_name in required:
        if field_name not in candidate:
            raise PolicyLoadError(
                f"Policy #{index}: Policy missing required field: {field_name}", source
            )

    policy_id = candidate["id"]
    if not isinstance(policy_id, str):
        raise PolicyLoadError(
            f"Policy #{index}: Policy id must be a string, got {type(policy_id).__name__}",
            source,
        )
    label = f"Policy {policy_id}"

    if not isinstance(candidate["name"], str):
        raise PolicyLoadError(f"{label}: Policy name must be a string", source)

    evaluate = candidate.get("evaluate")
    if not from_document and not callable(evaluate):
        raise PolicyLoadError(f"{label}: Policy evaluate must be a function", source)

    severity = _exact_member(Severity, candidate["severity"])
    if severity is None:
        raise PolicyLoadError(
            f"{label}: Policy severity must be one of: {_SEVERITY_VALUES}", source
        )

    category = _exact_member(PolicyCategory, candidate["category"])
    if category is None:
        raise PolicyLoadError(
            f"{label}: Policy category must be one of: {_CATEGORY_VALUES}", source
        )

    enabled = candidate.get("enabled", True)
    if not isinstance(enabled, bool):
        raise PolicyLoadError(f"{label}: Policy enabled must be a boolean", source)

    metadata = _parse_metadata(candidate, label, source)

    if from_document:
        evaluate = _compile_document_check(candidate, label, source)
        if evaluate is None:
            logger.warning(
                f"{label} in {source} has no check block and will not be evaluated"
            )

    return PolicyRule(
        id=policy_id,
        name=candidate["name"],
        description=str(candidate["description"]),
        category=category,
        severity=severity,
        check=evaluate,
        enabled=enabled,
        metadata=metadata,
        source=source,
    )


def _exact_member(enum_cls, value):
    # Values are case-sensitive: "ERROR" is not a severity
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def _parse_metadata(
    candidate: Mapping[str, Any],
    label: str,
    source: str,
) -> PolicyMetadata | None:
    raw = candidate.get("metadata")
    if raw is None:
        return None
    if isinstance(raw, PolicyMetadata):
        return raw
    if not isinstance(raw, Mapping):
        raise PolicyLoadError(f"{label}: Policy metadata must be an object", source)
    return PolicyMetadata.from_dict(raw)


def _compile_document_check(
    candidate: Mapping[str, Any],
    label: str,
    source: str,
):
    if "check" not in candidate:
        return None

    try:
        check = parse_check(candidate["check"])
    except ValueError as e:
        raise PolicyLoadError(f"{label}: Invalid check: {e}", source) from e

    resource_types = candidate.get("resource_types", candidate.get("resourceTypes", []))
    if isinstance(resource_types, str):
        resource_types = [resource_types]
    if not isinstance(resource_types, list):
        raise PolicyLoadError(f"{label}: resource_types must be a list", source)

    message = candidate.get("message") or str(candidate["description"])
    remediation = candidate.get("remediation")

    return compile_check(
        check,
        message=str(message),
        remediation=str(remediation) if remediation is not None else None,
        resource_types=[str(t) for t in resource_types],
    )


def _with_source(policy: PolicyRule, source: str) -> PolicyRule:
    return dataclasses.replace(policy, source=source)


def merge_policies(
    builtin: Iterable[PolicyRule],
    custom: Iterable[PolicyRule],
) -> list[PolicyRule]:
    """
    Merge custom policies into a policy list.

    A custom policy whose id matches an existing policy replaces it in
    place; any other custom policy is appended in its own order.

    Args:
        builtin: Existing policies in catalog order
        custom: Custom policies to merge

    Returns:
        New merged list; inputs are not modified
    """
    merged = list(builtin)
    positions = {policy.id: idx for idx, policy in enumerate(merged)}

    for policy in custom:
        if policy.id in positions:
            merged[positions[policy.id]] = policy
        else:
            positions[policy.id] = len(merged)
            merged.append(policy)

    return merged
