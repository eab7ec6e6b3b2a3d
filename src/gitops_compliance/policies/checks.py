"""
Declarative property checks for document-defined rules.

JSON and YAML policy files cannot carry code. A rule defined in such a
file may instead carry a ``check`` block that describes the compliant
state of a resource:

    check:
      type: attribute
      path: versioning.enabled
      operator: eq
      value: true

A resource that does not satisfy the check produces a violation with the
rule's ``message`` (or description) and ``remediation``. ``resource_types``
limits the rule to matching types; ``*`` wildcards are allowed.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from gitops_compliance.models import IaCResource, as_number
from gitops_compliance.policies.base import CheckFailure

logger = logging.getLogger(__name__)

CHECK_TYPES = (
    "attribute",
    "exists",
    "not_exists",
    "pattern",
    "any_of",
    "all_of",
    "expression",
)

OPERATORS = (
    "eq",
    "ne",
    "gt",
    "lt",
    "gte",
    "lte",
    "in",
    "not_in",
    "contains",
    "not_contains",
    "matches",
    "starts_with",
    "ends_with",
)

_OPERATOR_ALIASES = {
    "==": "eq",
    "equals": "eq",
    "!=": "ne",
    "not_equals": "ne",
    ">": "gt",
    "<": "lt",
    ">=": "gte",
    "<=": "lte",
}

_MISSING = object()


@dataclass
class PropertyCheck:
    """
    A predicate over resource properties.

    Attributes:
        check_type: One of CHECK_TYPES
        path: Dot-notation property path
        operator: Comparison operator for attribute checks
        value: Expected value for comparison
        pattern: Regex for pattern checks
        checks: Nested checks for any_of and all_of
    """

    check_type: str
    path: str = ""
    operator: str = "eq"
    value: Any = None
    pattern: str = ""
    checks: list[PropertyCheck] = field(default_factory=list)


def parse_check(data: dict[str, Any] | str) -> PropertyCheck:
    """
    Parse a check definition.

    Args:
        data: Check mapping, or an expression string such as
            ``"resource.versioning.enabled == true"``

    Returns:
        Parsed PropertyCheck

    Raises:
        ValueError: If the check type or operator is unknown
    """
    if isinstance(data, str):
        return PropertyCheck(check_type="expression", path=data)

    if not isinstance(data, dict):
        raise ValueError(f"check must be a mapping or expression string, got {type(data).__name__}")

    check_type = str(data.get("type", "attribute")).lower()
    if check_type not in CHECK_TYPES:
        raise ValueError(
            f"Unknown check type: {check_type} (expected one of: {', '.join(CHECK_TYPES)})"
        )

    operator = str(data.get("operator", data.get("op", "eq"))).lower()
    operator = _OPERATOR_ALIASES.get(operator, operator)
    if check_type == "attribute" and operator not in OPERATORS:
        raise ValueError(f"Unknown operator: {operator}")

    nested: list[PropertyCheck] = []
    if check_type in ("any_of", "all_of"):
        raw_checks = data.get("checks")
        if not isinstance(raw_checks, list) or not raw_checks:
            raise ValueError(f"{check_type} check requires a non-empty 'checks' list")
        nested = [parse_check(item) for item in raw_checks]

    path = str(data.get("path", data.get("attribute", "")))
    if check_type in ("attribute", "exists", "not_exists", "pattern") and not path:
        raise ValueError(f"{check_type} check requires a 'path'")

    return PropertyCheck(
        check_type=check_type,
        path=path,
        operator=operator,
        value=data.get("value"),
        pattern=str(data.get("pattern", "")),
        checks=nested,
    )


def evaluate_check(check: PropertyCheck, resource: IaCResource) -> bool:
    """
    Evaluate a check against a resource.

    Returns:
        True if compliant, False if violated
    """
    if check.check_type == "attribute":
        return _check_attribute(check, resource)
    if check.check_type == "exists":
        return resource.has_path(check.path)
    if check.check_type == "not_exists":
        return not resource.has_path(check.path)
    if check.check_type == "pattern":
        return _check_pattern(check, resource)
    if check.check_type == "any_of":
        return any(evaluate_check(c, resource) for c in check.checks)
    if check.check_type == "all_of":
        return all(evaluate_check(c, resource) for c in check.checks)
    if check.check_type == "expression":
        return _check_expression(check, resource)

    logger.warning(f"Unknown check type: {check.check_type}")
    return True


def _compare(actual: Any, operator: str, expected: Any) -> bool:
    if operator in ("gt", "lt", "gte", "lte"):
        left = as_number(actual)
        right = as_number(expected)
        if left is None or right is None:
            return False
        if operator == "gt":
            return left > right
        if operator == "lt":
            return left < right
        if operator == "gte":
            return left >= right
        return left <= right

    if operator == "eq":
        return actual == expected
    if operator == "ne":
        return actual != expected
    if operator == "in":
        return isinstance(expected, list) and actual in expected
    if operator == "not_in":
        return not isinstance(expected, list) or actual not in expected
    if operator == "contains":
        return isinstance(actual, (list, str)) and expected in actual
    if operator == "not_contains":
        return not isinstance(actual, (list, str)) or expected not in actual
    if operator == "matches":
        return isinstance(actual, str) and bool(re.search(str(expected), actual))
    if operator == "starts_with":
        return isinstance(actual, str) and actual.startswith(str(expected))
    if operator == "ends_with":
        return isinstance(actual, str) and actual.endswith(str(expected))

    logger.warning(f"Unknown operator: {operator}")
    return True


def _check_attribute(check: PropertyCheck, resource: IaCResource) -> bool:
    actual = resource.get_path(check.path, _MISSING)

    if actual is _MISSING:
        # Missing attribute fails everything except negative comparisons
        return check.operator in ("ne", "not_in", "not_contains")

    return _compare(actual, check.operator, check.value)


def _check_pattern(check: PropertyCheck, resource: IaCResource) -> bool:
    actual = resource.get_path(check.path)
    if actual is None:
        return False
    if not check.pattern:
        return True
    return bool(re.match(check.pattern, str(actual)))


def _check_expression(check: PropertyCheck, resource: IaCResource) -> bool:
    """
    Evaluate a simple comparison expression.

    Supports ``resource.<path> <op> <value>`` for ==, !=, >=, <=, > and <,
    and a bare ``resource.<path>`` meaning the path exists.
    """
    expression = check.path.strip()
    if not expression:
        return True

    for op in ("==", "!=", ">=", "<=", ">", "<"):
        if op not in expression:
            continue
        path_part, value_part = (part.strip() for part in expression.split(op, 1))
        if path_part.startswith("resource."):
            path_part = path_part[len("resource."):]
        actual = resource.get_path(path_part)
        return _compare(actual, _OPERATOR_ALIASES[op], _parse_expression_value(value_part))

    if expression.startswith("resource."):
        return resource.has_path(expression[len("resource."):])

    return True


def _parse_expression_value(value: str) -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("null", "none"):
        return None

    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]

    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def matches_resource_type(resource_type: str, patterns: list[str]) -> bool:
    """Check a resource type against type patterns; no patterns matches all."""
    if not patterns:
        return True
    return any(fnmatch.fnmatchcase(resource_type, pattern) for pattern in patterns)


def compile_check(
    check: PropertyCheck,
    message: str,
    remediation: str | None = None,
    resource_types: list[str] | None = None,
) -> Callable[[IaCResource], CheckFailure | None]:
    """
    Turn a declarative check into a rule check function.

    Args:
        check: Parsed check describing the compliant state
        message: Violation message for non-compliant resources
        remediation: Remediation guidance
        resource_types: Type patterns the rule applies to

    Returns:
        Check function suitable for PolicyRule.check
    """
    types = list(resource_types or [])

    def run(resource: IaCResource) -> CheckFailure | None:
        if not matches_resource_type(resource.type, types):
            return None
        if evaluate_check(check, resource):
            return None
        return CheckFailure(message=message, remediation=remediation)

    return run
