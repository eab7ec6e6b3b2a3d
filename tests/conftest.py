"""
Pytest configuration and fixtures for GitOps Compliance Engine tests.

This module provides common fixtures used across unit and integration tests.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

from gitops_compliance.models import (
    IaCFormat,
    IaCLocation,
    IaCResource,
    PolicyCategory,
    Severity,
    ValidationResult,
    Violation,
    ViolationResource,
)
from gitops_compliance.observability.logging import ROOT_LOGGER_NAME

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def reset_engine_logging() -> Generator[None, None, None]:
    """Undo logging configuration done by CLI runs so caplog keeps working."""
    yield
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.propagate = True
    root_logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove GCE_* variables that would change configuration loading."""
    for name in (
        "GCE_CONFIG_FILE",
        "GCE_FAIL_ON",
        "GCE_ENABLED_POLICIES",
        "GCE_DISABLED_POLICIES",
        "GCE_FRAMEWORKS",
        "GCE_LOG_LEVEL",
        "GCE_LOG_FORMAT",
        "NO_COLOR",
    ):
        monkeypatch.delenv(name, raising=False)


# Paths


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def terraform_dir() -> Path:
    """Return the Terraform fixtures directory."""
    return FIXTURES_DIR / "terraform"


@pytest.fixture
def policies_dir() -> Path:
    """Return the custom policy fixtures directory."""
    return FIXTURES_DIR / "policies"


# Resource factories


@pytest.fixture
def make_resource() -> Callable[..., IaCResource]:
    """Return a factory for IaCResource objects."""

    def _make(
        resource_type: str = "aws_instance",
        resource_id: str = "example",
        properties: dict[str, Any] | None = None,
        file: str = "main.tf",
        line: int | None = 1,
    ) -> IaCResource:
        return IaCResource(
            id=resource_id,
            type=resource_type,
            properties=properties or {},
            location=IaCLocation(file=file, line=line),
        )

    return _make


@pytest.fixture
def full_tags() -> dict[str, str]:
    """Return a tag map satisfying the required-tags rule."""
    return {
        "Environment": "production",
        "Owner": "platform-team",
        "Project": "main-app",
    }


@pytest.fixture
def web_server(make_resource) -> IaCResource:
    """Return an oversized instance carrying only a Name tag."""
    return make_resource(
        "aws_instance",
        "web_server",
        {"instance_type": "t2.xlarge", "tags": {"Name": "WebServer"}},
    )


@pytest.fixture
def public_bucket(make_resource) -> IaCResource:
    """Return an S3 bucket with a non-conforming name and no tags."""
    return make_resource(
        "aws_s3_bucket",
        "PublicBucket",
        {"bucket": "my-public-bucket"},
    )


@pytest.fixture
def public_database(make_resource, full_tags) -> IaCResource:
    """Return a fully tagged, publicly accessible database."""
    return make_resource(
        "aws_db_instance",
        "database",
        {"publicly_accessible": True, "tags": dict(full_tags)},
    )


# Violation factories


@pytest.fixture
def make_violation() -> Callable[..., Violation]:
    """Return a factory for Violation objects."""

    def _make(
        severity: Severity = Severity.WARNING,
        category: PolicyCategory = PolicyCategory.TAGGING,
        rule_id: str = "required-tags",
        resource_id: str = "example",
        file: str = "main.tf",
    ) -> Violation:
        return Violation(
            rule_id=rule_id,
            rule_name=rule_id.replace("-", " ").title(),
            severity=severity,
            category=category,
            message=f"{rule_id} failed",
            resource=ViolationResource(
                id=resource_id,
                type="aws_instance",
                location=IaCLocation(file=file, line=3),
            ),
            remediation="Fix it",
        )

    return _make


@pytest.fixture
def make_result(make_violation) -> Callable[..., ValidationResult]:
    """Return a factory for ValidationResult objects."""

    def _make(
        file: str = "main.tf",
        severities: list[Severity] | None = None,
        resource_count: int = 2,
    ) -> ValidationResult:
        violations = [
            make_violation(severity=s, file=file) for s in (severities or [])
        ]
        return ValidationResult(
            file=file,
            format=IaCFormat.TERRAFORM,
            violations=violations,
            resource_count=resource_count,
        )

    return _make
