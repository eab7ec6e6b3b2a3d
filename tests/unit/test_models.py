"""
Tests for GitOps Compliance Engine data models.

Tests cover:
- Enum parsing for formats, severities and categories
- Safe property accessors on IaCResource
- Serialization of resources, parse results and violations
- Per-file result pass flag
"""

from __future__ import annotations

import pytest

from gitops_compliance.models import (
    IaCFormat,
    IaCLocation,
    IaCParseResult,
    IaCResource,
    PolicyCategory,
    Severity,
    ValidationSummary,
    ViolationResource,
    as_number,
    is_false,
    is_true,
)


class TestEnums:
    """Tests for the model enums."""

    def test_format_from_string_is_case_insensitive(self):
        """Test IaCFormat.from_string accepts any case."""
        assert IaCFormat.from_string("Terraform") is IaCFormat.TERRAFORM
        assert IaCFormat.from_string("CLOUDFORMATION") is IaCFormat.CLOUDFORMATION

    def test_format_from_string_unknown(self):
        """Test IaCFormat.from_string rejects unknown formats."""
        with pytest.raises(ValueError, match="Unsupported IaC format: bicep"):
            IaCFormat.from_string("bicep")

    def test_severity_from_string(self):
        """Test Severity.from_string."""
        assert Severity.from_string("WARNING") is Severity.WARNING

        with pytest.raises(ValueError, match="Invalid severity"):
            Severity.from_string("critical")

    def test_category_from_string(self):
        """Test PolicyCategory.from_string."""
        assert PolicyCategory.from_string("Naming") is PolicyCategory.NAMING

        with pytest.raises(ValueError, match="Invalid category"):
            PolicyCategory.from_string("performance")


class TestIaCResource:
    """Tests for IaCResource accessors."""

    @pytest.fixture
    def resource(self) -> IaCResource:
        """Return a resource with nested properties."""
        return IaCResource(
            id="logs",
            type="aws_s3_bucket",
            properties={
                "bucket": "company-logs",
                "force_destroy": False,
                "size": "250",
                "versioning": {"enabled": True},
                "ingress": [{"cidr_blocks": ["10.0.0.0/8"]}],
            },
            location=IaCLocation(file="main.tf", line=4),
        )

    def test_address(self, resource):
        """Test resource address."""
        assert resource.address == "aws_s3_bucket.logs"

    def test_typed_accessors(self, resource):
        """Test typed accessors return values of the right type only."""
        assert resource.get_str("bucket") == "company-logs"
        assert resource.get_bool("force_destroy") is False
        assert resource.get_map("versioning") == {"enabled": True}
        assert resource.get_list("ingress") == [{"cidr_blocks": ["10.0.0.0/8"]}]
        assert resource.get_number("size") == 250.0

    def test_type_mismatch_returns_none(self, resource):
        """Test mismatched accessors return None instead of raising."""
        assert resource.get_bool("bucket") is None
        assert resource.get_map("bucket") is None
        assert resource.get_list("versioning") is None
        assert resource.get_number("versioning") is None
        assert resource.get_str("missing") is None

    def test_get_path(self, resource):
        """Test dot-notation access into maps and lists."""
        assert resource.get_path("versioning.enabled") is True
        assert resource.get_path("ingress.0.cidr_blocks.0") == "10.0.0.0/8"
        assert resource.get_path("ingress.5.cidr_blocks") is None
        assert resource.get_path("bucket.name", "fallback") == "fallback"

    def test_has_path(self, resource):
        """Test has_path distinguishes missing from falsy values."""
        assert resource.has_path("force_destroy")
        assert not resource.has_path("versioning.mfa_delete")

    def test_resource_is_frozen(self, resource):
        """Test resources cannot be reassigned after parsing."""
        with pytest.raises(AttributeError):
            resource.id = "other"  # type: ignore[misc]

    def test_round_trip(self, resource):
        """Test to_dict/from_dict preserve the resource."""
        assert IaCResource.from_dict(resource.to_dict()) == resource


class TestValueHelpers:
    """Tests for module-level value helpers."""

    @pytest.mark.parametrize("value,expected", [
        (True, True),
        ("true", True),
        ("Enabled", True),
        (1, False),
        ("yes", False),
        (None, False),
    ])
    def test_is_true(self, value, expected):
        """Test is_true accepts booleans and enabled strings only."""
        assert is_true(value) is expected

    def test_is_false(self):
        """Test is_false only matches explicit off values."""
        assert is_false(False)
        assert is_false("disabled")
        assert not is_false(None)
        assert not is_false(0)

    def test_as_number_rejects_booleans(self):
        """Test booleans are not treated as numbers."""
        assert as_number(True) is None
        assert as_number("1.5") == 1.5
        assert as_number("big") is None

    @pytest.mark.parametrize("value", ["nan", "-inf", float("inf"), float("nan")])
    def test_as_number_rejects_non_finite(self, value):
        """Test NaN and infinities read as absent."""
        assert as_number(value) is None


class TestIaCParseResult:
    """Tests for IaCParseResult."""

    def test_round_trip(self):
        """Test serialization keeps format, resources and metadata."""
        result = IaCParseResult(
            format=IaCFormat.PULUMI,
            resources=[
                IaCResource(id="a", type="aws:s3/bucket:Bucket", properties={"x": [1, 2]}),
            ],
            metadata={"name": "app"},
        )

        restored = IaCParseResult.from_dict(result.to_dict())

        assert restored.format is IaCFormat.PULUMI
        assert restored.resources == result.resources
        assert restored.metadata == {"name": "app"}
        assert restored.resource_count == 1


class TestViolation:
    """Tests for Violation and result models."""

    def test_violation_to_dict(self, make_violation):
        """Test violation serialization."""
        data = make_violation(severity=Severity.ERROR, category=PolicyCategory.SECURITY).to_dict()

        assert data["severity"] == "error"
        assert data["category"] == "security"
        assert data["resource"]["location"] == {"file": "main.tf", "line": 3}
        assert data["remediation"] == "Fix it"

    def test_violation_resource_of(self, make_resource):
        """Test ViolationResource copies identity and location."""
        resource = make_resource("aws_instance", "web", line=7)
        ref = ViolationResource.of(resource)

        assert ref.id == "web"
        assert ref.type == "aws_instance"
        assert ref.location.line == 7

    def test_result_passed_ignores_severity(self, make_result):
        """Test a file with only info violations does not pass."""
        assert make_result(severities=[]).passed is True
        assert make_result(severities=[Severity.INFO]).passed is False

    def test_summary_defaults(self):
        """Test an empty summary has zeroed counters for every key."""
        summary = ValidationSummary()

        assert summary.passed is True
        assert set(summary.violations_by_severity) == set(Severity)
        assert set(summary.violations_by_category) == set(PolicyCategory)
        assert summary.to_dict()["violations_by_category"]["cost"] == 0
