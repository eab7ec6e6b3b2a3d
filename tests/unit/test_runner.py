"""
Tests for ValidationRunner.
"""

from __future__ import annotations

import pytest

from gitops_compliance.engine import PolicyEngine, ValidationRunner
from gitops_compliance.errors import InputError, ParseError
from gitops_compliance.models import IaCFormat, PolicyCategory, Severity
from gitops_compliance.policies import PolicyRule
from gitops_compliance.utils.cache import IaCFileCache


@pytest.fixture
def main_tf(terraform_dir) -> str:
    """Return the Terraform fixture with violations."""
    return str(terraform_dir / "main.tf")


@pytest.fixture
def compliant_tf(terraform_dir) -> str:
    """Return the compliant Terraform fixture."""
    return str(terraform_dir / "compliant.tf")


@pytest.fixture
def runner() -> ValidationRunner:
    """Return a runner over the default catalog."""
    return ValidationRunner(PolicyEngine(), max_workers=4)


class TestRun:
    """Tests for ValidationRunner.run."""

    def test_terraform_fixture(self, runner, main_tf):
        """Test the Terraform fixture yields the expected violations."""
        summary = runner.run([main_tf], IaCFormat.TERRAFORM)

        result = summary.results[0]
        assert result.resource_count == 4
        assert [(v.resource.id, v.rule_id) for v in result.violations] == [
            ("web", "required-tags"),
            ("web", "cost-large-instance"),
            ("PublicBucket", "required-tags"),
            ("PublicBucket", "naming-convention"),
            ("database", "no-public-access"),
        ]
        assert summary.violations_by_severity == {
            Severity.ERROR: 1,
            Severity.WARNING: 3,
            Severity.INFO: 1,
        }
        assert summary.passed is False

    def test_locations_point_at_declarations(self, runner, main_tf):
        """Test violations carry the file and declaration line."""
        summary = runner.run([main_tf], "terraform")

        locations = {v.resource.id: v.resource.location for v in summary.results[0].violations}
        assert locations["web"].file == main_tf
        assert locations["web"].line == 10
        assert locations["database"].line == 23

    def test_results_keep_input_order(self, runner, main_tf, compliant_tf):
        """Test results are aggregated in input order, not completion order."""
        summary = runner.run([compliant_tf, main_tf, compliant_tf], "terraform")

        assert [r.file for r in summary.results] == [compliant_tf, main_tf, compliant_tf]
        assert summary.results[0].passed is True
        assert summary.total_files == 3
        assert summary.total_resources == 6

    def test_fail_threshold(self, compliant_tf):
        """Test warnings only fail the run at a warning threshold."""
        engine = PolicyEngine(builtin_policies=[PolicyRule(
            id="warn-everything",
            name="Warn Everything",
            description="Warns on every resource",
            category=PolicyCategory.COST,
            severity=Severity.WARNING,
            check=lambda r: {"message": "warned"},
        )])
        runner = ValidationRunner(engine)

        assert runner.run([compliant_tf], "terraform", fail_on=Severity.ERROR).passed is True
        assert runner.run([compliant_tf], "terraform", fail_on="warning").passed is False

    def test_fail_fast_stops_aggregation(self, runner, main_tf, compliant_tf):
        """Test fail-fast stops after the first file with violations."""
        summary = runner.run([compliant_tf, main_tf, compliant_tf], "terraform", fail_fast=True)

        assert [r.file for r in summary.results] == [compliant_tf, main_tf]
        assert summary.total_files == 2

    def test_empty_file_list(self, runner):
        """Test an empty run passes."""
        summary = runner.run([])

        assert summary.total_files == 0
        assert summary.passed is True

    def test_format_detected_per_file(self, runner, fixtures_dir):
        """Test files are parsed by detected format when none is given."""
        summary = runner.run([
            str(fixtures_dir / "pulumi" / "Pulumi.yaml"),
            str(fixtures_dir / "cloudformation" / "stack.template.yaml"),
        ])

        assert [r.format for r in summary.results] == [
            IaCFormat.PULUMI,
            IaCFormat.CLOUDFORMATION,
        ]
        assert summary.total_violations == 9

    def test_unsupported_format(self, runner, main_tf):
        """Test format names are validated."""
        with pytest.raises(InputError, match="Unsupported IaC format: bicep"):
            runner.run([main_tf], "bicep")

    def test_parse_error_aborts(self, runner, terraform_dir, compliant_tf):
        """Test an unparseable file aborts the run."""
        with pytest.raises(ParseError) as exc_info:
            runner.run([compliant_tf, str(terraform_dir / "broken.tf")], "terraform")

        assert exc_info.value.file.endswith("broken.tf")

    def test_missing_file(self, runner, tmp_path):
        """Test unreadable files surface as parse errors."""
        with pytest.raises(ParseError, match="Failed to read file"):
            runner.run([str(tmp_path / "missing.tf")], "terraform")

    def test_rule_errors_are_collected(self, compliant_tf):
        """Test rule failures are exposed on the runner, not raised."""
        def explode(resource):
            raise KeyError("missing")

        engine = PolicyEngine(builtin_policies=[PolicyRule(
            id="explodes",
            name="Explodes",
            description="Always raises",
            category=PolicyCategory.SECURITY,
            severity=Severity.ERROR,
            check=explode,
        )])
        runner = ValidationRunner(engine)

        summary = runner.run([compliant_tf], "terraform")

        assert summary.passed is True
        assert [e.rule_id for e in runner.errors] == ["explodes"]
        assert runner.errors[0].resource_id == "logs"


class TestRunWithCache:
    """Tests for parse caching in the runner."""

    def test_second_run_uses_cache(self, main_tf, tmp_path, monkeypatch):
        """Test an unchanged file is not parsed twice."""
        cache = IaCFileCache(str(tmp_path / "cache"))
        runner = ValidationRunner(PolicyEngine(), cache=cache)

        first = runner.run([main_tf], "terraform")
        assert cache.get_stats()["file_count"] == 1

        def fail_parse(*args, **kwargs):
            raise AssertionError("file was parsed again")

        monkeypatch.setattr("gitops_compliance.engine.runner.parse_iac_file", fail_parse)

        second = runner.run([main_tf], "terraform")

        assert second.results[0].violations == first.results[0].violations
        assert second.total_resources == first.total_resources

    def test_changed_file_is_reparsed(self, tmp_path):
        """Test editing a file misses the old cache entry."""
        source = tmp_path / "main.tf"
        source.write_text('resource "aws_instance" "one" {\n  instance_type = "t3.micro"\n}\n')
        cache = IaCFileCache(str(tmp_path / "cache"))
        runner = ValidationRunner(PolicyEngine(), cache=cache)

        runner.run([str(source)], "terraform")
        source.write_text('resource "aws_instance" "two" {\n  instance_type = "t3.micro"\n}\n')
        summary = runner.run([str(source)], "terraform")

        assert {v.resource.id for v in summary.results[0].violations} == {"two"}
        assert cache.get_stats()["file_count"] == 2

    def test_disabled_cache_is_bypassed(self, main_tf, tmp_path):
        """Test a disabled cache writes nothing."""
        cache = IaCFileCache(str(tmp_path / "cache"), enabled=False)

        ValidationRunner(PolicyEngine(), cache=cache).run([main_tf], "terraform")

        assert cache.get_stats()["file_count"] == 0
