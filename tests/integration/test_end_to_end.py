"""
Integration tests for GitOps Compliance Engine end-to-end workflows.

Tests cover:
- Validating a mixed project tree through the CLI
- Config files with exclusions, custom policies and framework filters
- Report generation from a validation run
- Library use without the CLI
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from gitops_compliance import (
    PolicyEngine,
    Severity,
    ValidationConfig,
    ValidationRunner,
    parse_iac_file,
)
from gitops_compliance.cli import main
from gitops_compliance.utils import find_iac_files


@pytest.fixture
def project(tmp_path, fixtures_dir, monkeypatch) -> Path:
    """Copy the fixture IaC into a project tree and work from its root."""
    root = tmp_path / "project"
    (root / "infra").mkdir(parents=True)
    (root / "infra" / "test").mkdir()
    (root / "stacks").mkdir()
    (root / "policies").mkdir()

    shutil.copy(fixtures_dir / "terraform" / "main.tf", root / "infra" / "main.tf")
    shutil.copy(fixtures_dir / "terraform" / "compliant.tf", root / "infra" / "logs.tf")
    shutil.copy(fixtures_dir / "terraform" / "main.tf", root / "infra" / "test" / "scratch.tf")
    shutil.copy(fixtures_dir / "pulumi" / "Pulumi.yaml", root / "Pulumi.yaml")
    shutil.copy(
        fixtures_dir / "cloudformation" / "stack.template.yaml",
        root / "stacks" / "app.template.yaml",
    )
    shutil.copy(
        fixtures_dir / "policies" / "custom_policies.yaml",
        root / "policies" / "org.yaml",
    )

    monkeypatch.chdir(root)
    return root


class TestTerraformWorkflow:
    """End-to-end Terraform validation through the CLI."""

    def test_directory_scan(self, project, capsys):
        """Test every Terraform file in the tree is validated."""
        exit_code = main(["validate", "infra"])

        output = capsys.readouterr().out
        assert exit_code == 1
        assert "Found 3 file(s) to validate..." in output
        assert "Files scanned:     3" in output
        assert "Total violations:  10" in output

    def test_config_file_is_discovered(self, project, capsys):
        """Test a project config excludes files and loads custom policies."""
        (project / ".gce.json").write_text(json.dumps({
            "exclude": {"files": ["**/test/**"], "resources": ["database"]},
            "customPolicies": ["policies/org.yaml"],
            "severity": {"failOn": "warning"},
        }))

        exit_code = main(["validate", "infra"])

        output = capsys.readouterr().out
        assert exit_code == 1
        assert "Found 2 file(s) to validate..." in output
        assert "Loaded 2 custom policies from 1 file(s)" in output
        assert "Instance type is not on the approved list" in output
        assert '"database"' not in output

    def test_disabling_the_only_error_passes(self, project, capsys):
        """Test the run passes once the error-level rule is disabled."""
        (project / ".gce.yaml").write_text(
            "exclude:\n  files: ['**/test/**']\npolicies:\n  disabled: [no-public-access]\n"
        )

        assert main(["validate", "infra"]) == 0


class TestMultiFormatWorkflow:
    """End-to-end validation across IaC formats."""

    def test_auto_detection(self, project, tmp_path, capsys):
        """Test -f auto picks up every format in the tree."""
        config = tmp_path / "auto.yaml"
        config.write_text("exclude:\n  files: ['**/test/**', 'policies/*']\n")

        exit_code = main(["validate", ".", "-f", "auto", "--no-summary", "-c", str(config)])

        output = capsys.readouterr().out
        assert exit_code == 1
        assert "Found 4 file(s) to validate..." in output
        assert "Pulumi.yaml (2 resources)" in output
        assert "app.template.yaml (2 resources)" in output

    def test_report_over_formats(self, project, capsys):
        """Test a JSON report for a CloudFormation stack."""
        main(["report", "stacks", "--iac-format", "cloudformation", "--format", "json"])

        report = json.loads(capsys.readouterr().out)
        assert report["total_files"] == 1
        assert report["violations_by_severity"] == {"error": 2, "warning": 2, "info": 2}
        lines = {
            v["resource"]["id"]: v["resource"]["location"]["line"]
            for v in report["results"][0]["violations"]
        }
        assert lines == {"AppDatabase": 10, "AppRole": 24}


class TestComplianceFrameworks:
    """Compliance rules enabled through configuration."""

    def test_hipaa_rules_on_tagged_resources(self, tmp_path, capsys, monkeypatch):
        """Test enabling HIPAA rules flags unencrypted PHI storage."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "phi.tf").write_text(
            'resource "aws_db_instance" "records" {\n'
            '  storage_encrypted       = false\n'
            '  backup_retention_period = 3\n'
            '  tags = {\n'
            '    Environment        = "prod"\n'
            '    Owner              = "records-team"\n'
            '    Project            = "ehr"\n'
            '    DataClassification = "PHI"\n'
            '  }\n'
            '}\n'
        )
        (tmp_path / ".gce.json").write_text(json.dumps({
            "policies": {"enabled": [
                "hipaa-phi-encryption",
                "hipaa-backup-retention",
                "encryption-at-rest",
            ]},
        }))

        exit_code = main(["validate", "phi.tf", "--framework", "HIPAA"])

        output = capsys.readouterr().out
        assert exit_code == 1
        assert "Backup retention is 3 days; HIPAA requires at least 7 days" in output
        assert "Total violations:  3" in output


class TestLibraryUsage:
    """Using the engine as a library."""

    def test_parse_and_validate(self, fixtures_dir):
        """Test parsing and validating without the runner."""
        result = parse_iac_file(fixtures_dir / "terraform" / "main.tf")

        violations = PolicyEngine().validate_resources(result.resources)

        assert len(violations) == 5

    def test_runner_with_config(self, fixtures_dir):
        """Test the runner over discovered files with a config object."""
        config = ValidationConfig.from_dict({
            "exclude": {"resources": ["aws_s3_*"]},
            "severity": {"failOn": "info"},
        })
        files = find_iac_files(fixtures_dir / "terraform", exclude=["broken.tf"])

        summary = ValidationRunner(PolicyEngine(config)).run(
            files, "terraform", fail_on=config.severity.fail_on
        )

        assert summary.total_files == 2
        assert summary.total_violations == 3
        assert summary.violations_by_severity[Severity.INFO] == 0
        assert summary.passed is False
