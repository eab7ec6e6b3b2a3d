"""
Tests for PolicyEngine rule resolution and evaluation.

Tests cover:
- Resolution order: framework filter, enabled allow-list, disabled deny-list
- Custom policy merging and override by id
- Resource exclusion by file and resource globs
- Isolation of rules that raise or return unusable results
"""

from __future__ import annotations

import logging

import pytest

from gitops_compliance.config import ValidationConfig
from gitops_compliance.engine import PolicyEngine, RuleEvaluationError
from gitops_compliance.errors import PolicyLoadError
from gitops_compliance.models import PolicyCategory, Severity
from gitops_compliance.policies import CheckFailure, PolicyMetadata, PolicyRule


def _always_fail(resource):
    return CheckFailure(message=f"{resource.id} failed")


def _raise(resource):
    raise RuntimeError("boom")


def make_rule(
    rule_id: str,
    frameworks: tuple[str, ...] = (),
    enabled: bool = True,
    check=_always_fail,
    severity: Severity = Severity.WARNING,
) -> PolicyRule:
    """Build a rule that fires on every resource."""
    return PolicyRule(
        id=rule_id,
        name=rule_id.title(),
        description=f"{rule_id} rule",
        category=PolicyCategory.SECURITY,
        severity=severity,
        check=check,
        enabled=enabled,
        metadata=PolicyMetadata(frameworks=frameworks) if frameworks else None,
    )


@pytest.fixture
def catalog() -> list[PolicyRule]:
    """Return a small catalog with mixed framework mappings."""
    return [
        make_rule("alpha", frameworks=("HIPAA", "SOC2")),
        make_rule("beta", frameworks=("PCI-DSS",)),
        make_rule("gamma"),
        make_rule("delta", frameworks=("HIPAA",), enabled=False),
    ]


def _config(data: dict) -> ValidationConfig:
    return ValidationConfig.from_dict(data)


class TestResolution:
    """Tests for get_policies and get_enabled_policies."""

    def test_defaults_keep_catalog_order(self, catalog):
        """Test no configuration keeps every rule in order."""
        engine = PolicyEngine(builtin_policies=catalog)

        assert [p.id for p in engine.get_policies()] == ["alpha", "beta", "gamma", "delta"]
        assert [p.id for p in engine.get_enabled_policies()] == ["alpha", "beta", "gamma"]

    def test_builtin_catalog_is_default(self):
        """Test the built-in catalog is used when none is given."""
        engine = PolicyEngine()

        assert "required-tags" in [p.id for p in engine.get_policies()]
        assert "hipaa-phi-encryption" not in [p.id for p in engine.get_enabled_policies()]

    def test_enabled_allow_list_forces_enable(self, catalog):
        """Test listed rules run even when disabled by default, others are dropped."""
        engine = PolicyEngine(_config({"policies": {"enabled": ["delta", "beta"]}}), catalog)

        policies = engine.get_policies()

        assert [p.id for p in policies] == ["beta", "delta"]
        assert all(p.enabled for p in policies)

    def test_empty_allow_list_keeps_nothing(self, catalog):
        """Test an explicit empty allow-list disables every rule."""
        engine = PolicyEngine(_config({"policies": {"enabled": []}}), catalog)

        assert engine.get_policies() == ()

    def test_disabled_wins_over_enabled(self, catalog):
        """Test a rule in both lists is dropped."""
        engine = PolicyEngine(
            _config({"policies": {"enabled": ["alpha", "beta"], "disabled": ["alpha"]}}),
            catalog,
        )

        assert [p.id for p in engine.get_policies()] == ["beta"]
        assert [p.id for p in engine.get_enabled_policies()] == ["beta"]

    def test_disabled_rules_are_dropped(self):
        """Test deny-listed built-in rules are no longer listed."""
        engine = PolicyEngine(_config({"policies": {"disabled": ["naming-convention"]}}))

        assert "naming-convention" not in [p.id for p in engine.get_policies()]
        assert "required-tags" in [p.id for p in engine.get_policies()]

    def test_unknown_ids_are_ignored(self, catalog):
        """Test ids that match no rule have no effect."""
        engine = PolicyEngine(_config({"policies": {"disabled": ["nope"]}}), catalog)

        assert len(engine.get_enabled_policies()) == 3

    def test_framework_filter_is_case_insensitive_substring(self, catalog):
        """Test filter tokens match framework names loosely."""
        engine = PolicyEngine(builtin_policies=catalog)
        engine.set_framework_filter(["pci"])

        assert [p.id for p in engine.get_policies()] == ["beta"]

    def test_framework_filter_drops_unmapped_rules(self, catalog):
        """Test rules without frameworks never survive a filter."""
        engine = PolicyEngine(builtin_policies=catalog)
        engine.set_framework_filter(["HIPAA"])

        assert [p.id for p in engine.get_policies()] == ["alpha", "delta"]
        assert engine.framework_filter == ["HIPAA"]

    def test_framework_filter_from_config(self, catalog):
        """Test config frameworks set the filter at construction."""
        engine = PolicyEngine(_config({"frameworks": ["soc2"]}), catalog)

        assert [p.id for p in engine.get_policies()] == ["alpha"]

    def test_filter_applies_before_allow_list(self, catalog):
        """Test an allow-listed rule outside the framework is still dropped."""
        engine = PolicyEngine(
            _config({"policies": {"enabled": ["gamma", "delta"]}, "frameworks": ["HIPAA"]}),
            catalog,
        )

        assert [p.id for p in engine.get_policies()] == ["delta"]

    def test_clearing_filter_restores_catalog(self, catalog):
        """Test an empty filter removes filtering and invalidates the snapshot."""
        engine = PolicyEngine(builtin_policies=catalog)
        engine.set_framework_filter(["HIPAA"])
        assert len(engine.get_policies()) == 2

        engine.set_framework_filter(None)

        assert len(engine.get_policies()) == 4
        assert engine.framework_filter == []

    def test_resolution_does_not_mutate_catalog(self, catalog):
        """Test force-enabling builds copies instead of changing rules."""
        engine = PolicyEngine(_config({"policies": {"enabled": ["delta"]}}), catalog)
        engine.get_policies()

        assert catalog[3].enabled is False
        assert engine.catalog[3].enabled is False

    def test_get_available_frameworks(self, catalog):
        """Test framework names are sorted and de-duplicated."""
        engine = PolicyEngine(builtin_policies=catalog)

        assert engine.get_available_frameworks() == ["HIPAA", "PCI-DSS", "SOC2"]


class TestCustomPolicies:
    """Tests for merging custom policies into the catalog."""

    def test_custom_rule_replaces_builtin_in_place(self, catalog):
        """Test a custom rule with a known id takes the built-in's position."""
        engine = PolicyEngine(builtin_policies=catalog)
        replacement = make_rule("beta", severity=Severity.ERROR)

        engine.add_custom_policies([replacement, make_rule("epsilon")])

        ids = [p.id for p in engine.get_policies()]
        assert ids == ["alpha", "beta", "gamma", "delta", "epsilon"]
        assert engine.get_policies()[1].severity == Severity.ERROR

    def test_load_from_files(self, catalog, policies_dir):
        """Test rules load from module and document files in order."""
        engine = PolicyEngine(builtin_policies=catalog)

        loaded = engine.load_custom_policies_from_files([
            policies_dir / "custom_policies.py",
            policies_dir / "custom_policies.yaml",
        ])

        assert [p.id for p in loaded] == [
            "org-owner-team",
            "org-no-default-vpc",
            "org-approved-instance-types",
            "org-documentation-only",
        ]
        assert [p.id for p in engine.get_non_evaluable_policies()] == ["org-documentation-only"]
        assert "org-documentation-only" not in [p.id for p in engine.get_enabled_policies()]

    def test_failed_load_leaves_catalog_unchanged(self, catalog, policies_dir):
        """Test a bad file aborts the load before anything is merged."""
        engine = PolicyEngine(builtin_policies=catalog)

        with pytest.raises(PolicyLoadError):
            engine.load_custom_policies_from_files([
                policies_dir / "custom_policies.py",
                policies_dir / "invalid_severity.json",
            ])

        assert len(engine.catalog) == 4


class TestExclusion:
    """Tests for should_exclude_resource."""

    @pytest.fixture
    def engine(self, catalog) -> PolicyEngine:
        """Return an engine with file and resource exclusions."""
        config = _config({
            "exclude": {
                "files": ["**/test/**", "legacy.tf"],
                "resources": ["aws_cloudwatch_*", "tmp-*"],
            },
        })
        return PolicyEngine(config, catalog)

    def test_excluded_by_file(self, engine, make_resource):
        """Test file globs match the resource's file."""
        assert engine.should_exclude_resource(make_resource(file="modules/test/main.tf"))
        assert engine.should_exclude_resource(make_resource(file="legacy.tf"))

    def test_excluded_by_type(self, engine, make_resource):
        """Test resource globs match the type."""
        assert engine.should_exclude_resource(make_resource("aws_cloudwatch_log_group"))

    def test_excluded_by_id(self, engine, make_resource):
        """Test resource globs match the id."""
        assert engine.should_exclude_resource(make_resource(resource_id="tmp-cache"))

    def test_not_excluded(self, engine, make_resource):
        """Test other resources are kept."""
        assert not engine.should_exclude_resource(make_resource("aws_instance", "web"))

    def test_file_star_stays_in_one_directory(self, catalog, make_resource):
        """Test a single * in a file glob does not reach nested modules."""
        engine = PolicyEngine(_config({"exclude": {"files": ["infra/*.tf"]}}), catalog)

        assert engine.should_exclude_resource(make_resource(file="infra/main.tf"))
        assert not engine.should_exclude_resource(make_resource(file="infra/modules/vpc/main.tf"))

    def test_resource_globs_match_full_pulumi_type(self, catalog, make_resource):
        """Test resource globs are not matched against the tail of a type."""
        engine = PolicyEngine(_config({"exclude": {"resources": ["bucket:*"]}}), catalog)
        bucket = make_resource("aws:s3/bucket:Bucket", "assets", file="Pulumi.yaml")

        assert not engine.should_exclude_resource(bucket)

        engine = PolicyEngine(_config({"exclude": {"resources": ["aws:s3/*"]}}), catalog)
        assert engine.should_exclude_resource(bucket)

    def test_excluded_resources_are_not_evaluated(self, engine, make_resource):
        """Test evaluation skips excluded resources."""
        violations = engine.validate_resources([
            make_resource(resource_id="tmp-cache"),
            make_resource(resource_id="web"),
        ])

        assert {v.resource.id for v in violations} == {"web"}


class TestEvaluation:
    """Tests for evaluate_resources."""

    def test_resource_major_rule_minor_order(self, catalog, make_resource):
        """Test violations are grouped by resource, then ordered by rule."""
        engine = PolicyEngine(builtin_policies=catalog)

        violations = engine.validate_resources([
            make_resource(resource_id="one"),
            make_resource(resource_id="two"),
        ])

        assert [(v.resource.id, v.rule_id) for v in violations] == [
            ("one", "alpha"),
            ("one", "beta"),
            ("one", "gamma"),
            ("two", "alpha"),
            ("two", "beta"),
            ("two", "gamma"),
        ]

    def test_violation_carries_rule_identity(self, catalog, make_resource):
        """Test violations copy the rule's name, severity and category."""
        engine = PolicyEngine(builtin_policies=catalog[:1])

        violation = engine.validate_resources([make_resource(resource_id="web")])[0]

        assert violation.rule_name == "Alpha"
        assert violation.severity == Severity.WARNING
        assert violation.category == PolicyCategory.SECURITY
        assert violation.message == "web failed"

    def test_raising_rule_is_isolated(self, make_resource, caplog):
        """Test a raising rule is recorded and the remaining rules still run."""
        engine = PolicyEngine(builtin_policies=[
            make_rule("broken", check=_raise),
            make_rule("working"),
        ])

        with caplog.at_level(logging.WARNING, logger="gitops_compliance"):
            outcome = engine.evaluate_resources([make_resource(resource_id="web")])

        assert [v.rule_id for v in outcome.violations] == ["working"]
        assert outcome.errors == [
            RuleEvaluationError(
                rule_id="broken",
                resource_id="web",
                resource_type="aws_instance",
                file="main.tf",
                error="boom",
            )
        ]
        assert "Policy broken failed on aws_instance.web: boom" in caplog.text

    def test_unsupported_result_is_an_error(self, make_resource):
        """Test a check returning an unknown shape is recorded as an error."""
        engine = PolicyEngine(builtin_policies=[make_rule("odd", check=lambda r: 42)])

        outcome = engine.evaluate_resources([make_resource()])

        assert outcome.violations == []
        assert "unsupported result type int" in outcome.errors[0].error

    def test_mapping_result_is_normalized(self, make_resource):
        """Test mapping results become violations with rule defaults."""
        rule = make_rule(
            "mapped",
            check=lambda r: {"message": "custom", "severity": "error", "category": "bogus"},
        )
        engine = PolicyEngine(builtin_policies=[rule])

        violation = engine.validate_resources([make_resource()])[0]

        assert violation.message == "custom"
        assert violation.severity == Severity.ERROR
        assert violation.category == PolicyCategory.SECURITY

    def test_explicit_policy_list(self, catalog, make_resource):
        """Test an explicit policy list overrides the engine's own."""
        engine = PolicyEngine(builtin_policies=catalog)

        violations = engine.validate_resources([make_resource()], policies=catalog[2:])

        assert [v.rule_id for v in violations] == ["gamma"]

    def test_evaluation_is_deterministic(self, web_server, public_bucket):
        """Test repeated runs produce identical results."""
        engine = PolicyEngine()
        resources = [web_server, public_bucket]

        first = engine.validate_resources(resources)
        second = engine.validate_resources(resources)

        assert first == second
