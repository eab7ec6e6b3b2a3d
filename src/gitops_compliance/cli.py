"""
GitOps Compliance Engine CLI entry point.

Exit codes:
    0: validation passed (or the command succeeded)
    1: validation ran and failed the severity threshold
    2: setup error (configuration, input, custom policies, parsing)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from gitops_compliance import __version__
from gitops_compliance.cli_display import (
    display_error,
    display_info,
    display_results,
    display_success,
    format_table,
)
from gitops_compliance.config import (
    ValidationConfig,
    find_config_file,
    load_config,
    load_config_from_env,
)
from gitops_compliance.engine import PolicyEngine, ValidationRunner
from gitops_compliance.errors import ComplianceEngineError, format_error_message, suggest_fix
from gitops_compliance.models import IaCFormat, PolicyCategory, Severity, ValidationSummary
from gitops_compliance.observability import configure_logging_from_env
from gitops_compliance.policies import describe_framework
from gitops_compliance.reporting import ReportFormat, get_reporter
from gitops_compliance.utils import IaCFileCache, find_iac_files

logger = logging.getLogger(__name__)

IAC_FORMAT_CHOICES = [f.value for f in IaCFormat] + ["auto"]
SEVERITY_CHOICES = [s.value for s in Severity]
REPORT_FORMAT_CHOICES = [f.value for f in ReportFormat]


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to IaC files or directory (default: current directory)",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to config file (JSON or YAML)",
    )


def _add_policy_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-p",
        "--policies",
        nargs="+",
        metavar="FILE",
        default=[],
        help="Load custom policy files (.py, .json, .yaml)",
    )
    parser.add_argument(
        "--framework",
        nargs="+",
        metavar="NAME",
        help="Only run rules mapped to these compliance frameworks",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="gce",
        description="GitOps Compliance Engine - Validate IaC before deployment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"gce {__version__}",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate IaC files against policies",
    )
    _add_common_arguments(validate_parser)
    validate_parser.add_argument(
        "-f",
        "--format",
        choices=IAC_FORMAT_CHOICES,
        default="terraform",
        help="IaC format (default: terraform, auto detects per file)",
    )
    validate_parser.add_argument(
        "-s",
        "--severity",
        choices=SEVERITY_CHOICES,
        help="Fail on severity level (default: config value or error)",
    )
    validate_parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop after the first file with violations",
    )
    validate_parser.add_argument(
        "--no-summary",
        action="store_true",
        help="Skip summary output",
    )
    validate_parser.add_argument(
        "--show-metadata",
        action="store_true",
        help="Show policy rationale and references for violations",
    )
    validate_parser.add_argument(
        "--cache",
        action="store_true",
        help="Reuse parse results for unchanged files",
    )
    _add_policy_arguments(validate_parser)

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Quick policy check (validate with the error threshold)",
    )
    _add_common_arguments(check_parser)
    check_parser.add_argument(
        "-f",
        "--format",
        choices=IAC_FORMAT_CHOICES,
        default="terraform",
        help="IaC format (default: terraform)",
    )

    # report command
    report_parser = subparsers.add_parser(
        "report",
        help="Generate compliance report",
    )
    _add_common_arguments(report_parser)
    report_parser.add_argument(
        "-o",
        "--output",
        help="Output file path (default: stdout)",
    )
    report_parser.add_argument(
        "--format",
        choices=REPORT_FORMAT_CHOICES,
        default="markdown",
        help="Report format (default: markdown)",
    )
    report_parser.add_argument(
        "--iac-format",
        choices=IAC_FORMAT_CHOICES,
        default="terraform",
        help="IaC format (default: terraform)",
    )
    _add_policy_arguments(report_parser)

    # policies command
    policies_parser = subparsers.add_parser(
        "policies",
        help="List available policies",
    )
    policies_parser.add_argument(
        "-c",
        "--config",
        help="Path to config file (JSON or YAML)",
    )
    policies_parser.add_argument(
        "--category",
        choices=[c.value for c in PolicyCategory],
        help="Filter by category",
    )
    policies_parser.add_argument(
        "--severity",
        choices=SEVERITY_CHOICES,
        help="Filter by severity",
    )
    policies_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    _add_policy_arguments(policies_parser)

    # frameworks command
    frameworks_parser = subparsers.add_parser(
        "frameworks",
        help="List compliance frameworks referenced by policies",
    )
    frameworks_parser.add_argument(
        "-p",
        "--policies",
        nargs="+",
        metavar="FILE",
        default=[],
        help="Load custom policy files (.py, .json, .yaml)",
    )

    return parser


def _iac_format(value: str | None) -> IaCFormat | None:
    if value is None or value == "auto":
        return None
    return IaCFormat.from_string(value)


def _load_config(args: argparse.Namespace) -> ValidationConfig:
    """Load the explicit config file, or the env/discovered one."""
    config_path = getattr(args, "config", None)
    if config_path:
        return load_config(config_path)

    path = Path(getattr(args, "path", "."))
    search_dir = path if path.is_dir() else path.parent
    discovered = find_config_file(search_dir) or find_config_file(".")
    if discovered:
        logger.info(f"Using config file {discovered}")
    return load_config_from_env(default_config_file=discovered)


def _build_engine(config: ValidationConfig, args: argparse.Namespace) -> PolicyEngine:
    """Create an engine with custom policies and the framework filter applied."""
    engine = PolicyEngine(config)

    policy_files = list(config.custom_policies) + list(getattr(args, "policies", None) or [])
    if policy_files:
        loaded = engine.load_custom_policies_from_files(policy_files)
        display_info(f"Loaded {len(loaded)} custom policies from {len(policy_files)} file(s)")
        for policy in engine.get_non_evaluable_policies():
            display_info(
                f"Policy {policy.id} has no check and will not be evaluated"
                + (f" ({policy.source})" if policy.source else "")
            )

    frameworks = getattr(args, "framework", None)
    if frameworks:
        engine.set_framework_filter(frameworks)
    if engine.framework_filter:
        display_info(f"Filtering policies by frameworks: {', '.join(engine.framework_filter)}")

    return engine


def _run_validation(
    args: argparse.Namespace,
    iac_format: IaCFormat | None,
    fail_on: Severity | None = None,
    fail_fast: bool = False,
    use_cache: bool = False,
    announce: bool = True,
) -> tuple[PolicyEngine, ValidationSummary]:
    config = _load_config(args)
    engine = _build_engine(config, args)
    files = find_iac_files(args.path, iac_format, exclude=config.exclude.files)

    if announce:
        print(f"Found {len(files)} file(s) to validate...")

    runner = ValidationRunner(engine, cache=IaCFileCache() if use_cache else None)
    summary = runner.run(
        files,
        iac_format,
        fail_on=fail_on or config.severity.fail_on or Severity.ERROR,
        fail_fast=fail_fast,
    )

    if runner.errors:
        logger.warning(f"{len(runner.errors)} rule evaluation(s) failed during validation")

    return engine, summary


def cmd_validate(args: argparse.Namespace) -> int:
    """
    Validate IaC files against policies.

    Returns:
        0 if the run passed the threshold, 1 otherwise
    """
    fail_on = Severity.from_string(args.severity) if args.severity else None
    engine, summary = _run_validation(
        args,
        _iac_format(args.format),
        fail_on=fail_on,
        fail_fast=args.fail_fast,
        use_cache=args.cache,
    )

    display_results(
        summary,
        show_summary=not args.no_summary,
        show_metadata=args.show_metadata or args.verbose > 0,
        policies={p.id: p for p in engine.catalog},
    )
    return 0 if summary.passed else 1


def cmd_check(args: argparse.Namespace) -> int:
    """Quick check: validate with the error threshold and a summary."""
    _, summary = _run_validation(args, _iac_format(args.format), fail_on=Severity.ERROR)
    display_results(summary, show_summary=True)
    return 0 if summary.passed else 1


def cmd_report(args: argparse.Namespace) -> int:
    """
    Generate a compliance report.

    The report goes to stdout unless --output is given.

    Returns:
        Exit code
    """
    reporter = get_reporter(args.format)
    _, summary = _run_validation(args, _iac_format(args.iac_format), announce=False)

    if args.output:
        output_path = reporter.write(summary, args.output)
        display_success(f"Report saved to {output_path}")
    else:
        print(reporter.render(summary).rstrip("\n"))

    return 0


def cmd_policies(args: argparse.Namespace) -> int:
    """
    List resolved policies with optional filters.

    Returns:
        Exit code
    """
    config = load_config(args.config) if args.config else load_config_from_env()
    engine = _build_engine(config, args)

    policies = list(engine.get_policies())
    if args.category:
        category = PolicyCategory.from_string(args.category)
        policies = [p for p in policies if p.category == category]
    if args.severity:
        severity = Severity.from_string(args.severity)
        policies = [p for p in policies if p.severity == severity]

    if args.format == "json":
        print(json.dumps([p.to_dict() for p in policies], indent=2))
        return 0

    if not policies:
        print("No policies found matching criteria.")
        return 0

    rows = [
        {
            "id": p.id,
            "name": p.name,
            "category": p.category.value,
            "severity": p.severity.value,
            "enabled": "yes" if p.enabled else "no",
            "frameworks": ", ".join(p.frameworks),
        }
        for p in policies
    ]
    print(format_table(rows))
    print(f"\n{len(policies)} policies")
    return 0


def cmd_frameworks(args: argparse.Namespace) -> int:
    """List compliance frameworks and how many rules map to each."""
    engine = PolicyEngine()
    if args.policies:
        engine.load_custom_policies_from_files(args.policies)

    frameworks = engine.get_available_frameworks()
    if not frameworks:
        print("No compliance frameworks found.")
        return 0

    catalog = engine.catalog
    rows = [
        {
            "framework": name,
            "policies": sum(1 for p in catalog if name in p.frameworks),
            "description": describe_framework(name),
        }
        for name in frameworks
    ]
    print(format_table(rows))
    print("\nUse 'gce validate --framework <name>' to run only these rules.")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging_from_env(args.verbose)
    except ValueError as e:
        display_error(str(e))
        return 2

    if args.command is None:
        parser.print_help()
        return 0

    # Route to command handlers
    command_handlers = {
        "validate": cmd_validate,
        "check": cmd_check,
        "report": cmd_report,
        "policies": cmd_policies,
        "frameworks": cmd_frameworks,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}")
        return 2

    try:
        return handler(args)
    except ComplianceEngineError as e:
        logger.debug("Command failed", exc_info=True)
        display_error(format_error_message(e))
        suggestion = suggest_fix(e)
        if suggestion:
            print(f"\n💡 Suggestion: {suggestion}\n")
        return 2


if __name__ == "__main__":
    sys.exit(main())
