"""
Tests for error types, message formatting and fix suggestions.
"""

from __future__ import annotations

import pytest

from gitops_compliance.errors import (
    ComplianceEngineError,
    ConfigError,
    InputError,
    ParseError,
    PolicyLoadError,
    ValidationError,
    format_error_message,
    suggest_fix,
)


class TestErrorHierarchy:
    """Tests for the error class hierarchy."""

    @pytest.mark.parametrize("error", [
        ValidationError("bad", "E1"),
        ParseError("bad", "main.tf"),
        ConfigError("bad", "gce.json"),
        PolicyLoadError("bad", "custom.py"),
        InputError("bad", "."),
    ])
    def test_all_errors_share_base(self, error):
        """Test every error derives from ComplianceEngineError."""
        assert isinstance(error, ComplianceEngineError)

    def test_policy_load_error_is_config_error(self):
        """Test custom policy errors are configuration errors."""
        assert isinstance(PolicyLoadError("bad", "x.json"), ConfigError)


class TestFormatErrorMessage:
    """Tests for format_error_message."""

    def test_parse_error_with_line(self):
        """Test parse errors include file and line."""
        message = format_error_message(ParseError("Unexpected token", "main.tf", line=12))
        assert message == "Parse Error in main.tf at line 12: Unexpected token"

    def test_parse_error_without_line(self):
        """Test parse errors without a line."""
        assert format_error_message(ParseError("Oops", "a.tf")) == "Parse Error in a.tf: Oops"

    def test_config_error(self):
        """Test config errors name the config file."""
        message = format_error_message(ConfigError("Invalid JSON", "gce.json"))
        assert message == "Config Error in gce.json: Invalid JSON"

    def test_policy_load_error(self):
        """Test policy load errors."""
        message = format_error_message(PolicyLoadError("Policy file not found", "p.json"))
        assert message.startswith("Policy Error:")

    def test_validation_error_with_details(self):
        """Test validation errors include code and details."""
        message = format_error_message(ValidationError("Too many", "LIMIT", {"max": 3}))
        assert "Validation Error [LIMIT]: Too many" in message
        assert "Details: {'max': 3}" in message

    def test_generic_exception(self):
        """Test unknown exceptions fall back to a plain message."""
        assert format_error_message(RuntimeError("boom")) == "Error: boom"


class TestSuggestFix:
    """Tests for suggest_fix."""

    def test_missing_path(self):
        """Test missing paths suggest checking the path."""
        suggestion = suggest_fix(InputError("Path does not exist: ./infra", "./infra"))
        assert suggestion == "Check that the file path is correct and the file exists"

    def test_no_files_found(self):
        """Test empty directories suggest checking extensions."""
        suggestion = suggest_fix(InputError("No terraform files found in ."))
        assert suggestion is not None
        assert ".tf" in suggestion

    def test_unsupported_format(self):
        """Test unsupported formats list supported ones."""
        suggestion = suggest_fix(InputError("Unsupported IaC format: bicep"))
        assert suggestion == "Supported formats are: terraform, pulumi, cloudformation"

    def test_invalid_json(self):
        """Test JSON errors suggest a validator."""
        suggestion = suggest_fix(ConfigError("Invalid JSON: Expecting value", "gce.json"))
        assert "JSON" in suggestion

    def test_no_suggestion(self):
        """Test unrelated errors have no suggestion."""
        assert suggest_fix(RuntimeError("something else")) is None
