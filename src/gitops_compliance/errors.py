"""
Error types for the GitOps Compliance Engine.

Setup problems (bad configuration, unreadable input, malformed custom
policy files, unparseable IaC) are raised as subclasses of
ComplianceEngineError so the CLI can report them uniformly and exit with
a distinct code. Rule evaluation failures are never raised; the engine
records them as diagnostics instead.
"""

from __future__ import annotations

from typing import Any


class ComplianceEngineError(Exception):
    """Base class for all engine errors."""


class ValidationError(ComplianceEngineError):
    """A value failed a structural or semantic check."""

    def __init__(
        self,
        message: str,
        code: str,
        details: Any = None,
    ) -> None:
        """
        Initialize the error.

        Args:
            message: Error description
            code: Short machine-readable error code
            details: Optional structured context
        """
        self.code = code
        self.details = details
        super().__init__(message)


class ParseError(ComplianceEngineError):
    """An IaC file could not be parsed."""

    def __init__(self, message: str, file: str, line: int | None = None) -> None:
        self.file = file
        self.line = line
        super().__init__(message)


class ConfigError(ComplianceEngineError):
    """A configuration file or option is invalid."""

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        super().__init__(message)


class PolicyLoadError(ConfigError):
    """A custom policy source could not be loaded or failed validation."""

    def __init__(self, message: str, source_path: str | None = None) -> None:
        self.source_path = source_path
        if source_path:
            message = f"{source_path}: {message}"
        super().__init__(message, config_path=source_path)


class InputError(ComplianceEngineError):
    """The requested input path, format or option cannot be used."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


def format_error_message(error: BaseException) -> str:
    """
    Format an error for display to the user.

    Args:
        error: The error to format

    Returns:
        One or more lines describing the error
    """
    if isinstance(error, ValidationError):
        message = f"Validation Error [{error.code}]: {error}"
        if error.details is not None:
            message += f"\nDetails: {error.details}"
        return message

    if isinstance(error, ParseError):
        location = error.file
        if error.line is not None:
            location += f" at line {error.line}"
        return f"Parse Error in {location}: {error}"

    if isinstance(error, PolicyLoadError):
        return f"Policy Error: {error}"

    if isinstance(error, ConfigError):
        if error.config_path:
            return f"Config Error in {error.config_path}: {error}"
        return f"Config Error: {error}"

    if isinstance(error, InputError):
        return f"Input Error: {error}"

    return f"Error: {error}"


_SUGGESTIONS: list[tuple[tuple[str, ...], str]] = [
    (
        ("no such file", "enoent", "does not exist"),
        "Check that the file path is correct and the file exists",
    ),
    (
        ("permission denied", "eacces"),
        "Check file permissions and ensure you have read access",
    ),
    (
        ("invalid json", "expecting value", "jsondecodeerror"),
        "Verify the JSON syntax is correct (use a JSON validator)",
    ),
    (
        ("no iac files found", "files found in"),
        "Ensure you are in the correct directory and the files have the "
        "expected extensions (.tf, .yaml, etc.)",
    ),
    (
        ("unsupported iac format",),
        "Supported formats are: terraform, pulumi, cloudformation",
    ),
    (
        ("unsupported policy file format",),
        "Custom policies must be .py, .json, .yaml or .yml files",
    ),
    (
        ("could not determine a constructor", "unknown tag"),
        "Use the long form of CloudFormation intrinsic functions "
        "(e.g. Fn::GetAtt instead of !GetAtt) or check the tag spelling",
    ),
]


def suggest_fix(error: BaseException) -> str | None:
    """
    Suggest a fix for common errors.

    Args:
        error: The error to inspect

    Returns:
        A one-line suggestion, or None when nothing applies
    """
    text = str(error).lower()
    for needles, suggestion in _SUGGESTIONS:
        if any(needle in text for needle in needles):
            return suggestion
    return None
