"""
Observability for the GitOps Compliance Engine.
"""

from gitops_compliance.observability.logging import (
    EngineLogger,
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
    configure_logging_from_env,
    get_logger,
)

__all__ = [
    "EngineLogger",
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_logging",
    "configure_logging_from_env",
    "get_logger",
]
