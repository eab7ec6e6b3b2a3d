"""
Configuration for the GitOps Compliance Engine.
"""

from gitops_compliance.config.validation_config import (
    DEFAULT_CONFIG_FILES,
    ExcludeConfig,
    PoliciesConfig,
    SeverityConfig,
    ValidationConfig,
    find_config_file,
    load_config,
    load_config_from_env,
)

__all__ = [
    "DEFAULT_CONFIG_FILES",
    "ExcludeConfig",
    "PoliciesConfig",
    "SeverityConfig",
    "ValidationConfig",
    "find_config_file",
    "load_config",
    "load_config_from_env",
]
