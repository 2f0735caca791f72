"""Configuration loading, schema, profiles, and defaults."""

from vibegate.config.loader import LoadedConfig, load_policy_config
from vibegate.config.profiles import DEFAULT_PROFILE, PROFILES, get_profile, merge_configs
from vibegate.config.schema import (
    ConfigError,
    Override,
    PolicyConfig,
    RegressionPolicy,
    Severity,
    ThresholdConfig,
    severity_at_or_above,
)

__all__ = [
    "ConfigError",
    "DEFAULT_PROFILE",
    "LoadedConfig",
    "Override",
    "PROFILES",
    "PolicyConfig",
    "RegressionPolicy",
    "Severity",
    "ThresholdConfig",
    "get_profile",
    "load_policy_config",
    "merge_configs",
    "severity_at_or_above",
]
