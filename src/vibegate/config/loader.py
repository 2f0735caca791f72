"""Load and merge policy configuration from .vibegate.toml, CLI flags, and env vars."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import-not-found]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

from vibegate.config.profiles import DEFAULT_PROFILE, PROFILES, get_profile, merge_configs
from vibegate.config.schema import (
    SEVERITY_ORDER,
    ConfigError,
    Override,
    PolicyConfig,
    RegressionPolicy,
    ThresholdConfig,
    section_fields,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".vibegate.toml"


@dataclass(frozen=True)
class LoadedConfig:
    """Resolved policy plus the waivers file it points at, if any."""

    policy: PolicyConfig
    waivers_path: Optional[Path] = None
    source: Optional[Path] = None


def find_config_file(repo_root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = repo_root / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _table(raw: Dict[str, Any], section: str) -> Dict[str, Any]:
    value = raw.get(section, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{section}] must be a table")
    return value


def _build_section(raw: Dict[str, Any], cls: type, section: str) -> Dict[str, Any]:
    """Partial section dict from a TOML table, ignoring unknown keys."""
    valid_fields = section_fields(cls)
    return {k: v for k, v in _table(raw, section).items() if k in valid_fields}


def _build_overrides(raw: Dict[str, Any]) -> List[Override]:
    entries = raw.get("overrides", [])
    if not isinstance(entries, list):
        raise ConfigError("overrides must be an array of tables ([[overrides]])")
    overrides: List[Override] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigError("each [[overrides]] entry must be a table")
        overrides.append(Override.from_dict(entry))
    return overrides


def _env_overrides() -> Dict[str, Any]:
    """Collect CI_VIBEGATE_* overrides. Invalid values are ignored."""
    thresholds: Dict[str, Any] = {}
    if (val := os.environ.get("CI_VIBEGATE_FAIL_ON")) in SEVERITY_ORDER:
        thresholds["fail_on_severity"] = val
    if (val := os.environ.get("CI_VIBEGATE_WARN_ON")) in SEVERITY_ORDER:
        thresholds["warn_on_severity"] = val
    if val := os.environ.get("CI_VIBEGATE_MAX_FINDINGS"):
        try:
            if int(val) >= 0:
                thresholds["max_findings"] = int(val)
        except ValueError:
            pass

    env: Dict[str, Any] = {"thresholds": thresholds}
    if (val := os.environ.get("CI_VIBEGATE_PROFILE")) in PROFILES:
        env["profile"] = val
    if val := os.environ.get("CI_VIBEGATE_WAIVERS"):
        env["waivers"] = val
    return env


def load_policy_config(
    repo_root: Path,
    config_override: Optional[str] = None,
    profile: Optional[str] = None,
) -> LoadedConfig:
    """Load, validate, and return the effective policy.

    Profile precedence: *profile* argument, ``CI_VIBEGATE_PROFILE``,
    ``[policy] profile``, then the default profile. Threshold env vars are
    applied over the file's ``[thresholds]``.
    """
    config_path = find_config_file(repo_root, config_override)
    raw = _parse_toml(config_path) if config_path else {}
    env = _env_overrides()

    policy_table = _table(raw, "policy")
    profile_name = profile or env.get("profile") or policy_table.get("profile") or DEFAULT_PROFILE
    if not isinstance(profile_name, str):
        raise ConfigError(f"[policy] profile must be a string, got {profile_name!r}")
    base = get_profile(profile_name)

    partial = {
        "thresholds": _build_section(raw, ThresholdConfig, "thresholds"),
        "overrides": _build_overrides(raw),
        "regression": _build_section(raw, RegressionPolicy, "regression"),
    }
    policy = merge_configs(merge_configs(base, partial), {"thresholds": env["thresholds"]})

    waivers = env.get("waivers") or policy_table.get("waivers")
    waivers_path: Optional[Path] = None
    if waivers:
        waivers_path = Path(waivers)
        if not waivers_path.is_absolute():
            anchor = config_path.parent if config_path else repo_root
            waivers_path = anchor / waivers_path

    logger.debug(
        "Loaded policy profile=%s from %s (%d override(s))",
        policy.profile, config_path or "defaults", len(policy.overrides),
    )
    return LoadedConfig(policy=policy, waivers_path=waivers_path, source=config_path)
