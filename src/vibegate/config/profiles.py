"""Named policy profiles and config merging.

Profiles are complete, frozen ``PolicyConfig`` values. Callers customise them
with :func:`merge_configs`, which always returns a new config.
"""

from __future__ import annotations

from dataclasses import asdict, replace
from typing import Any, Dict, Mapping, Tuple, Union

from vibegate.config.schema import (
    ConfigError,
    Override,
    PolicyConfig,
    RegressionPolicy,
    ThresholdConfig,
    section_fields,
)

_STARTUP = PolicyConfig(
    profile="startup",
    thresholds=ThresholdConfig(
        fail_on_severity="critical",
        warn_on_severity="high",
        min_confidence_for_fail=0.7,
        min_confidence_for_warn=0.5,
        min_confidence_critical=0.5,
    ),
    regression=RegressionPolicy(
        fail_on_new_high_critical=True,
        fail_on_severity_regression=False,
        fail_on_net_increase=False,
        warn_on_new_findings=True,
    ),
)

_GROWTH = PolicyConfig(
    profile="growth",
    thresholds=ThresholdConfig(
        fail_on_severity="critical",
        warn_on_severity="medium",
        min_confidence_for_fail=0.6,
        min_confidence_for_warn=0.5,
        min_confidence_critical=0.5,
        max_high=10,
    ),
    regression=RegressionPolicy(
        fail_on_new_high_critical=True,
        fail_on_severity_regression=True,
        warn_on_new_findings=True,
        warn_on_protection_removed=True,
    ),
)

_STRICT = PolicyConfig(
    profile="strict",
    thresholds=ThresholdConfig(
        fail_on_severity="high",
        warn_on_severity="medium",
        min_confidence_for_fail=0.6,
        min_confidence_for_warn=0.4,
        min_confidence_critical=0.4,
    ),
    regression=RegressionPolicy(
        fail_on_new_high_critical=True,
        fail_on_severity_regression=True,
        fail_on_net_increase=False,
        warn_on_new_findings=True,
    ),
)

_ENTERPRISE = PolicyConfig(
    profile="enterprise",
    thresholds=ThresholdConfig(
        fail_on_severity="high",
        warn_on_severity="low",
        min_confidence_for_fail=0.6,
        min_confidence_for_warn=0.4,
        min_confidence_critical=0.3,
        max_critical=0,
        max_high=3,
    ),
    regression=RegressionPolicy(
        fail_on_new_high_critical=True,
        fail_on_severity_regression=True,
        fail_on_net_increase=True,
        warn_on_new_findings=True,
        fail_on_protection_removed=True,
        fail_on_semantic_regression=True,
    ),
)

_COMPLIANCE_LITE = PolicyConfig(
    profile="compliance-lite",
    thresholds=ThresholdConfig(
        fail_on_severity="high",
        warn_on_severity="medium",
        min_confidence_for_fail=0.8,
        min_confidence_for_warn=0.6,
        min_confidence_critical=0.6,
        max_findings=50,
        max_critical=0,
        max_high=5,
    ),
    regression=RegressionPolicy(
        fail_on_new_high_critical=True,
        fail_on_severity_regression=True,
        fail_on_net_increase=True,
        warn_on_new_findings=True,
    ),
)

PROFILES: Dict[str, PolicyConfig] = {
    "startup": _STARTUP,
    "growth": _GROWTH,
    "strict": _STRICT,
    "enterprise": _ENTERPRISE,
    "compliance-lite": _COMPLIANCE_LITE,
}

PROFILE_NAMES: Tuple[str, ...] = tuple(PROFILES)

DEFAULT_PROFILE = "startup"

PROFILE_DESCRIPTIONS: Dict[str, str] = {
    "startup": "Balanced for early-stage projects. Fails on critical, warns on high.",
    "growth": "Scaling teams. Fails on critical and severity regressions, caps high findings.",
    "strict": "Production-ready. Fails on high/critical, warns on medium.",
    "enterprise": "Fails on any regression, protection loss, or more than 3 high findings.",
    "compliance-lite": "Compliance-focused. Stricter count limits, higher confidence thresholds.",
}


def get_profile(name: str) -> PolicyConfig:
    """Return the named profile. Profiles are immutable, so no copy is needed."""
    try:
        return PROFILES[name]
    except KeyError:
        raise ConfigError(
            f"Unknown profile {name!r}. Valid profiles: {', '.join(PROFILE_NAMES)}"
        ) from None


PartialConfig = Union[PolicyConfig, Mapping[str, Any]]


def _as_partial(partial: PartialConfig) -> Dict[str, Any]:
    """Normalise a PolicyConfig or mapping into a partial mapping."""
    if isinstance(partial, PolicyConfig):
        return {
            "profile": partial.profile,
            "thresholds": asdict(partial.thresholds),
            "overrides": list(partial.overrides),
            "regression": asdict(partial.regression),
        }
    unknown = set(partial) - {"profile", "thresholds", "overrides", "regression"}
    if unknown:
        raise ConfigError(f"Unknown policy config keys: {', '.join(sorted(unknown))}")
    return dict(partial)


def _merge_section(base: Any, updates: Mapping[str, Any], section: str) -> Any:
    valid = section_fields(type(base))
    unknown = set(updates) - set(valid)
    if unknown:
        raise ConfigError(f"[{section}] unknown keys: {', '.join(sorted(unknown))}")
    return replace(base, **updates) if updates else base


def _merge_partials(base: Mapping[str, Any], partial: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {
        "thresholds": {**(base.get("thresholds") or {}), **(partial.get("thresholds") or {})},
        "overrides": list(base.get("overrides") or ()) + list(partial.get("overrides") or ()),
        "regression": {**(base.get("regression") or {}), **(partial.get("regression") or {})},
    }
    profile = partial.get("profile") or base.get("profile")
    if profile:
        merged["profile"] = profile
    return merged


def merge_configs(base: PartialConfig, partial: PartialConfig) -> Any:
    """Deep-merge *partial* over *base*.

    ``thresholds`` and ``regression`` merge key-by-key (partial wins),
    ``overrides`` concatenate base-first. Neither input is mutated.

    Merging two partial mappings yields a partial mapping; merging onto a
    ``PolicyConfig`` yields a new ``PolicyConfig``.
    """
    data = _as_partial(partial)
    if not isinstance(base, PolicyConfig):
        return _merge_partials(_as_partial(base), data)
    overrides = tuple(
        o if isinstance(o, Override) else Override.from_dict(o)
        for o in data.get("overrides") or ()
    )
    return PolicyConfig(
        profile=data.get("profile") or base.profile,
        thresholds=_merge_section(base.thresholds, data.get("thresholds") or {}, "thresholds"),
        overrides=base.overrides + overrides,
        regression=_merge_section(base.regression, data.get("regression") or {}, "regression"),
    )
