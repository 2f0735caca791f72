"""Policy schema — severity ordering and frozen dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, Literal, Mapping, Optional, Tuple

Severity = Literal["info", "low", "medium", "high", "critical"]

Category = Literal[
    "auth",
    "validation",
    "middleware",
    "secrets",
    "injection",
    "privacy",
    "config",
    "network",
    "crypto",
    "uploads",
    "hallucinations",
    "abuse",
    "correlation",
    "authorization",
    "lifecycle",
    "supply-chain",
    "other",
]

OverrideAction = Literal["ignore", "downgrade"]

SEVERITY_ORDER: dict[str, int] = {
    "info": 0,
    "low": 1,
    "medium": 2,
    "high": 3,
    "critical": 4,
}

# Ascending: least severe first.
SEVERITY_LEVELS: Tuple[str, ...] = ("info", "low", "medium", "high", "critical")

CATEGORIES: Tuple[str, ...] = (
    "auth",
    "validation",
    "middleware",
    "secrets",
    "injection",
    "privacy",
    "config",
    "network",
    "crypto",
    "uploads",
    "hallucinations",
    "abuse",
    "correlation",
    "authorization",
    "lifecycle",
    "supply-chain",
    "other",
)

OVERRIDE_ACTIONS: Tuple[str, ...] = ("ignore", "downgrade")


class ConfigError(Exception):
    """Raised when policy config is malformed or unreadable."""


def compare_severity(a: str, b: str) -> int:
    """Positive if *a* is more severe than *b*, negative if less, 0 if equal."""
    return SEVERITY_ORDER[a] - SEVERITY_ORDER[b]


def severity_at_or_above(finding_sev: str, threshold: str) -> bool:
    """Return True if *finding_sev* is at or above *threshold*."""
    return SEVERITY_ORDER[finding_sev] >= SEVERITY_ORDER[threshold]


def is_severity_regression(current: str, baseline: str) -> bool:
    """True only when *current* is strictly worse than *baseline*."""
    return compare_severity(current, baseline) > 0


def max_severity(severities: Iterable[str]) -> Optional[str]:
    """Most severe level in *severities*, or None when empty."""
    worst: Optional[str] = None
    for sev in severities:
        if worst is None or SEVERITY_ORDER[sev] > SEVERITY_ORDER[worst]:
            worst = sev
    return worst


def _check_severity(value: Any, key: str) -> str:
    if value not in SEVERITY_ORDER:
        raise ConfigError(f"{key}: unknown severity {value!r}")
    return value


def _check_confidence(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key}: expected a number, got {value!r}")
    if not 0.0 <= float(value) <= 1.0:
        raise ConfigError(f"{key}: confidence must be within [0, 1], got {value}")
    return float(value)


def _check_count(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{key}: expected a non-negative integer, got {value!r}")
    return value


def _check_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key}: expected true/false, got {value!r}")
    return value


@dataclass(frozen=True)
class ThresholdConfig:
    fail_on_severity: Severity = "high"
    warn_on_severity: Severity = "medium"
    min_confidence_for_fail: float = 0.7
    min_confidence_for_warn: float = 0.5
    min_confidence_critical: float = 0.5  # separate floor for critical findings only
    max_findings: int = 0  # 0 = unlimited
    max_critical: int = 0
    max_high: int = 0

    def __post_init__(self) -> None:
        _check_severity(self.fail_on_severity, "fail_on_severity")
        _check_severity(self.warn_on_severity, "warn_on_severity")
        for name in ("min_confidence_for_fail", "min_confidence_for_warn", "min_confidence_critical"):
            _check_confidence(getattr(self, name), name)
        for name in ("max_findings", "max_critical", "max_high"):
            _check_count(getattr(self, name), name)


@dataclass(frozen=True)
class Override:
    """Policy-authored rule adjustment. Present match fields are AND-combined."""

    action: OverrideAction
    rule_id: Optional[str] = None  # exact or prefix wildcard "VC-AUTH-*"
    category: Optional[Category] = None
    path_pattern: Optional[str] = None
    severity: Optional[Severity] = None  # required for downgrade
    comment: Optional[str] = None

    def __post_init__(self) -> None:
        if self.action not in OVERRIDE_ACTIONS:
            raise ConfigError(f"override: unknown action {self.action!r}")
        if self.rule_id is None and self.category is None and self.path_pattern is None:
            raise ConfigError("override: at least one of rule_id, category, path_pattern is required")
        if self.category is not None and self.category not in CATEGORIES:
            raise ConfigError(f"override: unknown category {self.category!r}")
        if self.action == "downgrade" and self.severity is None:
            raise ConfigError("override: action 'downgrade' requires a severity")
        if self.severity is not None:
            _check_severity(self.severity, "override.severity")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Override":
        if "action" not in data:
            raise ConfigError("override: missing 'action'")
        return cls(
            action=data["action"],
            rule_id=data.get("rule_id"),
            category=data.get("category"),
            path_pattern=data.get("path_pattern"),
            severity=data.get("severity"),
            comment=data.get("comment"),
        )


@dataclass(frozen=True)
class RegressionPolicy:
    fail_on_new_high_critical: bool = True
    fail_on_severity_regression: bool = False
    fail_on_net_increase: bool = False
    warn_on_new_findings: bool = True
    fail_on_protection_removed: bool = False
    warn_on_protection_removed: bool = True
    fail_on_semantic_regression: bool = False

    def __post_init__(self) -> None:
        for f in fields(self):
            _check_bool(getattr(self, f.name), f.name)


@dataclass(frozen=True)
class PolicyConfig:
    profile: Optional[str] = None
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    overrides: Tuple[Override, ...] = ()
    regression: RegressionPolicy = field(default_factory=RegressionPolicy)


def section_fields(cls: type) -> Dict[str, Any]:
    """Field name -> default for a config section dataclass."""
    return {f.name: f.default for f in fields(cls)}
