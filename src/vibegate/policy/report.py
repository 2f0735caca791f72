"""Policy report models — the immutable result of one evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping, Optional, Tuple

from vibegate.config.schema import Override, RegressionPolicy, ThresholdConfig
from vibegate.findings.models import Finding
from vibegate.policy.overrides import IgnoredFinding
from vibegate.policy.waivers import WaivedFinding
from vibegate.regression.differ import RegressionDiff
from vibegate.regression.protection import ProtectionRegression
from vibegate.regression.semantic import SemanticRegression

PolicyStatus = Literal["pass", "warn", "fail"]

POLICY_REPORT_VERSION = "0.1"

_STATUS_RANK = {"pass": 0, "warn": 1, "fail": 2}


def merge_status(a: PolicyStatus, b: PolicyStatus) -> PolicyStatus:
    """fail > warn > pass."""
    return a if _STATUS_RANK[a] >= _STATUS_RANK[b] else b


@dataclass(frozen=True)
class Reason:
    """A coded trigger that contributed to the verdict."""

    status: PolicyStatus
    code: str  # severity_threshold | count_threshold | new_high_critical | ...
    message: str
    finding_ids: Tuple[str, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))


@dataclass(frozen=True)
class Summary:
    total: int
    by_severity: Mapping[str, int]
    by_category: Mapping[str, int]
    waived: int
    ignored: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_severity", MappingProxyType(dict(self.by_severity)))
        object.__setattr__(self, "by_category", MappingProxyType(dict(self.by_category)))


@dataclass(frozen=True)
class RegressionSummary:
    """Regression block, present only when a baseline was supplied."""

    baseline_id: str
    baseline_generated_at: str
    diff: RegressionDiff
    protection_regressions: Tuple[ProtectionRegression, ...] = ()
    semantic_regressions: Tuple[SemanticRegression, ...] = ()

    @property
    def net_change(self) -> int:
        return self.diff.net_change


@dataclass(frozen=True)
class ArtifactInfo:
    generated_at: str
    path: Optional[str] = None
    repo_name: Optional[str] = None


@dataclass(frozen=True)
class PolicyReport:
    status: PolicyStatus
    reasons: Tuple[Reason, ...]
    summary: Summary
    active_findings: Tuple[Finding, ...]
    waived_findings: Tuple[WaivedFinding, ...]
    ignored_findings: Tuple[IgnoredFinding, ...]
    exit_code: int
    evaluated_at: Optional[str]
    profile_name: Optional[str]
    thresholds: ThresholdConfig
    overrides: Tuple[Override, ...]
    regression_policy: RegressionPolicy
    artifact: ArtifactInfo
    regression: Optional[RegressionSummary] = None
    expired_waivers: Tuple[str, ...] = ()
    policy_version: str = POLICY_REPORT_VERSION

    @property
    def blocked(self) -> bool:
        return self.exit_code == 1

    def reason_codes(self) -> Tuple[str, ...]:
        return tuple(r.code for r in self.reasons)
