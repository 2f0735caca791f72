"""Severity/confidence gating and absolute-count gating over active findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from vibegate.config.schema import ThresholdConfig, severity_at_or_above
from vibegate.findings.models import Finding
from vibegate.policy.report import PolicyStatus, Reason


@dataclass(frozen=True)
class ThresholdResult:
    status: PolicyStatus = "pass"
    reasons: Tuple[Reason, ...] = ()
    fail_ids: Tuple[str, ...] = field(default_factory=tuple)
    warn_ids: Tuple[str, ...] = field(default_factory=tuple)


def fail_confidence_floor(finding: Finding, thresholds: ThresholdConfig) -> float:
    """Confidence needed for *finding* to fail the build.

    Critical findings use ``min_confidence_critical``, but never a floor
    stricter than the one for lesser severities, so raising a finding to
    critical can only make it more likely to fail. A ``min_confidence_critical``
    larger than ``min_confidence_for_fail`` is therefore overridden by the
    latter.
    """
    if finding.severity == "critical":
        return min(thresholds.min_confidence_critical, thresholds.min_confidence_for_fail)
    return thresholds.min_confidence_for_fail


def is_fail_eligible(finding: Finding, thresholds: ThresholdConfig) -> bool:
    return severity_at_or_above(
        finding.severity, thresholds.fail_on_severity
    ) and finding.confidence >= fail_confidence_floor(finding, thresholds)


def is_warn_eligible(finding: Finding, thresholds: ThresholdConfig) -> bool:
    """Warn eligibility is checked only for findings that are not fail-eligible."""
    if is_fail_eligible(finding, thresholds):
        return False
    return (
        severity_at_or_above(finding.severity, thresholds.warn_on_severity)
        and finding.confidence >= thresholds.min_confidence_for_warn
    )


def evaluate_thresholds(active: Sequence[Finding], thresholds: ThresholdConfig) -> ThresholdResult:
    fail_ids: List[str] = []
    warn_ids: List[str] = []
    for finding in active:
        if is_fail_eligible(finding, thresholds):
            fail_ids.append(finding.id)
        elif is_warn_eligible(finding, thresholds):
            warn_ids.append(finding.id)

    if fail_ids:
        reason = Reason(
            status="fail",
            code="severity_threshold",
            message=f"{len(fail_ids)} finding(s) meet fail criteria "
            f"(severity >= {thresholds.fail_on_severity})",
            finding_ids=tuple(fail_ids),
        )
        return ThresholdResult("fail", (reason,), tuple(fail_ids), tuple(warn_ids))
    if warn_ids:
        reason = Reason(
            status="warn",
            code="severity_threshold",
            message=f"{len(warn_ids)} finding(s) meet warn criteria "
            f"(severity >= {thresholds.warn_on_severity})",
            finding_ids=tuple(warn_ids),
        )
        return ThresholdResult("warn", (reason,), (), tuple(warn_ids))
    return ThresholdResult()


def evaluate_counts(active: Sequence[Finding], thresholds: ThresholdConfig) -> Tuple[Reason, ...]:
    """Absolute caps; 0 disables a cap. Every breach is a fail reason.

    ``max_high`` caps findings at or above high, so escalating a high finding
    to critical never drops it out of that count.
    """
    reasons: List[Reason] = []
    checks = (
        ("Total findings", len(active), thresholds.max_findings),
        ("Critical findings", sum(1 for f in active if f.severity == "critical"), thresholds.max_critical),
        (
            "High or critical findings",
            sum(1 for f in active if severity_at_or_above(f.severity, "high")),
            thresholds.max_high,
        ),
    )
    for label, count, cap in checks:
        if cap > 0 and count > cap:
            reasons.append(
                Reason(
                    status="fail",
                    code="count_threshold",
                    message=f"{label} ({count}) exceeds maximum ({cap})",
                    details={"count": count, "max": cap},
                )
            )
    return tuple(reasons)
