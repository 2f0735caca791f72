"""Policy evaluator — orchestrates the full gating pipeline into a PolicyReport.

Order: overrides -> waivers -> severity thresholds -> count caps ->
regression analysis (only with a baseline) -> verdict.

``evaluate`` is a pure function of its arguments: no I/O, no shared state,
and the clock is read only when the caller does not pass ``now``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import reduce
from typing import Dict, List, Optional, Sequence, Union

from vibegate.config.profiles import DEFAULT_PROFILE, get_profile
from vibegate.config.schema import CATEGORIES, SEVERITY_LEVELS, PolicyConfig, RegressionPolicy
from vibegate.findings.models import Finding, ScanArtifact
from vibegate.policy.overrides import apply_overrides
from vibegate.policy.report import (
    ArtifactInfo,
    PolicyReport,
    PolicyStatus,
    Reason,
    RegressionSummary,
    Summary,
    merge_status,
)
from vibegate.policy.thresholds import evaluate_counts, evaluate_thresholds
from vibegate.policy.waivers import Waiver, apply_waivers
from vibegate.regression.differ import diff_findings
from vibegate.regression.protection import detect_protection_regressions
from vibegate.regression.semantic import detect_semantic_regressions, gating_regressions

logger = logging.getLogger(__name__)

ArtifactLike = Union[ScanArtifact, Sequence[Finding]]


def _as_artifact(value: ArtifactLike) -> ScanArtifact:
    if isinstance(value, ScanArtifact):
        return value
    return ScanArtifact(findings=tuple(value))


def _summarise(active: Sequence[Finding], waived: int, ignored: int) -> Summary:
    by_severity: Dict[str, int] = {sev: 0 for sev in reversed(SEVERITY_LEVELS)}
    by_category: Dict[str, int] = {cat: 0 for cat in CATEGORIES}
    for finding in active:
        by_severity[finding.severity] += 1
        by_category[finding.category] = by_category.get(finding.category, 0) + 1
    return Summary(
        total=len(active),
        by_severity=by_severity,
        by_category=by_category,
        waived=waived,
        ignored=ignored,
    )


def _regression_reasons(
    summary: RegressionSummary,
    policy: RegressionPolicy,
    active: Sequence[Finding],
) -> List[Reason]:
    """Reasons driven by the regression policy.

    Per-fingerprint gates only consider findings still active after overrides
    and waivers; aggregate gates see every finding.
    """
    reasons: List[Reason] = []
    diff = summary.diff
    active_by_fp = {f.fingerprint: f for f in active}
    new_active = [active_by_fp[e.fingerprint] for e in diff.new_findings if e.fingerprint in active_by_fp]

    # --- New high/critical ---
    new_high_critical = [f.id for f in new_active if f.severity in ("high", "critical")]
    if policy.fail_on_new_high_critical and new_high_critical:
        reasons.append(Reason(
            status="fail",
            code="new_high_critical",
            message=f"{len(new_high_critical)} new high/critical finding(s) detected",
            finding_ids=tuple(new_high_critical),
        ))

    # --- Severity regressions ---
    severity_regressions = [r for r in diff.severity_regressions if r.fingerprint in active_by_fp]
    if policy.fail_on_severity_regression and severity_regressions:
        reasons.append(Reason(
            status="fail",
            code="severity_regression",
            message=f"{len(severity_regressions)} severity regression(s) detected",
            finding_ids=tuple(active_by_fp[r.fingerprint].id for r in severity_regressions),
            details={
                "regressions": [
                    {"ruleId": r.rule_id, "from": r.previous_severity, "to": r.current_severity}
                    for r in severity_regressions
                ]
            },
        ))

    # --- Net increase ---
    if policy.fail_on_net_increase and diff.net_change > 0:
        reasons.append(Reason(
            status="fail",
            code="net_increase",
            message=f"Net increase of {diff.net_change} finding(s)",
            details={"netChange": diff.net_change},
        ))

    # --- New findings ---
    if policy.warn_on_new_findings and new_active:
        reasons.append(Reason(
            status="warn",
            code="new_findings",
            message=f"{len(new_active)} new finding(s) detected",
            finding_ids=tuple(f.id for f in new_active),
        ))

    # --- Protection removed ---
    protection = [p for p in summary.protection_regressions if p.fingerprint in active_by_fp]
    if protection and (policy.fail_on_protection_removed or policy.warn_on_protection_removed):
        status: PolicyStatus = "fail" if policy.fail_on_protection_removed else "warn"
        reasons.append(Reason(
            status=status,
            code="protection_removed",
            message=f"{len(protection)} route(s) lost protection coverage",
            finding_ids=tuple(active_by_fp[p.fingerprint].id for p in protection),
            details={
                "regressions": [
                    {"file": p.file, "protectionType": p.protection_type.value} for p in protection
                ]
            },
        ))

    # --- Semantic regressions ---
    semantic = gating_regressions(summary.semantic_regressions)
    if policy.fail_on_semantic_regression and semantic:
        reasons.append(Reason(
            status="fail",
            code="semantic_regression",
            message=f"{len(semantic)} semantic regression(s) detected",
            details={
                "regressions": [
                    {"type": r.type, "severity": r.severity, "description": r.description}
                    for r in semantic
                ]
            },
        ))

    return reasons


def evaluate(
    artifact: ArtifactLike,
    baseline: Optional[ArtifactLike] = None,
    config: Optional[PolicyConfig] = None,
    waivers: Sequence[Waiver] = (),
    *,
    profile: Optional[str] = None,
    now: Optional[datetime] = None,
    artifact_path: Optional[str] = None,
) -> PolicyReport:
    """Evaluate *artifact* against a policy and return the verdict.

    *config* wins over *profile*; with neither, the default profile applies.
    Pass *now* to make waiver expiry reproducible. ``evaluated_at`` is set only
    when *now* is given, so two calls on the same inputs yield equal reports.
    """
    current = _as_artifact(artifact)
    if config is None:
        config = get_profile(profile or DEFAULT_PROFILE)
    clock = now or datetime.now(timezone.utc)

    # --- Overrides, then waivers ---
    overridden = apply_overrides(current.findings, config.overrides)
    waiver_result = apply_waivers(overridden.active, waivers, clock)
    active = waiver_result.active

    # --- Thresholds and counts ---
    threshold_result = evaluate_thresholds(active, config.thresholds)
    reasons: List[Reason] = list(threshold_result.reasons)
    reasons.extend(evaluate_counts(active, config.thresholds))

    # --- Regression (complete finding sets on both sides) ---
    regression: Optional[RegressionSummary] = None
    if baseline is not None:
        base = _as_artifact(baseline)
        protection = detect_protection_regressions(current.findings, base.findings)
        regression = RegressionSummary(
            baseline_id=base.repo_name or "unknown",
            baseline_generated_at=base.generated_at,
            diff=diff_findings(current.findings, base.findings),
            protection_regressions=protection,
            semantic_regressions=detect_semantic_regressions(
                current.findings, base.findings, protection
            ),
        )
        reasons.extend(_regression_reasons(regression, config.regression, active))

    # --- Verdict ---
    status: PolicyStatus = reduce(merge_status, (r.status for r in reasons), "pass")
    if not reasons:
        reasons.append(Reason(
            status="pass",
            code="no_issues",
            message="No findings meet fail or warn criteria",
        ))

    logger.debug(
        "Evaluated %d finding(s): %d active, %d waived, %d ignored -> %s",
        current.total_findings, len(active), len(waiver_result.waived),
        len(overridden.ignored), status,
    )

    return PolicyReport(
        status=status,
        reasons=tuple(reasons),
        summary=_summarise(active, len(waiver_result.waived), len(overridden.ignored)),
        active_findings=active,
        waived_findings=waiver_result.waived,
        ignored_findings=overridden.ignored,
        exit_code=1 if status == "fail" else 0,
        evaluated_at=now.isoformat() if now is not None else None,
        profile_name=config.profile,
        thresholds=config.thresholds,
        overrides=config.overrides,
        regression_policy=config.regression,
        artifact=ArtifactInfo(
            generated_at=current.generated_at,
            path=artifact_path,
            repo_name=current.repo_name,
        ),
        regression=regression,
        expired_waivers=waiver_result.expired_waivers,
    )
