"""JSON reporter for CI pipelines. Keys are camelCase to match the artifact format."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from vibegate.config.schema import Override, RegressionPolicy, ThresholdConfig
from vibegate.findings.models import Finding
from vibegate.policy.report import PolicyReport, Reason, RegressionSummary
from vibegate.policy.waivers import waiver_to_dict
from vibegate.regression.differ import DiffEntry


def _finding(f: Finding) -> Dict[str, Any]:
    return {
        "id": f.id,
        "ruleId": f.rule_id,
        "title": f.title,
        "category": f.category,
        "severity": f.severity,
        "confidence": f.confidence,
        "fingerprint": f.fingerprint,
        "evidence": [
            {
                "file": e.file,
                "startLine": e.start_line,
                "endLine": e.end_line,
                **({"label": e.label} if e.label else {}),
            }
            for e in f.evidence
        ],
        **({"originalSeverity": f.original_severity} if f.original_severity else {}),
    }


def _reason(r: Reason) -> Dict[str, Any]:
    return {
        "status": r.status,
        "code": r.code,
        "message": r.message,
        "findingIds": list(r.finding_ids),
        **({"details": dict(r.details)} if r.details else {}),
    }


def _thresholds(t: ThresholdConfig) -> Dict[str, Any]:
    return {
        "failOnSeverity": t.fail_on_severity,
        "warnOnSeverity": t.warn_on_severity,
        "minConfidenceForFail": t.min_confidence_for_fail,
        "minConfidenceForWarn": t.min_confidence_for_warn,
        "minConfidenceCritical": t.min_confidence_critical,
        "maxFindings": t.max_findings,
        "maxCritical": t.max_critical,
        "maxHigh": t.max_high,
    }


def _override(o: Override) -> Dict[str, Any]:
    data: Dict[str, Any] = {"action": o.action}
    for key, value in (
        ("ruleId", o.rule_id),
        ("category", o.category),
        ("pathPattern", o.path_pattern),
        ("severity", o.severity),
        ("comment", o.comment),
    ):
        if value is not None:
            data[key] = value
    return data


def _regression_policy(p: RegressionPolicy) -> Dict[str, bool]:
    return {
        "failOnNewHighCritical": p.fail_on_new_high_critical,
        "failOnSeverityRegression": p.fail_on_severity_regression,
        "failOnNetIncrease": p.fail_on_net_increase,
        "warnOnNewFindings": p.warn_on_new_findings,
        "failOnProtectionRemoved": p.fail_on_protection_removed,
        "warnOnProtectionRemoved": p.warn_on_protection_removed,
        "failOnSemanticRegression": p.fail_on_semantic_regression,
    }


def _entry(e: DiffEntry) -> Dict[str, Any]:
    return {
        "findingId": e.finding_id,
        "fingerprint": e.fingerprint,
        "ruleId": e.rule_id,
        "severity": e.severity,
        "title": e.title,
    }


def _regression(r: Optional[RegressionSummary]) -> Optional[Dict[str, Any]]:
    if r is None:
        return None
    return {
        "baselineId": r.baseline_id,
        "baselineGeneratedAt": r.baseline_generated_at,
        "newFindings": [_entry(e) for e in r.diff.new_findings],
        "resolvedFindings": [_entry(e) for e in r.diff.resolved_findings],
        "persistingCount": r.diff.persisting_count,
        "severityRegressions": [
            {
                "fingerprint": s.fingerprint,
                "ruleId": s.rule_id,
                "previousSeverity": s.previous_severity,
                "currentSeverity": s.current_severity,
                "title": s.title,
            }
            for s in r.diff.severity_regressions
        ],
        "netChange": r.net_change,
        "protectionRegressions": [
            {
                "protectionType": p.protection_type.value,
                "file": p.file,
                "description": p.description,
                "ruleId": p.rule_id,
                "fingerprint": p.fingerprint,
            }
            for p in r.protection_regressions
        ],
        "semanticRegressions": [
            {
                "type": s.type,
                "severity": s.severity,
                "description": s.description,
                "affectedId": s.affected_id,
                "details": dict(s.details),
            }
            for s in r.semantic_regressions
        ],
    }


def to_dict(report: PolicyReport) -> Dict[str, Any]:
    """Convert a PolicyReport to a JSON-serialisable dict."""
    waived: List[Dict[str, Any]] = [
        {"finding": _finding(w.finding), "waiver": waiver_to_dict(w.waiver)}
        for w in report.waived_findings
    ]
    ignored: List[Dict[str, Any]] = [
        {"finding": _finding(i.finding), "override": _override(i.override)}
        for i in report.ignored_findings
    ]

    return {
        "policyVersion": report.policy_version,
        **({"evaluatedAt": report.evaluated_at} if report.evaluated_at else {}),
        "profileName": report.profile_name,
        "status": report.status,
        "exitCode": report.exit_code,
        "thresholds": _thresholds(report.thresholds),
        "overrides": [_override(o) for o in report.overrides],
        "regressionPolicy": _regression_policy(report.regression_policy),
        "reasons": [_reason(r) for r in report.reasons],
        "summary": {
            "total": report.summary.total,
            "bySeverity": dict(report.summary.by_severity),
            "byCategory": dict(report.summary.by_category),
            "waived": report.summary.waived,
            "ignored": report.summary.ignored,
        },
        "regression": _regression(report.regression),
        "activeFindings": [_finding(f) for f in report.active_findings],
        "waivedFindings": waived,
        "ignoredFindings": ignored,
        "expiredWaivers": list(report.expired_waivers),
        "artifact": {
            "generatedAt": report.artifact.generated_at,
            **({"path": report.artifact.path} if report.artifact.path else {}),
            **({"repoName": report.artifact.repo_name} if report.artifact.repo_name else {}),
        },
    }


def render(report: PolicyReport) -> str:
    """Return formatted JSON string."""
    return json.dumps(to_dict(report), indent=2)
