"""Fingerprint-keyed diff of current vs. baseline findings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from vibegate.config.schema import is_severity_regression
from vibegate.findings.models import Finding


@dataclass(frozen=True)
class DiffEntry:
    finding_id: str
    fingerprint: str
    rule_id: str
    severity: str
    title: str = ""

    @classmethod
    def of(cls, finding: Finding) -> "DiffEntry":
        return cls(
            finding_id=finding.id,
            fingerprint=finding.fingerprint,
            rule_id=finding.rule_id,
            severity=finding.severity,
            title=finding.title,
        )


@dataclass(frozen=True)
class SeverityRegression:
    fingerprint: str
    rule_id: str
    previous_severity: str
    current_severity: str
    title: str = ""


@dataclass(frozen=True)
class RegressionDiff:
    new_findings: Tuple[DiffEntry, ...] = ()
    resolved_findings: Tuple[DiffEntry, ...] = ()
    persisting_count: int = 0
    severity_regressions: Tuple[SeverityRegression, ...] = ()
    net_change: int = 0


def index_by_fingerprint(findings: Sequence[Finding]) -> Dict[str, Finding]:
    """Fingerprint -> finding, first occurrence wins, insertion order kept."""
    index: Dict[str, Finding] = {}
    for finding in findings:
        index.setdefault(finding.fingerprint, finding)
    return index


def diff_findings(current: Sequence[Finding], baseline: Sequence[Finding]) -> RegressionDiff:
    """Classify findings as new, resolved or persisting.

    Both sides must be the complete finding sets (before overrides and
    waivers), so that a waived new finding still shows up as new.
    """
    current_index = index_by_fingerprint(current)
    baseline_index = index_by_fingerprint(baseline)

    new: List[DiffEntry] = []
    regressions: List[SeverityRegression] = []
    persisting = 0
    for fingerprint, finding in current_index.items():
        previous = baseline_index.get(fingerprint)
        if previous is None:
            new.append(DiffEntry.of(finding))
            continue
        persisting += 1
        if is_severity_regression(finding.severity, previous.severity):
            regressions.append(
                SeverityRegression(
                    fingerprint=fingerprint,
                    rule_id=finding.rule_id,
                    previous_severity=previous.severity,
                    current_severity=finding.severity,
                    title=finding.title,
                )
            )

    resolved = [
        DiffEntry.of(finding)
        for fingerprint, finding in baseline_index.items()
        if fingerprint not in current_index
    ]

    return RegressionDiff(
        new_findings=tuple(new),
        resolved_findings=tuple(resolved),
        persisting_count=persisting,
        severity_regressions=tuple(regressions),
        net_change=len(current) - len(baseline),
    )
