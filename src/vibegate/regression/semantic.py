"""Aggregate-level regressions that are not tied to a single fingerprint."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from vibegate.config.schema import is_severity_regression, max_severity
from vibegate.findings.models import Finding
from vibegate.regression.protection import ProtectionRegression, detect_protection_regressions

PROTECTION_REMOVED = "protection_removed"
COVERAGE_DECREASED = "coverage_decreased"
SEVERITY_GROUP_INCREASE = "severity_group_increase"

# Types that trip fail_on_semantic_regression; protection_removed has its own gate.
GATING_TYPES = frozenset({COVERAGE_DECREASED, SEVERITY_GROUP_INCREASE})

# Minimum relative growth in implicated files before coverage counts as decreased.
COVERAGE_INCREASE_RATIO = 0.2


@dataclass(frozen=True)
class SemanticRegression:
    type: str
    severity: str
    description: str
    affected_id: str
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))


def _files(findings: Iterable[Finding]) -> Set[str]:
    return {path for f in findings for path in f.evidence_files}


def detect_coverage_decrease(
    current: Sequence[Finding], baseline: Sequence[Finding]
) -> Optional[SemanticRegression]:
    """More distinct files implicated now than at baseline, by a meaningful margin."""
    baseline_files = _files(baseline)
    current_files = _files(current)
    new_files = sorted(current_files - baseline_files)
    growth = len(current_files) - len(baseline_files)
    needed = max(1, math.ceil(len(baseline_files) * COVERAGE_INCREASE_RATIO))
    if not new_files or growth < needed:
        return None

    return SemanticRegression(
        type=COVERAGE_DECREASED,
        severity="medium",
        description=(
            f"{len(new_files)} new routes have security findings "
            f"({len(baseline_files)} -> {len(current_files)} files affected)"
        ),
        affected_id="coverage",
        details={
            "baselineFiles": len(baseline_files),
            "currentFiles": len(current_files),
            "newFiles": new_files,
        },
    )


def _max_by_family(findings: Iterable[Finding]) -> Dict[str, str]:
    grouped: Dict[str, List[str]] = {}
    for finding in findings:
        grouped.setdefault(finding.family, []).append(finding.severity)
    return {family: max_severity(sevs) for family, sevs in grouped.items()}  # type: ignore[misc]


def detect_severity_group_increases(
    current: Sequence[Finding], baseline: Sequence[Finding]
) -> Tuple[SemanticRegression, ...]:
    """Rule families present in both scans whose worst severity got worse."""
    baseline_max = _max_by_family(baseline)
    regressions: List[SemanticRegression] = []
    for family, current_max in sorted(_max_by_family(current).items()):
        previous_max = baseline_max.get(family)
        if previous_max is None or not is_severity_regression(current_max, previous_max):
            continue
        regressions.append(
            SemanticRegression(
                type=SEVERITY_GROUP_INCREASE,
                severity=current_max,
                description=f"{family} findings escalated from {previous_max} to {current_max}",
                affected_id=family,
                details={"previousSeverity": previous_max, "currentSeverity": current_max},
            )
        )
    return tuple(regressions)


def protection_to_semantic(regression: ProtectionRegression) -> SemanticRegression:
    return SemanticRegression(
        type=PROTECTION_REMOVED,
        severity="high",
        description=regression.description,
        affected_id=regression.file,
        details={
            "protectionType": regression.protection_type.value,
            "ruleId": regression.rule_id,
            "fingerprint": regression.fingerprint,
        },
    )


def detect_semantic_regressions(
    current: Sequence[Finding],
    baseline: Sequence[Finding],
    protection: Optional[Sequence[ProtectionRegression]] = None,
) -> Tuple[SemanticRegression, ...]:
    """Protection removals, coverage decrease and severity-group increases, in that order."""
    if protection is None:
        protection = detect_protection_regressions(current, baseline)
    regressions: List[SemanticRegression] = [protection_to_semantic(p) for p in protection]
    coverage = detect_coverage_decrease(current, baseline)
    if coverage is not None:
        regressions.append(coverage)
    regressions.extend(detect_severity_group_increases(current, baseline))
    return tuple(regressions)


def gating_regressions(regressions: Iterable[SemanticRegression]) -> Tuple[SemanticRegression, ...]:
    return tuple(r for r in regressions if r.type in GATING_TYPES)
