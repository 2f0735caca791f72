"""Override resolution — apply ``ignore`` / ``downgrade`` rules before gating.

First matching override in config order wins. The resolver is pure: it
returns derived findings and never touches the caller's objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple

from vibegate.config.schema import Override
from vibegate.findings.models import Finding
from vibegate.policy.matching import matches_path, matches_rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoredFinding:
    """Audit record of a finding removed by an ``ignore`` override."""

    finding: Finding
    override: Override


@dataclass(frozen=True)
class OverrideResult:
    active: Tuple[Finding, ...] = field(default_factory=tuple)
    ignored: Tuple[IgnoredFinding, ...] = field(default_factory=tuple)


def override_matches(finding: Finding, override: Override) -> bool:
    """AND over whichever of rule_id / category / path_pattern are present."""
    if override.rule_id is not None and not matches_rule(finding.rule_id, override.rule_id):
        return False
    if override.category is not None and finding.category != override.category:
        return False
    if override.path_pattern is not None and not matches_path(
        finding.evidence_files, override.path_pattern
    ):
        return False
    return True


def find_override(finding: Finding, overrides: Sequence[Override]) -> Optional[Override]:
    for override in overrides:
        if override_matches(finding, override):
            return override
    return None


def downgrade(finding: Finding, severity: str) -> Finding:
    """Derived copy at *severity*, keeping the first recorded original severity."""
    if severity == finding.severity:
        return finding
    return replace(
        finding,
        severity=severity,
        original_severity=finding.original_severity or finding.severity,
    )


def apply_overrides(findings: Iterable[Finding], overrides: Sequence[Override]) -> OverrideResult:
    active: List[Finding] = []
    ignored: List[IgnoredFinding] = []

    for finding in findings:
        override = find_override(finding, overrides)
        if override is None:
            active.append(finding)
        elif override.action == "ignore":
            logger.debug("Override ignores %s (%s)", finding.id, finding.rule_id)
            ignored.append(IgnoredFinding(finding=finding, override=override))
        else:
            assert override.severity is not None
            logger.debug(
                "Override downgrades %s from %s to %s",
                finding.id, finding.severity, override.severity,
            )
            active.append(downgrade(finding, override.severity))

    return OverrideResult(active=tuple(active), ignored=tuple(ignored))
