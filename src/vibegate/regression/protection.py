"""Protection regression classifier.

A new finding from a rule family that represents an enforced control is
read as "this control existed at baseline and was removed". Persisting
findings are never re-flagged.

Lifecycle rules (``VC-LIFE-*``) compare handlers of one resource, so a single
rule id can point at different controls; they are classified from their
title text instead of the family table.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple

from vibegate.findings.models import Finding
from vibegate.regression.differ import index_by_fingerprint


class ProtectionType(enum.Enum):
    AUTH = "auth"
    VALIDATION = "validation"
    MIDDLEWARE = "middleware"
    RATE_LIMIT = "rate-limit"


PROTECTION_FAMILIES: Mapping[str, ProtectionType] = MappingProxyType({
    "VC-AUTH": ProtectionType.AUTH,
    "VC-MW": ProtectionType.MIDDLEWARE,
    "VC-VAL": ProtectionType.VALIDATION,
    "VC-RATE": ProtectionType.RATE_LIMIT,
})

LIFECYCLE_FAMILY = "VC-LIFE"

# Used when a lifecycle title names no control.
_LIFECYCLE_DEFAULTS: Mapping[str, ProtectionType] = MappingProxyType({
    "VC-LIFE-001": ProtectionType.AUTH,         # create/update asymmetry
    "VC-LIFE-002": ProtectionType.VALIDATION,   # validation schema drift
    "VC-LIFE-003": ProtectionType.RATE_LIMIT,   # delete rate-limit gap
})


@dataclass(frozen=True)
class ProtectionRegression:
    protection_type: ProtectionType
    file: str
    description: str
    rule_id: str
    fingerprint: str


def classify_lifecycle(finding: Finding) -> Optional[ProtectionType]:
    title = finding.title.lower()
    if "rate-limit" in title or "rate limit" in title:
        return ProtectionType.RATE_LIMIT
    if "validated" in title:
        return ProtectionType.VALIDATION
    if "protected" in title:
        return ProtectionType.AUTH
    return _LIFECYCLE_DEFAULTS.get(finding.rule_id)


def classify_protection(finding: Finding) -> Optional[ProtectionType]:
    """Protection type signalled by *finding*, or None if it is not a control gap."""
    family = finding.family
    if family == LIFECYCLE_FAMILY:
        return classify_lifecycle(finding)
    if family in PROTECTION_FAMILIES:
        return PROTECTION_FAMILIES[family]
    if finding.category == "middleware":
        return ProtectionType.MIDDLEWARE
    return None


def detect_protection_regressions(
    current: Sequence[Finding],
    baseline: Sequence[Finding],
) -> Tuple[ProtectionRegression, ...]:
    baseline_fingerprints = {f.fingerprint for f in baseline}
    regressions: List[ProtectionRegression] = []

    for fingerprint, finding in index_by_fingerprint(current).items():
        if fingerprint in baseline_fingerprints:
            continue
        protection = classify_protection(finding)
        if protection is None:
            continue
        regressions.append(
            ProtectionRegression(
                protection_type=protection,
                file=finding.evidence[0].file,
                description=finding.title
                or f"{finding.rule_id}: {protection.value} protection no longer enforced",
                rule_id=finding.rule_id,
                fingerprint=fingerprint,
            )
        )
    return tuple(regressions)
