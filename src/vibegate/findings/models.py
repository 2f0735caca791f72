"""Finding data models — immutable inputs produced by the upstream scanners."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

_FAMILY_SUFFIX_RE = re.compile(r"-\d+$")


def rule_family(rule_id: str) -> str:
    """Strip the numeric suffix: ``VC-AUTH-001`` -> ``VC-AUTH``."""
    return _FAMILY_SUFFIX_RE.sub("", rule_id)


@dataclass(frozen=True)
class Evidence:
    """One location backing a finding."""

    file: str
    start_line: int = 1
    end_line: int = 1
    label: str = ""
    snippet: Optional[str] = None


@dataclass(frozen=True)
class Finding:
    """A single detected issue.

    ``fingerprint`` is the only cross-scan identity key. ``original_severity``
    is set only on derived records produced by a downgrade override.
    """

    id: str
    rule_id: str
    category: str
    severity: str
    confidence: float
    evidence: Tuple[Evidence, ...]
    fingerprint: str
    title: str = ""
    description: str = ""
    original_severity: Optional[str] = None

    @property
    def family(self) -> str:
        return rule_family(self.rule_id)

    @property
    def evidence_files(self) -> Tuple[str, ...]:
        return tuple(e.file for e in self.evidence)


@dataclass(frozen=True)
class ScanArtifact:
    """A complete scan result as handed over by the scanner."""

    findings: Tuple[Finding, ...] = field(default_factory=tuple)
    generated_at: str = ""
    repo_name: Optional[str] = None

    @property
    def total_findings(self) -> int:
        return len(self.findings)
