"""Pattern matching shared by waivers and overrides.

Conventions:
  - Rule ids match exactly, or by prefix when the pattern ends in ``*``
    (``VC-AUTH-*`` matches ``VC-AUTH-001``).
  - Path patterns are globs: ``**`` spans directories, ``*`` and ``?`` stay
    within one path segment. A finding matches if ANY evidence file matches.
  - A match spec with a fingerprint that equals the finding's fingerprint
    matches outright; otherwise every present rule/path field must match.
    A spec with no rule/path field (empty, or fingerprint-only) matches
    nothing else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Optional

from vibegate.findings.models import Finding


@dataclass(frozen=True)
class MatchSpec:
    """Which findings an exception applies to. Any subset of fields may be set."""

    fingerprint: Optional[str] = None
    rule_id: Optional[str] = None
    path_pattern: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.fingerprint is None and self.rule_id is None and self.path_pattern is None


def matches_rule(rule_id: str, pattern: str) -> bool:
    if pattern.endswith("*"):
        return rule_id.startswith(pattern[:-1])
    return rule_id == pattern


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a glob into an anchored regular expression."""
    out = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    # "**/" also matches zero directories
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$")


def matches_path(evidence_files: Iterable[str], pattern: str) -> bool:
    regex = glob_to_regex(pattern)
    return any(regex.match(path) for path in evidence_files)


def matches_exception(finding: Finding, spec: MatchSpec) -> bool:
    """Fingerprint short-circuit, then AND over the remaining present fields."""
    if spec.fingerprint is not None and spec.fingerprint == finding.fingerprint:
        return True
    if spec.rule_id is None and spec.path_pattern is None:
        # nothing left to match on
        return False
    if spec.rule_id is not None and not matches_rule(finding.rule_id, spec.rule_id):
        return False
    if spec.path_pattern is not None and not matches_path(finding.evidence_files, spec.path_pattern):
        return False
    return True
