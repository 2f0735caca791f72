"""Parse scan artifacts (scanner JSON) into Finding models.

This is the contract boundary: a finding without a fingerprint, severity,
category or evidence file is rejected here rather than tolerated later,
since a missing fingerprint would corrupt cross-scan identity.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Mapping

from vibegate.config.schema import CATEGORIES, SEVERITY_ORDER
from vibegate.findings.models import Evidence, Finding, ScanArtifact

logger = logging.getLogger(__name__)


class ArtifactError(Exception):
    """Raised when a scan artifact is unreadable or violates the input contract."""


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise ArtifactError(f"{where}: missing required field '{key}'")
    return value


def parse_evidence(data: Mapping[str, Any], where: str) -> Evidence:
    if not isinstance(data, Mapping):
        raise ArtifactError(f"{where}: expected an object")
    try:
        start_line = int(data.get("startLine", 1))
        end_line = int(data.get("endLine", start_line))
    except (TypeError, ValueError) as exc:
        raise ArtifactError(f"{where}: line numbers must be integers") from exc
    return Evidence(
        file=_require(data, "file", where),
        start_line=start_line,
        end_line=end_line,
        label=data.get("label", ""),
        snippet=data.get("snippet"),
    )


def parse_finding(data: Mapping[str, Any], index: int = 0) -> Finding:
    """Build a Finding from its camelCase scanner representation."""
    if not isinstance(data, Mapping):
        raise ArtifactError(f"findings[{index}]: expected an object")
    where = f"findings[{index}]"

    fingerprint = _require(data, "fingerprint", where)
    severity = _require(data, "severity", where)
    category = _require(data, "category", where)
    if severity not in SEVERITY_ORDER:
        raise ArtifactError(f"{where}: unknown severity {severity!r}")
    if category not in CATEGORIES:
        raise ArtifactError(f"{where}: unknown category {category!r}")

    raw_evidence = data.get("evidence") or []
    if not raw_evidence:
        raise ArtifactError(f"{where}: missing required field 'evidence[0].file'")
    evidence = tuple(
        parse_evidence(e, f"{where}.evidence[{i}]") for i, e in enumerate(raw_evidence)
    )

    confidence = data.get("confidence", 1.0)
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise ArtifactError(f"{where}: confidence must be a number")
    if not 0.0 <= confidence <= 1.0:
        raise ArtifactError(f"{where}: confidence must be within [0, 1]")

    return Finding(
        id=data.get("id") or fingerprint,
        rule_id=_require(data, "ruleId", where),
        category=category,
        severity=severity,
        confidence=float(confidence),
        evidence=evidence,
        fingerprint=fingerprint,
        title=data.get("title", ""),
        description=data.get("description", ""),
        original_severity=data.get("originalSeverity"),
    )


def parse_artifact(data: Any) -> ScanArtifact:
    """Build a ScanArtifact from a decoded JSON document."""
    if not isinstance(data, Mapping):
        raise ArtifactError("Artifact must be a JSON object")
    raw_findings = data.get("findings")
    if not isinstance(raw_findings, list):
        raise ArtifactError("Artifact is missing a 'findings' array")

    findings: List[Finding] = [parse_finding(f, i) for i, f in enumerate(raw_findings)]
    repo = data.get("repo") or {}
    return ScanArtifact(
        findings=tuple(findings),
        generated_at=data.get("generatedAt", ""),
        repo_name=repo.get("name") if isinstance(repo, Mapping) else None,
    )


def load_artifact(path: Path) -> ScanArtifact:
    """Read and validate an artifact file."""
    if not path.is_file():
        raise ArtifactError(f"Artifact file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ArtifactError(f"Failed to parse {path}: {exc}") from exc

    artifact = parse_artifact(data)
    logger.debug("Loaded %d finding(s) from %s", artifact.total_findings, path)
    return artifact
