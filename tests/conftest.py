"""Shared test fixtures — a finding factory, sample artifacts, a fixed clock."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

from vibegate.findings.models import Evidence, Finding

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_finding(
    fid: str = "f-1",
    rule_id: str = "VC-AUTH-001",
    severity: str = "high",
    confidence: float = 0.9,
    category: str = "auth",
    file: str = "app/api/users/route.ts",
    fingerprint: Optional[str] = None,
    title: str = "",
    **extra: Any,
) -> Finding:
    return Finding(
        id=fid,
        rule_id=rule_id,
        category=category,
        severity=severity,
        confidence=confidence,
        evidence=(Evidence(file=file, start_line=10, end_line=12),),
        fingerprint=fingerprint or f"fp-{fid}",
        title=title,
        **extra,
    )


def finding_json(**overrides: Any) -> Dict[str, Any]:
    """A finding in the scanner's camelCase wire format."""
    data: Dict[str, Any] = {
        "id": "f-1",
        "ruleId": "VC-AUTH-001",
        "title": "Unprotected route",
        "category": "auth",
        "severity": "high",
        "confidence": 0.9,
        "fingerprint": "sha256:aaa",
        "evidence": [{"file": "app/api/users/route.ts", "startLine": 4, "endLine": 9}],
    }
    data.update(overrides)
    return data


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def write_artifact(tmp_path: Path):
    """Write an artifact JSON file and return its path."""

    def _write(name: str, findings, repo: str = "acme/web") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({
            "artifactVersion": "0.3",
            "generatedAt": "2026-03-01T10:00:00Z",
            "repo": {"name": repo},
            "findings": findings,
        }))
        return path

    return _write
