"""Finding models and artifact loading."""

from vibegate.findings.loader import ArtifactError, load_artifact, parse_artifact, parse_finding
from vibegate.findings.models import Evidence, Finding, ScanArtifact, rule_family

__all__ = [
    "ArtifactError",
    "Evidence",
    "Finding",
    "ScanArtifact",
    "load_artifact",
    "parse_artifact",
    "parse_finding",
    "rule_family",
]
