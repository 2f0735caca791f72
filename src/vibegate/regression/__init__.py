"""Regression analysis — fingerprint diff, protection and semantic regressions."""

from vibegate.regression.differ import DiffEntry, RegressionDiff, SeverityRegression, diff_findings
from vibegate.regression.protection import (
    ProtectionRegression,
    ProtectionType,
    classify_protection,
    detect_protection_regressions,
)
from vibegate.regression.semantic import SemanticRegression, detect_semantic_regressions

__all__ = [
    "DiffEntry",
    "ProtectionRegression",
    "ProtectionType",
    "RegressionDiff",
    "SemanticRegression",
    "SeverityRegression",
    "classify_protection",
    "detect_protection_regressions",
    "detect_semantic_regressions",
    "diff_findings",
]
