"""Policy engine — overrides, waivers, thresholds, and the evaluator."""

from vibegate.policy.evaluator import evaluate
from vibegate.policy.overrides import IgnoredFinding, OverrideResult, apply_overrides
from vibegate.policy.report import PolicyReport, Reason, Summary
from vibegate.policy.waivers import (
    WaivedFinding,
    Waiver,
    WaiverError,
    WaiverResult,
    apply_waivers,
    create_waiver,
)

__all__ = [
    "IgnoredFinding",
    "OverrideResult",
    "PolicyReport",
    "Reason",
    "Summary",
    "WaivedFinding",
    "Waiver",
    "WaiverError",
    "WaiverResult",
    "apply_overrides",
    "apply_waivers",
    "create_waiver",
    "evaluate",
]
