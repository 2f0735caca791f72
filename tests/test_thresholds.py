"""Tests for severity/confidence thresholds and count caps."""

from dataclasses import replace

from conftest import make_finding
from vibegate.config.schema import ThresholdConfig
from vibegate.policy.thresholds import (
    evaluate_counts,
    evaluate_thresholds,
    fail_confidence_floor,
    is_fail_eligible,
    is_warn_eligible,
)

STARTUP = ThresholdConfig(
    fail_on_severity="critical",
    warn_on_severity="high",
    min_confidence_for_fail=0.7,
    min_confidence_for_warn=0.5,
    min_confidence_critical=0.5,
)


class TestEligibility:
    def test_critical_uses_its_own_floor(self):
        f = make_finding(severity="critical", confidence=0.55)
        assert fail_confidence_floor(f, STARTUP) == 0.5
        assert is_fail_eligible(f, STARTUP)

    def test_critical_below_floor(self):
        assert not is_fail_eligible(make_finding(severity="critical", confidence=0.3), STARTUP)

    def test_non_critical_uses_fail_floor(self):
        t = ThresholdConfig(fail_on_severity="high", min_confidence_for_fail=0.7)
        assert is_fail_eligible(make_finding(severity="high", confidence=0.7), t)
        assert not is_fail_eligible(make_finding(severity="high", confidence=0.69), t)

    def test_critical_floor_never_stricter_than_fail_floor(self):
        t = ThresholdConfig(fail_on_severity="medium", min_confidence_for_fail=0.5, min_confidence_critical=0.9)
        assert is_fail_eligible(make_finding(severity="high", confidence=0.6), t)
        assert is_fail_eligible(make_finding(severity="critical", confidence=0.6), t)

    def test_fail_subsumes_warn(self):
        f = make_finding(severity="critical", confidence=0.9)
        assert is_fail_eligible(f, STARTUP)
        assert not is_warn_eligible(f, STARTUP)

    def test_warn_floor(self):
        assert is_warn_eligible(make_finding(severity="high", confidence=0.5), STARTUP)
        assert not is_warn_eligible(make_finding(severity="high", confidence=0.4), STARTUP)
        assert not is_warn_eligible(make_finding(severity="medium", confidence=0.9), STARTUP)


class TestEvaluateThresholds:
    def test_fail(self):
        findings = [
            make_finding(fid="a", severity="critical", confidence=0.8),
            make_finding(fid="b", severity="high", confidence=0.8),
        ]
        result = evaluate_thresholds(findings, STARTUP)
        assert result.status == "fail"
        assert result.fail_ids == ("a",)
        assert result.warn_ids == ("b",)
        assert [r.code for r in result.reasons] == ["severity_threshold"]
        assert result.reasons[0].finding_ids == ("a",)

    def test_warn(self):
        result = evaluate_thresholds([make_finding(fid="b", severity="high", confidence=0.8)], STARTUP)
        assert result.status == "warn"
        assert result.reasons[0].status == "warn"
        assert result.reasons[0].finding_ids == ("b",)

    def test_pass(self):
        result = evaluate_thresholds([make_finding(severity="low")], STARTUP)
        assert result.status == "pass"
        assert result.reasons == ()

    def test_empty(self):
        assert evaluate_thresholds([], STARTUP).status == "pass"


class TestEvaluateCounts:
    def test_zero_disables(self):
        findings = [make_finding(fid=str(i), severity="critical") for i in range(10)]
        assert evaluate_counts(findings, ThresholdConfig()) == ()

    def test_max_findings(self):
        findings = [make_finding(fid=str(i), severity="low") for i in range(3)]
        (reason,) = evaluate_counts(findings, ThresholdConfig(max_findings=2))
        assert reason.status == "fail"
        assert reason.code == "count_threshold"
        assert reason.details == {"count": 3, "max": 2}

    def test_at_cap_is_fine(self):
        findings = [make_finding(fid=str(i), severity="high") for i in range(2)]
        assert evaluate_counts(findings, ThresholdConfig(max_high=2)) == ()

    def test_each_breach_reported(self):
        findings = [make_finding(fid=str(i), severity="critical") for i in range(3)] + [
            make_finding(fid=f"h{i}", severity="high") for i in range(3)
        ]
        reasons = evaluate_counts(findings, ThresholdConfig(max_findings=5, max_critical=2, max_high=2))
        assert len(reasons) == 3
        assert all(r.code == "count_threshold" for r in reasons)

    def test_high_cap_counts_critical(self):
        findings = [make_finding(fid="h", severity="high"), make_finding(fid="c", severity="critical")]
        (reason,) = evaluate_counts(findings, ThresholdConfig(max_high=1))
        assert reason.details == {"count": 2, "max": 1}
        assert reason.message.startswith("High or critical findings")

    def test_escalation_keeps_high_cap_breach(self):
        t = ThresholdConfig(max_high=2)
        findings = [make_finding(fid=str(i), severity="high") for i in range(3)]
        escalated = [replace(findings[0], severity="critical")] + findings[1:]
        assert len(evaluate_counts(findings, t)) == 1
        assert len(evaluate_counts(escalated, t)) == 1
