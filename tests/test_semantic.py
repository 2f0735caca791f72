"""Tests for aggregate (semantic) regressions."""

from conftest import make_finding
from vibegate.regression.protection import detect_protection_regressions
from vibegate.regression.semantic import (
    COVERAGE_DECREASED,
    PROTECTION_REMOVED,
    SEVERITY_GROUP_INCREASE,
    detect_coverage_decrease,
    detect_semantic_regressions,
    detect_severity_group_increases,
    gating_regressions,
)


def _on_files(*files, rule_id="VC-SEC-001", category="secrets"):
    return [
        make_finding(fid=f"{rule_id}-{i}", rule_id=rule_id, category=category, file=path, severity="medium")
        for i, path in enumerate(files)
    ]


class TestCoverageDecrease:
    def test_new_files_implicated(self):
        baseline = _on_files("a.ts", "b.ts")
        current = _on_files("a.ts", "b.ts", "c.ts")
        reg = detect_coverage_decrease(current, baseline)
        assert reg is not None
        assert reg.type == COVERAGE_DECREASED
        assert reg.severity == "medium"
        assert "new routes have security findings" in reg.description
        assert reg.details["newFiles"] == ["c.ts"]

    def test_same_files(self):
        findings = _on_files("a.ts", "b.ts")
        assert detect_coverage_decrease(findings, findings) is None

    def test_growth_must_be_meaningful(self):
        baseline = _on_files(*[f"f{i}.ts" for i in range(10)])
        current = _on_files(*[f"f{i}.ts" for i in range(11)])
        assert detect_coverage_decrease(current, baseline) is None
        current = _on_files(*[f"f{i}.ts" for i in range(12)])
        assert detect_coverage_decrease(current, baseline) is not None

    def test_swapped_files_do_not_count(self):
        assert detect_coverage_decrease(_on_files("b.ts"), _on_files("a.ts")) is None


class TestSeverityGroupIncrease:
    def test_family_escalation(self):
        baseline = [make_finding(fid="a", rule_id="VC-AUTH-001", severity="medium", file="x.ts")]
        current = [make_finding(fid="b", rule_id="VC-AUTH-002", severity="critical", file="y.ts")]
        (reg,) = detect_severity_group_increases(current, baseline)
        assert reg.type == SEVERITY_GROUP_INCREASE
        assert reg.affected_id == "VC-AUTH"
        assert reg.severity == "critical"
        assert reg.details == {"previousSeverity": "medium", "currentSeverity": "critical"}

    def test_family_only_in_current(self):
        current = [make_finding(rule_id="VC-AUTH-001", severity="critical")]
        assert detect_severity_group_increases(current, []) == ()

    def test_improvement_not_reported(self):
        baseline = [make_finding(rule_id="VC-AUTH-001", severity="high")]
        current = [make_finding(rule_id="VC-AUTH-001", severity="low")]
        assert detect_severity_group_increases(current, baseline) == ()


class TestDetectSemanticRegressions:
    def test_protection_folded_in(self):
        current = [make_finding(rule_id="VC-AUTH-001", file="api/users/route.ts")]
        regs = detect_semantic_regressions(current, [])
        protection = [r for r in regs if r.type == PROTECTION_REMOVED]
        assert len(protection) == 1
        assert protection[0].severity == "high"
        assert protection[0].affected_id == "api/users/route.ts"

    def test_reuses_precomputed_protection(self):
        current = [make_finding(rule_id="VC-AUTH-001")]
        protection = detect_protection_regressions(current, [])
        assert detect_semantic_regressions(current, [], protection) == detect_semantic_regressions(current, [])

    def test_gating_excludes_protection(self):
        current = [make_finding(rule_id="VC-AUTH-001", file="api/users/route.ts")]
        regs = detect_semantic_regressions(current, [])
        assert [r.type for r in gating_regressions(regs)] == [COVERAGE_DECREASED]

    def test_no_change_no_regressions(self):
        findings = [make_finding(rule_id="VC-AUTH-001")]
        assert detect_semantic_regressions(findings, findings) == ()
