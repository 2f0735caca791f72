"""Tests for the CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from conftest import finding_json
from vibegate.cli import app

runner = CliRunner()


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "vibegate" in result.output


class TestInit:
    def test_creates_config(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (tmp_path / ".vibegate.toml").exists()

    def test_refuses_overwrite(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".vibegate.toml").write_text("existing")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert (tmp_path / ".vibegate.toml").read_text() == "existing"

    def test_force_overwrites(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".vibegate.toml").write_text("existing")
        result = runner.invoke(app, ["init", "--force"])
        assert result.exit_code == 0
        assert "[policy]" in (tmp_path / ".vibegate.toml").read_text()

    def test_template_loads(self, tmp_path: Path, monkeypatch):
        from vibegate.config.loader import load_policy_config

        monkeypatch.chdir(tmp_path)
        runner.invoke(app, ["init"])
        assert load_policy_config(tmp_path).policy.profile == "startup"


class TestProfiles:
    def test_lists_profiles(self):
        result = runner.invoke(app, ["profiles"])
        assert result.exit_code == 0
        for name in ("startup", "growth", "strict", "enterprise", "compliance-lite"):
            assert name in result.output


class TestEvaluate:
    def test_clean_artifact_passes(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        path = write_artifact("scan.json", [finding_json(severity="low")])
        result = runner.invoke(app, ["evaluate", str(path)])
        assert result.exit_code == 0

    def test_critical_blocks(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        path = write_artifact("scan.json", [finding_json(severity="critical")])
        result = runner.invoke(app, ["evaluate", str(path)])
        assert result.exit_code == 1

    def test_json_output(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        path = write_artifact("scan.json", [finding_json(severity="high")])
        result = runner.invoke(app, ["evaluate", str(path), "--format", "json", "--profile", "strict"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["status"] == "fail"
        assert data["profileName"] == "strict"
        assert data["artifact"]["repoName"] == "acme/web"

    def test_output_file(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        path = write_artifact("scan.json", [finding_json(severity="low")])
        out = tmp_path / "report.json"
        result = runner.invoke(app, ["evaluate", str(path), "--output", str(out)])
        assert result.exit_code == 0
        assert json.loads(out.read_text())["status"] == "pass"

    def test_baseline(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        baseline = write_artifact("base.json", [])
        current = write_artifact("scan.json", [finding_json(severity="high")])
        result = runner.invoke(app, ["evaluate", str(current), "--baseline", str(baseline), "--format", "json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert "new_high_critical" in [r["code"] for r in data["reasons"]]
        assert data["regression"]["protectionRegressions"][0]["protectionType"] == "auth"

    def test_waivers_file(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        path = write_artifact("scan.json", [finding_json(severity="critical")])
        waivers = tmp_path / "waivers.json"
        waivers.write_text(json.dumps({
            "version": "0.1",
            "waivers": [{
                "id": "w-1",
                "match": {"fingerprint": "sha256:aaa"},
                "reason": "Accepted",
                "createdBy": "alice",
                "createdAt": "2026-01-01T00:00:00Z",
            }],
        }))
        result = runner.invoke(app, ["evaluate", str(path), "--waivers", str(waivers)])
        assert result.exit_code == 0

    def test_config_file(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".vibegate.toml").write_text('[thresholds]\nfail_on_severity = "low"\n')
        path = write_artifact("scan.json", [finding_json(severity="low")])
        result = runner.invoke(app, ["evaluate", str(path)])
        assert result.exit_code == 1

    def test_missing_configured_waivers_ignored(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".vibegate.toml").write_text('[policy]\nwaivers = "none-yet.json"\n')
        path = write_artifact("scan.json", [finding_json(severity="low")])
        result = runner.invoke(app, ["evaluate", str(path)])
        assert result.exit_code == 0

    def test_bad_artifact_exits_2(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        path = write_artifact("scan.json", [finding_json(fingerprint="")])
        result = runner.invoke(app, ["evaluate", str(path)])
        assert result.exit_code == 2

    def test_bad_config_exits_2(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        path = write_artifact("scan.json", [])
        result = runner.invoke(app, ["evaluate", str(path), "--profile", "lenient"])
        assert result.exit_code == 2

    def test_invalid_format_exits_2(self, tmp_path: Path, monkeypatch, write_artifact):
        monkeypatch.chdir(tmp_path)
        path = write_artifact("scan.json", [])
        result = runner.invoke(app, ["evaluate", str(path), "--format", "sarif"])
        assert result.exit_code == 2


class TestWaiversCommands:
    def test_init_add_list_remove(self, tmp_path: Path):
        file = tmp_path / "waivers.json"
        assert runner.invoke(app, ["waivers", "init", "--file", str(file)]).exit_code == 0

        result = runner.invoke(app, [
            "waivers", "add", "--file", str(file),
            "--rule", "VC-AUTH-*", "--path", "app/api/health/**",
            "--reason", "Public health check", "--by", "alice",
        ])
        assert result.exit_code == 0
        data = json.loads(file.read_text())
        (entry,) = data["waivers"]
        assert entry["match"] == {"ruleId": "VC-AUTH-*", "pathPattern": "app/api/health/**"}

        listed = runner.invoke(app, ["waivers", "list", "--file", str(file)])
        assert listed.exit_code == 0
        assert entry["id"] in listed.output

        removed = runner.invoke(app, ["waivers", "remove", entry["id"], "--file", str(file)])
        assert removed.exit_code == 0
        assert json.loads(file.read_text())["waivers"] == []

    def test_add_creates_yaml_file(self, tmp_path: Path):
        file = tmp_path / "waivers.yaml"
        result = runner.invoke(app, [
            "waivers", "add", "--file", str(file),
            "--fingerprint", "sha256:aaa", "--reason", "ok", "--by", "bob",
            "--expires", "2999-01-01T00:00:00Z", "--ticket", "SEC-1",
        ])
        assert result.exit_code == 0
        assert "ticketRef: SEC-1" in file.read_text()

    def test_add_rejects_both_targets(self, tmp_path: Path):
        result = runner.invoke(app, [
            "waivers", "add", "--file", str(tmp_path / "w.json"),
            "--fingerprint", "fp", "--rule", "VC-X", "--reason", "r", "--by", "a",
        ])
        assert result.exit_code == 2

    def test_add_rejects_past_expiry(self, tmp_path: Path):
        result = runner.invoke(app, [
            "waivers", "add", "--file", str(tmp_path / "w.json"),
            "--fingerprint", "fp", "--reason", "r", "--by", "a", "--expires", "2001-01-01",
        ])
        assert result.exit_code == 2

    def test_remove_unknown_id(self, tmp_path: Path):
        file = tmp_path / "waivers.json"
        runner.invoke(app, ["waivers", "init", "--file", str(file)])
        result = runner.invoke(app, ["waivers", "remove", "w-nope", "--file", str(file)])
        assert result.exit_code == 1

    def test_init_refuses_overwrite(self, tmp_path: Path):
        file = tmp_path / "waivers.json"
        runner.invoke(app, ["waivers", "init", "--file", str(file)])
        assert runner.invoke(app, ["waivers", "init", "--file", str(file)]).exit_code == 1
