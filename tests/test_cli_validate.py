import json

from typer.testing import CliRunner

from stack_observe.cli import app

runner = CliRunner()


def test_cli_validate_ok():
    r = runner.invoke(app, ["validate", "examples/minimal.yaml"])
    assert r.exit_code == 0, r.stdout + r.stderr
    assert "OK: cluster=dev-cluster namespace=monitoring" in r.stdout
    assert "- tempo: tempo.monitoring (merge)" in r.stdout


def test_cli_validate_reports_override_mode():
    r = runner.invoke(app, ["validate", "examples/override-all.yaml"])
    assert r.exit_code == 0, r.stdout + r.stderr
    assert "- tempo: tempo.monitoring (override)" in r.stdout


def test_cli_validate_invalid():
    r = runner.invoke(app, ["validate", "examples/invalid-missing-cluster.yaml"])
    assert r.exit_code == 2
    assert "E_REQUIRED_FIELD" in r.stderr
    assert "spec.clusterName" in r.stderr


def test_cli_validate_missing_file():
    r = runner.invoke(app, ["validate", "examples/nope.yaml"])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in r.stderr


def test_cli_validate_json_success():
    r = runner.invoke(app, ["validate", "examples/standard.yaml", "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["command"] == "validate"
    assert payload["ok"] is True
    assert payload["errors"] == []
    assert payload["summary"]["namespace"] == "observability"
    assert payload["summary"]["components"]["loki"] == {
        "name": "loki",
        "namespace": "logging",
        "override": False,
    }


def test_cli_validate_json_failure_contains_codes():
    r = runner.invoke(app, ["validate", "examples/invalid-missing-cluster.yaml", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    codes = {e["code"] for e in payload["errors"]}
    assert codes == {"E_REQUIRED_FIELD", "E_INVALID_TYPE"}


def test_cli_validate_unknown_format():
    r = runner.invoke(app, ["validate", "examples/minimal.yaml", "--format", "xml"])
    assert r.exit_code == 2
    assert "E_VALIDATE_UNKNOWN_FORMAT" in r.stderr


def test_cli_rejects_bad_log_level_env():
    r = runner.invoke(app, ["validate", "examples/minimal.yaml"], env={"STACK_OBSERVE_LOG_LEVEL": "loud"})
    assert r.exit_code == 2
    assert "E_CONFIG_INVALID" in r.stderr


def test_cli_rejects_bad_log_level_option():
    r = runner.invoke(app, ["--log-level", "loud", "validate", "examples/minimal.yaml"])
    assert r.exit_code == 2
    assert "E_CONFIG_INVALID" in r.stderr


def test_cli_accepts_log_level_option():
    r = runner.invoke(app, ["--log-level", "DEBUG", "validate", "examples/minimal.yaml"])
    assert r.exit_code == 0, r.stdout + r.stderr


def test_cli_validate_reports_xr_name():
    r = runner.invoke(app, ["validate", "examples/minimal.yaml"])
    assert "xr=minimal" in r.stdout

    r = runner.invoke(app, ["validate", "examples/standard.yaml", "--format", "json"])
    assert json.loads(r.stdout)["summary"]["xr_name"] == "standard"
