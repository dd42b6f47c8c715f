import json
import sys
from pathlib import Path

import pytest
import yaml
from loguru import logger
from typer.testing import CliRunner

from gaterun.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    # The CLI points loguru at the (now closed) captured stderr.
    logger.remove()
    logger.add(sys.stderr)


def write_pipeline(repo: Path, checks) -> Path:
    path = repo / ".gate" / "pipeline.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump({"schema_version": 1, "checks": checks}))
    return path


def py(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def test_cli_help():
    res = runner.invoke(app, ["--help"])
    assert res.exit_code == 0
    assert "Fail-fast quality gate" in res.stdout


def test_cli_version():
    res = runner.invoke(app, ["--version"])
    assert res.exit_code == 0
    assert "gaterun version" in res.stdout


def test_run_help():
    res = runner.invoke(app, ["run", "--help"])
    assert res.exit_code == 0


def test_run_all_pass(tmp_path):
    write_pipeline(
        tmp_path,
        [
            {"name": "format", "cmd": py("open('format.ran', 'w').close()")},
            {"name": "lint", "cmd": py("pass")},
            {"name": "test", "cmd": py("pass")},
        ],
    )
    res = runner.invoke(app, ["run", "--repo", str(tmp_path)])

    assert res.exit_code == 0
    assert (tmp_path / "format.ran").exists()
    assert "All 3 checks passed" in res.output


def test_run_propagates_failing_status(tmp_path):
    write_pipeline(
        tmp_path,
        [
            {"name": "format", "cmd": py("pass")},
            {"name": "lint", "cmd": py("raise SystemExit(2)")},
            {"name": "test", "cmd": py("open('test.ran', 'w').close()")},
        ],
    )
    res = runner.invoke(app, ["run", "--repo", str(tmp_path)])

    assert res.exit_code == 2
    assert not (tmp_path / "test.ran").exists()
    assert "Check 'lint' failed with exit code 2" in res.output


def test_run_missing_tool(tmp_path):
    write_pipeline(
        tmp_path,
        [
            {"name": "format", "cmd": ["definitely-not-a-real-formatter-xyz"]},
            {"name": "test", "cmd": py("pass")},
        ],
    )
    res = runner.invoke(app, ["run", "--repo", str(tmp_path)])

    assert res.exit_code == 127
    assert "could not start" in res.output


def test_run_json(tmp_path):
    write_pipeline(
        tmp_path,
        [
            {"name": "format", "cmd": py("pass")},
            {"name": "lint", "cmd": py("raise SystemExit(3)")},
        ],
    )
    res = runner.invoke(app, ["run", "--repo", str(tmp_path), "--json"])

    assert res.exit_code == 3
    # The JSON object is always the last thing written.
    data = json.loads(res.output[res.output.index("{\n"):])
    assert data["status"] == "failure"
    assert data["exit_code"] == 3
    assert data["failed_check"] == "lint"
    assert [c["name"] for c in data["checks"]] == ["format", "lint"]


def test_no_subcommand_runs_gate_in_cwd(tmp_path, monkeypatch):
    write_pipeline(tmp_path, [{"name": "only", "cmd": py("raise SystemExit(4)")}])
    monkeypatch.chdir(tmp_path)

    res = runner.invoke(app, [])

    assert res.exit_code == 4


def test_run_explicit_config(tmp_path):
    cfg = tmp_path / "gate.yaml"
    cfg.write_text(yaml.safe_dump({"checks": [{"name": "x", "cmd": py("pass")}]}))

    res = runner.invoke(app, ["run", "--repo", str(tmp_path), "--config", str(cfg)])
    assert res.exit_code == 0


def test_config_error_exits_2(tmp_path):
    path = tmp_path / ".gate" / "pipeline.yaml"
    path.parent.mkdir()
    path.write_text("checks: []\n")

    res = runner.invoke(app, ["run", "--repo", str(tmp_path)])

    assert res.exit_code == 2
    assert "Config error" in res.output


def test_list(tmp_path):
    write_pipeline(
        tmp_path,
        [{"name": "fmt", "cmd": ["black", "--check", "."]}, {"name": "tests", "cmd": "pytest"}],
    )
    res = runner.invoke(app, ["list", "--repo", str(tmp_path)])

    assert res.exit_code == 0
    assert res.stdout.index("fmt") < res.stdout.index("tests")


def test_list_defaults(tmp_path):
    res = runner.invoke(app, ["list", "--repo", str(tmp_path)])

    assert res.exit_code == 0
    assert "cargo" in res.stdout
    assert "defaults" in res.stdout


def test_doctor_ok(tmp_path):
    write_pipeline(tmp_path, [{"name": "x", "cmd": py("pass")}])
    res = runner.invoke(app, ["doctor", "--repo", str(tmp_path)])

    assert res.exit_code == 0
    assert "gaterun doctor" in res.stdout


def test_doctor_missing_tool(tmp_path):
    write_pipeline(tmp_path, [{"name": "x", "cmd": ["definitely-not-a-real-tool-xyz"]}])
    res = runner.invoke(app, ["doctor", "--repo", str(tmp_path)])

    assert res.exit_code == 2


def test_init_writes_template(tmp_path):
    res = runner.invoke(app, ["init", "--repo", str(tmp_path)])

    assert res.exit_code == 0
    assert (tmp_path / ".gate" / "pipeline.yaml").exists()

    res = runner.invoke(app, ["init", "--repo", str(tmp_path)])
    assert res.exit_code == 0
    assert "Kept existing" in res.stdout


def test_config_not_utf8_exits_2(tmp_path):
    path = tmp_path / ".gate" / "pipeline.yaml"
    path.parent.mkdir()
    path.write_bytes(b"checks:\n  - name: a\n    cmd: \xff\xfe\n")

    res = runner.invoke(app, ["run", "--repo", str(tmp_path)])

    assert res.exit_code == 2
    assert "Config error" in res.output
    assert not isinstance(res.exception, UnicodeDecodeError)


def test_doctor_not_utf8_exits_2(tmp_path):
    path = tmp_path / ".gate" / "pipeline.yaml"
    path.parent.mkdir()
    path.write_bytes(b"checks: \xff\n")

    res = runner.invoke(app, ["doctor", "--repo", str(tmp_path)])
    assert res.exit_code == 2


def test_run_json_file(tmp_path):
    write_pipeline(
        tmp_path,
        [
            {"name": "format", "cmd": py("pass")},
            {"name": "lint", "cmd": py("raise SystemExit(3)")},
        ],
    )
    out = tmp_path / "reports" / "gate.json"
    res = runner.invoke(app, ["run", "--repo", str(tmp_path), "--json-file", str(out)])

    assert res.exit_code == 3
    data = json.loads(out.read_text())
    assert data["failed_check"] == "lint"
    assert [c["name"] for c in data["checks"]] == ["format", "lint"]
