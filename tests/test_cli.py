import json
import os
import shlex
import subprocess
import sys

from pdb_lines import build_sample_pdb


def _env(tmp_path):
    env = dict(os.environ)
    env["MOLCONSOLE_CONFIG"] = str(tmp_path / "missing.json")
    return env


def run_cli(cmd: str, tmp_path) -> str:
    exe = [sys.executable, "-m", "molconsole.cli"]
    return subprocess.check_output(exe + shlex.split(cmd), text=True, env=_env(tmp_path))


def _write_pdb(tmp_path):
    path = tmp_path / "sample.pdb"
    path.write_text(build_sample_pdb())
    return path


def test_info(tmp_path):
    out = run_cli("info", tmp_path)
    d = json.loads(out)
    assert "version" in d["console"]
    assert "color" in d["console"]["commands"]
    assert d["console"]["config"]["preset"] == "default"


def test_info_with_pdb(tmp_path):
    pdb = _write_pdb(tmp_path)
    d = json.loads(run_cli(f"info --pdb {pdb}", tmp_path))
    s = d["console"]["structure"]
    assert s["atoms"] == 39
    assert s["chains"] == 3
    assert s["topology"].startswith("Topology: 3 chains")


def test_run_json(tmp_path):
    pdb = _write_pdb(tmp_path)
    out = run_cli(f"run --pdb {pdb} --json 'color red /A' 'focus /B'", tmp_path)
    results = json.loads(out)
    assert [r["success"] for r in results] == [True, True]
    assert results[0]["atomCount"] == 27
    assert results[1]["center"] == [0.0, 10.0, 2.0]


def test_run_script_and_exit_code(tmp_path):
    pdb = _write_pdb(tmp_path)
    script = tmp_path / "script.cmd"
    script.write_text("# comment\ncolor bychain\n\nstyle teapot\n")
    exe = [sys.executable, "-m", "molconsole.cli", "run", "--pdb", str(pdb), "-f", str(script)]
    proc = subprocess.run(exe, capture_output=True, text=True, env=_env(tmp_path))
    assert proc.returncode == 1
    assert "[ok] color bychain" in proc.stdout
    assert "[error] style teapot" in proc.stdout
    assert "Invalid style 'teapot'" in proc.stdout


def test_missing_pdb_is_an_error(tmp_path):
    exe = [sys.executable, "-m", "molconsole.cli", "info", "--pdb", str(tmp_path / "nope.pdb")]
    proc = subprocess.run(exe, capture_output=True, text=True, env=_env(tmp_path))
    assert proc.returncode == 1
    assert "molconsole: error:" in proc.stderr
    assert "Traceback" not in proc.stderr
