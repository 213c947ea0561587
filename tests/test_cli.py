## suilang — CLI integration tests

import os, sys
import subprocess
from pathlib import Path


def run_cli(*cli_args: str | Path, stdin: str | None = None, env: dict | None = None,
            extra_args: list[str] | None = None) -> subprocess.CompletedProcess:
    args = [sys.executable, "-m", "suilang", "--plain"]
    if extra_args:
        args.extend(extra_args)
    args.extend(str(arg) for arg in cli_args)
    merged_env = os.environ.copy()
    if env:
        merged_env.update(env)
    return subprocess.run(args, input=stdin if stdin is not None else "", capture_output=True, text=True, env=merged_env)


def _write(tmp_path, name, content):
    p = tmp_path / name
    p.write_text(content, encoding="utf-8")
    return p


def test_cli_run_prints_output_lines(tmp_path):
    script = _write(tmp_path, "sum.sui", "= v0 40\n+ v0 v0 2\n. v0\n. \"done\"\n")
    result = run_cli("run", script)
    assert result.returncode == 0, result.stdout
    assert result.stdout == "42\ndone\n"


def test_cli_shortcut_passes_arguments(tmp_path):
    script = _write(tmp_path, "args.sui", ". g100\n. g101\n. g102\n")
    result = run_cli(script, "first", "-5")
    assert result.returncode == 0, result.stdout
    assert result.stdout.split() == ["2", "first", "-5"]


def test_cli_reads_input_from_stdin(tmp_path):
    script = _write(tmp_path, "double.sui", ", v0\n* v1 v0 2\n. v1\n")
    result = run_cli(script, stdin="21\n")
    assert result.stdout.strip() == "42"


def test_cli_runtime_error_shows_context_and_stack(tmp_path):
    script = _write(tmp_path, "crash.sui", "# 3 1 {\n/ v0 a0 0\n^ v0\n}\n. \"before\"\n$ v0 3 1\n")
    result = run_cli(script)
    assert result.returncode == 1
    out = result.stdout
    assert out.startswith("before\n")
    assert "RUNTIME ERROR." in out
    assert "DivisionByZero" in out
    assert f'File "{script}", line 2' in out
    assert "in function 3" in out


def test_cli_syntax_error_shows_context(tmp_path):
    script = _write(tmp_path, "bad.sui", "= v0 1\n+ v0 1\n. v0\n")
    result = run_cli(script)
    assert result.returncode == 1
    assert "SYNTAX ERROR." in result.stdout
    assert "ArityError" in result.stdout
    assert "+ v0 1" in result.stdout


def test_cli_import_error_names_cycle(tmp_path):
    _write(tmp_path, "b.sui", '_ "a"\n')
    script = _write(tmp_path, "a.sui", '_ "b"\n')
    result = run_cli(script)
    assert result.returncode == 1
    assert "IMPORT ERROR." in result.stdout
    assert "a.sui -> b.sui -> a.sui" in result.stdout


def test_cli_check_reports_each_file(tmp_path):
    good = _write(tmp_path, "good.sui", ". 1\n")
    bad = _write(tmp_path, "bad.sui", "x 1\n@ nowhere\n")
    result = run_cli("check", good, bad)
    assert result.returncode == 1
    assert "good.sui" in result.stdout
    assert "UnknownOpcode" in result.stdout

    result = run_cli("check", good)
    assert result.returncode == 0


def test_cli_max_depth_option(tmp_path):
    script = _write(tmp_path, "deep.sui", "# 0 1 {\n< v0 a0 1\n? v0 1\n- v1 a0 1\n$ v2 0 v1\n^ v2\n: 1\n^ 0\n}\n$ v0 0 20\n. v0\n")
    assert run_cli(script).stdout.strip() == "0"
    result = run_cli(script, extra_args=["--max-depth", "5"])
    assert result.returncode == 1
    assert "StackOverflow" in result.stdout


def test_cli_stats_and_trace(tmp_path):
    script = _write(tmp_path, "two.sui", ". 1\n. 2\n")
    result = run_cli(script, extra_args=["--stats"])
    assert "STATISTICS." in result.stdout
    assert "step\t2" in result.stdout

    result = run_cli(script, extra_args=["-vv"])
    assert ". 1" in result.stdout
    assert "two.sui:2" in result.stdout


def test_cli_undecodable_file_is_reported(tmp_path):
    script = tmp_path / "latin.sui"
    script.write_bytes(b'. "caf\xe9"\n')
    for command in ("check", "run"):
        result = run_cli(command, script)
        assert result.returncode == 1
        assert "IMPORT ERROR." in result.stdout
        assert "Traceback" not in result.stdout + result.stderr
