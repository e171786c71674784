from pathlib import Path

from multiclaude.process import NOT_FOUND_EXIT_CODE
from multiclaude.process import ProcessRunner


def test_run_captures_output_and_exit_code() -> None:
    runner = ProcessRunner()
    result = runner.run("sh", ["-c", "echo out; echo err >&2; exit 4"])
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"
    assert result.exit_code == 4
    assert not result.ok


def test_run_uses_cwd(tmp_path: Path) -> None:
    result = ProcessRunner().run("pwd", cwd=tmp_path)
    assert result.ok
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


def test_missing_binary_reports_exit_code() -> None:
    result = ProcessRunner().run("definitely-not-a-real-binary-xyz", ["--help"])
    assert result.exit_code == NOT_FOUND_EXIT_CODE
    assert result.stdout == ""
    assert "definitely-not-a-real-binary-xyz" in result.stderr


def test_lines_skips_blank_lines() -> None:
    result = ProcessRunner(echo_output=True).run("printf", ["a\n\nb\n"])
    assert result.lines() == ["a", "b"]
