import sys
from pathlib import Path

import pytest

from artifact.foundation.process import CommandError, run_command


def test_run_command_returns_stdout():
    out = run_command([sys.executable, "-c", "print('pkg/foo/util.go')"])
    assert out == "pkg/foo/util.go\n"


def test_run_command_respects_cwd(tmp_path):
    out = run_command([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=str(tmp_path))
    assert Path(out.strip()).resolve() == tmp_path.resolve()


def test_run_command_combines_stderr_when_asked():
    code = "import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)"

    assert run_command([sys.executable, "-c", code]) == "out\n"
    combined = run_command([sys.executable, "-c", code], combine_output=True)
    assert "out" in combined
    assert "err" in combined


def test_run_command_nonzero_exit_raises_with_output():
    code = "import sys; print('compile error', file=sys.stderr); sys.exit(3)"

    with pytest.raises(CommandError, match="compile error") as excinfo:
        run_command([sys.executable, "-c", code])

    assert excinfo.value.returncode == 3
    assert "command exited with status 3" in str(excinfo.value)
    assert excinfo.value.output.strip() == "compile error"


def test_run_command_missing_binary_raises_command_error():
    with pytest.raises(CommandError, match="failed to start") as excinfo:
        run_command(["definitely-not-a-real-binary-4f2a"])

    assert excinfo.value.returncode is None


def test_run_command_rejects_empty_argv():
    with pytest.raises(ValueError, match="non-empty"):
        run_command([])


def test_run_command_replaces_undecodable_output_bytes():
    code = "import sys; sys.stdout.buffer.write(b'built \\xff ok\\n')"

    out = run_command([sys.executable, "-c", code], combine_output=True)

    assert out == "built � ok\n"


def test_run_command_failure_with_undecodable_output_is_command_error():
    code = "import sys; sys.stderr.buffer.write(b'bad \\xfe path\\n'); sys.exit(1)"

    with pytest.raises(CommandError, match="bad � path"):
        run_command([sys.executable, "-c", code])
