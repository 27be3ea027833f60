import os
import string
import subprocess
import sys

import pytest

from vmrunkit.helpers import command_exit_code, rand_string, resolve_executable


def _failed_run(code_snippet):
    try:
        subprocess.run([sys.executable, "-c", code_snippet], check=True)
    except subprocess.CalledProcessError as exc:
        return exc
    raise AssertionError("command unexpectedly succeeded")


def test_exit_code_none_is_success():
    assert command_exit_code(None) == (0, True)


def test_exit_code_from_exited_process():
    err = _failed_run("import sys; sys.exit(3)")
    assert command_exit_code(err) == (3, True)


def test_exit_code_from_signal():
    err = _failed_run("import os, signal; os.kill(os.getpid(), signal.SIGTERM)")
    assert command_exit_code(err) == (143, True)


def test_exit_code_from_other_error():
    assert command_exit_code(ValueError("boom")) == (1, False)


def test_resolve_executable_absolute(tmp_path, monkeypatch):
    script = tmp_path / "run.sh"
    script.write_text("#!/bin/sh\n")
    script.chmod(0o755)
    monkeypatch.chdir(tmp_path)
    assert resolve_executable("run.sh") == str(script)


def test_resolve_executable_not_executable(tmp_path):
    script = tmp_path / "plain.txt"
    script.write_text("x")
    script.chmod(0o644)
    with pytest.raises(PermissionError, match="not executable"):
        resolve_executable(script)


def test_resolve_executable_directory(tmp_path):
    with pytest.raises(ValueError, match="not a file"):
        resolve_executable(tmp_path)


def test_resolve_executable_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        resolve_executable(os.path.join(tmp_path, "absent"))


@pytest.mark.parametrize("length", [0, 1, 8, 64])
def test_rand_string_length_and_alphabet(length):
    value = rand_string(length)
    assert len(value) == length
    assert set(value) <= set(string.digits + string.ascii_uppercase)


def test_rand_string_varies():
    assert len({rand_string(16) for _ in range(10)}) > 1