"""CLI tests."""

from __future__ import annotations

import io
import sys

import pytest

from archive_runner import cli
from archive_runner.runtime.events import Outcome
from archive_runner.runtime.process_runner import IS_WINDOWS

from conftest import archiver_args


class TestParseSwitch:
    """KEY[=VALUE] parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("y", ("y", True)),
            ("ssc-", ("ssc", False)),
            ("mx=9", ("mx", 9)),
            ("o=/tmp/out", ("o", "/tmp/out")),
            ("p=a=b", ("p", "a=b")),
            ("t=7z", ("t", "7z")),
        ],
    )
    def test_parse(self, text: str, expected):
        assert cli.parse_switch(text) == expected


class TestExitCode:
    """Outcome code to shell status."""

    def test_normal(self):
        assert cli.exit_code_for(Outcome(code=2)) == 2

    def test_signal(self):
        assert cli.exit_code_for(Outcome(code=-15)) == 143


class TestProgressHandler:
    """Only 7-Zip's own prompt is answered."""

    class Stdin:
        def __init__(self):
            self.written = []

        def write(self, data: bytes) -> None:
            self.written.append(data)

    def test_prompt_answered(self):
        stdin, cancels = self.Stdin(), []
        progress = cli._make_progress("hunter2", io.StringIO(), quiet=True)
        progress("Enter password (will not be echoed):", stdin, lambda: cancels.append(1))
        assert stdin.written == [b"hunter2\n"]
        assert cancels == []

    def test_file_named_password_is_not_a_prompt(self):
        stdin, cancels = self.Stdin(), []
        progress = cli._make_progress(None, io.StringIO(), quiet=True)
        progress("2024-01-01 10:00:00 ....A   12   10  passwords.txt\n", stdin, lambda: cancels.append(1))
        assert stdin.written == []
        assert cancels == []


@pytest.mark.integration
@pytest.mark.skipif(IS_WINDOWS, reason="POSIX signal handling")
class TestMain:
    """End-to-end runs against the fake archiver."""

    def run(self, *argv: str) -> tuple[int, str]:
        out = io.StringIO()
        code = cli.main(["--binary", sys.executable, *argv], out=out)
        return code, out.getvalue()

    def test_success(self, capsys):
        code, output = self.run(*archiver_args("--stdout", "Everything is Ok\n"))
        assert code == 0
        assert output == "Everything is Ok\n"

    def test_errors_and_exit_code(self, capsys):
        code, _ = self.run(*archiver_args("--stdout", "Error: disk full\n", "--exit-code", "2"))
        assert code == 2
        assert "error: disk full" in capsys.readouterr().err

    def test_password_answered(self, capsys):
        code, output = self.run("--password", "hunter2", *archiver_args("--prompt", "hunter2"))
        assert code == 0
        assert "Everything is Ok" in output

    def test_password_missing_cancels(self, capsys):
        code, _ = self.run("--quiet", *archiver_args("--prompt", "hunter2"))
        assert code == 128 + 15
        assert "cancelled" in capsys.readouterr().err

    def test_listing_mentioning_passwords(self, capsys):
        listing = "2024-01-01 10:00:00 ....A   12   10  passwords.txt\n"
        code, output = self.run(*archiver_args("--stdout", listing, "--repeat", "20"))
        assert code == 0
        assert output == listing * 20
        assert "cancelled" not in capsys.readouterr().err

    @pytest.mark.timeout(10)
    def test_timeout_cancels(self, capsys):
        code, _ = self.run(
            "--timeout", "0.3", "--quiet",
            *archiver_args("--stdout", "working\n", "--repeat", "200", "--interval", "0.05"),
        )
        assert code == 128 + 15
        assert "cancelled" in capsys.readouterr().err

    def test_missing_binary(self, capsys):
        code = cli.main(["--binary", "nonexistent_archiver_xyz_123", "l", "a.7z"], out=io.StringIO())
        assert code == cli.EXIT_NOT_FOUND
        assert "cannot start archiver" in capsys.readouterr().err

    def test_invalid_switch(self, capsys):
        code = cli.main(["--binary", sys.executable, "-s", "o=", "l"], out=io.StringIO())
        assert code == cli.EXIT_USAGE
