"""Integration tests for running toolchain commands."""

import logging
import sys
from contextlib import aclosing
from pathlib import Path

import pytest

from rn_tape.errors import ToolchainError
from rn_tape.process import ProcessRunner


def script(*lines: str) -> tuple[str, str]:
    """Arguments running a Python snippet in a child interpreter."""
    return "-c", "\n".join(lines)


class TestProcessRunner:
    """Tests for ProcessRunner."""

    async def test_collects_combined_output(self, tmp_path: Path) -> None:
        """Returns stdout and stderr lines in order."""
        runner = ProcessRunner()

        output = await runner.run(
            sys.executable,
            *script(
                "import sys",
                "print('BUILD', flush=True)",
                "print('warning: deprecated', file=sys.stderr, flush=True)",
                "print('SUCCESSFUL', flush=True)",
            ),
            cwd=tmp_path,
        )

        assert output == "BUILD\nwarning: deprecated\nSUCCESSFUL"

    async def test_runs_in_working_directory(self, tmp_path: Path) -> None:
        """Commands run in the given directory."""
        output = await ProcessRunner().run(
            sys.executable, *script("import os", "print(os.getcwd())"), cwd=tmp_path
        )

        assert Path(output).resolve() == tmp_path.resolve()

    async def test_failure_carries_output_tail(self, tmp_path: Path) -> None:
        """A non-zero exit raises with the last lines of output."""
        runner = ProcessRunner(tail_lines=2)

        with pytest.raises(ToolchainError) as exc_info:
            await runner.run(
                sys.executable,
                *script(
                    "for i in range(5): print(f'line {i}')",
                    "raise SystemExit(3)",
                ),
                cwd=tmp_path,
            )

        assert exc_info.value.returncode == 3
        assert exc_info.value.command[0] == sys.executable
        assert exc_info.value.data == "line 3\nline 4"

    async def test_missing_program(self, tmp_path: Path) -> None:
        """A program that cannot start raises without an exit status."""
        with pytest.raises(ToolchainError, match="Could not start") as exc_info:
            await ProcessRunner().run("rn-tape-no-such-program", cwd=tmp_path)

        assert exc_info.value.returncode is None

    async def test_verbose_output_logged_at_info(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Verbose runs relay each output line at INFO."""
        with caplog.at_level(logging.INFO, logger="rn_tape.process"):
            await ProcessRunner(verbose=True).run(
                sys.executable, *script("print('compiling')"), cwd=tmp_path
            )

        assert "compiling" in caplog.text

    async def test_quiet_output_logged_at_debug(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Quiet runs keep process output out of the INFO log."""
        with caplog.at_level(logging.INFO, logger="rn_tape.process"):
            await ProcessRunner().run(
                sys.executable, *script("print('compiling')"), cwd=tmp_path
            )

        assert "compiling" not in caplog.text

    async def test_stopping_early_kills_process(self, tmp_path: Path) -> None:
        """Closing the line stream early terminates the command."""
        runner = ProcessRunner()
        lines = runner.lines(
            sys.executable,
            *script(
                "import time",
                "print('started', flush=True)",
                "time.sleep(60)",
            ),
            cwd=tmp_path,
        )

        async with aclosing(lines):
            first = await anext(lines)

        assert first == "started"
