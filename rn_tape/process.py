"""Run external toolchain commands."""

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

from rn_tape.errors import ToolchainError

log = logging.getLogger(__name__)

# Build tools print very long lines, the asyncio default of 64 KiB is too small
STREAM_LIMIT = 1024 * 1024


@dataclass(frozen=True, kw_only=True)
class ProcessRunner:
    """Runs commands, relaying their output to the log.

    Output is logged at INFO when ``verbose`` is set, at DEBUG otherwise.
    The last ``tail_lines`` lines are attached to the error of a failed
    command.
    """

    verbose: bool = False
    tail_lines: int = 50

    async def run(self, program: str, *args: str, cwd: Path) -> str:
        """Run a command to completion and return its combined output."""
        output = [line async for line in self.lines(program, *args, cwd=cwd)]
        return "\n".join(output)

    async def lines(
        self, program: str, *args: str, cwd: Path
    ) -> AsyncIterator[str]:
        """Run a command and yield its combined output line by line.

        The sequence is finite and cannot be restarted. A non-zero exit status
        raises ``ToolchainError`` once the output is exhausted.
        """
        command = (program, *args)
        log.debug("Running %s (cwd=%s)", " ".join(command), cwd)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                limit=STREAM_LIMIT,
            )
        except OSError as exc:
            raise ToolchainError(
                command, None, message=f"Could not start {program!r}: {exc}"
            ) from exc

        assert process.stdout is not None
        tail: deque[str] = deque(maxlen=self.tail_lines)
        level = logging.INFO if self.verbose else logging.DEBUG

        try:
            async for raw in process.stdout:
                line = raw.decode(errors="replace").rstrip("\r\n")
                tail.append(line)
                log.log(level, "[%s] %s", program, line)
                yield line
        finally:
            if process.returncode is None and not process.stdout.at_eof():
                # Consumer stopped early
                process.kill()
            returncode = await process.wait()

        if returncode != 0:
            raise ToolchainError(command, returncode, data="\n".join(tail))
