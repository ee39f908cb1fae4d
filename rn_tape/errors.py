"""Error taxonomy for test runs.

Every fatal condition raised while orchestrating a run derives from
``RunError``. The CLI maps any of them to the fixed orchestration exit code.
"""

from collections.abc import Sequence


class RunError(Exception):
    """Base error for a failed run.

    Optional ``data`` carries diagnostic output (e.g. the tail of a failed
    command) and is appended to the message when the error is rendered.
    """

    def __init__(self, message: str, *, data: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data

    def __str__(self) -> str:
        if self.data:
            return f"{self.message}\n{self.data}"
        return self.message


class UsageError(RunError):
    """Raised when the run was invoked with invalid input."""


class ToolchainError(RunError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int | None,
        *,
        message: str | None = None,
        data: str | None = None,
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        super().__init__(
            message
            or f"Command {' '.join(self.command)!r} exited with status {returncode}",
            data=data,
        )


class NetworkError(RunError):
    """Raised when the tunnel, the collector socket or a remote API fails."""


class ProtocolError(RunError):
    """Raised when a result submission is not a valid result payload."""


class TransportError(RunError):
    """Raised when a result submission breaks off before its body completes."""


class FilesystemError(RunError):
    """Raised when preparing the host app's files fails."""


class UnexpectedFault(RunError):
    """Raised when the remote session faults while waiting for the result."""
