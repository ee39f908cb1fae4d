"""Models for build artifacts and test run results."""

from dataclasses import dataclass
from pathlib import Path

from pydantic import ConfigDict

from rn_tape.models.base import Model

# Exit statuses wrap modulo 256, so anything outside this range reports failure
MAX_EXIT_CODE = 255
FAILURE_EXIT_CODE = 1


@dataclass(frozen=True, kw_only=True)
class Capabilities:
    """Device selection passed to the device farm."""

    device: str
    os_version: str


@dataclass(frozen=True, kw_only=True)
class BuildArtifact:
    """Output of a platform build.

    Exactly one of ``app`` (a local binary) or ``app_url`` (an artifact already
    hosted elsewhere) is set.
    """

    capabilities: Capabilities
    app: Path | None = None
    app_url: str | None = None

    def __post_init__(self) -> None:
        if (self.app is None) == (self.app_url is None):
            raise ValueError("BuildArtifact needs exactly one of app or app_url")


class RunResult(Model):
    """Payload submitted by the host app once its tests have finished."""

    model_config = ConfigDict(frozen=True, extra="allow")

    finished: int | bool
    output: str

    @property
    def exit_code(self) -> int:
        """Process exit code carried by the completion flag."""
        code = int(self.finished)
        if 0 <= code <= MAX_EXIT_CODE:
            return code
        return FAILURE_EXIT_CODE
