"""Abstract base class for platform builds of the host app."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from rn_tape.models.result import BuildArtifact, Capabilities
from rn_tape.process import ProcessRunner


@dataclass(frozen=True, kw_only=True)
class PlatformBuilder(ABC):
    """Builds the host app into something a device can run.

    Each builder produces exactly one ``BuildArtifact`` per run, carrying
    either the path of a local binary or the URL of a hosted one.
    """

    root: Path
    runner: ProcessRunner
    capabilities: Capabilities

    @abstractmethod
    async def build(self) -> BuildArtifact:
        """Build the host app.

        Returns:
            The artifact to deploy

        Raises:
            ToolchainError: If any build command fails

        """
