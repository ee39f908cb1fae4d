"""Abstract base class for getting a built app running on a device."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from typing_extensions import TypeAliasType

from rn_tape.models.result import BuildArtifact

FaultHandler = TypeAliasType("FaultHandler", Callable[[BaseException], None])


@dataclass(frozen=True, kw_only=True)
class DeviceDriver(ABC):
    """Deploys a build artifact to a device and starts it."""

    @abstractmethod
    async def deploy(
        self,
        artifact: BuildArtifact,
        *,
        project: str,
        on_fault: FaultHandler,
    ) -> None:
        """Install and start the app.

        Args:
            artifact: Output of the platform build
            project: Name of the package under test, used to label sessions
            on_fault: Called with any asynchronous failure raised after deploy
                returned, while the app is running

        """

    async def close(self) -> None:
        """Release whatever ``deploy`` acquired."""
