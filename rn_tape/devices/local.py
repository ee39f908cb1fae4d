"""Deployment to a device attached to this machine."""

import logging
from dataclasses import dataclass

from rn_tape.devices.base import DeviceDriver, FaultHandler
from rn_tape.models.config import TargetSystem
from rn_tape.models.result import BuildArtifact
from rn_tape.process import ProcessRunner

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class LocalDriver(DeviceDriver):
    """Installs Android builds with adb and leaves the rest to the operator.

    Starting the app, and installing iOS or Expo builds, is a manual step.
    """

    system: TargetSystem
    runner: ProcessRunner

    async def deploy(
        self,
        artifact: BuildArtifact,
        *,
        project: str,
        on_fault: FaultHandler,
    ) -> None:
        if self.system == "android" and artifact.app is not None:
            log.info("## react-native:install")
            await self.runner.run(
                "adb", "install", "-r", str(artifact.app), cwd=artifact.app.parent
            )
            log.warning(
                '## MANUAL ACTION REQUIRED: open the react-native app "rntape" '
                "on the device."
            )
            return

        log.warning(
            "## MANUAL ACTION REQUIRED: Install the app and start it [app=%s]",
            artifact.app or artifact.app_url,
        )
