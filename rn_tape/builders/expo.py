"""Android app bundle build on Expo's build service."""

import asyncio
import json
import logging
import re
from dataclasses import dataclass

from rn_tape.builders.base import PlatformBuilder
from rn_tape.errors import ToolchainError
from rn_tape.models.result import BuildArtifact

log = logging.getLogger(__name__)

BUILD_COMMAND = (
    "npx",
    "expo",
    "build:android",
    "-t",
    "app-bundle",
    "--non-interactive",
)

BUILD_ID_PATTERN = re.compile(r"builds/([0-9a-f-]+)", re.IGNORECASE)

# Prints the artifact URL of the build once Expo reports one, nothing otherwise
STATUS_SCRIPT = """
const xdl = require('@expo/xdl');
xdl.Project.getBuildStatusAsync('.', {{ platform: 'android', current: false }})
  .then((data) => {{
    if (!data.jobs) return;
    const job = data.jobs.find((job) => job.id === {build_id});
    if (job && job.artifacts && job.artifacts.url) console.log(job.artifacts.url);
  }});
"""


def find_build_id(line: str) -> str | None:
    """Extract an Expo build identifier from a line of build output."""
    if (match := BUILD_ID_PATTERN.search(line)) is not None:
        return match.group(1)
    return None


@dataclass(frozen=True, kw_only=True)
class ExpoBuilder(PlatformBuilder):
    """Starts an Expo build and waits for its hosted artifact."""

    poll_interval: float = 30
    timeout: float = 1800

    async def build(self) -> BuildArtifact:
        log.info("## react-native:build:expo")
        build_id = await self.start_build()
        log.info("Expo build started [build=%s]", build_id)

        app_url = await self.wait_for_artifact(build_id)
        log.info("Expo build finished [app=%s]", app_url)
        return BuildArtifact(app_url=app_url, capabilities=self.capabilities)

    async def start_build(self) -> str:
        """Run the build command and return the last build identifier it printed."""
        build_id: str | None = None
        async for line in self.runner.lines(*BUILD_COMMAND, cwd=self.root):
            build_id = find_build_id(line) or build_id

        if build_id is None:
            raise ToolchainError(
                BUILD_COMMAND,
                0,
                message="Expo build output did not contain a build identifier",
            )
        return build_id

    async def poll_artifact_url(self, build_id: str) -> str | None:
        """Return the artifact URL of a build, or None while it is not ready."""
        script = STATUS_SCRIPT.format(build_id=json.dumps(build_id))
        output = await self.runner.run("node", "-e", script, cwd=self.root)
        urls = [
            line.strip()
            for line in output.splitlines()
            if line.strip().startswith(("http://", "https://"))
        ]
        return urls[-1] if urls else None

    async def wait_for_artifact(self, build_id: str) -> str:
        """Poll the build status until an artifact URL is available.

        Raises:
            ToolchainError: If no artifact appears within ``timeout`` seconds

        """
        deadline = asyncio.get_event_loop().time() + self.timeout

        while True:
            if (app_url := await self.poll_artifact_url(build_id)) is not None:
                return app_url

            if asyncio.get_event_loop().time() >= deadline:
                raise ToolchainError(
                    ("node", "-e", "getBuildStatusAsync"),
                    None,
                    message=(
                        f"Expo build {build_id} produced no artifact "
                        f"within {self.timeout} seconds"
                    ),
                )

            log.info("Expo build %s not ready yet", build_id)
            await asyncio.sleep(self.poll_interval)
