"""BrowserStack App Automate driver implementation."""

import asyncio
import json
import logging
from collections.abc import Mapping
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from appium import webdriver
from appium.options.common.base import AppiumOptions
from pydantic import ValidationError
from selenium.common.exceptions import WebDriverException

from rn_tape.devices.base import DeviceDriver, FaultHandler
from rn_tape.devices.browserstack.config import BrowserStackConfig
from rn_tape.devices.browserstack.models import UploadResponse
from rn_tape.devices.faults import fault_handler
from rn_tape.devices.keep_alive import KeepAlive
from rn_tape.errors import FilesystemError, NetworkError
from rn_tape.models.config import RunConfig, TargetSystem
from rn_tape.models.result import BuildArtifact

log = logging.getLogger(__name__)

UPLOAD_PATH = "/app-automate/upload"

PLATFORM_NAMES: Mapping[TargetSystem, str] = {
    "android": "android",
    "expo": "android",
    "ios": "ios",
}

# A no-op action that counts as activity for the session's idle timer
IDLE_PING_SCRIPT = (
    'browserstack_executor: {"action": "annotate", '
    '"arguments": {"data": "# Idle Ping", "level": "info"}}'
)


@dataclass
class SessionState:
    """Resources held between deploy and close."""

    driver: webdriver.Remote | None = None
    keep_alive: KeepAlive | None = None
    scope: ExitStack = field(default_factory=ExitStack)


@dataclass(frozen=True, kw_only=True)
class BrowserStackDriver(DeviceDriver):
    """Uploads the build to BrowserStack and starts an Appium session on it."""

    config: BrowserStackConfig
    run_config: RunConfig
    state: SessionState = field(default_factory=SessionState, repr=False)

    async def deploy(
        self,
        artifact: BuildArtifact,
        *,
        project: str,
        on_fault: FaultHandler,
    ) -> None:
        """Upload the artifact, start the session and keep it alive if needed."""
        app_url = await self.upload(artifact)

        log.info("## Starting browser test at %s", app_url)
        capabilities = self.session_capabilities(artifact, app_url, project)
        log.debug("Session capabilities: %s", redact(capabilities))

        self.state.scope.enter_context(fault_handler(on_fault))
        self.state.driver = await self.start_session(capabilities)

        if self.run_config.needs_keep_alive:
            self.state.keep_alive = KeepAlive(
                self.ping,
                interval=self.config.ping_interval,
                on_fault=on_fault,
            )
            self.state.keep_alive.start()

    async def upload(self, artifact: BuildArtifact) -> str:
        """Upload a local binary or register a hosted one, returning its app URL.

        Raises:
            NetworkError: If the upload fails or BrowserStack reports an error

        """
        auth = aiohttp.BasicAuth(
            self.config.user, self.config.access_key.get_secret_value()
        )
        log.info("## Uploading file to browserstack")

        with ExitStack() as files:
            form = aiohttp.FormData()
            if artifact.app is not None:
                try:
                    app_file = files.enter_context(artifact.app.open("rb"))
                except OSError as exc:
                    raise FilesystemError(
                        f"Cannot read build artifact {artifact.app}: {exc}"
                    ) from exc
                form.add_field("file", app_file, filename=artifact.app.name)
                form.add_field("data", "{}")
            else:
                form.add_field("data", json.dumps({"url": artifact.app_url}))

            try:
                async with aiohttp.ClientSession(
                    base_url=self.config.api_base_url, auth=auth
                ) as session:
                    async with session.post(UPLOAD_PATH, data=form) as response:
                        text = await response.text()
            except aiohttp.ClientError as exc:
                raise NetworkError(f"BrowserStack upload failed: {exc}") from exc

        try:
            upload = UploadResponse.model_validate_json(text)
        except ValidationError as exc:
            raise NetworkError(
                f"BrowserStack upload returned an unexpected response "
                f"({response.status})",
                data=text,
            ) from exc

        if upload.error:
            raise NetworkError(f"BrowserStack upload failed: {upload.error}")
        if not upload.app_url:
            raise NetworkError("BrowserStack upload returned no app URL", data=text)

        return upload.app_url

    def session_capabilities(
        self, artifact: BuildArtifact, app_url: str, project: str
    ) -> dict[str, Any]:
        """W3C capabilities for an App Automate session."""
        return {
            "platformName": PLATFORM_NAMES[self.run_config.system],
            "appium:app": app_url,
            "bstack:options": {
                "userName": self.config.user,
                "accessKey": self.config.access_key.get_secret_value(),
                "deviceName": artifact.capabilities.device,
                "osVersion": artifact.capabilities.os_version,
                "projectName": project,
                "buildName": self.run_config.build_name,
                "sessionName": project,
                "networkLogs": True,
                "idleTimeout": self.run_config.session_idle_timeout,
            },
        }

    async def start_session(self, capabilities: dict[str, Any]) -> webdriver.Remote:
        """Open the remote session; the app starts as part of it."""
        options = AppiumOptions().load_capabilities(capabilities)
        try:
            return await asyncio.to_thread(
                webdriver.Remote, self.config.hub_url, options=options
            )
        except (WebDriverException, OSError) as exc:
            raise NetworkError(f"Could not start BrowserStack session: {exc}") from exc

    async def ping(self) -> None:
        """Register activity on the session."""
        if self.state.driver is not None:
            await asyncio.to_thread(self.state.driver.execute_script, IDLE_PING_SCRIPT)

    async def close(self) -> None:
        """Stop pinging, quit the session and remove the fault handler."""
        state = self.state
        try:
            if state.keep_alive is not None:
                await state.keep_alive.cancel()
            if state.driver is not None:
                driver, state.driver = state.driver, None
                log.info("## driver:quit")
                await asyncio.to_thread(driver.quit)
        finally:
            state.scope.close()


def redact(capabilities: Mapping[str, Any]) -> dict[str, Any]:
    """Copy capabilities with the access key masked, for logging."""
    options = dict(capabilities.get("bstack:options", {}))
    if "accessKey" in options:
        options["accessKey"] = "***"
    return {**capabilities, "bstack:options": options}
