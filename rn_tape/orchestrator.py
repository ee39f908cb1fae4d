"""Test run orchestrator sequencing build, deploy, collection and teardown."""

import logging
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from dataclasses import dataclass

from rn_tape.builders.base import PlatformBuilder
from rn_tape.builders.loading import load_builder
from rn_tape.collector import ResultCollector
from rn_tape.devices.base import DeviceDriver
from rn_tape.devices.browserstack import BrowserStackConfig, BrowserStackDriver
from rn_tape.devices.local import LocalDriver
from rn_tape.host_app import HostApp, load_package_manifest, resolve_host_app_dir
from rn_tape.models.config import RunConfig
from rn_tape.models.package import PackageManifest
from rn_tape.models.result import Capabilities, RunResult
from rn_tape.process import ProcessRunner
from rn_tape.tunnel import NgrokTunnel, Tunnel

log = logging.getLogger(__name__)


async def best_effort(step: str, action: Callable[[], Awaitable[None]]) -> None:
    """Run a teardown step, logging instead of raising on failure."""
    log.info("## %s", step)
    try:
        await action()
    except Exception as exc:
        log.warning("Teardown step %s failed: %s", step, exc, exc_info=exc)


@dataclass(frozen=True, kw_only=True)
class TestRunOrchestrator:
    """Runs the package's tests on one device and returns their result.

    Phases run strictly in sequence. Once the collector is bound, teardown
    (keep-alive, session, tunnel, collector, in that order) runs on every
    exit path and never masks the failure that caused it.
    """

    __test__ = False

    config: RunConfig
    host_app: HostApp
    collector: ResultCollector
    tunnel: Tunnel
    builder: PlatformBuilder
    driver: DeviceDriver

    @classmethod
    def from_config(cls, config: RunConfig) -> "TestRunOrchestrator":
        """Assemble the collaborators for a run.

        Raises:
            UsageError: If no builder exists for the target system

        """
        builder_cls = load_builder(config.system)

        runner = ProcessRunner(verbose=config.verbose)
        root = resolve_host_app_dir(config)

        driver: DeviceDriver
        if config.credentials is not None:
            driver = BrowserStackDriver(
                config=BrowserStackConfig(
                    user=config.credentials.user,
                    access_key=config.credentials.access_key,
                ),
                run_config=config,
            )
        else:
            driver = LocalDriver(system=config.system, runner=runner)

        return cls(
            config=config,
            host_app=HostApp(root=root, runner=runner),
            collector=ResultCollector(port=config.port),
            tunnel=NgrokTunnel(region=config.tunnel_region),
            builder=builder_cls(
                root=root,
                runner=runner,
                capabilities=Capabilities(
                    device=config.device, os_version=config.os_version
                ),
            ),
            driver=driver,
        )

    async def run(self) -> RunResult:
        """Run every phase and return the collected result.

        Raises:
            RunError: For any fatal failure, after teardown has run

        """
        manifest = await self.prepare_package_dependency()
        await self.package_under_test(manifest)

        async with AsyncExitStack() as teardown:
            log.info("## local-server:start")
            await self.collector.start()
            teardown.push_async_callback(best_effort, "server:close", self.collector.stop)

            log.info("## ngrok:connect")
            # The agent may be running even if connecting fails
            teardown.push_async_callback(
                best_effort, "ngrok:disconnect", self.tunnel.disconnect
            )
            public_url = await self.tunnel.connect(self.collector.port)
            log.info("## ngrok:connected [publicURL=%s]", public_url)

            log.info("## react-native:build:prepare")
            self.host_app.write_test_config(manifest, self.config.test_path, public_url)

            artifact = await self.builder.build()

            teardown.push_async_callback(best_effort, "driver:quit", self.driver.close)
            await self.driver.deploy(
                artifact,
                project=manifest.name,
                on_fault=self.collector.pending.reject,
            )

            log.info("## Waiting for test results")
            return await self.collector.result()

    async def prepare_package_dependency(self) -> PackageManifest:
        """Reset the host app and install its own dependencies."""
        manifest = load_package_manifest(self.config.package_dir)
        self.host_app.clear_stale_dependency(
            manifest.name, force=self.config.force_clean
        )

        log.info("## react-native:npm install")
        self.host_app.write_manifest()
        await self.host_app.install_dependencies()
        return manifest

    async def package_under_test(self, manifest: PackageManifest) -> None:
        """Install the package under test into the host app."""
        log.info("## react-native:npm pack")
        await self.host_app.install_package(self.config.package_dir, manifest)
