"""End-to-end runs against a real collector with stand-in builds and devices."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import aiohttp
import pytest

from rn_tape.builders.base import PlatformBuilder
from rn_tape.cli import run
from rn_tape.collector import ResultCollector
from rn_tape.devices.base import DeviceDriver, FaultHandler
from rn_tape.errors import NetworkError, ToolchainError
from rn_tape.host_app import HostApp
from rn_tape.models.config import RunConfig
from rn_tape.models.result import BuildArtifact
from rn_tape.orchestrator import TestRunOrchestrator
from rn_tape.process import ProcessRunner
from rn_tape.testing.factories import CapabilitiesFactory
from rn_tape.testing.payloads import result_submission
from rn_tape.tunnel import Tunnel

PUBLIC_URL_PATTERN = re.compile(r"^const publicURL = (.+)$", re.MULTILINE)


class LoopbackTunnel(Tunnel):
    """Tunnel whose public URL is the collector's local address."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self._public_url: str | None = None

    @property
    def connected(self) -> bool:
        return self._public_url is not None

    async def connect(self, port: int) -> str:
        if self.fail:
            raise NetworkError("Could not open tunnel")
        self._public_url = f"http://127.0.0.1:{port}"
        return self._public_url

    async def disconnect(self) -> None:
        self._public_url = None


@dataclass(frozen=True, kw_only=True)
class StubBuilder(PlatformBuilder):
    """Builder that produces an empty binary."""

    fail: bool = False

    async def build(self) -> BuildArtifact:
        if self.fail:
            raise ToolchainError(("./gradlew", "assembleRelease"), 1, data="FAILURE")
        app = self.root / "app-release.apk"
        app.write_bytes(b"")
        return BuildArtifact(app=app, capabilities=self.capabilities)


@dataclass(frozen=True, kw_only=True)
class RelayDriver(DeviceDriver):
    """Device that reads the bundled test config and posts a result to it."""

    root: Path
    body: bytes
    fail: bool = False
    closed: list[bool] = field(default_factory=list)

    async def deploy(
        self,
        artifact: BuildArtifact,
        *,
        project: str,
        on_fault: FaultHandler,
    ) -> None:
        if self.fail:
            raise NetworkError("Could not start session")
        config = (self.root / "test-config.js").read_text()
        match = PUBLIC_URL_PATTERN.search(config)
        assert match is not None
        public_url = json.loads(match.group(1))

        async with aiohttp.ClientSession() as session:
            async with session.post(public_url, data=self.body) as response:
                await response.read()

    async def close(self) -> None:
        self.closed.append(True)


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    """Create a host app checkout."""
    root = tmp_path / "host"
    root.mkdir()
    (root / "template-package.json").write_text(
        json.dumps({"name": "rntape", "version": "0.0.1"})
    )
    return root


def make_orchestrator(
    package_dir: Path,
    host_root: Path,
    *,
    body: bytes,
    tunnel: Tunnel | None = None,
    build_fails: bool = False,
    deploy_fails: bool = False,
) -> TestRunOrchestrator:
    """Assemble a run with a real host app, collector and fault-free npm."""
    runner = Mock(spec=ProcessRunner)
    runner.run = AsyncMock(return_value="")
    return TestRunOrchestrator(
        config=RunConfig(system="android", package_dir=package_dir, port=0),
        host_app=HostApp(root=host_root, runner=runner),
        collector=ResultCollector(port=0),
        tunnel=tunnel or LoopbackTunnel(),
        builder=StubBuilder(
            root=host_root,
            runner=runner,
            capabilities=CapabilitiesFactory.build(),
            fail=build_fails,
        ),
        driver=RelayDriver(root=host_root, body=body, fail=deploy_fails),
    )


@pytest.mark.parametrize(
    ("finished", "output", "exit_code"),
    [
        (0, "PASS 12/12", 0),
        (1, "FAIL 11/12", 1),
        (True, "FAIL", 1),
        (256, "FAIL 0/12", 1),
    ],
)
async def test_relays_result_to_exit_code(
    package_dir: Path,
    host_root: Path,
    capsys: pytest.CaptureFixture[str],
    finished: int | bool,
    output: str,
    exit_code: int,
) -> None:
    """The submitted result is printed and becomes the exit code."""
    body = json.dumps(result_submission(finished=finished, output=output)).encode()
    orchestrator = make_orchestrator(package_dir, host_root, body=body)

    with patch(
        "rn_tape.cli.TestRunOrchestrator.from_config", return_value=orchestrator
    ):
        code = await run(orchestrator.config)

    assert code == exit_code
    assert capsys.readouterr().out == f"{output}\n"
    assert orchestrator.collector.closed is True
    assert orchestrator.tunnel.connected is False
    assert orchestrator.driver.closed == [True]  # type: ignore[attr-defined]


async def test_prepares_host_app(package_dir: Path, host_root: Path) -> None:
    """The host app gets a fresh manifest and a test config for the package."""
    body = json.dumps(result_submission()).encode()
    orchestrator = make_orchestrator(package_dir, host_root, body=body)

    await orchestrator.run()

    manifest = json.loads((host_root / "package.json").read_text())
    assert manifest["name"] == "rntape"
    config = (host_root / "test-config.js").read_text()
    assert 'require("example-package/test")' in config


@pytest.mark.parametrize(
    "failure",
    ["tunnel", "build", "deploy", "malformed-submission"],
)
async def test_failure_tears_everything_down(
    package_dir: Path,
    host_root: Path,
    capsys: pytest.CaptureFixture[str],
    failure: str,
) -> None:
    """Any failure exits with 2 and leaves nothing running."""
    body = (
        b"{not json"
        if failure == "malformed-submission"
        else json.dumps(result_submission()).encode()
    )
    tunnel = LoopbackTunnel(fail=failure == "tunnel")
    orchestrator = make_orchestrator(
        package_dir,
        host_root,
        body=body,
        tunnel=tunnel,
        build_fails=failure == "build",
        deploy_fails=failure == "deploy",
    )

    with patch(
        "rn_tape.cli.TestRunOrchestrator.from_config", return_value=orchestrator
    ):
        code = await run(orchestrator.config)

    assert code == 2
    assert capsys.readouterr().out == ""
    assert orchestrator.collector.closed is True
    assert tunnel.connected is False
