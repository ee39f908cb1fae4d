"""Tests for the local device driver."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from rn_tape.devices.local import LocalDriver
from rn_tape.models.result import BuildArtifact
from rn_tape.process import ProcessRunner
from rn_tape.testing.factories import BuildArtifactFactory, CapabilitiesFactory


async def test_installs_android_build_with_adb(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Android builds are installed on the attached device."""
    runner = Mock(spec=ProcessRunner)
    driver = LocalDriver(system="android", runner=runner)
    artifact = BuildArtifactFactory.build(app=Path("/host/android/app-release.apk"))

    await driver.deploy(artifact, project="example-package", on_fault=Mock())

    runner.run.assert_called_once_with(
        "adb", "install", "-r", "/host/android/app-release.apk", cwd=Path("/host/android")
    )
    assert "MANUAL ACTION REQUIRED" in caplog.text


@pytest.mark.parametrize("system", ["ios", "expo"])
async def test_other_systems_are_manual(
    system: str, caplog: pytest.LogCaptureFixture
) -> None:
    """iOS and Expo builds are left for the operator to install."""
    runner = Mock(spec=ProcessRunner)
    driver = LocalDriver(system=system, runner=runner)
    artifact = BuildArtifact(
        app_url="https://expo.io/artifacts/app.aab",
        capabilities=CapabilitiesFactory.build(),
    )

    await driver.deploy(artifact, project="example-package", on_fault=Mock())

    runner.run.assert_not_called()
    assert "MANUAL ACTION REQUIRED" in caplog.text
    assert "https://expo.io/artifacts/app.aab" in caplog.text
