"""Tests for the Android builder."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from rn_tape.builders.android import AndroidBuilder
from rn_tape.errors import ToolchainError
from rn_tape.process import ProcessRunner
from rn_tape.testing.factories import CapabilitiesFactory


async def test_builds_release_apk(tmp_path: Path) -> None:
    """Runs Gradle and returns the release APK."""
    runner = Mock(spec=ProcessRunner)
    capabilities = CapabilitiesFactory.build()
    builder = AndroidBuilder(root=tmp_path, runner=runner, capabilities=capabilities)

    artifact = await builder.build()

    runner.run.assert_called_once_with(
        "./gradlew", "assembleRelease", cwd=tmp_path / "android"
    )
    assert artifact.app == (
        tmp_path / "android/app/build/outputs/apk/release/app-release.apk"
    )
    assert artifact.app_url is None
    assert artifact.capabilities == capabilities


async def test_propagates_build_failure(tmp_path: Path) -> None:
    """A failing Gradle build fails the build."""
    runner = Mock(spec=ProcessRunner)
    runner.run.side_effect = ToolchainError(["./gradlew", "assembleRelease"], 1)
    builder = AndroidBuilder(
        root=tmp_path, runner=runner, capabilities=CapabilitiesFactory.build()
    )

    with pytest.raises(ToolchainError):
        await builder.build()
