"""Release APK build for Android devices."""

import logging
from dataclasses import dataclass

from rn_tape.builders.base import PlatformBuilder
from rn_tape.models.result import BuildArtifact

log = logging.getLogger(__name__)

APK_PATH = "app/build/outputs/apk/release/app-release.apk"


@dataclass(frozen=True, kw_only=True)
class AndroidBuilder(PlatformBuilder):
    """Builds the release APK with Gradle."""

    async def build(self) -> BuildArtifact:
        android_dir = self.root / "android"
        log.info("## react-native:build:android")
        await self.runner.run("./gradlew", "assembleRelease", cwd=android_dir)
        return BuildArtifact(
            app=android_dir / APK_PATH,
            capabilities=self.capabilities,
        )
