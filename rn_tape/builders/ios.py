"""Unsigned release IPA build for iOS devices."""

import logging
import shutil
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from rn_tape.builders.base import PlatformBuilder
from rn_tape.errors import FilesystemError
from rn_tape.models.result import BuildArtifact

log = logging.getLogger(__name__)

APP_NAME = "rntape"
ARCH = "arm64"
IPA_NAME = f"{APP_NAME}-1.ipa"
PRODUCT_PATH = f"Build/Products/Release-iphoneos/{APP_NAME}.app"


def xcodebuild_args(ios_dir: Path) -> Sequence[str]:
    """Arguments for a release build with code signing disabled."""
    return [
        "clean",
        "build",
        "-workspace",
        str(ios_dir / f"{APP_NAME}.xcworkspace"),
        "-configuration",
        "Release",
        "-scheme",
        APP_NAME,
        "-arch",
        ARCH,
        "-derivedDataPath",
        "build",
        "CODE_SIGN_IDENTITY=",
        "CODE_SIGNING_REQUIRED=NO",
        "CODE_SIGN_ENTITLEMENTS=",
        "CODE_SIGNING_ALLOWED=NO",
    ]


@dataclass(frozen=True, kw_only=True)
class IOSBuilder(PlatformBuilder):
    """Builds the app with CocoaPods and xcodebuild, then wraps it in an IPA."""

    async def build(self) -> BuildArtifact:
        ios_dir = self.root / "ios"
        build_dir = ios_dir / "build"

        log.info("## react-native:build:ios:pod")
        await self.runner.run("pod", "install", "--clean-install", cwd=ios_dir)

        log.info("## react-native:build:ios:app")
        build_dir.mkdir(parents=True, exist_ok=True)
        await self.runner.run("xcodebuild", *xcodebuild_args(ios_dir), cwd=ios_dir)

        log.info("## react-native:build:ios:ipa")
        ipa = await self.package_ipa(build_dir)
        return BuildArtifact(app=ipa, capabilities=self.capabilities)

    async def package_ipa(self, build_dir: Path) -> Path:
        """Lay the build product out as ``Payload/<app>.app`` and zip it."""
        ipa_dir = build_dir / "ipa"
        ipa = build_dir / IPA_NAME
        try:
            shutil.rmtree(ipa_dir, ignore_errors=True)
            payload_dir = ipa_dir / "Payload"
            payload_dir.mkdir(parents=True)
            shutil.copytree(
                build_dir / PRODUCT_PATH,
                payload_dir / f"{APP_NAME}.app",
                symlinks=True,
            )
            ipa.unlink(missing_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Cannot lay out IPA payload: {exc}") from exc

        await self.runner.run("zip", "-r", f"../{IPA_NAME}", "Payload", cwd=ipa_dir)
        return ipa
