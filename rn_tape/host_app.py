"""Preparation of the React Native host app that bundles the package under test."""

import json
import logging
import shutil
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from rn_tape.errors import FilesystemError, UsageError
from rn_tape.models.config import RunConfig, TargetSystem
from rn_tape.models.package import PackageManifest
from rn_tape.process import ProcessRunner

log = logging.getLogger(__name__)

BUNDLED_HOSTS_DIR = Path(__file__).parent / "hosts"

HOST_APP_NAMES: Mapping[TargetSystem, str] = {
    "android": "rntape",
    "ios": "rntape",
    "expo": "expotape",
}

TEMPLATE_MANIFEST = "template-package.json"
TEST_CONFIG = "test-config.js"

# Entries a host app checkout needs before anything is installed into it
HOST_APP_ENTRIES: Mapping[TargetSystem, tuple[str, ...]] = {
    "android": (TEMPLATE_MANIFEST, "android"),
    "ios": (TEMPLATE_MANIFEST, "ios"),
    "expo": (TEMPLATE_MANIFEST, "app.json"),
}

TEST_CONFIG_TEMPLATE = """\
// This file was generated by rn-tape
function runTest () {{
  require({module})
}}

const publicURL = {public_url}

module.exports = {{ runTest, publicURL }}
"""


def resolve_host_app_dir(config: RunConfig) -> Path:
    """Return the host app checkout to use for a run.

    Raises:
        UsageError: If the checkout cannot be built for the target system

    """
    if config.host_app_dir is not None:
        root = config.host_app_dir.resolve()
    else:
        root = BUNDLED_HOSTS_DIR / HOST_APP_NAMES[config.system]

    missing = [
        entry
        for entry in HOST_APP_ENTRIES[config.system]
        if not (root / entry).exists()
    ]
    if missing:
        raise UsageError(
            f"Host app at {root} cannot build for {config.system}: missing "
            f"{', '.join(missing)}. Pass a host app checkout with --host-app "
            "or RN_TAPE_HOST_APP"
        )
    return root


def load_package_manifest(package_dir: Path) -> PackageManifest:
    """Load package.json from the package under test."""
    manifest_path = package_dir / "package.json"
    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Cannot read {manifest_path}: {exc}") from exc

    try:
        return PackageManifest.model_validate_json(raw)
    except ValidationError as exc:
        raise UsageError(
            f"{manifest_path} is not a valid package manifest", data=str(exc)
        ) from exc


@dataclass(frozen=True, kw_only=True)
class HostApp:
    """The host app checkout and the npm operations run inside it."""

    root: Path
    runner: ProcessRunner

    def dependency_path(self, package_name: str) -> Path:
        """Location of an installed dependency inside the host app."""
        return self.root / "node_modules" / package_name

    def clear_stale_dependency(self, package_name: str, *, force: bool) -> None:
        """Remove a previously installed copy of the package under test.

        A missing copy is fine. Without ``force``, a copy resolving outside
        the current working directory (e.g. when rn-tape itself is installed
        globally) is left alone and reported as an error.

        Raises:
            FilesystemError: If the copy cannot be removed

        """
        target = self.dependency_path(package_name)
        if not target.exists() and not target.is_symlink():
            log.debug("No stale copy of %s at %s", package_name, target)
            return

        if not force and not target.resolve().is_relative_to(Path.cwd()):
            raise FilesystemError(
                f"Refusing to remove {target} outside of the working directory "
                "without --force-clean"
            )

        log.info("## react-native:clearing-old-dep [target=%s]", target)
        try:
            if target.is_symlink() or not target.is_dir():
                target.unlink()
            else:
                shutil.rmtree(target)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise FilesystemError(f"Cannot remove {target}: {exc}") from exc

    def write_manifest(self) -> None:
        """Regenerate the host app's package.json from its template."""
        template_path = self.root / TEMPLATE_MANIFEST
        try:
            template = json.loads(template_path.read_text(encoding="utf-8"))
            (self.root / "package.json").write_text(
                json.dumps(template, indent=2) + "\n", encoding="utf-8"
            )
        except OSError as exc:
            raise FilesystemError(
                f"Cannot write host app manifest from {template_path}: {exc}"
            ) from exc
        except json.JSONDecodeError as exc:
            raise FilesystemError(f"{template_path} is not valid JSON: {exc}") from exc

    async def install_dependencies(self) -> None:
        """Install the host app's own dependencies."""
        await self.runner.run("npm", "i", cwd=self.root)

    @asynccontextmanager
    async def packed_archive(
        self, package_dir: Path, manifest: PackageManifest
    ) -> AsyncGenerator[Path, None]:
        """Pack the package under test, removing the archive on exit."""
        await self.runner.run("npm", "pack", cwd=package_dir)
        archive = package_dir / manifest.archive_name
        try:
            yield archive
        finally:
            archive.unlink(missing_ok=True)

    async def install_package(
        self, package_dir: Path, manifest: PackageManifest
    ) -> None:
        """Install the package under test and its dependencies at the top level.

        Dependencies are hoisted so native modules link and development
        dependencies needed by the tests are present.
        """
        async with self.packed_archive(package_dir, manifest) as archive:
            log.info("## react-native:npm install .tgz")
            await self.runner.run("npm", "i", str(archive), cwd=self.root)

        log.info("## react-native:npm install sub-dependencies")
        specs = manifest.install_specs()
        if not specs:
            log.info("No sub-dependencies to install")
            return
        await self.runner.run("npm", "i", *specs, cwd=self.root)

    def write_test_config(
        self, manifest: PackageManifest, test_path: str, public_url: str
    ) -> Path:
        """Write the descriptor bundled into the app at build time."""
        path = self.root / TEST_CONFIG
        content = TEST_CONFIG_TEMPLATE.format(
            module=json.dumps(f"{manifest.name}{test_path}"),
            public_url=json.dumps(public_url),
        )
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise FilesystemError(f"Cannot write {path}: {exc}") from exc
        return path
