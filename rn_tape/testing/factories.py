"""Test factories for generating test data."""

from pathlib import Path

from polyfactory import Use
from polyfactory.factories import DataclassFactory
from polyfactory.factories.pydantic_factory import ModelFactory

from rn_tape.models.package import PackageManifest
from rn_tape.models.result import BuildArtifact, Capabilities, RunResult


class CapabilitiesFactory(DataclassFactory[Capabilities]):
    """Factory for Capabilities."""

    __model__ = Capabilities


class BuildArtifactFactory(DataclassFactory[BuildArtifact]):
    """Factory for BuildArtifact pointing at a local binary."""

    __model__ = BuildArtifact

    capabilities = Use(CapabilitiesFactory.build)
    app = Use(lambda: Path("/tmp/app-release.apk"))
    app_url = None


class RunResultFactory(ModelFactory[RunResult]):
    """Factory for RunResult."""

    finished = 0


class PackageManifestFactory(ModelFactory[PackageManifest]):
    """Factory for PackageManifest."""

    name = "example-package"
    version = "1.0.0"
