"""Models for the package.json of the package under test."""

from collections.abc import Mapping, Sequence

from pydantic import ConfigDict, Field

from rn_tape.models.base import Model

# Installing ourselves into the host app would create a dependency cycle
SELF_PACKAGE_NAME = "rn-tape"


class PackageManifest(Model):
    """The subset of package.json needed to install a package into the host app."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str
    version: str
    dependencies: Mapping[str, str] = Field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = Field(
        default_factory=dict, alias="devDependencies"
    )

    @property
    def archive_name(self) -> str:
        """File name produced by ``npm pack`` for this package.

        Scoped names lose their ``@`` and have the slash flattened,
        e.g. ``@org/pkg`` at ``1.0.0`` packs to ``org-pkg-1.0.0.tgz``.
        """
        name = self.name.removeprefix("@").replace("/", "-")
        return f"{name}-{self.version}.tgz"

    def install_specs(self) -> Sequence[str]:
        """List ``name@range`` specs for runtime and development dependencies."""
        combined = {**self.dependencies, **self.dev_dependencies}
        combined.pop(SELF_PACKAGE_NAME, None)
        return [f"{name}@{version}" for name, version in combined.items()]
