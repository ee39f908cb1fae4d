"""Loading of platform builders from entry points."""

from importlib.metadata import entry_points

from rn_tape.builders.base import PlatformBuilder
from rn_tape.errors import UsageError

ENTRY_POINT_GROUP = "rn_tape.builders"


class BuilderNotFoundError(UsageError):
    """Raised when no builder is registered for a target system."""


def load_builder(system: str) -> type[PlatformBuilder]:
    """Load the builder class for a target system.

    Args:
        system: The target system as registered in pyproject.toml
                (e.g., "android", "expo")

    Returns:
        The builder class

    Raises:
        BuilderNotFoundError: If no builder is registered for the system

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == system:
            builder: type[PlatformBuilder] = entry.load()
            return builder

    available = sorted(e.name for e in entries)
    raise BuilderNotFoundError(
        f"Unsupported system '{system}'. Available systems: {available}"
    )
