"""Run configuration assembled from the command line and environment."""

from pathlib import Path
from typing import Any, Literal, get_args

from pydantic import Field, SecretStr, model_validator
from typing_extensions import TypeAliasType

from rn_tape.models.base import Model

TargetSystem = TypeAliasType("TargetSystem", Literal["android", "ios", "expo"])

TARGET_SYSTEMS: tuple[str, ...] = get_args(TargetSystem.__value__)

DEFAULT_IDLE_TIMEOUT = 90
# BrowserStack ends sessions idle for longer than this, whatever is requested
MAX_IDLE_TIMEOUT = 300
DEFAULT_PORT = 1234
DEFAULT_TEST_PATH = "/test"

DEFAULT_DEVICES: dict[str, tuple[str, str]] = {
    "android": ("Google Pixel 3", "9.0"),
    "expo": ("Google Pixel 3", "9.0"),
    "ios": ("iPhone XS", "12"),
}


class BrowserStackCredentials(Model):
    """Credentials for BrowserStack App Automate."""

    user: str
    access_key: SecretStr


class RunConfig(Model):
    """Immutable description of a single test run."""

    system: TargetSystem = Field(..., description="Platform to build and run on")
    package_dir: Path = Field(..., description="Package under test")
    test_path: str = Field(
        default=DEFAULT_TEST_PATH,
        description="Path of the test entry point inside the package",
    )
    device: str = Field(..., description="Device to run on")
    os_version: str = Field(..., description="Device OS version")
    idle_timeout: int = Field(
        default=DEFAULT_IDLE_TIMEOUT,
        ge=0,
        description="Seconds the remote session may stay idle",
    )
    credentials: BrowserStackCredentials | None = None
    run_id: str = Field(default="dirty", description="CI run identifier")
    tunnel_region: str | None = None
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    host_app_dir: Path | None = Field(
        default=None, description="Host app checkout overriding the bundled one"
    )
    verbose: bool = False
    force_clean: bool = True

    @model_validator(mode="before")
    @classmethod
    def _apply_device_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("system") not in DEFAULT_DEVICES:
            return data
        device, os_version = DEFAULT_DEVICES[data["system"]]
        return {
            **data,
            "device": data.get("device") or device,
            "os_version": data.get("os_version") or os_version,
        }

    @property
    def remote(self) -> bool:
        """Whether the run targets the remote device farm."""
        return self.credentials is not None

    @property
    def build_name(self) -> str:
        """Label identifying this run on the device farm."""
        return (
            f"{self.run_id}:react-native:{self.system}:{self.device}:{self.os_version}"
        )

    @property
    def session_idle_timeout(self) -> int:
        """Idle timeout requested from the farm, capped at its maximum."""
        return min(self.idle_timeout or 1, MAX_IDLE_TIMEOUT)

    @property
    def needs_keep_alive(self) -> bool:
        """Whether the session must be pinged to outlive the farm's maximum."""
        return self.idle_timeout >= MAX_IDLE_TIMEOUT
