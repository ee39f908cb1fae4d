"""Tests for the error taxonomy."""

from rn_tape.errors import NetworkError, RunError, ToolchainError, UsageError


def test_message_without_data() -> None:
    """Errors without data render as their message."""
    assert str(UsageError("bad system")) == "bad system"


def test_data_is_appended_to_message() -> None:
    """Diagnostic data follows the message on its own line."""
    error = NetworkError("upload failed", data='{"error": "quota"}')

    assert str(error) == 'upload failed\n{"error": "quota"}'


def test_toolchain_error_describes_command() -> None:
    """Toolchain errors name the command and its exit status."""
    error = ToolchainError(["./gradlew", "assembleRelease"], 1, data="BUILD FAILED")

    assert isinstance(error, RunError)
    assert error.returncode == 1
    assert error.command == ("./gradlew", "assembleRelease")
    assert str(error) == (
        "Command './gradlew assembleRelease' exited with status 1\nBUILD FAILED"
    )
