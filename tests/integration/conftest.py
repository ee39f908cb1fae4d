"""Fixtures for integration tests."""

import json
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from rn_tape.collector import ResultCollector


@pytest.fixture
def package_dir(tmp_path: Path) -> Path:
    """Create a package under test with a test entry point."""
    package = tmp_path / "example-package"
    package.mkdir()
    (package / "package.json").write_text(
        json.dumps({"name": "example-package", "version": "1.0.0"})
    )
    (package / "test").mkdir()
    (package / "test" / "index.js").write_text("// tests\n")
    return package


@pytest.fixture
async def collector() -> AsyncGenerator[ResultCollector, None]:
    """Start a collector on an ephemeral port."""
    collector = ResultCollector(port=0)
    await collector.start()
    yield collector
    await collector.stop()
