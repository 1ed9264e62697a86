"""Test configuration for stageflow."""

import tempfile
from pathlib import Path

import pytest

from stageflow.core.config import Config, PipelineConfig, StagesConfig, StorageConfig
from stageflow.models.params import PipelineParameters


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path: A Path object pointing to the temporary directory.
            The directory is automatically cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def workspace(temp_dir):
    """A pipeline workspace inside the temporary directory."""
    path = temp_dir / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def store_path(temp_dir):
    """Artifact store location, separate from the workspace."""
    return temp_dir / "store"


@pytest.fixture
def storage(store_path):
    """Create a storage backend for testing.

    Returns:
        LocalStorageBackend: A local storage backend rooted in the
            temporary directory.
    """
    from stageflow.storage import LocalStorageBackend
    return LocalStorageBackend(store_path)


@pytest.fixture
def parameters():
    """Default run parameters (NAME=World, DO_BUILD=true, TARGET_ENV=dev)."""
    return PipelineParameters()


@pytest.fixture
def config(workspace, store_path):
    """Configuration pointing at the temporary workspace and store."""
    return Config(
        stages=StagesConfig(build_timeout_seconds=30),
        storage=StorageConfig(base_path=store_path),
        pipeline=PipelineConfig(workspace=workspace),
    )


FAILING_REPORT = """<?xml version="1.0" encoding="UTF-8"?>
<testsuite name="legacy" tests="2" failures="1" errors="0" time="0.2">
  <testcase classname="legacy.Suite" name="test_ok" time="0.1"/>
  <testcase classname="legacy.Suite" name="test_broken" time="0.1">
    <failure message="expected 1, got 2">AssertionError</failure>
  </testcase>
</testsuite>
"""


@pytest.fixture
def failing_report():
    """A JUnit document with one failing test case."""
    return FAILING_REPORT


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Drop structlog configuration cached against a captured stream."""
    yield
    import structlog
    structlog.reset_defaults()
