"""
Configuration management for stageflow.

Provides centralized, type-safe configuration with environment variable overrides
and sensible defaults for the pipeline stages, post actions and artifact store.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .exceptions import ValidationError

# Load .env file if it exists (looks in cwd and parent directories)
load_dotenv()

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def parse_bool(value: str, field_name: str) -> bool:
    """Parse a boolean flag the way CI triggers pass them."""
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ValidationError(
        message=f"expected a boolean, got {value!r}",
        field_name=field_name,
        actual_value=value,
    )


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return parse_bool(raw, name)


class StagesConfig(BaseModel):
    """Per-stage execution policy."""

    build_timeout_seconds: int = Field(default=120, ge=1, description="Timeout wrapping the Build stage")
    build_retries: int = Field(default=1, ge=0, le=5, description="Extra attempts for the Build stage")
    build_command: str | None = Field(
        default=None, description="Extra shell command appended to the Build stage"
    )
    parallel_tests: bool = Field(default=False, description="Fan the Test stage out into parallel branches")
    test_branches: list[str] = Field(
        default_factory=lambda: ["demo", "smoke"],
        description="Branch names used when tests run in parallel",
    )


class StorageConfig(BaseModel):
    """Artifact store configuration."""

    backend: Literal["local"] = Field(default="local", description="Storage backend")
    base_path: Path = Field(default=Path("./.stageflow"), description="Base path for the artifact store")


class PipelineConfig(BaseModel):
    """Pipeline execution configuration."""

    workspace: Path = Field(default=Path("."), description="Working directory the stages write into")
    clean_workspace: bool = Field(
        default=False, description="Remove previous build/, reports/ and dist/ before the run"
    )
    force_success: bool = Field(
        default=True, description="Report an UNSTABLE run as SUCCESS"
    )
    report_glob: str = Field(default="reports/junit/*.xml", description="JUnit reports to publish")
    archive_patterns: list[str] = Field(
        default_factory=lambda: ["dist/*.tar.gz", "reports/junit/*.xml"],
        description="Artifacts to archive after the run",
    )


class Config(BaseModel):
    """Root configuration for stageflow."""

    project_name: str = Field(default="stageflow", description="Project identifier")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    stages: StagesConfig = Field(default_factory=StagesConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    model_config = {"extra": "ignore"}

    @classmethod
    def from_env(cls) -> Config:
        """Create configuration from environment variables."""
        return cls(
            log_level=os.environ.get("STAGEFLOW_LOG_LEVEL", "INFO").upper(),  # type: ignore
            stages=StagesConfig(
                build_timeout_seconds=int(os.environ.get("STAGEFLOW_BUILD_TIMEOUT", "120")),
                build_retries=int(os.environ.get("STAGEFLOW_BUILD_RETRIES", "1")),
                build_command=os.environ.get("STAGEFLOW_BUILD_COMMAND") or None,
                parallel_tests=_env_flag("STAGEFLOW_PARALLEL_TESTS", False),
            ),
            storage=StorageConfig(
                base_path=Path(os.environ.get("STAGEFLOW_STORE_PATH", "./.stageflow")),
            ),
            pipeline=PipelineConfig(
                workspace=Path(os.environ.get("STAGEFLOW_WORKSPACE", ".")),
                clean_workspace=_env_flag("STAGEFLOW_CLEAN_WORKSPACE", False),
                force_success=_env_flag("STAGEFLOW_FORCE_SUCCESS", True),
            ),
        )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.from_env()
