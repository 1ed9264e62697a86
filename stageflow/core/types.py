"""
Core type definitions for stageflow.

Provides status enums and result types shared by the stages, the post actions
and the orchestration layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


# Type aliases
ArtifactPath = Path
Hash = str  # SHA-256 hash


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StageStatus(str, Enum):
    """Status of a pipeline stage."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    UNSTABLE = "unstable"


class BuildResult(str, Enum):
    """Overall result of a run, ordered from best to worst."""

    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    ABORTED = "ABORTED"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def combine(self, other: BuildResult) -> BuildResult:
        """Return the worse of two results; a result can only get worse."""
        return self if self.severity >= other.severity else other

    def is_worse_than(self, other: BuildResult) -> bool:
        return self.severity > other.severity


_SEVERITY = {
    BuildResult.SUCCESS: 0,
    BuildResult.UNSTABLE: 1,
    BuildResult.FAILURE: 2,
    BuildResult.ABORTED: 3,
}


T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """Result wrapper for service operations.

    Provides a consistent return type that includes success/failure status,
    the result data, and any errors or warnings.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0

    @classmethod
    def ok(cls, data: T, **metadata: Any) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> ServiceResult[T]:
        """Create a failed result."""
        return cls(success=False, error=error, metadata=metadata)

    @classmethod
    def with_warnings(cls, data: T, warnings: list[str], **metadata: Any) -> ServiceResult[T]:
        """Create a successful result with warnings."""
        return cls(success=True, data=data, warnings=warnings, metadata=metadata)


class StageResult(BaseModel):
    """Result of a pipeline stage execution."""

    stage_name: str = Field(description="Name of the pipeline stage")
    status: StageStatus = Field(default=StageStatus.PENDING, description="Execution status")
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)
    duration_seconds: float = Field(default=0.0)
    attempts: int = Field(default=0, description="Number of times the stage body ran")
    artifacts: list[ArtifactPath] = Field(default_factory=list, description="Files written by the stage")
    error_message: str | None = Field(default=None)
    skip_reason: str | None = Field(default=None)
    branches: list[StageResult] = Field(default_factory=list, description="Parallel branch results")

    def mark_running(self) -> None:
        self.status = StageStatus.RUNNING
        self.started_at = utcnow()

    def mark_completed(self, artifacts: list[ArtifactPath], attempts: int = 1) -> None:
        """Mark stage as successfully completed."""
        self.status = StageStatus.SUCCESS
        self.artifacts = artifacts
        self.attempts = attempts
        self._finish()

    def mark_failed(self, error: str, attempts: int = 1) -> None:
        """Mark stage as failed."""
        self.status = StageStatus.FAILED
        self.error_message = error
        self.attempts = attempts
        self._finish()

    def mark_unstable(self, reason: str) -> None:
        """Downgrade a completed stage whose tests recorded failures."""
        if self.status == StageStatus.SUCCESS:
            self.status = StageStatus.UNSTABLE
            self.error_message = reason

    def mark_skipped(self, reason: str) -> None:
        """Mark stage as skipped without running it."""
        self.status = StageStatus.SKIPPED
        self.skip_reason = reason

    def _finish(self) -> None:
        self.completed_at = utcnow()
        if self.started_at:
            self.duration_seconds = (self.completed_at - self.started_at).total_seconds()

    @property
    def failed(self) -> bool:
        return self.status == StageStatus.FAILED
