"""
Custom exception hierarchy for stageflow.

All exceptions inherit from StageflowError so callers can handle pipeline
problems uniformly. Each exception type carries context for logging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class StageflowError(Exception):
    """Base exception for all stageflow errors."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    cause: Exception | None = None

    def __str__(self) -> str:
        ctx = f" | context: {self.context}" if self.context else ""
        cause = f" | caused by: {self.cause}" if self.cause else ""
        return f"{self.message}{ctx}{cause}"


@dataclass
class ValidationError(StageflowError):
    """Raised when a run parameter or configuration value is invalid."""

    field_name: str | None = None
    actual_value: Any = None

    def __str__(self) -> str:
        base = super().__str__()
        if self.field_name:
            return f"Validation failed for '{self.field_name}': {base}"
        return f"Validation failed: {base}"


@dataclass
class StepError(StageflowError):
    """Raised when a shell step exits non-zero."""

    command: str = ""
    exit_code: int = 0
    stderr_tail: str = ""

    def __str__(self) -> str:
        tail = f" | stderr: {self.stderr_tail}" if self.stderr_tail else ""
        return f"script returned exit code {self.exit_code}: {self.message}{tail}"


@dataclass
class StageError(StageflowError):
    """Raised when a stage cannot complete."""

    stage: str = ""
    attempts: int = 1

    def __str__(self) -> str:
        base = super().__str__()
        return f"Stage '{self.stage}' failed after {self.attempts} attempt(s): {base}"


@dataclass
class ReportError(StageflowError):
    """Raised when a JUnit report cannot be parsed."""

    report_path: str = ""

    def __str__(self) -> str:
        where = f" ({self.report_path})" if self.report_path else ""
        return f"Invalid JUnit report{where}: {super().__str__()}"


@dataclass
class PipelineError(StageflowError):
    """Raised when pipeline orchestration fails."""

    stage: str = ""
    pipeline_run_id: str = ""

    def __str__(self) -> str:
        base = super().__str__()
        return f"Pipeline error at stage '{self.stage}' (run: {self.pipeline_run_id}): {base}"
