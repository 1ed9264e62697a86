"""Pipeline run record."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ..core.types import BuildResult, StageResult, StageStatus, utcnow
from .params import PipelineParameters


class ReportSummary(BaseModel):
    """Aggregated counts from the published JUnit reports."""

    reports: list[str] = Field(default_factory=list, description="Report paths relative to the workspace")
    tests: int = 0
    failures: int = 0
    errors: int = 0
    skipped: int = 0

    @property
    def passed(self) -> bool:
        return self.failures == 0 and self.errors == 0


class PipelineRun(BaseModel):
    """Represents a complete pipeline execution."""

    run_id: str = Field(description="Unique run identifier")
    parameters: PipelineParameters
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = Field(default=None)
    stages: list[StageResult] = Field(default_factory=list)
    raw_result: BuildResult = Field(default=BuildResult.SUCCESS, description="Result before the result policy")
    result: BuildResult = Field(default=BuildResult.SUCCESS, description="Reported result")
    result_overridden: bool = Field(default=False)
    test_summary: ReportSummary | None = Field(default=None)
    archived: list[str] = Field(default_factory=list, description="Artifact store keys")
    error: str | None = Field(default=None)

    def get_stage(self, name: str) -> StageResult | None:
        """Get a stage result by name."""
        for stage in self.stages:
            if stage.stage_name == name:
                return stage
        return None

    @property
    def failed_stage(self) -> str | None:
        for stage in self.stages:
            if stage.status == StageStatus.FAILED:
                return stage.stage_name
        return None

    @property
    def success(self) -> bool:
        return self.result == BuildResult.SUCCESS

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()
