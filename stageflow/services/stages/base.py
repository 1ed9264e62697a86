"""
Stage base class.

A stage is a named group of steps. Stages raise on failure inside `execute`;
`run` wraps that into a ServiceResult so callers decide how to propagate.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, Field

from ...core.exceptions import StageflowError
from ...core.logging import get_logger
from ...core.types import ServiceResult
from ...models.params import PipelineParameters
from ..steps import ShellStepRunner

logger = get_logger(__name__)


class StageOutput(BaseModel):
    """Output of a stage run."""

    stage: str
    artifacts: list[str] = Field(default_factory=list, description="Workspace-relative paths written")
    attempts: int = Field(default=1, description="Attempt that produced this output")


class Stage(ABC):
    """Base class for pipeline stages."""

    name: str = ""

    def __init__(self, workspace: Path, parameters: PipelineParameters) -> None:
        """Initialize the stage.

        Args:
            workspace: Directory the stage reads and writes
            parameters: Parameters of the current run
        """
        self.workspace = workspace
        self.parameters = parameters
        self.runner = ShellStepRunner(workspace, env=parameters.as_step_env())

    def when(self) -> bool:
        """Whether the stage should run for the current parameters."""
        return True

    def skip_reason(self) -> str:
        return "when condition was false"

    @abstractmethod
    async def execute(self) -> StageOutput:
        """Run the stage's steps."""
        ...

    def relative(self, path: Path) -> str:
        return path.relative_to(self.workspace).as_posix()

    async def run(self) -> ServiceResult[StageOutput]:
        """Execute the stage and wrap the outcome.

        Returns:
            ServiceResult containing StageOutput or error
        """
        start_time = time.perf_counter()
        logger.info("Stage started", stage=self.name)

        try:
            output = await self.execute()
        except (StageflowError, OSError) as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error("Stage failed", stage=self.name, error=str(e))
            result: ServiceResult[StageOutput] = ServiceResult.fail(str(e), stage=self.name)
            result.duration_ms = duration_ms
            return result

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info("Stage finished", stage=self.name, duration_ms=round(duration_ms, 1))
        result = ServiceResult.ok(output, stage=self.name)
        result.duration_ms = duration_ms
        return result
