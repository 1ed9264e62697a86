"""Test stage: emits the synthetic JUnit report for one branch."""

from __future__ import annotations

from pathlib import Path

import aiofiles

from ...models.junit import synthetic_suite
from ...models.params import PipelineParameters
from .base import Stage, StageOutput

REPORT_DIR = "reports/junit"
DEFAULT_BRANCH = "demo"


def report_path(branch: str) -> str:
    return f"{REPORT_DIR}/{branch}.xml"


class RunTestsStage(Stage):
    """Writes reports/junit/<branch>.xml with an always-passing suite.

    The sequential pipeline runs a single `demo` branch; the parallel variant
    creates one instance per branch and lets the orchestrator run them
    concurrently.
    """

    name = "Test"

    def __init__(self, workspace: Path, parameters: PipelineParameters, branch: str = DEFAULT_BRANCH) -> None:
        super().__init__(workspace, parameters)
        self.branch = branch

    async def execute(self) -> StageOutput:
        target = self.workspace / report_path(self.branch)
        target.parent.mkdir(parents=True, exist_ok=True)

        suite = synthetic_suite(self.branch)
        async with aiofiles.open(target, "w", encoding="utf-8") as f:
            await f.write(suite.to_xml())

        return StageOutput(stage=f"{self.name}/{self.branch}", artifacts=[self.relative(target)])
