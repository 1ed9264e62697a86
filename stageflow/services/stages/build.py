"""
Build stage.

Runs only when DO_BUILD is true. The timeout and the single retry around it
are applied by the orchestrator (see orchestration.tasks), not here: each call
to `execute` is one attempt and rewrites build/build.txt from scratch.
"""

from __future__ import annotations

from pathlib import Path

from ...models.params import PipelineParameters
from .base import Stage, StageOutput

BUILD_MARKER = "build/build.txt"
BUILD_OK = "Build OK"


class BuildStage(Stage):
    """Writes build/build.txt and runs the optional extra build command."""

    name = "Build"

    def __init__(
        self,
        workspace: Path,
        parameters: PipelineParameters,
        build_command: str | None = None,
    ) -> None:
        super().__init__(workspace, parameters)
        self.build_command = build_command

    def when(self) -> bool:
        return self.parameters.do_build

    def skip_reason(self) -> str:
        return "DO_BUILD is false"

    def discard_marker(self) -> bool:
        """Remove a build/build.txt left behind by an earlier run.

        Returns:
            True if a stale marker was removed
        """
        marker = self.workspace / BUILD_MARKER
        if marker.is_file():
            marker.unlink()
            return True
        return False

    async def execute(self) -> StageOutput:
        await self.runner.sh(
            "mkdir -p build\n"
            f'echo "Building for ${{APP_ENV}}" > {BUILD_MARKER}\n'
        )
        if self.build_command:
            await self.runner.sh(self.build_command)
        await self.runner.sh(f'echo "{BUILD_OK}" >> {BUILD_MARKER}')
        return StageOutput(stage=self.name, artifacts=[BUILD_MARKER])
