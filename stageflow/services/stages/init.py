"""Init stage: greet and leave a marker file."""

from __future__ import annotations

from .base import Stage, StageOutput

INIT_MARKER = "build/init.txt"
INIT_CONTENT = "Init OK"


class InitStage(Stage):
    """Writes build/init.txt. Fails only if the workspace is not writable."""

    name = "Init"

    async def execute(self) -> StageOutput:
        await self.runner.sh(
            'echo "Hello, ${NAME}"\n'
            "mkdir -p build\n"
            f'echo "{INIT_CONTENT}" > {INIT_MARKER}\n'
        )
        return StageOutput(stage=self.name, artifacts=[INIT_MARKER])
