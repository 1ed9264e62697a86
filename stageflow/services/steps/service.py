"""
Shell step runner.

Runs `sh` steps the way a declarative pipeline does: the script is executed by
a POSIX shell with `-e -u` in the workspace directory, with the run's
parameters exposed as environment variables.
"""

from __future__ import annotations

import asyncio
import os
import signal
from dataclasses import dataclass
from pathlib import Path

from ...core.exceptions import StepError
from ...core.logging import get_logger

logger = get_logger(__name__)

STDERR_TAIL_CHARS = 500


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


@dataclass
class StepOutput:
    """Captured output of a finished step."""

    command: str
    exit_code: int
    stdout: str
    stderr: str


class ShellStepRunner:
    """Executes shell steps inside a workspace."""

    def __init__(self, workspace: Path, env: dict[str, str] | None = None, shell: str = "sh") -> None:
        self.workspace = workspace
        self.env = env or {}
        self.shell = shell

    def _environment(self, extra: dict[str, str] | None) -> dict[str, str]:
        merged = dict(os.environ)
        merged.update(self.env)
        if extra:
            merged.update(extra)
        return merged

    async def sh(self, script: str, env: dict[str, str] | None = None) -> StepOutput:
        """Run a script with `sh -eu -c`.

        Args:
            script: Shell script text
            env: Extra environment for this step only

        Returns:
            StepOutput with the captured streams

        Raises:
            StepError: If the script exits non-zero.
        """
        self.workspace.mkdir(parents=True, exist_ok=True)
        logger.debug("Running shell step", script=script, cwd=str(self.workspace))

        proc = await asyncio.create_subprocess_exec(
            self.shell,
            "-eu",
            "-c",
            script,
            cwd=self.workspace,
            env=self._environment(env),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            # The step owns its process group; nothing it started may outlive a timeout.
            _kill_group(proc)
            await proc.wait()
            logger.warning("Shell step cancelled", script=script)
            raise

        stdout_str = stdout.decode(errors="replace")
        stderr_str = stderr.decode(errors="replace")
        for line in stdout_str.splitlines():
            logger.info(line, step="sh")

        if proc.returncode != 0:
            tail = stderr_str[-STDERR_TAIL_CHARS:].strip()
            logger.warning("Shell step failed", exit_code=proc.returncode, stderr=tail)
            raise StepError(
                message=script if len(script) < 200 else script[:197] + "...",
                command=script,
                exit_code=proc.returncode,
                stderr_tail=tail,
            )

        return StepOutput(command=script, exit_code=0, stdout=stdout_str, stderr=stderr_str)
