"""
Package stage.

Renders build/config.env for the target environment and bundles the build
markers, the config and the JUnit reports into dist/app-<env>.tar.gz.
"""

from __future__ import annotations

import tarfile

import aiofiles

from ...core.logging import get_logger
from ...models.environments import profile_for
from .base import Stage, StageOutput
from .build import BUILD_MARKER
from .init import INIT_MARKER
from .testing import REPORT_DIR

logger = get_logger(__name__)

CONFIG_ENV = "build/config.env"


def bundle_name(env: str) -> str:
    return f"dist/app-{env}.tar.gz"


class PackageStage(Stage):
    """Writes config.env and the distributable tarball."""

    name = "Package"

    async def _write_config_env(self) -> None:
        target = self.workspace / CONFIG_ENV
        target.parent.mkdir(parents=True, exist_ok=True)
        profile = profile_for(self.parameters.target_env)
        async with aiofiles.open(target, "w", encoding="utf-8") as f:
            await f.write(profile.render())

    def _members(self) -> list[str]:
        members = [INIT_MARKER, CONFIG_ENV]
        if self.parameters.do_build:
            members.insert(1, BUILD_MARKER)
        members = [m for m in members if (self.workspace / m).is_file()]
        reports = sorted((self.workspace / REPORT_DIR).glob("*.xml"))
        members.extend(self.relative(p) for p in reports)
        return members

    async def execute(self) -> StageOutput:
        await self._write_config_env()

        bundle = self.workspace / bundle_name(self.parameters.target_env)
        bundle.parent.mkdir(parents=True, exist_ok=True)
        members = self._members()

        with tarfile.open(bundle, "w:gz") as tar:
            for member in members:
                tar.add(self.workspace / member, arcname=member)

        logger.info("Bundle written", bundle=self.relative(bundle), members=len(members))
        return StageOutput(stage=self.name, artifacts=[CONFIG_ENV, self.relative(bundle)])
