"""
Test result publishing.

Collects the JUnit reports a run produced, aggregates their counts and decides
whether the run is UNSTABLE. Mirrors what a CI server's `junit` step does:
test failures do not fail the run, they mark it unstable.
"""

from __future__ import annotations

import time
from pathlib import Path

import aiofiles
from pydantic import BaseModel, Field

from ...core.exceptions import ReportError
from ...core.logging import get_logger
from ...core.types import BuildResult, ServiceResult
from ...models.junit import parse_junit_xml
from ...models.run import ReportSummary
from ...storage import StorageBackend, run_key

logger = get_logger(__name__)


class PublishOutput(BaseModel):
    """Output of publishing test results."""

    summary: ReportSummary
    verdict: BuildResult = Field(description="SUCCESS, or UNSTABLE when any test failed or errored")
    storage_key: str | None = Field(default=None, description="Store key of the JSON summary")


class JUnitPublisher:
    """Publishes JUnit reports from a workspace."""

    def __init__(self, workspace: Path, storage: StorageBackend | None = None) -> None:
        """Initialize the publisher.

        Args:
            workspace: Directory holding the reports
            storage: Artifact store for the summary; nothing is stored when None
        """
        self.workspace = workspace
        self.storage = storage

    async def _read(self, path: Path) -> str:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()

    async def collect(self, pattern: str) -> ReportSummary:
        """Parse every report matching the glob and sum the counts.

        Raises:
            ReportError: If a report cannot be parsed.
        """
        summary = ReportSummary()
        for path in sorted(self.workspace.glob(pattern)):
            relative = path.relative_to(self.workspace).as_posix()
            report = parse_junit_xml(await self._read(path), source=relative)
            summary.reports.append(relative)
            summary.tests += report.tests
            summary.failures += report.failures
            summary.errors += report.errors
            summary.skipped += report.skipped
        return summary

    async def publish(self, pattern: str, run_id: str | None = None) -> ServiceResult[PublishOutput]:
        """Publish test results.

        Args:
            pattern: Workspace-relative glob of JUnit files
            run_id: Run identifier used for the stored summary

        Returns:
            ServiceResult containing PublishOutput or error
        """
        start_time = time.perf_counter()

        try:
            summary = await self.collect(pattern)
        except (ReportError, OSError) as e:
            logger.error("Publishing test results failed", pattern=pattern, error=str(e))
            return ServiceResult.fail(str(e), pattern=pattern)

        warnings: list[str] = []
        if not summary.reports:
            warnings.append(f"No test report files were found matching {pattern}")
            logger.warning("No test reports found", pattern=pattern)

        verdict = BuildResult.SUCCESS if summary.passed else BuildResult.UNSTABLE
        if verdict == BuildResult.UNSTABLE:
            logger.warning(
                "Test failures recorded, marking run unstable",
                failures=summary.failures,
                errors=summary.errors,
            )

        output = PublishOutput(summary=summary, verdict=verdict)
        if self.storage is not None and run_id:
            output.storage_key = await self.storage.store_model(
                run_key(run_id, "tests.json"), summary, {"verdict": verdict.value}
            )

        logger.info(
            "Test results published",
            reports=len(summary.reports),
            tests=summary.tests,
            failures=summary.failures,
            errors=summary.errors,
        )
        result = ServiceResult.with_warnings(output, warnings, pattern=pattern)
        result.duration_ms = (time.perf_counter() - start_time) * 1000
        return result
