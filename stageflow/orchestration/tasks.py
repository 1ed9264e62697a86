"""
Prefect tasks for the stageflow pipeline.

Each task wraps a stage or post action. Stage failures are raised so that the
orchestrator applies the declared retry and timeout policy; the Build task is
the only one declared with a retry.
"""

from __future__ import annotations

from pathlib import Path

from prefect import task
from prefect.cache_policies import NO_CACHE
from prefect.logging import get_run_logger
from prefect.runtime import task_run

from ..core.exceptions import StageError
from ..models.params import PipelineParameters
from ..models.run import PipelineRun
from ..services.artifacts import ArchiveOutput, ArtifactArchiver
from ..services.reporting import JUnitPublisher, PublishOutput
from ..services.stages import BuildStage, InitStage, PackageStage, RunTestsStage, Stage, StageOutput
from ..storage import LocalStorageBackend, run_key


def get_storage(base_path: Path) -> LocalStorageBackend:
    """Get storage backend."""
    return LocalStorageBackend(base_path)


async def _run_stage(stage: Stage) -> StageOutput:
    attempt = task_run.run_count or 1
    logger = get_run_logger()
    if attempt > 1:
        logger.info(f"Retrying stage {stage.name} (attempt {attempt})")

    result = await stage.run()

    if not result.success:
        raise StageError(message=result.error or "stage failed", stage=stage.name, attempts=attempt)

    output = result.data
    output.attempts = attempt
    logger.info(f"Stage {output.stage} complete: {', '.join(output.artifacts) or 'no artifacts'}")
    return output


@task(
    name="init",
    description="Write the init marker",
    cache_policy=NO_CACHE,
)
async def init_stage(workspace: Path, parameters: PipelineParameters) -> StageOutput:
    """Run the Init stage.

    Args:
        workspace: Pipeline workspace
        parameters: Run parameters

    Returns:
        StageOutput listing build/init.txt
    """
    get_run_logger().info(f"Hello, {parameters.name}")
    return await _run_stage(InitStage(workspace, parameters))


@task(
    name="build",
    description="Build for the target environment",
    retries=1,
    retry_delay_seconds=0,
    timeout_seconds=120,
    cache_policy=NO_CACHE,
)
async def build_stage(
    workspace: Path,
    parameters: PipelineParameters,
    build_command: str | None = None,
) -> StageOutput:
    """Run one attempt of the Build stage.

    The retry count and timeout are overridden per run with `with_options`.

    Args:
        workspace: Pipeline workspace
        parameters: Run parameters
        build_command: Optional extra shell command

    Returns:
        StageOutput listing build/build.txt
    """
    return await _run_stage(BuildStage(workspace, parameters, build_command))


@task(
    name="test",
    description="Emit the JUnit report for one test branch",
    cache_policy=NO_CACHE,
)
async def run_test_branch(workspace: Path, parameters: PipelineParameters, branch: str) -> StageOutput:
    return await _run_stage(RunTestsStage(workspace, parameters, branch))


@task(
    name="package",
    description="Render config.env and bundle dist/app-<env>.tar.gz",
    cache_policy=NO_CACHE,
)
async def package_stage(workspace: Path, parameters: PipelineParameters) -> StageOutput:
    return await _run_stage(PackageStage(workspace, parameters))


@task(
    name="publish_test_results",
    description="Publish JUnit reports",
    cache_policy=NO_CACHE,
)
async def publish_test_results(
    workspace: Path,
    pattern: str,
    run_id: str,
    store_path: Path,
) -> PublishOutput:
    """Publish JUnit reports from the workspace.

    Args:
        workspace: Pipeline workspace
        pattern: Report glob
        run_id: Pipeline run ID
        store_path: Artifact store base path

    Returns:
        PublishOutput with aggregated counts and the verdict
    """
    logger = get_run_logger()
    publisher = JUnitPublisher(workspace, get_storage(store_path))

    result = await publisher.publish(pattern, run_id=run_id)

    if not result.success:
        raise RuntimeError(f"Publishing test results failed: {result.error}")

    for warning in result.warnings:
        logger.warning(warning)

    summary = result.data.summary
    logger.info(
        f"Test results: {summary.tests} tests, {summary.failures} failures, {summary.errors} errors"
    )
    return result.data


@task(
    name="archive_artifacts",
    description="Archive and fingerprint artifacts",
    cache_policy=NO_CACHE,
)
async def archive_artifacts(
    workspace: Path,
    patterns: list[str],
    run_id: str,
    store_path: Path,
) -> ArchiveOutput:
    logger = get_run_logger()
    archiver = ArtifactArchiver(workspace, get_storage(store_path))

    result = await archiver.archive(run_id, patterns, allow_empty=True)

    if not result.success:
        raise RuntimeError(f"Archiving artifacts failed: {result.error}")

    for warning in result.warnings:
        logger.warning(warning)

    logger.info(f"Archived {len(result.data.artifacts)} artifact(s)")
    return result.data


@task(
    name="record_run",
    description="Store the run record",
    cache_policy=NO_CACHE,
)
async def record_run(run: PipelineRun, store_path: Path) -> str:
    storage = get_storage(store_path)
    return await storage.store_model(
        run_key(run.run_id, "run.json"),
        run,
        {"result": run.result.value, "raw_result": run.raw_result.value},
    )
