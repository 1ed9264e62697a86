"""
Main pipeline orchestration for stageflow.

Declares the stage list (Init, Build, Test, Package), their `when` conditions
and the post actions, and hands execution to Prefect.
"""

from __future__ import annotations

import asyncio
import shutil
import uuid
from pathlib import Path
from typing import Any

from prefect import flow, get_run_logger

from ..core.config import Config, get_config
from ..core.exceptions import StageError
from ..core.logging import bind_context, clear_context, setup_logging
from ..core.types import BuildResult, StageResult, StageStatus, utcnow
from ..models.params import PipelineParameters
from ..models.run import PipelineRun
from ..services.stages import DEFAULT_BRANCH, BuildStage, StageOutput

from .tasks import (
    archive_artifacts,
    build_stage,
    init_stage,
    package_stage,
    publish_test_results,
    record_run,
    run_test_branch,
)

STAGE_NAMES = ["Init", "Build", "Test", "Package"]
WORKSPACE_OUTPUTS = ["build", "reports", "dist"]


def resolve_result(raw: BuildResult, force_success: bool) -> tuple[BuildResult, bool]:
    """Apply the result policy.

    With `force_success`, UNSTABLE is reported as SUCCESS. FAILURE and ABORTED
    pass through unchanged.

    Returns:
        The reported result and whether it differs from the raw one.
    """
    if force_success and raw == BuildResult.UNSTABLE:
        return BuildResult.SUCCESS, True
    return raw, False


def clean_workspace(workspace: Path) -> None:
    for name in WORKSPACE_OUTPUTS:
        target = workspace / name
        if target.is_dir():
            shutil.rmtree(target)


def _complete(stage: StageResult, output: StageOutput) -> None:
    stage.mark_completed([Path(a) for a in output.artifacts], attempts=output.attempts)


def _skip_remaining(run: PipelineRun, reason: str) -> None:
    for stage in run.stages:
        if stage.status == StageStatus.PENDING:
            stage.mark_skipped(reason)


async def _run_tests(
    stage: StageResult,
    workspace: Path,
    parameters: PipelineParameters,
    branches: list[str],
) -> None:
    """Run the Test stage, fanning out when more than one branch is given."""
    logger = get_run_logger()
    if len(branches) > 1:
        logger.info(f"Running test branches in parallel: {', '.join(branches)}")

    branch_results = [StageResult(stage_name=f"Test/{b}") for b in branches]
    for branch_result in branch_results:
        branch_result.mark_running()

    outcomes = await asyncio.gather(
        *(run_test_branch(workspace, parameters, b) for b in branches),
        return_exceptions=True,
    )

    artifacts: list[Path] = []
    errors: list[str] = []
    for branch_result, outcome in zip(branch_results, outcomes):
        if isinstance(outcome, BaseException):
            branch_result.mark_failed(str(outcome))
            errors.append(f"{branch_result.stage_name}: {outcome}")
        else:
            _complete(branch_result, outcome)
            artifacts.extend(branch_result.artifacts)

    stage.branches = branch_results if len(branches) > 1 else []
    if errors:
        stage.mark_failed("; ".join(errors))
    else:
        stage.mark_completed(artifacts)


@flow(
    name="stageflow",
    description="Init, Build, Test and Package with post actions",
    version="1.0.0",
    retries=0,
)
async def stageflow_flow(parameters: PipelineParameters, config: Config) -> PipelineRun:
    """Execute the pipeline.

    Stages run in order; a failed stage skips the remaining ones. Post actions
    (publish test results, archive artifacts) always run. The reported result
    goes through `resolve_result`.

    Args:
        parameters: Run parameters
        config: Effective configuration

    Returns:
        PipelineRun describing every stage and the reported result
    """
    run_id = uuid.uuid4().hex[:8]
    logger = get_run_logger()
    bind_context(run_id=run_id)
    try:
        workspace = config.pipeline.workspace.resolve()
        store_path = config.storage.base_path.resolve()
        workspace.mkdir(parents=True, exist_ok=True)

        run = PipelineRun(
            run_id=run_id,
            parameters=parameters,
            stages=[StageResult(stage_name=name) for name in STAGE_NAMES],
        )

        logger.info(f"Starting pipeline run {run_id}")
        logger.info(
            f"Parameters: NAME={parameters.name} DO_BUILD={parameters.do_build} "
            f"TARGET_ENV={parameters.target_env}"
        )

        if config.pipeline.clean_workspace:
            clean_workspace(workspace)

        raw = BuildResult.SUCCESS
        failed = False

        # Init
        stage = run.get_stage("Init")
        stage.mark_running()
        try:
            _complete(stage, await init_stage(workspace, parameters))
        except Exception as e:
            stage.mark_failed(str(e))
            failed = True

        # Build
        stage = run.get_stage("Build")
        if not failed:
            gate = BuildStage(workspace, parameters)
            if not gate.when():
                logger.info(f"Stage 'Build' skipped: {gate.skip_reason()}")
                if gate.discard_marker():
                    logger.info("Removed stale build/build.txt from an earlier run")
                stage.mark_skipped(gate.skip_reason())
            else:
                stages_cfg = config.stages
                attempt_budget = stages_cfg.build_retries + 1
                stage.mark_running()
                try:
                    output = await build_stage.with_options(
                        retries=stages_cfg.build_retries,
                        timeout_seconds=stages_cfg.build_timeout_seconds,
                    )(workspace, parameters, stages_cfg.build_command)
                    _complete(stage, output)
                except StageError as e:
                    stage.mark_failed(str(e), attempts=e.attempts)
                    failed = True
                except Exception as e:
                    # Timeouts surface as TimeoutError once every attempt is used
                    stage.mark_failed(f"{type(e).__name__}: {e}", attempts=attempt_budget)
                    failed = True

        # Test
        stage = run.get_stage("Test")
        if not failed:
            branches = config.stages.test_branches if config.stages.parallel_tests else [DEFAULT_BRANCH]
            if DEFAULT_BRANCH not in branches:
                branches = [DEFAULT_BRANCH, *branches]
            stage.mark_running()
            await _run_tests(stage, workspace, parameters, branches)
            failed = stage.failed

        # Package
        stage = run.get_stage("Package")
        if not failed:
            stage.mark_running()
            try:
                _complete(stage, await package_stage(workspace, parameters))
            except Exception as e:
                stage.mark_failed(str(e))
                failed = True

        if failed:
            raw = raw.combine(BuildResult.FAILURE)
            _skip_remaining(run, "earlier failure")
            logger.error(f"Stage '{run.failed_stage}' failed")

        # post { always { junit ...; archiveArtifacts ... } }
        try:
            published = await publish_test_results(
                workspace, config.pipeline.report_glob, run_id, store_path
            )
            run.test_summary = published.summary
            raw = raw.combine(published.verdict)
            if published.verdict == BuildResult.UNSTABLE:
                summary = published.summary
                run.get_stage("Test").mark_unstable(
                    f"{summary.failures} failure(s), {summary.errors} error(s) in published reports"
                )
        except Exception as e:
            logger.error(f"Publishing test results failed: {e}")
            run.error = str(e)
            raw = raw.combine(BuildResult.FAILURE)

        try:
            archived = await archive_artifacts(
                workspace, config.pipeline.archive_patterns, run_id, store_path
            )
            run.archived = archived.keys
        except Exception as e:
            logger.error(f"Archiving artifacts failed: {e}")
            run.error = run.error or str(e)
            raw = raw.combine(BuildResult.FAILURE)

        run.raw_result = raw
        run.result, run.result_overridden = resolve_result(raw, config.pipeline.force_success)
        run.completed_at = utcnow()

        # post { success / unstable / failure }
        if raw == BuildResult.UNSTABLE:
            logger.warning(f"Run {run_id} is UNSTABLE: test failures were recorded")
        if run.result_overridden:
            logger.warning(f"Result {raw.value} reported as {run.result.value} (force_success is enabled)")
        if run.result == BuildResult.SUCCESS:
            logger.info(f"Pipeline completed successfully in {run.duration_seconds:.1f}s")
        else:
            logger.error(f"Pipeline finished with result {run.result.value}")

        try:
            await record_run(run, store_path)
        except Exception as e:
            logger.error(f"Storing the run record failed: {e}")

        return run
    finally:
        clear_context()


class StageflowPipeline:
    """High-level pipeline interface for programmatic use."""

    def __init__(self, config: Config | None = None) -> None:
        """Initialize the pipeline.

        Args:
            config: Configuration; the cached environment configuration if None
        """
        self.config = config or get_config()
        setup_logging(self.config)

    async def run(
        self,
        name: str = "World",
        do_build: bool = True,
        target_env: str = "dev",
    ) -> PipelineRun:
        """Run the pipeline with the given parameters.

        Args:
            name: Who to greet
            do_build: Whether the Build stage runs
            target_env: Target environment

        Returns:
            PipelineRun with every stage result
        """
        parameters = PipelineParameters(name=name, do_build=do_build, target_env=target_env)
        return await stageflow_flow(parameters, self.config)


async def run_pipeline(config: Config | None = None, **kwargs: Any) -> PipelineRun:
    """Convenience function to run the pipeline.

    Args:
        config: Optional configuration
        **kwargs: Run parameters (name, do_build, target_env)

    Returns:
        PipelineRun with every stage result
    """
    pipeline = StageflowPipeline(config)
    return await pipeline.run(**kwargs)
