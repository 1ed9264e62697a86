"""End-to-end tests of the pipeline flow."""

import asyncio
import tarfile
import time

import pytest
import structlog

from stageflow.core.types import BuildResult, StageStatus
from stageflow.models.params import PipelineParameters
from stageflow.models.run import PipelineRun
from stageflow.orchestration import stageflow_flow
from stageflow.services.conformance import ConformanceChecker
from stageflow.services.stages import RunTestsStage
from stageflow.storage import LocalStorageBackend

FLAKY_BUILD = 'if [ -f .attempted ]; then rm .attempted; else touch .attempted; exit 3; fi'


def _status(run, name):
    return run.get_stage(name).status


@pytest.mark.asyncio
class TestPipelineFlow:
    """Runs of the full flow against a temporary workspace."""

    async def test_default_run(self, config, workspace, store_path):
        params = PipelineParameters()
        run = await stageflow_flow(params, config)

        assert run.result == BuildResult.SUCCESS
        assert not run.result_overridden
        assert [s.status for s in run.stages] == [StageStatus.SUCCESS] * 4
        assert run.test_summary.tests == 2
        assert ConformanceChecker(workspace).check(params, run).passed

        storage = LocalStorageBackend(store_path)
        stored = await storage.load_model(f"runs/{run.run_id}/run.json", PipelineRun)
        assert stored.result == BuildResult.SUCCESS
        assert f"runs/{run.run_id}/artifacts/dist/app-dev.tar.gz" in run.archived

    @pytest.mark.parametrize("env", ["staging", "prod"])
    async def test_target_environments(self, config, workspace, env):
        params = PipelineParameters(target_env=env)
        run = await stageflow_flow(params, config)

        assert run.success
        assert (workspace / f"dist/app-{env}.tar.gz").exists()
        assert ConformanceChecker(workspace).check(params).passed

    async def test_build_skipped_when_disabled(self, config, workspace):
        params = PipelineParameters(do_build=False)
        run = await stageflow_flow(params, config)

        assert run.success
        build = run.get_stage("Build")
        assert build.status == StageStatus.SKIPPED
        assert build.skip_reason == "DO_BUILD is false"
        assert not (workspace / "build/build.txt").exists()
        assert _status(run, "Package") == StageStatus.SUCCESS

    async def test_build_is_retried_once(self, config, workspace):
        config.stages.build_command = FLAKY_BUILD
        run = await stageflow_flow(PipelineParameters(), config)

        assert run.success
        build = run.get_stage("Build")
        assert build.status == StageStatus.SUCCESS
        assert build.attempts == 2
        assert (workspace / "build/build.txt").read_text().splitlines()[-1] == "Build OK"

    async def test_build_failure_surfaces_after_retry(self, config, workspace):
        config.stages.build_command = "echo attempt >> attempts.log; exit 1"
        run = await stageflow_flow(PipelineParameters(), config)

        assert run.result == BuildResult.FAILURE
        assert run.failed_stage == "Build"
        assert run.get_stage("Build").attempts == 2
        assert len((workspace / "attempts.log").read_text().splitlines()) == 2
        assert _status(run, "Test") == StageStatus.SKIPPED
        assert _status(run, "Package") == StageStatus.SKIPPED
        assert run.get_stage("Test").skip_reason == "earlier failure"
        # post actions still ran
        assert run.test_summary is not None

    async def test_no_retry_when_disabled(self, config, workspace):
        config.stages.build_retries = 0
        config.stages.build_command = "echo attempt >> attempts.log; exit 1"
        run = await stageflow_flow(PipelineParameters(), config)

        assert run.result == BuildResult.FAILURE
        assert len((workspace / "attempts.log").read_text().splitlines()) == 1

    async def test_build_timeout(self, config, workspace):
        config.stages.build_timeout_seconds = 1
        config.stages.build_command = "(sleep 4; touch late.txt); true"
        run = await stageflow_flow(PipelineParameters(), config)

        assert run.result == BuildResult.FAILURE
        build = run.get_stage("Build")
        assert build.status == StageStatus.FAILED
        assert build.attempts == 2
        assert build.duration_seconds < 4

        # neither attempt may keep running past its timeout
        await asyncio.sleep(3)
        assert not (workspace / "late.txt").exists()

    async def test_unstable_is_reported_as_success(self, config, workspace, failing_report):
        report = workspace / "reports/junit/legacy.xml"
        report.parent.mkdir(parents=True)
        report.write_text(failing_report)

        run = await stageflow_flow(PipelineParameters(), config)

        assert run.raw_result == BuildResult.UNSTABLE
        assert run.result == BuildResult.SUCCESS
        assert run.result_overridden
        assert run.test_summary.failures == 1
        test = run.get_stage("Test")
        assert test.status == StageStatus.UNSTABLE
        assert "1 failure(s)" in test.error_message

    async def test_strict_mode_reports_unstable(self, config, workspace, failing_report):
        config.pipeline.force_success = False
        report = workspace / "reports/junit/legacy.xml"
        report.parent.mkdir(parents=True)
        report.write_text(failing_report)

        run = await stageflow_flow(PipelineParameters(), config)

        assert run.result == BuildResult.UNSTABLE
        assert not run.result_overridden

    async def test_clean_workspace_drops_stale_reports(self, config, workspace, failing_report):
        config.pipeline.clean_workspace = True
        report = workspace / "reports/junit/legacy.xml"
        report.parent.mkdir(parents=True)
        report.write_text(failing_report)

        run = await stageflow_flow(PipelineParameters(), config)

        assert run.raw_result == BuildResult.SUCCESS
        assert not report.exists()

    async def test_parallel_test_branches(self, config, workspace):
        config.stages.parallel_tests = True
        params = PipelineParameters()
        run = await stageflow_flow(params, config)

        assert run.success
        test = run.get_stage("Test")
        assert [b.stage_name for b in test.branches] == ["Test/demo", "Test/smoke"]
        assert all(b.status == StageStatus.SUCCESS for b in test.branches)
        assert (workspace / "reports/junit/smoke.xml").exists()
        assert run.test_summary.tests == 4
        assert ConformanceChecker(workspace).check(params).passed

    async def test_test_branches_run_concurrently(self, config, monkeypatch):
        config.stages.parallel_tests = True
        spans = {}
        execute = RunTestsStage.execute

        async def slow_execute(stage):
            started = time.monotonic()
            await asyncio.sleep(0.5)
            output = await execute(stage)
            spans[stage.branch] = (started, time.monotonic())
            return output

        monkeypatch.setattr(RunTestsStage, "execute", slow_execute)
        run = await stageflow_flow(PipelineParameters(), config)

        assert run.success
        assert sorted(spans) == ["demo", "smoke"]
        (demo_start, demo_end), (smoke_start, smoke_end) = spans["demo"], spans["smoke"]
        assert max(demo_start, smoke_start) < min(demo_end, smoke_end)

    async def test_skipped_build_drops_marker_from_earlier_run(self, config, workspace):
        first = await stageflow_flow(PipelineParameters(), config)
        assert (workspace / "build/build.txt").exists()

        params = PipelineParameters(do_build=False)
        second = await stageflow_flow(params, config)

        assert first.success and second.success
        assert not (workspace / "build/build.txt").exists()
        with tarfile.open(workspace / "dist/app-dev.tar.gz", "r:gz") as tar:
            assert "build/build.txt" not in tar.getnames()
        assert ConformanceChecker(workspace).check(params, second).passed

    async def test_run_context_is_cleared(self, config):
        await stageflow_flow(PipelineParameters(), config)

        assert "run_id" not in structlog.contextvars.get_contextvars()
