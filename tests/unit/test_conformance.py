"""Unit tests for the artifact contract checks."""

import tarfile

import pytest

from stageflow.core.types import BuildResult
from stageflow.models.params import PipelineParameters
from stageflow.models.run import PipelineRun
from stageflow.services.conformance import ConformanceChecker
from stageflow.services.stages import BuildStage, InitStage, PackageStage, RunTestsStage


async def _run_stages(workspace, params):
    await InitStage(workspace, params).run()
    if params.do_build:
        await BuildStage(workspace, params).run()
    await RunTestsStage(workspace, params).run()
    await PackageStage(workspace, params).run()


def _checks(report):
    return {c.name: c for c in report.checks}


@pytest.mark.asyncio
class TestConformanceChecker:
    @pytest.mark.parametrize("env", ["dev", "staging", "prod"])
    async def test_complete_run_conforms(self, workspace, env):
        params = PipelineParameters(target_env=env)
        await _run_stages(workspace, params)

        report = ConformanceChecker(workspace).check(params)

        assert report.passed, report.failed
        assert set(_checks(report)) == {"init-marker", "build-marker", "junit-report", "bundle"}

    async def test_skipped_build_conforms(self, workspace):
        params = PipelineParameters(do_build=False)
        await _run_stages(workspace, params)

        report = ConformanceChecker(workspace).check(params)

        assert report.passed
        assert "build-skipped" in _checks(report)

    async def test_build_marker_present_when_build_disabled(self, workspace):
        await _run_stages(workspace, PipelineParameters(do_build=True))

        report = ConformanceChecker(workspace).check(PipelineParameters(do_build=False))

        assert not _checks(report)["build-skipped"].passed

    async def test_wrong_env_in_bundle(self, workspace):
        await _run_stages(workspace, PipelineParameters(target_env="dev"))
        (workspace / "dist/app-dev.tar.gz").rename(workspace / "dist/app-prod.tar.gz")

        report = ConformanceChecker(workspace).check(PipelineParameters(target_env="prod"))

        bundle = _checks(report)["bundle"]
        assert not bundle.passed
        assert "APP_ENV=dev" in bundle.detail

    async def test_bundle_without_config_env(self, workspace):
        params = PipelineParameters()
        await _run_stages(workspace, params)
        bundle = workspace / "dist/app-dev.tar.gz"
        with tarfile.open(bundle, "w:gz") as tar:
            tar.add(workspace / "build/init.txt", arcname="build/init.txt")

        report = ConformanceChecker(workspace).check(params)

        assert "not in bundle" in _checks(report)["bundle"].detail

    async def test_failing_demo_report(self, workspace, failing_report):
        params = PipelineParameters()
        await _run_stages(workspace, params)
        (workspace / "reports/junit/demo.xml").write_text(failing_report)

        report = ConformanceChecker(workspace).check(params)

        junit = _checks(report)["junit-report"]
        assert not junit.passed
        assert "failures=1" in junit.detail

    async def test_empty_workspace(self, workspace, parameters):
        report = ConformanceChecker(workspace).check(parameters)

        assert not report.passed
        assert len(report.failed) == 4

    async def test_reported_result_never_unstable(self, workspace, parameters):
        await _run_stages(workspace, parameters)
        run = PipelineRun(run_id="r1", parameters=parameters, result=BuildResult.UNSTABLE)

        report = ConformanceChecker(workspace).check(parameters, run)

        assert not _checks(report)["reported-result"].passed
