"""Unit tests for the CLI commands that do not start a flow run."""

import asyncio

from typer.testing import CliRunner

from stageflow import __version__
from stageflow.cli import app
from stageflow.models.params import PipelineParameters
from stageflow.services.stages import BuildStage, InitStage, PackageStage, RunTestsStage

runner = CliRunner()


async def _populate(workspace, params):
    for stage in (
        InitStage(workspace, params),
        BuildStage(workspace, params),
        RunTestsStage(workspace, params),
        PackageStage(workspace, params),
    ):
        await stage.run()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_config_lists_settings():
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    assert "Build Timeout" in result.stdout
    assert "Force Success" in result.stdout


def test_verify_passes_on_conforming_workspace(workspace):
    asyncio.run(_populate(workspace, PipelineParameters(target_env="staging")))

    result = runner.invoke(app, ["verify", "--workspace", str(workspace), "--target-env", "staging"])

    assert result.exit_code == 0, result.stdout
    assert "FAILED" not in result.stdout


def test_verify_fails_on_empty_workspace(workspace):
    result = runner.invoke(app, ["verify", "--workspace", str(workspace)])

    assert result.exit_code == 1
    assert "FAILED" in result.stdout


def test_run_rejects_unsafe_target_env(workspace):
    result = runner.invoke(app, ["run", "--workspace", str(workspace), "--target-env", "../x"])

    assert result.exit_code == 2
    assert "Invalid parameters" in result.stdout
