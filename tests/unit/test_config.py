"""Unit tests for configuration and the result policy."""

from pathlib import Path

import pytest

from stageflow.core.config import Config
from stageflow.core.exceptions import ValidationError
from stageflow.core.types import BuildResult
from stageflow.orchestration.pipeline import clean_workspace, resolve_result


class TestConfig:
    def test_defaults(self):
        cfg = Config()
        assert cfg.stages.build_timeout_seconds == 120
        assert cfg.stages.build_retries == 1
        assert cfg.pipeline.force_success is True
        assert cfg.pipeline.archive_patterns == ["dist/*.tar.gz", "reports/junit/*.xml"]

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("STAGEFLOW_LOG_LEVEL", "debug")
        monkeypatch.setenv("STAGEFLOW_BUILD_TIMEOUT", "5")
        monkeypatch.setenv("STAGEFLOW_BUILD_COMMAND", "make all")
        monkeypatch.setenv("STAGEFLOW_PARALLEL_TESTS", "yes")
        monkeypatch.setenv("STAGEFLOW_FORCE_SUCCESS", "false")
        monkeypatch.setenv("STAGEFLOW_WORKSPACE", "/tmp/ws")

        cfg = Config.from_env()

        assert cfg.log_level == "DEBUG"
        assert cfg.stages.build_timeout_seconds == 5
        assert cfg.stages.build_command == "make all"
        assert cfg.stages.parallel_tests is True
        assert cfg.pipeline.force_success is False
        assert cfg.pipeline.workspace == Path("/tmp/ws")

    def test_empty_build_command_is_none(self, monkeypatch):
        monkeypatch.setenv("STAGEFLOW_BUILD_COMMAND", "")
        assert Config.from_env().stages.build_command is None

    def test_misspelled_flag_is_rejected(self, monkeypatch):
        monkeypatch.setenv("STAGEFLOW_FORCE_SUCCESS", "ture")

        with pytest.raises(ValidationError) as exc_info:
            Config.from_env()

        assert exc_info.value.field_name == "STAGEFLOW_FORCE_SUCCESS"

    def test_blank_flag_keeps_default(self, monkeypatch):
        monkeypatch.setenv("STAGEFLOW_FORCE_SUCCESS", "")
        assert Config.from_env().pipeline.force_success is True


class TestResultPolicy:
    def test_unstable_is_reported_as_success(self):
        assert resolve_result(BuildResult.UNSTABLE, force_success=True) == (BuildResult.SUCCESS, True)

    @pytest.mark.parametrize("raw", [BuildResult.SUCCESS, BuildResult.FAILURE, BuildResult.ABORTED])
    def test_other_results_pass_through(self, raw):
        assert resolve_result(raw, force_success=True) == (raw, False)

    def test_strict_mode_keeps_unstable(self):
        assert resolve_result(BuildResult.UNSTABLE, force_success=False) == (BuildResult.UNSTABLE, False)


def test_clean_workspace_removes_outputs_only(workspace):
    for name in ("build", "reports", "dist", "src"):
        (workspace / name).mkdir()
        (workspace / name / "f.txt").write_text("x")

    clean_workspace(workspace)

    assert sorted(p.name for p in workspace.iterdir()) == ["src"]
