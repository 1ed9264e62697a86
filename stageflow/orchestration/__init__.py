"""Orchestration module for stageflow."""

from .pipeline import StageflowPipeline, resolve_result, run_pipeline, stageflow_flow
from .tasks import (
    archive_artifacts,
    build_stage,
    init_stage,
    package_stage,
    publish_test_results,
    record_run,
    run_test_branch,
)

__all__ = [
    "StageflowPipeline",
    "resolve_result",
    "run_pipeline",
    "stageflow_flow",
    "archive_artifacts",
    "build_stage",
    "init_stage",
    "package_stage",
    "publish_test_results",
    "record_run",
    "run_test_branch",
]
