"""Core infrastructure components for stageflow."""

from .config import Config, get_config
from .exceptions import (
    PipelineError,
    ReportError,
    StageError,
    StageflowError,
    StepError,
    ValidationError,
)
from .logging import get_logger, setup_logging
from .types import BuildResult, ServiceResult, StageResult, StageStatus

__all__ = [
    "Config",
    "get_config",
    "PipelineError",
    "ReportError",
    "StageError",
    "StageflowError",
    "StepError",
    "ValidationError",
    "get_logger",
    "setup_logging",
    "BuildResult",
    "ServiceResult",
    "StageResult",
    "StageStatus",
]
