"""Pipeline stages: Init, Build, Test and Package."""

from .base import Stage, StageOutput
from .build import BUILD_MARKER, BUILD_OK, BuildStage
from .init import INIT_CONTENT, INIT_MARKER, InitStage
from .package import CONFIG_ENV, PackageStage, bundle_name
from .testing import DEFAULT_BRANCH, REPORT_DIR, RunTestsStage, report_path

__all__ = [
    "Stage",
    "StageOutput",
    "BUILD_MARKER",
    "BUILD_OK",
    "BuildStage",
    "INIT_CONTENT",
    "INIT_MARKER",
    "InitStage",
    "CONFIG_ENV",
    "PackageStage",
    "bundle_name",
    "DEFAULT_BRANCH",
    "REPORT_DIR",
    "RunTestsStage",
    "report_path",
]
