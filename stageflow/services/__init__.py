"""Services package for stageflow."""

from .artifacts import ArtifactArchiver
from .conformance import ConformanceChecker
from .reporting import JUnitPublisher
from .stages import BuildStage, InitStage, PackageStage, RunTestsStage
from .steps import ShellStepRunner

__all__ = [
    "ArtifactArchiver",
    "ConformanceChecker",
    "JUnitPublisher",
    "BuildStage",
    "InitStage",
    "PackageStage",
    "RunTestsStage",
    "ShellStepRunner",
]
