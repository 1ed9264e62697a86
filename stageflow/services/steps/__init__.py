"""Shell step execution."""

from .service import ShellStepRunner, StepOutput

__all__ = ["ShellStepRunner", "StepOutput"]
