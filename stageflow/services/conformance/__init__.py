"""Artifact contract checks."""

from .service import CheckResult, ConformanceChecker, ConformanceReport

__all__ = ["CheckResult", "ConformanceChecker", "ConformanceReport"]
