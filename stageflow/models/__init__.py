"""Data models for stageflow."""

from .environments import EnvironmentProfile, profile_for, render_config_env
from .junit import JUnitReport, JUnitTestCase, JUnitTestSuite, parse_junit_xml, synthetic_suite
from .params import PipelineParameters
from .run import PipelineRun, ReportSummary

__all__ = [
    "EnvironmentProfile",
    "profile_for",
    "render_config_env",
    "JUnitReport",
    "JUnitTestCase",
    "JUnitTestSuite",
    "parse_junit_xml",
    "synthetic_suite",
    "PipelineParameters",
    "PipelineRun",
    "ReportSummary",
]
