"""
Artifact contract checks.

Inspects a workspace after a run and checks that the files other tooling
depends on exist with the expected content for the given parameters.
"""

from __future__ import annotations

import tarfile
from pathlib import Path

from pydantic import BaseModel, Field

from ...core.exceptions import ReportError
from ...core.logging import get_logger
from ...core.types import BuildResult
from ...models.environments import parse_config_env
from ...models.junit import parse_junit_xml
from ...models.params import PipelineParameters
from ...models.run import PipelineRun
from ..stages import BUILD_MARKER, BUILD_OK, CONFIG_ENV, INIT_CONTENT, INIT_MARKER, bundle_name, report_path

logger = get_logger(__name__)


class CheckResult(BaseModel):
    """Outcome of one contract check."""

    name: str
    passed: bool
    detail: str = ""


class ConformanceReport(BaseModel):
    checks: list[CheckResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed(self) -> list[CheckResult]:
        return [c for c in self.checks if not c.passed]


class ConformanceChecker:
    """Checks a workspace against the artifact contract."""

    def __init__(self, workspace: Path) -> None:
        self.workspace = workspace

    def _read(self, relative: str) -> str | None:
        path = self.workspace / relative
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def check_init_marker(self) -> CheckResult:
        content = self._read(INIT_MARKER)
        if content is None:
            return CheckResult(name="init-marker", passed=False, detail=f"{INIT_MARKER} is missing")
        ok = content.strip() == INIT_CONTENT
        return CheckResult(name="init-marker", passed=ok, detail="" if ok else f"unexpected content {content!r}")

    def check_build_marker(self, params: PipelineParameters) -> CheckResult:
        content = self._read(BUILD_MARKER)
        if not params.do_build:
            ok = content is None
            return CheckResult(
                name="build-skipped",
                passed=ok,
                detail="" if ok else f"{BUILD_MARKER} exists although DO_BUILD is false",
            )

        if content is None:
            return CheckResult(name="build-marker", passed=False, detail=f"{BUILD_MARKER} is missing")
        lines = content.splitlines()
        expected_first = f"Building for {params.app_env}"
        if BUILD_OK not in lines:
            return CheckResult(name="build-marker", passed=False, detail=f"'{BUILD_OK}' not found")
        if not lines or lines[0] != expected_first:
            return CheckResult(name="build-marker", passed=False, detail=f"first line is not '{expected_first}'")
        return CheckResult(name="build-marker", passed=True)

    def check_demo_report(self) -> CheckResult:
        relative = report_path("demo")
        content = self._read(relative)
        if content is None:
            return CheckResult(name="junit-report", passed=False, detail=f"{relative} is missing")
        try:
            report = parse_junit_xml(content, source=relative)
        except ReportError as e:
            return CheckResult(name="junit-report", passed=False, detail=str(e))
        if report.tests == 0:
            return CheckResult(name="junit-report", passed=False, detail="report has no test cases")
        if not report.passed:
            return CheckResult(
                name="junit-report",
                passed=False,
                detail=f"failures={report.failures} errors={report.errors}",
            )
        return CheckResult(name="junit-report", passed=True, detail=f"{report.tests} tests")

    def check_bundle(self, params: PipelineParameters) -> CheckResult:
        relative = bundle_name(params.target_env)
        path = self.workspace / relative
        if not path.is_file():
            return CheckResult(name="bundle", passed=False, detail=f"{relative} is missing")
        try:
            with tarfile.open(path, "r:gz") as tar:
                member = tar.extractfile(CONFIG_ENV)
                if member is None:
                    return CheckResult(name="bundle", passed=False, detail=f"{CONFIG_ENV} is not a file")
                values = parse_config_env(member.read().decode("utf-8"))
        except KeyError:
            return CheckResult(name="bundle", passed=False, detail=f"{CONFIG_ENV} not in bundle")
        except (tarfile.TarError, OSError) as e:
            return CheckResult(name="bundle", passed=False, detail=f"unreadable bundle: {e}")

        app_env = values.get("APP_ENV")
        if app_env != params.app_env:
            return CheckResult(name="bundle", passed=False, detail=f"APP_ENV={app_env} in bundle")
        return CheckResult(name="bundle", passed=True)

    def check_reported_result(self, run: PipelineRun) -> CheckResult:
        ok = run.result in (BuildResult.SUCCESS, BuildResult.FAILURE)
        return CheckResult(
            name="reported-result",
            passed=ok,
            detail=run.result.value,
        )

    def check(self, params: PipelineParameters, run: PipelineRun | None = None) -> ConformanceReport:
        """Run every check for the given parameters."""
        report = ConformanceReport(
            checks=[
                self.check_init_marker(),
                self.check_build_marker(params),
                self.check_demo_report(),
                self.check_bundle(params),
            ]
        )
        if run is not None:
            report.checks.append(self.check_reported_result(run))

        for failed in report.failed:
            logger.warning("Conformance check failed", check=failed.name, detail=failed.detail)
        return report
