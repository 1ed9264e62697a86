"""
stageflow CLI.

Command-line interface for running the pipeline and inspecting its artifacts.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import pydantic
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import Config, get_config
from .core.logging import setup_logging
from .core.types import BuildResult, StageResult, StageStatus
from .models.params import PipelineParameters
from .models.run import PipelineRun

app = typer.Typer(
    name="stageflow",
    help="Init, Build, Test and Package: a parameterized demo pipeline",
    add_completion=False,
)

console = Console()

_STATUS_STYLE = {
    StageStatus.SUCCESS: "green",
    StageStatus.FAILED: "red",
    StageStatus.SKIPPED: "dim",
    StageStatus.UNSTABLE: "yellow",
    StageStatus.PENDING: "dim",
    StageStatus.RUNNING: "blue",
}

_RESULT_STYLE = {
    BuildResult.SUCCESS: "bold green",
    BuildResult.UNSTABLE: "bold yellow",
    BuildResult.FAILURE: "bold red",
    BuildResult.ABORTED: "bold red",
}


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from . import __version__
        console.print(f"stageflow v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """stageflow: a parameterized Init/Build/Test pipeline."""
    pass


def _parameters(name: str, do_build: bool, target_env: str) -> PipelineParameters:
    try:
        return PipelineParameters(name=name, do_build=do_build, target_env=target_env)
    except pydantic.ValidationError as e:
        console.print(f"[red]Invalid parameters:[/red] {e.errors()[0]['msg']}")
        raise typer.Exit(2)


def _stage_rows(table: Table, stage: StageResult, indent: str = "") -> None:
    style = _STATUS_STYLE.get(stage.status, "")
    if stage.status == StageStatus.SKIPPED:
        detail = stage.skip_reason or ""
    elif stage.status in (StageStatus.FAILED, StageStatus.UNSTABLE):
        detail = stage.error_message or ""
    else:
        detail = ", ".join(str(a) for a in stage.artifacts)
    attempts = str(stage.attempts) if stage.attempts else "-"
    table.add_row(
        f"{indent}{stage.stage_name}",
        f"[{style}]{stage.status.value}[/{style}]",
        attempts,
        f"{stage.duration_seconds:.2f}s",
        detail,
    )
    for branch in stage.branches:
        _stage_rows(table, branch, indent="  ")


def render_run(run: PipelineRun) -> Table:
    """Build the stage table for a run."""
    table = Table(title=f"Run {run.run_id}")
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Details")

    for stage in run.stages:
        _stage_rows(table, stage)
    return table


@app.command()
def run(
    name: str = typer.Option("World", "--name", "-n", envvar="NAME", help="Who to greet in the Init stage"),
    do_build: bool = typer.Option(
        True,
        "--do-build/--skip-build",
        envvar="DO_BUILD",
        help="Run the Build stage",
    ),
    target_env: str = typer.Option(
        "dev",
        "--target-env",
        "-e",
        envvar="TARGET_ENV",
        help="Target environment (dev, staging, prod, ...)",
    ),
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Working directory for the stages",
    ),
    parallel_tests: bool = typer.Option(
        False,
        "--parallel-tests",
        help="Run the test branches in parallel",
    ),
    clean: bool = typer.Option(
        False,
        "--clean",
        help="Remove build/, reports/ and dist/ before running",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Report UNSTABLE runs as UNSTABLE instead of SUCCESS",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging",
    ),
) -> None:
    """Run the pipeline.

    Exits 0 when the reported result is SUCCESS and 1 otherwise.
    """
    config = get_config().model_copy(deep=True)
    if verbose:
        config.log_level = "DEBUG"
    if workspace is not None:
        config.pipeline.workspace = workspace
    if parallel_tests:
        config.stages.parallel_tests = True
    if clean:
        config.pipeline.clean_workspace = True
    if strict:
        config.pipeline.force_success = False
    setup_logging(config)

    parameters = _parameters(name, do_build, target_env)

    console.print(Panel.fit(
        "[bold blue]stageflow[/bold blue]\n"
        "Init → Build → Test → Package",
        border_style="blue",
    ))
    console.print(f"\n[bold]NAME:[/bold] {parameters.name}")
    console.print(f"[bold]DO_BUILD:[/bold] {parameters.do_build}")
    console.print(f"[bold]TARGET_ENV:[/bold] {parameters.target_env}")
    console.print(f"[bold]Workspace:[/bold] {config.pipeline.workspace.resolve()}\n")

    async def run_async() -> PipelineRun:
        from .orchestration import stageflow_flow

        return await stageflow_flow(parameters, config)

    result = asyncio.run(run_async())

    console.print(render_run(result))
    if result.test_summary is not None:
        s = result.test_summary
        console.print(
            f"\n[bold]Tests:[/bold] {s.tests} run, {s.failures} failures, "
            f"{s.errors} errors, {s.skipped} skipped"
        )
    if result.archived:
        console.print(f"[bold]Archived:[/bold] {len(result.archived)} artifact(s)")

    style = _RESULT_STYLE[result.result]
    console.print(f"\n[{style}]Finished: {result.result.value}[/{style}]")
    if result.result_overridden:
        console.print(
            f"[yellow]Underlying result was {result.raw_result.value}; "
            "reported as SUCCESS because force_success is enabled[/yellow]"
        )

    if not result.success:
        raise typer.Exit(1)


@app.command()
def verify(
    workspace: Path = typer.Option(
        Path("."),
        "--workspace",
        "-w",
        exists=True,
        file_okay=False,
        dir_okay=True,
        help="Workspace to check",
    ),
    do_build: bool = typer.Option(True, "--do-build/--skip-build", help="DO_BUILD used for the run"),
    target_env: str = typer.Option("dev", "--target-env", "-e", help="TARGET_ENV used for the run"),
    run_id: Optional[str] = typer.Option(
        None,
        "--run",
        help="Also check the reported result of this stored run",
    ),
) -> None:
    """Check a workspace against the artifact contract."""
    from .services.conformance import ConformanceChecker

    parameters = _parameters("World", do_build, target_env)

    run_record: PipelineRun | None = None
    if run_id:
        run_record = asyncio.run(_load_run(get_config(), run_id))
        if run_record is None:
            console.print(f"[red]No stored run {run_id}[/red]")
            raise typer.Exit(1)

    report = ConformanceChecker(workspace).check(parameters, run_record)

    table = Table(title="Artifact Contract")
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    table.add_column("Details")
    for check in report.checks:
        status = "[green]PASSED[/green]" if check.passed else "[red]FAILED[/red]"
        table.add_row(check.name, status, check.detail)
    console.print(table)

    if not report.passed:
        raise typer.Exit(1)


async def _load_run(config: Config, run_id: str) -> PipelineRun | None:
    from .storage import LocalStorageBackend, run_key

    storage = LocalStorageBackend(config.storage.base_path)
    key = run_key(run_id, "run.json")
    if not await storage.exists(key):
        return None
    return await storage.load_model(key, PipelineRun)


async def _load_runs(config: Config) -> list[PipelineRun]:
    from .storage import LocalStorageBackend

    storage = LocalStorageBackend(config.storage.base_path)
    runs = []
    for key in await storage.list_keys("runs"):
        if key.endswith("/run.json"):
            runs.append(await storage.load_model(key, PipelineRun))
    return sorted(runs, key=lambda r: r.started_at)


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-l", help="Number of runs to show"),
) -> None:
    """List stored runs."""
    runs = asyncio.run(_load_runs(get_config()))

    if not runs:
        console.print("[dim]No runs recorded yet[/dim]")
        return

    table = Table(title="Run History")
    table.add_column("Run", style="cyan")
    table.add_column("Started")
    table.add_column("Parameters")
    table.add_column("Result")
    table.add_column("Raw")

    for item in runs[-limit:]:
        p = item.parameters
        style = _RESULT_STYLE[item.result]
        table.add_row(
            item.run_id,
            item.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            f"NAME={p.name} DO_BUILD={p.do_build} TARGET_ENV={p.target_env}",
            f"[{style}]{item.result.value}[/{style}]",
            item.raw_result.value,
        )
    console.print(table)


@app.command()
def config() -> None:
    """Show the effective configuration."""
    cfg = get_config()

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Log Level", cfg.log_level)
    table.add_row("Workspace", str(cfg.pipeline.workspace))
    table.add_row("Artifact Store", str(cfg.storage.base_path))
    table.add_row("Build Timeout", f"{cfg.stages.build_timeout_seconds}s")
    table.add_row("Build Retries", str(cfg.stages.build_retries))
    table.add_row("Build Command", cfg.stages.build_command or "-")
    table.add_row("Parallel Tests", str(cfg.stages.parallel_tests))
    table.add_row("Clean Workspace", str(cfg.pipeline.clean_workspace))
    table.add_row("Force Success", str(cfg.pipeline.force_success))
    table.add_row("Report Glob", cfg.pipeline.report_glob)
    table.add_row("Archive Patterns", ", ".join(cfg.pipeline.archive_patterns))

    console.print(table)

    console.print("\n[dim]Configure via environment variables:[/dim]")
    console.print("  STAGEFLOW_LOG_LEVEL, STAGEFLOW_WORKSPACE, STAGEFLOW_STORE_PATH")
    console.print("  STAGEFLOW_BUILD_TIMEOUT, STAGEFLOW_BUILD_RETRIES, STAGEFLOW_BUILD_COMMAND")
    console.print("  STAGEFLOW_PARALLEL_TESTS, STAGEFLOW_CLEAN_WORKSPACE, STAGEFLOW_FORCE_SUCCESS")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
