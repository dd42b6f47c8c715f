"""CLI entrypoint.

Primary mode:
- gaterun            (same as `gaterun run` in the current directory)
- gaterun run ...

Utilities:
- gaterun list
- gaterun doctor
- gaterun init

CONTRACT
- Inputs: Command line arguments (parsed by Typer)
- Outputs (required):
  - Exit code 0 if every check passed, else the first failing check's status
  - Check output goes straight to the terminal (inherited streams)
- Invariants:
  - Status lines go to stderr so stdout stays with the checks
  - --json output is the last thing written to stdout; --json-file keeps it separate
  - Pipeline execution is delegated to GateRunner
- Failure:
  - Invalid pipeline config prints the error and exits 2
  - Invalid arguments raise Typer exit/error
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .artifacts.schemas import CheckOutcome
from .config import Check, ConfigError, GateConfig, resolve_config
from .doctor import doctor_report
from .runner import GateRunner

EXIT_CONFIG_ERROR = 2

app = typer.Typer(add_completion=False, help="Fail-fast quality gate: format, lint, test.")

console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool):
    if value:
        from . import __version__

        console.print(f"gaterun version: {__version__}")
        raise typer.Exit()


_REPO_OPTION = typer.Option(
    Path("."),
    "--repo",
    help="Repo root (default: current dir).",
)
_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    help="Pipeline YAML (default: <repo>/.gate/pipeline.yaml, else built-in checks).",
)
_JSON_OPTION = typer.Option(
    False,
    "--json",
    help="Print the gate result as JSON on stdout, after all check output.",
)
_JSON_FILE_OPTION = typer.Option(
    None,
    "--json-file",
    help="Write the gate result as JSON to this file (stdout stays with the checks).",
)
_VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    help="Debug logging on stderr.",
)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "ERROR")


def _load_config(repo: Path, config: Path | None) -> GateConfig:
    try:
        return resolve_config(repo, config)
    except ConfigError as e:
        err_console.print(f"[red]Config error:[/red] {escape(str(e))}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e


def _announce(index: int, check: Check, total: int) -> None:
    err_console.print(
        f"[bold cyan]==> [{index + 1}/{total}] {check.name}[/bold cyan] "
        f"[dim]{escape(check.display_command())}[/dim]"
    )


def _report(check: Check, outcome: CheckOutcome) -> None:
    if outcome.ok:
        return
    if not outcome.launched:
        err_console.print(
            f"[red]Check '{check.name}' {escape(outcome.details)} (exit {outcome.exit_code})[/red]"
        )
    else:
        err_console.print(f"[red]Check '{check.name}' failed with exit code {outcome.exit_code}[/red]")


def _run_gate(
    repo: Path,
    config: Path | None,
    json_output: bool,
    verbose: bool,
    json_file: Path | None = None,
) -> None:
    _configure_logging(verbose)
    cfg = _load_config(repo, config)
    total = len(cfg.pipeline)

    runner = GateRunner(
        cfg.pipeline,
        cfg.context,
        on_start=lambda i, c: _announce(i, c, total),
        on_finish=lambda i, c, o: _report(c, o),
    )
    result = runner.run()

    if json_file is not None:
        json_file.parent.mkdir(parents=True, exist_ok=True)
        json_file.write_text(result.model_dump_json(indent=2) + "\n", encoding="utf-8")
    if json_output:
        # Children are done by now, so the JSON object is the last thing on stdout.
        console.print_json(result.model_dump_json())
    elif result.ok:
        err_console.print(f"[green]All {total} checks passed.[/green]")
    if not result.ok:
        raise typer.Exit(code=result.exit_code)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    ),
):
    if ctx.invoked_subcommand is None:
        _run_gate(Path("."), None, json_output=False, verbose=False)


@app.command()
def run(
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
    json_output: bool = _JSON_OPTION,
    json_file: Path | None = _JSON_FILE_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Run every check in order; stop at the first failure."""
    _run_gate(repo, config, json_output=json_output, verbose=verbose, json_file=json_file)


@app.command("list")
def list_checks(
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Show the checks in execution order."""
    cfg = _load_config(repo, config)
    table = Table(title=f"gaterun pipeline ({cfg.source or 'defaults'})")
    table.add_column("#")
    table.add_column("Check")
    table.add_column("Command")
    for i, check in enumerate(cfg.pipeline, start=1):
        table.add_row(str(i), check.name, escape(check.display_command()))
    console.print(table)
    console.print(f"Workdir: {cfg.context.cwd}")


@app.command()
def doctor(
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Preflight: config, workdir, and check executables."""
    report = doctor_report(repo=repo, config_path=config)
    table = Table(title="gaterun doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details")
    for item in report.items:
        table.add_row(item.name, item.status, escape(item.details))
    console.print(table)
    if report.ok:
        console.print("[green]OK[/green]")
    else:
        raise typer.Exit(code=2)


@app.command()
def init(
    repo: Path = _REPO_OPTION,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing pipeline.yaml."),
) -> None:
    """Write `.gate/pipeline.yaml` into a target repo."""
    from .init import write_templates

    written = write_templates(repo, force=force)
    if written:
        console.print(f"[green]Wrote[/green] {written}")
    else:
        console.print("[yellow]Kept existing .gate/pipeline.yaml (use --force to overwrite)[/yellow]")


if __name__ == "__main__":
    app()
