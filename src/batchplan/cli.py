# src/batchplan/cli.py
"""batchplan Command Line Interface.

Operator tools for compiled jobs:
- reconcile: re-run output relocation for a job's working directory
- show-settings: print resolved planner settings
"""

from __future__ import annotations

from pathlib import Path

import typer
import yaml
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from batchplan import __version__
from batchplan.contracts.errors import PlanConfigurationError
from batchplan.core.config import PlannerSettings, load_settings, resolve_config

__all__ = ["app"]

app = typer.Typer(
    name="batchplan",
    help="batchplan: compile pipelines into batch jobs and drive them to completion.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"batchplan version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """batchplan: compile pipelines into batch jobs and drive them to completion."""
    from batchplan.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")


def _format_error(title: str, message: str, hint: str | None = None, details: list[str] | None = None) -> None:
    """Display a formatted error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    content = Text()
    content.append(message, style="white")
    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")
    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    Console(stderr=True).print(Panel(content, title=f"[red bold]{title}[/]", border_style="red", padding=(0, 1)))


def _settings_or_exit(settings: str | None) -> PlannerSettings:
    """Load settings from ``settings`` (defaults when None), exiting 1 on errors."""
    if settings is None:
        return PlannerSettings()

    settings_path = Path(settings).expanduser()
    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        _format_error(
            title="YAML Syntax Error",
            message=f"Failed to parse {settings_path.name}",
            details=[str(e.problem)] if hasattr(e, "problem") else None,
            hint="Check for unclosed brackets, incorrect indentation, or invalid characters.",
        )
        raise typer.Exit(1) from None
    except FileNotFoundError:
        _format_error(
            title="File Not Found",
            message=f"Settings file does not exist: {settings}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        details = [f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors()]
        _format_error(
            title="Configuration Validation Failed",
            message=f"Invalid settings in {settings_path.name}",
            details=details,
            hint="Check field names, types, and required values.",
        )
        raise typer.Exit(1) from None


@app.command()
def reconcile(
    working_dir: str = typer.Argument(..., help="Working directory of a compiled job."),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Relocate a job's partial output files to their targets.

    Reads the job's outputs.json and moves any partial files still in its
    output directory. Safe to run again: files already moved are gone from
    the working directory.
    """
    from batchplan.engine.reconcile import OutputReconciler
    from batchplan.plan.serialization import OutputManifest
    from batchplan.storage import LocalStorage

    config = _settings_or_exit(settings)
    storage = LocalStorage()
    try:
        manifest = OutputManifest.load(storage, working_dir)
    except FileNotFoundError:
        _format_error(
            title="No Output Manifest",
            message=f"{working_dir} has no outputs.json",
            hint="Pass the working directory of a compiled job.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        _format_error(title="Invalid Output Manifest", message=str(e))
        raise typer.Exit(1) from None

    try:
        reconciler = OutputReconciler(
            storage,
            manifest.output_dir,
            manifest.targets(),
            map_only=manifest.map_only,
            preserved_extensions=config.preserved_extensions,
        )
        warnings = reconciler.reconcile()
    except PlanConfigurationError as e:
        _format_error(title="Reconciliation Failed", message=str(e))
        raise typer.Exit(1) from None

    for warning in warnings:
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW, err=True)
    if warnings:
        raise typer.Exit(2)
    typer.echo(f"Reconciled {len(manifest.outputs)} output(s) of job {manifest.job_id}")


@app.command("show-settings")
def show_settings(
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file (defaults are shown when omitted).",
    ),
) -> None:
    """Print resolved planner settings as YAML."""
    config = _settings_or_exit(settings)
    typer.echo(yaml.safe_dump(resolve_config(config), sort_keys=True), nl=False)


if __name__ == "__main__":
    app()
