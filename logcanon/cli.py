"""Command-line interface for logcanon."""

import json
from pathlib import Path
from typing import Optional, TextIO

import click
import structlog
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.table import Table

from logcanon import __version__
from logcanon.config import load_config
from logcanon.exceptions import ConfigurationError, ParserNotFoundError
from logcanon.logger import configure_logging
from logcanon.parsers import default_registry
from logcanon.pipeline import IngestionPipeline
from logcanon.sources import PutIntegrationInput, check_integration

# stdout carries events, everything meant for humans goes to stderr
console = Console(stderr=True)
stdout_console = Console()

logger = structlog.get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="logcanon")
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    envvar="LOGCANON_CONFIG",
    help="Path to a YAML configuration file",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], debug: bool) -> None:
    """logcanon: normalize raw security logs into canonical events."""
    ctx.ensure_object(dict)

    try:
        settings = load_config(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    configure_logging("DEBUG" if debug else settings.log_level, json_format=settings.log_json)
    ctx.obj["config"] = settings

    logger.debug("cli_initialized", config=str(config), debug=debug)


@cli.command()
@click.option("--log-type", "-t", required=True, help="Log type of the input, e.g. AWS.CloudTrail")
@click.argument("input_file", type=click.File("r"), default="-")
@click.option(
    "--output",
    "-o",
    type=click.File("w"),
    default="-",
    help="Where to write events as JSON lines (default: stdout)",
)
@click.pass_context
def parse(ctx: click.Context, log_type: str, input_file: TextIO, output: TextIO) -> None:
    """Parse raw log lines into canonical events."""
    config = ctx.obj["config"]

    try:
        pipeline = IngestionPipeline.from_config(config)
        report = pipeline.parse_lines(log_type, input_file)
    except ConfigurationError as e:
        raise click.ClickException(str(e))
    except ParserNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(2)

    for event in report.events:
        output.write(json.dumps(event.to_event(), sort_keys=True) + "\n")

    console.print(
        f"[bold]{log_type}[/bold]: {report.lines_read} lines read, "
        f"[green]{report.events_emitted} events emitted[/green], "
        f"[yellow]{report.lines_dropped} lines dropped[/yellow]"
    )


@cli.command("log-types")
def log_types() -> None:
    """List the supported log types."""
    registry = default_registry()

    table = Table(title="Supported Log Types")
    table.add_column("Log Type", style="cyan", no_wrap=True)
    table.add_column("Description")

    for log_type in registry.log_types():
        parser = registry.get_parser(log_type)
        table.add_row(log_type, parser.DESCRIPTION)

    stdout_console.print(table)


@cli.command("check-source")
@click.argument("request_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def check_source(request_file: Path) -> None:
    """Validate a log source integration request (JSON)."""
    try:
        request = PutIntegrationInput.model_validate_json(request_file.read_text(encoding="utf-8"))
    except PydanticValidationError as e:
        raise click.ClickException(f"Malformed integration request: {e}")

    errors = check_integration(request)
    if not errors:
        stdout_console.print("[green]Integration request is valid[/green]")
        return

    for error in errors:
        stdout_console.print(str(error), markup=False, highlight=False, soft_wrap=True)
    raise SystemExit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
