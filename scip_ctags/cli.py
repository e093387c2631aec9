"""Typer-based CLI for scip-ctags."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config import Settings, load_settings
from .errors import MissingExtension, OutputChannelError, ParseError, UnknownParser
from .parser import LANGUAGE_SPECS, ParserRegistry
from .protocol import TagReply, write_reply
from .server import CtagsServer
from .tags import generate_tags

logger = logging.getLogger(__name__)

# stdout carries protocol output; everything human-readable goes to stderr.
err_console = Console(stderr=True)

app = typer.Typer(
    help="Generate ctags-compatible tags from tree-sitter scope trees.",
    rich_markup_mode="rich",
)


def configure_logging(settings: Settings) -> None:
    """Route ``scip_ctags`` logs to stderr (or the configured log file)."""
    handler: logging.Handler
    if settings.log_file is not None:
        handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler = RichHandler(console=err_console, show_path=False)

    package_logger = logging.getLogger("scip_ctags")
    package_logger.handlers = [handler]
    package_logger.propagate = False
    try:
        package_logger.setLevel(settings.log_level)
    except ValueError:
        raise typer.BadParameter(f"Unknown log level: {settings.log_level}")


def _registry(ctx: typer.Context) -> ParserRegistry:
    settings: Settings = ctx.obj
    return ParserRegistry(settings.languages)


def _run_interactive(registry: ParserRegistry) -> None:
    server = CtagsServer(registry)
    try:
        ok = server.serve(sys.stdin.buffer, sys.stdout)
    except OutputChannelError as exc:
        logger.critical("%s", exc)
        raise typer.Exit(1)
    if not ok:
        raise typer.Exit(1)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"scip-ctags {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    interactive_mode: Optional[str] = typer.Option(
        None,
        "--_interactive",
        hidden=True,
        help="universal-ctags compatible interactive mode, e.g. --_interactive=default.",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default: WARNING)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to a config.toml file."),
):
    """scip-ctags: tag generation for editors and code search."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level.upper()
    configure_logging(settings)
    ctx.obj = settings

    if interactive_mode is not None:
        logger.debug("Interactive mode '%s'", interactive_mode)
        _run_interactive(_registry(ctx))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("interactive")
def interactive(ctx: typer.Context):
    """Serve generate-tags requests as JSON lines on stdin/stdout."""
    _run_interactive(_registry(ctx))


@app.command("generate")
def generate(
    ctx: typer.Context,
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Source files to tag."),
    table: bool = typer.Option(False, "--table", "-t", help="Render a table instead of JSON lines."),
):
    """Print the tags of FILES.

    Example:
      scip-ctags generate main.go
      scip-ctags generate src/app.py --table
    """
    registry = _registry(ctx)
    failed = 0
    rows = []

    for file_path in files:
        try:
            tags = list(generate_tags(str(file_path), file_path.read_bytes(), registry))
        except (MissingExtension, UnknownParser) as exc:
            logger.info("Skipping %s: %s", file_path, exc)
            continue
        except ParseError as exc:
            err_console.print(f"[red]✗[/red] {file_path}: {exc}")
            failed += 1
            continue

        for tag in tags:
            if table:
                rows.append(tag)
            else:
                try:
                    write_reply(TagReply.from_tag(tag), sys.stdout)
                except OutputChannelError as exc:
                    logger.critical("%s", exc)
                    raise typer.Exit(1)

    if table:
        out = Table(title="Tags")
        out.add_column("Name", style="bold cyan")
        out.add_column("Kind", style="magenta")
        out.add_column("Scope")
        out.add_column("Path")
        out.add_column("Line", justify="right")
        for tag in rows:
            out.add_row(tag.name, tag.kind, tag.scope or "", tag.path, str(tag.line))
        Console().print(out)

    if failed:
        raise typer.Exit(1)


@app.command("languages")
def languages(ctx: typer.Context):
    """List supported languages and file extensions."""
    registry = _registry(ctx)
    extensions = registry.supported_extensions()

    out = Table(title="Supported languages")
    out.add_column("Language", style="bold cyan")
    out.add_column("Extensions")
    out.add_column("Grammar")
    out.add_column("Installed")
    for lang in registry.languages:
        exts = ", ".join(f".{ext}" for ext, name in extensions.items() if name == lang)
        installed = registry.get_parser(lang) is not None
        out.add_row(
            lang,
            exts,
            LANGUAGE_SPECS[lang].grammar_module,
            "[green]yes[/green]" if installed else "[red]no[/red]",
        )
    Console().print(out)
