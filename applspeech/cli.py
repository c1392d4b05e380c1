"""
applspeech.cli - Typer CLI entry point.

Parses arguments into command values, runs them and renders the result as
plain text or JSON. Errors go to stderr with exit code 1; unrecognized
arguments exit with code 2.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from applspeech import __version__
from applspeech.analyze.voice import VoiceAnalysis
from applspeech.commands import (
    AnalyzeCommand,
    AuthorizeCommand,
    Command,
    CommandContext,
    HelpCommand,
    OutputFormat,
    StatusCommand,
    TranscribeCommand,
    UnknownCommand,
    VersionCommand,
    execute,
)
from applspeech.config import ApplSpeechConfig, load_config
from applspeech.environment import EnvironmentStatus
from applspeech.exceptions import ApplSpeechError, MissingSourceError
from applspeech.logging import configure_logging
from applspeech.platform import detect_platform
from applspeech.transcribe.engine import EngineChoice

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="applspeech",
    help="On-device speech transcription and voice analysis.\n\n"
    "Sources can be a local path, an http(s) URL, tg:<file_id> or "
    "telegram://<file_id>, or - for stdin.",
    epilog="Telegram sources need a bot token in TELEGRAM_BOT_TOKEN.",
    add_completion=False,
)
console = Console()

# typer may parse with its own bundled copy of click, so take the usage error
# base class from the exception typer re-exports.
UsageError: type[Exception] = typer.BadParameter.__base__


def version_callback(value: bool) -> None:
    if value:
        present(VersionCommand())
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: ~/.config/applspeech/config.yaml)"
    ),
) -> None:
    """applspeech - on-device speech transcription."""
    try:
        settings = load_config(config, verbose=verbose or None)
    except ApplSpeechError as e:
        _fail(e.code, e.message, OutputFormat.TEXT)
    configure_logging(settings.verbose)
    ctx.obj = settings


def _settings(ctx: typer.Context) -> ApplSpeechConfig:
    return ctx.obj if isinstance(ctx.obj, ApplSpeechConfig) else load_config()


def _fail(
    code: str, message: str, fmt: OutputFormat, help_ctx: typer.Context | None = None
) -> NoReturn:
    if fmt is OutputFormat.JSON:
        envelope = {"ok": False, "error": {"code": code, "message": message}}
        typer.echo(json.dumps(envelope, ensure_ascii=False), err=True)
    else:
        typer.echo(f"error: {message}", err=True)
        if help_ctx is not None:
            _print_help(help_ctx)
    raise typer.Exit(1)


def _print_help(ctx: typer.Context | None = None) -> None:
    if ctx is None:
        command = typer.main.get_command(app)
        ctx = command.make_context("applspeech", [], resilient_parsing=True)
    # With rich markup, typer prints the help itself and returns no text.
    text = ctx.find_root().get_help()
    if text:
        typer.echo(text)


def _run(ctx: typer.Context, command: Command, fmt: OutputFormat) -> Any:
    settings = _settings(ctx)
    context = CommandContext(
        config=settings,
        platform_factory=lambda: detect_platform(settings.whisper_model),
    )
    try:
        return asyncio.run(execute(command, context))
    except MissingSourceError as e:
        _fail(e.code, e.message, fmt, help_ctx=ctx)
    except ApplSpeechError as e:
        _fail(e.code, e.message, fmt)
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        _fail("unknown", str(e), fmt)


def _print_json(payload: Any, **kwargs: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, **kwargs))


def _print_analysis(analysis: VoiceAnalysis) -> None:
    typer.echo("Voice Analysis:")
    for name, value in analysis.model_dump().items():
        if value is not None:
            typer.echo(f"  {name.capitalize()}: {value}")


def _state_style(value: str) -> str:
    return "green" if value == "authorized" else "yellow"


def _print_status(snapshot: EnvironmentStatus) -> None:
    table = Table(title=f"Speech Environment ({snapshot.locale})")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    speech = snapshot.permissions.speech_recognition.value
    microphone = snapshot.permissions.microphone.value
    table.add_row("Speech recognition", f"[{_state_style(speech)}]{speech}[/]", "")
    table.add_row("Microphone", f"[{_state_style(microphone)}]{microphone}[/]", "")

    legacy = snapshot.engines.legacy
    if legacy.available:
        details = "on-device" if legacy.supports_on_device_recognition else "server"
        ready = "✓ Ready" if legacy.recognizer_available else "✗ Unavailable"
        table.add_row("Legacy engine", ready, details)
    else:
        table.add_row("Legacy engine", "✗ Not supported", "")

    modern = snapshot.engines.modern
    if not modern.available:
        table.add_row("Modern engine", "✗ Not supported", "")
    elif modern.supported_locale is None:
        table.add_row("Modern engine", "✗ Locale unsupported", snapshot.locale)
    elif modern.model_installed:
        table.add_row("Modern engine", "✓ Ready", modern.supported_locale)
    else:
        table.add_row("Modern engine", "✗ Model not installed", modern.supported_locale)

    console.print(table)
    if snapshot.ok:
        console.print("\n[green]✓ Ready to transcribe[/green]")
    else:
        console.print("\n[yellow]⚠ Not ready[/yellow]")
        console.print("[dim]Run 'applspeech authorize' to grant access or install a model[/dim]")


@app.command("transcribe")
def transcribe_command(
    ctx: typer.Context,
    source: str | None = typer.Argument(None, help="Audio path, URL, tg:<file_id> or -"),
    fmt: OutputFormat | None = typer.Option(None, "--format", "-f", help="Output format"),
    locale: str | None = typer.Option(None, "--locale", "-l", help="BCP 47 locale, e.g. en-US"),
    engine: EngineChoice | None = typer.Option(None, "--engine", "-e", help="Speech engine"),
) -> None:
    """Transcribe an audio file, URL, Telegram file or stdin."""
    settings = _settings(ctx)
    command = TranscribeCommand(
        source=source,
        format=fmt or OutputFormat(settings.output_format),
        locale=locale or settings.locale,
        engine=engine or EngineChoice(settings.engine),
    )
    result = _run(ctx, command, command.format)

    if command.format is OutputFormat.JSON:
        _print_json(result)
    else:
        typer.echo(result["text"])


@app.command("analyze")
def analyze_command(
    ctx: typer.Context,
    source: str | None = typer.Argument(None, help="Audio path, URL, tg:<file_id> or -"),
    fmt: OutputFormat | None = typer.Option(None, "--format", "-f", help="Output format"),
) -> None:
    """Analyze voice characteristics (pitch, tempo, volume, jitter, shimmer)."""
    settings = _settings(ctx)
    command = AnalyzeCommand(source=source, format=fmt or OutputFormat(settings.output_format))
    analysis = _run(ctx, command, command.format)

    if command.format is OutputFormat.JSON:
        _print_json(analysis.model_dump(), indent=2, sort_keys=True)
    else:
        _print_analysis(analysis)


@app.command("status")
def status_command(
    ctx: typer.Context,
    fmt: OutputFormat | None = typer.Option(None, "--format", "-f", help="Output format"),
    locale: str | None = typer.Option(None, "--locale", "-l", help="BCP 47 locale, e.g. en-US"),
) -> None:
    """Show permissions and speech engine readiness."""
    settings = _settings(ctx)
    command = StatusCommand(
        format=fmt or OutputFormat(settings.output_format),
        locale=locale or settings.locale,
    )
    snapshot = _run(ctx, command, command.format)

    if command.format is OutputFormat.JSON:
        _print_json(snapshot.to_dict(), indent=2)
    else:
        _print_status(snapshot)


@app.command("authorize")
def authorize_command(
    ctx: typer.Context,
    fmt: OutputFormat | None = typer.Option(None, "--format", "-f", help="Output format"),
    locale: str | None = typer.Option(None, "--locale", "-l", help="BCP 47 locale, e.g. en-US"),
    microphone: bool = typer.Option(False, "--microphone", help="Also request microphone access"),
    download_model: bool = typer.Option(
        False, "--download-model", help="Install the modern engine's model for the locale"
    ),
) -> None:
    """Request speech permissions and optionally install a speech model."""
    settings = _settings(ctx)
    command = AuthorizeCommand(
        format=fmt or OutputFormat(settings.output_format),
        locale=locale or settings.locale,
        microphone=microphone,
        download_model=download_model,
    )
    snapshot = _run(ctx, command, command.format)

    if command.format is OutputFormat.JSON:
        _print_json(snapshot.to_dict(), indent=2)
    else:
        _print_status(snapshot)


@app.command("help")
def help_command(ctx: typer.Context) -> None:
    """Show this help message."""
    present(HelpCommand(), ctx)


def present(
    command: HelpCommand | VersionCommand | UnknownCommand, ctx: typer.Context | None = None
) -> None:
    """Render the intents that have no execution step."""
    if isinstance(command, VersionCommand):
        console.print(f"applspeech {__version__}")
    elif isinstance(command, HelpCommand):
        _print_help(ctx)
    else:
        typer.echo(f"error: unknown arguments: {' '.join(command.arguments)}", err=True)
        _print_help()


def main(argv: list[str] | None = None) -> None:
    """Console entry point."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        args = ["--help"]

    try:
        rv = app(args=args, prog_name="applspeech", standalone_mode=False)
    except UsageError as e:
        logger.debug("Usage error: %s", e)
        present(UnknownCommand(arguments=tuple(args)))
        raise SystemExit(2) from e
    except typer.Abort as e:
        typer.echo("Aborted!", err=True)
        raise SystemExit(1) from e

    raise SystemExit(rv if isinstance(rv, int) else 0)
