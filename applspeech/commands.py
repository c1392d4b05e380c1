"""
applspeech.commands - User intents and their execution.

The CLI parses raw arguments into one of a closed set of command values;
``execute`` runs the data-producing ones and returns their payload for
rendering.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Union

from applspeech import environment
from applspeech.analyze.voice import VoiceAnalysis, VoiceAnalyzer
from applspeech.config import ApplSpeechConfig
from applspeech.environment import EnvironmentStatus
from applspeech.exceptions import MissingSourceError
from applspeech.inputs.resolver import CredentialProvider, env_credentials, open_input
from applspeech.platform.base import SpeechPlatform
from applspeech.transcribe.engine import EngineChoice, transcribe_file

logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


@dataclass(frozen=True)
class TranscribeCommand:
    source: str | None
    format: OutputFormat = OutputFormat.TEXT
    locale: str = "en-US"
    engine: EngineChoice = EngineChoice.AUTO


@dataclass(frozen=True)
class AnalyzeCommand:
    source: str | None
    format: OutputFormat = OutputFormat.TEXT


@dataclass(frozen=True)
class StatusCommand:
    format: OutputFormat = OutputFormat.TEXT
    locale: str = "en-US"


@dataclass(frozen=True)
class AuthorizeCommand:
    format: OutputFormat = OutputFormat.TEXT
    locale: str = "en-US"
    microphone: bool = False
    download_model: bool = False


@dataclass(frozen=True)
class HelpCommand:
    pass


@dataclass(frozen=True)
class VersionCommand:
    pass


@dataclass(frozen=True)
class UnknownCommand:
    arguments: tuple[str, ...]


Command = Union[
    TranscribeCommand,
    AnalyzeCommand,
    StatusCommand,
    AuthorizeCommand,
    HelpCommand,
    VersionCommand,
    UnknownCommand,
]


@dataclass
class CommandContext:
    """Collaborators shared by every command in one invocation."""

    config: ApplSpeechConfig
    platform_factory: Callable[[], SpeechPlatform]
    client: Any = None
    stdin: BinaryIO | None = None
    credentials: CredentialProvider | None = None
    temp_dir: Path | None = None

    def input_options(self) -> dict[str, Any]:
        return {
            "client": self.client,
            "credentials": self.credentials or env_credentials(self.config.bot_token_env),
            "bot_token_env": self.config.bot_token_env,
            "stdin": self.stdin,
            "temp_dir": self.temp_dir,
            "formats": self.config.formats,
            "timeout": self.config.http_timeout,
        }


async def run_transcribe(command: TranscribeCommand, context: CommandContext) -> dict[str, Any]:
    if command.source is None:
        raise MissingSourceError()

    platform = context.platform_factory()
    async with open_input(command.source, **context.input_options()) as resolved:
        transcript = await transcribe_file(
            resolved.local_path,
            platform,
            locale=command.locale,
            engine=command.engine,
            formats=context.config.formats,
        )

    return {
        "text": transcript.text,
        "file": command.source,
        "language": command.locale,
        "engine": transcript.engine.value,
    }


async def run_analyze(command: AnalyzeCommand, context: CommandContext) -> VoiceAnalysis:
    if command.source is None:
        raise MissingSourceError()

    analyzer = VoiceAnalyzer(context.config.formats)
    async with open_input(command.source, **context.input_options()) as resolved:
        return await analyzer.analyze_file(resolved.local_path)


async def run_status(command: StatusCommand, context: CommandContext) -> EnvironmentStatus:
    return await environment.status(command.locale, context.platform_factory())


async def run_authorize(command: AuthorizeCommand, context: CommandContext) -> EnvironmentStatus:
    return await environment.authorize(
        command.locale,
        context.platform_factory(),
        request_microphone=command.microphone,
        download_model=command.download_model,
    )


async def execute(command: Command, context: CommandContext) -> Any:
    """Run a data-producing command and return its payload.

    Help, version and unknown commands are presentation-only and are
    handled by the CLI.

    Raises:
        ApplSpeechError: On any input, engine or environment failure
    """
    logger.debug("Executing %s", type(command).__name__)
    if isinstance(command, TranscribeCommand):
        return await run_transcribe(command, context)
    if isinstance(command, AnalyzeCommand):
        return await run_analyze(command, context)
    if isinstance(command, StatusCommand):
        return await run_status(command, context)
    if isinstance(command, AuthorizeCommand):
        return await run_authorize(command, context)
    raise TypeError(f"{type(command).__name__} has no execution step")
