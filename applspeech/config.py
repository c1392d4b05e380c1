"""
applspeech.config - YAML config loading, environment overrides, validation.

Settings come from ``~/.config/applspeech/config.yaml`` (or the file named
by ``$APPLSPEECH_CONFIG``), then ``APPLSPEECH_*`` environment variables,
then command-line flags.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from applspeech.exceptions import ConfigError
from applspeech.formats import AudioFormat, supported_formats

CONFIG_ENV = "APPLSPEECH_CONFIG"
ENV_PREFIX = "APPLSPEECH_"
DEFAULT_CONFIG_PATH = Path("~/.config/applspeech/config.yaml")


class ApplSpeechConfig(BaseModel):
    """Resolved applspeech settings."""

    locale: str = "en-US"
    engine: str = "auto"
    output_format: str = "text"
    legacy_formats: bool = False
    http_timeout: float = Field(default=60.0, gt=0.0)
    bot_token_env: str = "TELEGRAM_BOT_TOKEN"
    whisper_model: str = "small"
    verbose: bool = False

    config_path: Path | None = None

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("locale must not be empty")
        return v

    @field_validator("engine")
    @classmethod
    def validate_engine(cls, v: str) -> str:
        valid = {"auto", "legacy", "modern"}
        if v not in valid:
            raise ValueError(f"engine must be one of: {sorted(valid)}")
        return v

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        valid = {"text", "json"}
        if v not in valid:
            raise ValueError(f"output_format must be one of: {sorted(valid)}")
        return v

    @field_validator("bot_token_env")
    @classmethod
    def validate_bot_token_env(cls, v: str) -> str:
        if not v:
            raise ValueError("bot_token_env must name an environment variable")
        return v

    @property
    def formats(self) -> frozenset[AudioFormat]:
        return supported_formats(self.legacy_formats)


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    environ = os.environ if environ is None else environ
    if environ.get(CONFIG_ENV):
        return Path(environ[CONFIG_ENV]).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect ``APPLSPEECH_<FIELD>`` values; pydantic coerces the strings."""
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for name in ApplSpeechConfig.model_fields:
        if name == "config_path":
            continue
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value is not None and value != "":
            overrides[name] = value
    return overrides


def merge_config(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge overrides onto base. Overrides take precedence; None values are skipped."""
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ApplSpeechConfig:
    """Load and validate configuration.

    Args:
        path: Config file; defaults to ``$APPLSPEECH_CONFIG`` or the user config
        environ: Environment mapping (defaults to os.environ)
        **overrides: Command-line values; None leaves the setting alone

    Returns:
        Validated ApplSpeechConfig

    Raises:
        ConfigError: If the file cannot be read or a value is invalid
    """
    explicit = path is not None
    config_file = path.expanduser() if path is not None else default_config_path(environ)

    raw_config: dict[str, Any] = {}
    if config_file.exists():
        try:
            with open(config_file) as f:
                raw_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {config_file}: {e}") from e
        if not isinstance(raw_config, dict):
            raise ConfigError(f"Config {config_file} must be a mapping")
        raw_config["config_path"] = config_file
    elif explicit:
        raise ConfigError(f"Config file not found: {config_file}")

    merged = merge_config(raw_config, env_overrides(environ))
    merged = merge_config(merged, overrides)

    try:
        return ApplSpeechConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
