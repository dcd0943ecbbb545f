"""Helpers shared by CLI commands."""

import json
from typing import Any

import typer

from optitour.app import FieldClient
from optitour.config import Settings, get_settings
from optitour.logging import setup_logging

# Settings given as global CLI options, applied on top of the environment
_overrides: dict[str, Any] = {}


def set_overrides(**values: Any) -> None:
    """Record settings passed on the command line. None means not given."""
    _overrides.clear()
    _overrides.update({key: value for key, value in values.items() if value is not None})


def load_settings() -> Settings:
    if _overrides:
        return Settings(**_overrides)
    return get_settings()


def open_client() -> FieldClient:
    """Configure logging and build a field client from settings."""
    settings = load_settings()
    setup_logging(settings.log_level, log_file=settings.log_path)
    return FieldClient(settings)


def output(data: dict | list, as_json: bool, human_lines: list[str]) -> None:
    """Output data as JSON or human-readable lines."""
    if as_json:
        typer.echo(json.dumps(data))
    else:
        for line in human_lines:
            typer.echo(line)
