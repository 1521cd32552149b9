"""
Registry Mirror — CLI Entry Point

Usage:
    python -m registry_mirror run [--once] [--keep-going]
    python -m registry_mirror catalog
    python -m registry_mirror status
"""

from __future__ import annotations

# Load .env FIRST, before anything reads env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import click

from . import __version__
from .cli.mirror import catalog, check_config, run, show_command, status
from .logging_config import setup_logging


@click.group()
@click.version_option(__version__, prog_name="registry-mirror")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR (default: LOG_LEVEL or INFO)")
@click.option("--log-format", type=click.Choice(["text", "json"]), default=None, help="Log output format")
def cli(log_level: str | None, log_format: str | None) -> None:
    """Registry Mirror — copy every repository of one registry to another."""
    setup_logging(level=log_level, format_type=log_format)


cli.add_command(run)
cli.add_command(catalog)
cli.add_command(show_command)
cli.add_command(check_config)
cli.add_command(status)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
