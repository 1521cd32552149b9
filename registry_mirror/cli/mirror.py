"""
CLI mirror commands — run the sync loop and inspect its configuration.

Usage:
    registry-mirror run [--once] [--keep-going]
    registry-mirror catalog
    registry-mirror show-command [REPOSITORY]
    registry-mirror check-config
    registry-mirror status [--json]
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import NoReturn, Optional

import click

from ..config.loader import DEFAULT_STATUS_FILE, load_settings
from ..errors import CatalogError, MirrorError
from ..mirror.catalog import fetch_catalog
from ..mirror.driver import bootstrap
from ..mirror.cmdline import display_command
from ..mirror.state import load_report

logger = logging.getLogger(__name__)


def _fatal(message: str) -> NoReturn:
    """Log a fatal error and exit non-zero."""
    logger.error(message)
    click.secho(f"ERROR: {message}", fg="red", err=True)
    raise SystemExit(1)


@click.command("run")
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.option(
    "--keep-going",
    is_flag=True,
    help="Retry next interval when the catalog query fails instead of exiting",
)
def run(once: bool, keep_going: bool) -> None:
    """Mirror every source repository, then sleep INTERVAL seconds, forever."""
    try:
        driver = bootstrap(keep_going=keep_going)
    except MirrorError as e:
        _fatal(f"Unable to start: {e}")

    try:
        if once:
            report = driver.run_cycle()
            click.echo(
                f"{len(report.synced)} synced, {len(report.failed)} failed "
                f"of {len(report.repositories)} repositories"
            )
            return
        driver.start()
    except CatalogError as e:
        _fatal(f"Unable to get source repo list: {e}")
    except KeyboardInterrupt:
        logger.info("Shutting down...")


@click.command("catalog")
def catalog() -> None:
    """List the repositories of the source registry."""
    try:
        settings = load_settings()
        repositories = fetch_catalog(settings.config.src, timeout=settings.catalog_timeout)
    except MirrorError as e:
        _fatal(str(e))

    for repository in repositories:
        click.echo(repository)


@click.command("show-command")
@click.argument("repository", required=False)
def show_command(repository: Optional[str]) -> None:
    """Print the skopeo invocation (passwords masked).

    Without REPOSITORY, prints the flags shared by every repository.
    Writes the registries config when an endpoint is insecure.
    """
    try:
        driver = bootstrap()
    except MirrorError as e:
        _fatal(str(e))

    if repository:
        click.echo(display_command(driver.command_for(repository)))
    else:
        click.echo(display_command(driver.base_args))


@click.command("check-config")
def check_config() -> None:
    """Validate config.yml and the environment."""
    try:
        settings = load_settings()
    except MirrorError as e:
        _fatal(str(e))

    config = settings.config
    click.echo(f"\n📄 Config: {settings.config_path}\n")
    for name, endpoint in (("src", config.src), ("dest", config.dest)):
        click.echo(f"  {name}:")
        for key, value in endpoint.describe().items():
            click.echo(f"    {key:10} {value}")
    click.echo()
    click.echo(f"  Interval:          {settings.interval}s")
    click.echo(f"  skopeo:            {settings.skopeo_bin}")
    hosts = config.insecure_hosts()
    if hosts:
        click.secho(f"  Insecure hosts:    {', '.join(hosts)} ({settings.registries_conf})", fg="yellow")
    else:
        click.echo("  Insecure hosts:    none")
    click.secho("\n✓ Config OK", fg="green")


@click.command("status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status(as_json: bool) -> None:
    """Show the outcome of the last sync cycle."""
    path = Path(os.environ.get("MIRROR_STATUS_FILE", DEFAULT_STATUS_FILE))
    report = load_report(path)

    if report is None:
        if as_json:
            click.echo("null")
        else:
            click.echo(f"No sync cycle recorded yet ({path})")
        return

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    click.echo(f"\n🔀 Last cycle {report.cycle_id}\n")
    click.echo(f"  Started:   {report.started_iso}")
    click.echo(f"  Finished:  {report.finished_iso or '(running)'}")
    if report.catalog_error:
        click.secho(f"  ❌ Catalog: {report.catalog_error}", fg="red")
        return
    click.echo(f"  Synced:    {len(report.synced)}/{len(report.repositories)}")
    for repository, error in report.failed.items():
        click.secho(f"  ❌ {repository}: {error}", fg="red")
