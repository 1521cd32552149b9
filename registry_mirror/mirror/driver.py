"""
Sync Driver — Mirror every source repository on an interval.

Each cycle:
1. GET the source catalog
2. run `skopeo sync` once per repository, in catalog order
3. save the cycle report and sleep for INTERVAL seconds

A failing repository is logged and skipped. A failing catalog query ends
the process unless keep_going is set, in which case the cycle is skipped
and retried after the next sleep.

## Usage

    from registry_mirror.mirror.driver import bootstrap

    driver = bootstrap()
    driver.start()  # blocks forever
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Mapping, Optional, Sequence, Tuple

import httpx

from ..config.loader import Settings, load_settings
from ..errors import CatalogError, SyncInvocationError
from .catalog import catalog_url, fetch_catalog
from .declaration import write_declaration
from .cmdline import display_command
from .skopeo import build_base_args, build_sync_command, run_sync
from .state import CycleReport, save_report

logger = logging.getLogger(__name__)


class SyncDriver:
    """Catalog + per-repository skopeo sync loop."""

    def __init__(
        self,
        settings: Settings,
        base_args: Sequence[str],
        keep_going: bool = False,
        sleep: Optional[Callable[[float], None]] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.settings = settings
        self.config = settings.config
        self.base_args: Tuple[str, ...] = tuple(base_args)
        self.keep_going = keep_going
        self.interval = settings.interval
        self._sleep = sleep or time.sleep
        self._client = client
        self.last_report: Optional[CycleReport] = None

    # ------------------------------------------------------------------
    # Single repository
    # ------------------------------------------------------------------

    def command_for(self, repository: str) -> list:
        """Full skopeo invocation for one repository."""
        return build_sync_command(self.base_args, self.config, repository)

    def sync_repository(self, repository: str) -> str:
        """Sync one repository. Raises SyncInvocationError on failure."""
        output = run_sync(self.command_for(repository))
        if output.strip():
            logger.info(output.rstrip(), extra={"repository": repository})
        else:
            logger.debug(f"{repository}: skopeo produced no output")
        return output

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def list_repositories(self) -> list:
        return fetch_catalog(
            self.config.src,
            client=self._client,
            timeout=self.settings.catalog_timeout,
        )

    def run_cycle(self) -> CycleReport:
        """
        Run one full cycle.

        Returns:
            The cycle report (also saved to the status file)

        Raises:
            CatalogError: The catalog query failed; no repository was synced
        """
        report = CycleReport()
        self.last_report = report
        started = time.monotonic()
        extra = {"cycle_id": report.cycle_id}

        try:
            repositories = self.list_repositories()
        except CatalogError as e:
            report.catalog_error = str(e)
            report.finish()
            save_report(report, self.settings.status_file)
            raise

        report.repositories = list(repositories)
        logger.info(
            f"Following repositories will be synced: {', '.join(repositories) or '(none)'}",
            extra=extra,
        )

        for repository in repositories:
            logger.info(f"Syncing repository {repository}", extra={**extra, "repository": repository})
            try:
                self.sync_repository(repository)
            except SyncInvocationError as e:
                logger.error(
                    f"Unable to sync repo {repository}: {e}",
                    extra={**extra, "repository": repository},
                )
                report.mark_failed(repository, e.error)
            else:
                report.mark_synced(repository)

        report.finish()
        save_report(report, self.settings.status_file)

        elapsed = time.monotonic() - started
        logger.info(
            f"Cycle {report.cycle_id} done in {elapsed:.1f}s: "
            f"{len(report.synced)} synced, {len(report.failed)} failed",
            extra=extra,
        )
        return report

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        """
        Cycle, sleep, repeat.

        Args:
            max_cycles: Stop after this many cycles (None = never)

        Raises:
            CatalogError: Catalog query failed and keep_going is off
        """
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            try:
                self.run_cycle()
            except CatalogError as e:
                if not self.keep_going:
                    raise
                logger.error(f"Unable to get source repo list, retrying next interval: {e}")

            cycles += 1
            logger.info(f"Finished, sleeping for {self.interval} seconds.")
            self._sleep(self.interval)

    def start(self) -> None:
        """Log the startup banner and loop until killed."""
        src, dest = self.config.src, self.config.dest
        logger.info(f"╔{'═' * 50}╗")
        logger.info("║  Registry Mirror — SKOPEO SYNC MODE")
        logger.info(f"║  Source:      {src.host} ({'https' if src.ssl else 'http'})")
        logger.info(f"║  Destination: {dest.host} ({'https' if dest.ssl else 'http'})")
        logger.info(f"║  Catalog:     {catalog_url(src)}")
        logger.info(f"║  Interval:    {self.interval}s")
        logger.info(f"╚{'═' * 50}╝")
        logger.info(f"Base command: {display_command(self.base_args)}")

        self.run_forever()


def bootstrap(
    env: Optional[Mapping[str, str]] = None,
    keep_going: bool = False,
    sleep: Optional[Callable[[float], None]] = None,
    client: Optional[httpx.Client] = None,
) -> SyncDriver:
    """
    Startup sequence: settings, registries config, shared skopeo args.

    Raises:
        ConfigError, IntervalError, DeclarationWriteError,
        MissingDeclarationError: all fatal
    """
    settings = load_settings(env)
    write_declaration(settings.config, settings.registries_conf)
    base_args = build_base_args(settings.config, settings.registries_conf, settings.skopeo_bin)
    return SyncDriver(settings, base_args, keep_going=keep_going, sleep=sleep, client=client)
