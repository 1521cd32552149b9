"""
Skopeo — Build and run `skopeo sync` invocations.

The shared flags (registries config, credentials, TLS verification,
transports) are computed once at startup. Each repository then only adds
its source and destination references:

    skopeo sync --src-creds u:p --src docker --dest docker \\
        registry.internal/team/app/api harbor.example.com/team/app

The destination drops the image name: skopeo sync appends it itself, so
keeping the parent path preserves the repository layout.

Commands are argument lists run without a shell.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Sequence, Tuple

from ..config.loader import DEFAULT_SKOPEO_BIN, MirrorConfig
from ..errors import MissingDeclarationError, SyncInvocationError
from .cmdline import display_command

logger = logging.getLogger(__name__)


def build_base_args(
    config: MirrorConfig,
    registries_conf: Path,
    skopeo_bin: str = DEFAULT_SKOPEO_BIN,
) -> Tuple[str, ...]:
    """
    Assemble the flags shared by every repository sync.

    Args:
        config: Resolved source/destination config
        registries_conf: Path of the insecure-registries file
        skopeo_bin: skopeo executable

    Returns:
        Immutable argument tuple starting with `skopeo sync`

    Raises:
        MissingDeclarationError: An endpoint is insecure but the
            registries file does not exist
    """
    args: List[str] = [skopeo_bin, "sync"]

    if config.any_insecure:
        if not registries_conf.exists():
            raise MissingDeclarationError(str(registries_conf))
        args.append(f"--registries-conf={registries_conf}")

    if config.src.credentials:
        args.extend(["--src-creds", config.src.credentials])
    if config.dest.credentials:
        args.extend(["--dest-creds", config.dest.credentials])

    # TODO: add --src-cert-dir/--dest-cert-dir for private CAs
    if config.src.insecure:
        args.append("--src-tls-verify=false")
    if config.dest.insecure:
        args.append("--dest-tls-verify=false")

    args.extend(["--src", config.src.transport, "--dest", config.dest.transport])

    return tuple(args)


def destination_subpath(repository: str) -> str:
    """
    Destination path for a repository: the name without its last segment.

    "org/app/image" -> "org/app"; "image" -> "image".
    """
    parent, sep, _ = repository.rpartition("/")
    if not sep:
        return repository
    return parent


def build_sync_command(
    base_args: Sequence[str],
    config: MirrorConfig,
    repository: str,
) -> List[str]:
    """Full invocation for one repository."""
    source = f"{config.src.host}/{repository}"
    destination = f"{config.dest.host}/{destination_subpath(repository)}"
    return [*base_args, source, destination]


def run_sync(command: Sequence[str]) -> str:
    """
    Run one skopeo sync and wait for it to exit.

    Returns:
        Captured stdout

    Raises:
        SyncInvocationError: skopeo could not be started or exited non-zero
    """
    logger.debug(f"Running: {display_command(command)}")

    try:
        result = subprocess.run(
            list(command),
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise SyncInvocationError(command, str(e)) from e

    if result.returncode != 0:
        raise SyncInvocationError(
            command,
            f"exit status {result.returncode}",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )

    return result.stdout or ""

