"""
Insecure-Registry Declaration — Write registry.conf for skopeo.

skopeo refuses plain-HTTP registries unless they are listed in a
registries.conf file. When either endpoint has `ssl: false`, the mirror
writes one listing the insecure host(s), source first:

    [registries.insecure]
    registries = ['registry.internal:5000', 'harbor.local']

The file is passed to skopeo with --registries-conf.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from ..config.loader import MirrorConfig
from ..errors import DeclarationWriteError

logger = logging.getLogger(__name__)


def render_declaration(hosts: Sequence[str]) -> str:
    """Render the registries.conf body for the given insecure hosts."""
    quoted = ", ".join(f"'{host}'" for host in hosts)
    return f"[registries.insecure]\nregistries = [{quoted}]\n"


def write_declaration(config: MirrorConfig, path: Path) -> Optional[Path]:
    """
    Write registry.conf if at least one endpoint is insecure.

    Args:
        config: Resolved source/destination config
        path: Where to write the file

    Returns:
        The written path, or None when both endpoints use TLS

    Raises:
        DeclarationWriteError: If the file cannot be written
    """
    hosts = config.insecure_hosts()
    if not hosts:
        logger.debug("Both registries use TLS, no registries config needed")
        return None

    try:
        path.write_text(render_declaration(hosts), encoding="utf-8")
    except OSError as e:
        raise DeclarationWriteError(str(path), str(e)) from e

    logger.info(f"Insecure registries written to {path}: {', '.join(hosts)}")
    return path
