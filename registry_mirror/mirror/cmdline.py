"""
Command Line Display — Render skopeo argument lists for logs and errors.

Credentials passed with --src-creds/--dest-creds are shown as `user:***`.
"""

from __future__ import annotations

import shlex
from typing import List, Sequence

CREDENTIAL_FLAGS = ("--src-creds", "--dest-creds")


def mask_credentials(value: str) -> str:
    """`user:pass` -> `user:***`; a bare user is left alone."""
    user, sep, _ = value.partition(":")
    return f"{user}:***" if sep else value


def display_command(command: Sequence[str]) -> str:
    """Shell-quoted command with credential passwords masked."""
    shown: List[str] = []
    mask_next = False
    for arg in command:
        if mask_next:
            arg = mask_credentials(arg)
            mask_next = False
        elif arg in CREDENTIAL_FLAGS:
            mask_next = True
        shown.append(arg)
    return shlex.join(shown)
