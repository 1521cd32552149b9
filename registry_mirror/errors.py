"""
Errors — Exception hierarchy for the registry mirror.

Two tiers:
- fatal: configuration, declaration file, interval, catalog query.
  The CLI logs them and exits non-zero.
- recoverable: a single repository sync. The driver logs it and moves on.

## Usage

    from registry_mirror.errors import MirrorError

    try:
        settings = load_settings()
    except MirrorError as e:
        logger.error(f"Startup failed: {e}")
"""

from __future__ import annotations

from typing import Optional, Sequence

from .mirror.cmdline import display_command


class MirrorError(Exception):
    """Base class for all registry mirror errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigError(MirrorError):
    """Raised when the configuration file cannot be read or parsed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class IntervalError(MirrorError):
    """Raised when INTERVAL is set but is not a valid number of seconds."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid interval {value!r}: expected a non-negative integer")


class DeclarationWriteError(MirrorError):
    """Raised when the insecure-registries file cannot be written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot write registries config {path}: {reason}")


class MissingDeclarationError(MirrorError):
    """Raised when an endpoint is insecure but the registries file is absent."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File {path} not present")


class CatalogError(MirrorError):
    """Base class for catalog query failures."""

    def __init__(self, message: str, url: str):
        self.url = url
        super().__init__(message)


class CatalogFetchError(CatalogError):
    """The catalog request could not be sent or no response arrived."""

    def __init__(self, url: str, reason: str):
        self.reason = reason
        super().__init__(f"Error executing request to {url}: {reason}", url)


class CatalogHTTPError(CatalogError):
    """The registry answered with a non-200 status."""

    def __init__(self, url: str, status_code: int, reason: str = ""):
        self.status_code = status_code
        status = f"{status_code} {reason}".strip()
        super().__init__(f"HTTP response status from {url}: {status}", url)


class CatalogDecodeError(CatalogError):
    """The catalog body is not a JSON object with a repositories list."""

    def __init__(self, url: str, reason: str):
        self.reason = reason
        super().__init__(f"Invalid catalog body from {url}: {reason}", url)


class SyncInvocationError(MirrorError):
    """A single skopeo sync invocation failed."""

    def __init__(
        self,
        command: Sequence[str],
        error: str,
        stderr: str = "",
        returncode: Optional[int] = None,
    ):
        self.command = list(command)
        self.error = error
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Error while executing command:\n'{display_command(self.command)}'\nError: {self.error}"
        if self.stderr.strip():
            msg += f"\n{self.stderr.strip()}"
        return msg
