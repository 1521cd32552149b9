"""
Config Loader — Resolve source/destination registries and runtime settings.

The YAML file (path from CONFIG, default ./config.yml) holds two endpoints:

    src:
      host: registry.internal:5000
      user: mirror
      pass: s3cret
      transport: docker      # default: docker
      ssl: false             # default: true
      api: registry-api:5000 # optional host for the catalog call
    dest:
      host: harbor.example.com

Everything else comes from the environment:

    CONFIG, INTERVAL, SKOPEO_BIN, REGISTRIES_CONF,
    MIRROR_STATUS_FILE, CATALOG_TIMEOUT

The resolved values are immutable and passed explicitly to every
component that needs them.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigError, IntervalError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./config.yml"
DEFAULT_INTERVAL = 86400
DEFAULT_TRANSPORT = "docker"
DEFAULT_REGISTRIES_CONF = "./registry.conf"
DEFAULT_STATUS_FILE = "./state/mirror_status.json"
DEFAULT_SKOPEO_BIN = "skopeo"
DEFAULT_CATALOG_TIMEOUT = 30.0


def _scalar_to_str(value: Any) -> Any:
    """YAML numbers (e.g. `pass: 123456`) are kept as their string form."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class EndpointConfig(BaseModel):
    """Connection parameters for one registry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    host: str = ""
    user: str = ""
    password: str = Field(default="", alias="pass")
    transport: str = DEFAULT_TRANSPORT
    ssl: bool = True
    api: str = ""

    @field_validator("host", "user", "password", "api", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        return _scalar_to_str(value)

    @field_validator("transport", mode="before")
    @classmethod
    def _default_transport(cls, value: Any) -> Any:
        if value is None or value == "":
            return DEFAULT_TRANSPORT
        return _scalar_to_str(value)

    @field_validator("ssl", mode="before")
    @classmethod
    def _default_ssl(cls, value: Any) -> Any:
        return True if value is None else value

    @property
    def insecure(self) -> bool:
        return not self.ssl

    @property
    def api_host(self) -> str:
        """Host used for the catalog call."""
        return self.api or self.host

    @property
    def credentials(self) -> Optional[str]:
        """`user` or `user:pass` for skopeo, None without a user."""
        if not self.user:
            return None
        if self.password:
            return f"{self.user}:{self.password}"
        return self.user

    def describe(self) -> Dict[str, Any]:
        """Printable view with the password masked."""
        return {
            "host": self.host,
            "user": self.user,
            "pass": "***" if self.password else "",
            "transport": self.transport,
            "ssl": self.ssl,
            "api": self.api,
        }


class MirrorConfig(BaseModel):
    """The config.yml schema."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    src: EndpointConfig
    dest: EndpointConfig

    @property
    def any_insecure(self) -> bool:
        return self.src.insecure or self.dest.insecure

    def insecure_hosts(self) -> List[str]:
        """Hosts without TLS, source first."""
        return [e.host for e in (self.src, self.dest) if e.insecure]


@dataclass(frozen=True)
class Settings:
    """Everything the mirror needs at runtime, resolved once at startup."""

    config: MirrorConfig
    config_path: Path
    interval: int = DEFAULT_INTERVAL
    registries_conf: Path = Path(DEFAULT_REGISTRIES_CONF)
    status_file: Path = Path(DEFAULT_STATUS_FILE)
    skopeo_bin: str = DEFAULT_SKOPEO_BIN
    catalog_timeout: float = DEFAULT_CATALOG_TIMEOUT


def load_yaml(path: Path) -> Any:
    """Load a YAML file and return its contents."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_config(path: Path) -> MirrorConfig:
    """
    Read and validate config.yml.

    Args:
        path: Path to the YAML config file

    Returns:
        Validated MirrorConfig with defaults applied

    Raises:
        ConfigError: If the file is unreadable, not YAML, or invalid
    """
    try:
        data = load_yaml(path)
    except OSError as e:
        raise ConfigError(f"Error reading file: {e}", path=str(path)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing config file: {e}", path=str(path)) from e

    if not isinstance(data, dict):
        raise ConfigError("Config must be a mapping with 'src' and 'dest'", path=str(path))

    for section in ("src", "dest"):
        if data.get(section) is None:
            raise ConfigError(f"Missing '{section}' section", path=str(path))

    try:
        config = MirrorConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config: {e}", path=str(path)) from e

    logger.debug(
        f"Config loaded: src={config.src.host} (ssl={config.src.ssl}), "
        f"dest={config.dest.host} (ssl={config.dest.ssl})"
    )
    return config


def parse_interval(raw: Optional[str]) -> int:
    """
    Parse the poll interval in seconds.

    Unset means the daily default. Anything but plain ASCII digits is fatal,
    including whitespace, signs and underscores.
    """
    if raw is None:
        return DEFAULT_INTERVAL
    if not (raw.isascii() and raw.isdigit()):
        raise IntervalError(raw)
    return int(raw)


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or raw.strip() == "":
        return DEFAULT_CATALOG_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigError(f"CATALOG_TIMEOUT must be a number, got {raw!r}")
    if not math.isfinite(timeout) or timeout <= 0:
        raise ConfigError(f"CATALOG_TIMEOUT must be a positive finite number, got {raw!r}")
    return timeout


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Resolve config file and environment into Settings.

    Args:
        env: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: Config file unreadable or invalid
        IntervalError: INTERVAL present but not an integer
    """
    env = os.environ if env is None else env

    config_path = Path(env.get("CONFIG", DEFAULT_CONFIG_PATH))
    config = load_config(config_path)

    return Settings(
        config=config,
        config_path=config_path,
        interval=parse_interval(env.get("INTERVAL")),
        registries_conf=Path(env.get("REGISTRIES_CONF", DEFAULT_REGISTRIES_CONF)),
        status_file=Path(env.get("MIRROR_STATUS_FILE", DEFAULT_STATUS_FILE)),
        skopeo_bin=env.get("SKOPEO_BIN", DEFAULT_SKOPEO_BIN) or DEFAULT_SKOPEO_BIN,
        catalog_timeout=_parse_timeout(env.get("CATALOG_TIMEOUT")),
    )
