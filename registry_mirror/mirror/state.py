"""
Mirror State — Record the outcome of the last sync cycle.

State is stored in state/mirror_status.json (path from MIRROR_STATUS_FILE)
so `registry-mirror status` can report on a running daemon.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def new_cycle_id() -> str:
    """Cycle ID like C-20260204T120000."""
    return "C-" + datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")


@dataclass
class CycleReport:
    """Outcome of one poll cycle."""

    cycle_id: str = field(default_factory=new_cycle_id)
    started_iso: str = field(default_factory=_now_iso)
    finished_iso: Optional[str] = None
    repositories: List[str] = field(default_factory=list)
    synced: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)  # repository -> error summary
    catalog_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.catalog_error is None and not self.failed

    def mark_synced(self, repository: str) -> None:
        self.synced.append(repository)

    def mark_failed(self, repository: str, error: str) -> None:
        self.failed[repository] = error

    def finish(self) -> None:
        self.finished_iso = _now_iso()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CycleReport":
        """Rebuild a report. Raises ValueError on fields of the wrong type."""
        for name, expected in (("repositories", list), ("synced", list), ("failed", dict)):
            if not isinstance(data.get(name, expected()), expected):
                raise ValueError(f"{name} must be a {expected.__name__}")
        return cls(
            cycle_id=data.get("cycle_id", ""),
            started_iso=data.get("started_iso", ""),
            finished_iso=data.get("finished_iso"),
            repositories=list(data.get("repositories", [])),
            synced=list(data.get("synced", [])),
            failed=dict(data.get("failed", {})),
            catalog_error=data.get("catalog_error"),
        )


def save_report(report: CycleReport, path: Path) -> bool:
    """
    Save the report as JSON. Never raises.

    Uses atomic write (write to temp, then rename).

    Returns:
        True if the file was written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=4)
            f.write("\n")
        temp_path.replace(path)
    except OSError as e:
        logger.warning(f"Failed to save mirror status to {path}: {e}")
        return False
    return True


def load_report(path: Path) -> Optional[CycleReport]:
    """Load the last report, or None if missing or unreadable."""
    if not path.exists():
        return None

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return CycleReport.from_dict(data)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.error(f"Failed to load mirror status: {e}")
        return None
