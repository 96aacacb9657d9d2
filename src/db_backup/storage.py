from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from .config import TargetConfig

LOG = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
ARTIFACT_SUFFIX = ".sql.gz"

_ARTIFACT_TIMESTAMP = re.compile(r"_(\d{8}_\d{6})\.sql\.gz$")


class StorageError(Exception):
    """Raised when the backup directory cannot be prepared or read."""


def artifact_name(target: TargetConfig, captured_at: datetime) -> str:
    return f"{target.db_number}_{target.db_name}_{captured_at.strftime(TIMESTAMP_FORMAT)}{ARTIFACT_SUFFIX}"


def artifact_timestamp(name: str) -> Optional[datetime]:
    match = _ARTIFACT_TIMESTAMP.search(name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        return None


@dataclass
class FilesystemStorage:
    """Stores backup artifacts in a flat host directory."""

    base_path: Path

    def ensure(self) -> Path:
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to create backup target path {self.base_path}: {exc}") from exc
        return self.base_path

    def artifact_path(self, target: TargetConfig, captured_at: datetime) -> Path:
        return self.base_path / artifact_name(target, captured_at)

    def list_entries(self) -> List[str]:
        try:
            return sorted(entry.name for entry in self.base_path.iterdir())
        except OSError as exc:
            raise StorageError(f"Failed to read backup target path {self.base_path}: {exc}") from exc

    def enforce_retention(self, retention_days: int, now: Optional[datetime] = None) -> List[Path]:
        if retention_days <= 0 or not self.base_path.exists():
            return []

        cutoff = (now or datetime.now()) - timedelta(days=retention_days)
        removed: List[Path] = []
        try:
            children = list(self.base_path.iterdir())
        except OSError as exc:
            LOG.warning("Skipping retention, cannot read %s: %s", self.base_path, exc)
            return removed

        for child in children:
            if not child.is_file():
                continue
            captured_at = artifact_timestamp(child.name)
            if captured_at is None:
                LOG.debug("Skipping non-artifact file %s", child)
                continue

            if captured_at < cutoff:
                try:
                    child.unlink(missing_ok=True)
                except OSError as exc:
                    LOG.warning("Failed to remove expired backup %s: %s", child, exc)
                    continue
                LOG.info("Removed expired backup %s", child)
                removed.append(child)
        return removed
