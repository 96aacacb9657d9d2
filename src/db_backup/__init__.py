"""Concurrent database backup package."""

from __future__ import annotations

from .config import load_config, BackupConfig  # noqa: F401
from .orchestrator import BackupOrchestrator  # noqa: F401
