from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = "config.json"


class ConfigurationError(Exception):
    """Raised when the backup configuration cannot be loaded."""


class TargetConfig(BaseModel):
    """One database to back up."""

    db_number: str
    db_name: str
    db_user: str = ""
    db_password: str = Field(default="", repr=False)
    db_host: str = ""
    remark: str = ""

    @property
    def label(self) -> str:
        return f"{self.db_number}_{self.db_name}"


class BackupConfig(BaseModel):
    backup_target_path: Path
    enable_logging: bool = False
    dblists: List[TargetConfig] = Field(default_factory=list)
    dump_command: List[str] = Field(default_factory=lambda: ["mysqldump"])
    compress_command: List[str] = Field(default_factory=lambda: ["gzip"])
    retention_days: Optional[int] = None
    keep_partial_artifacts: bool = False

    @field_validator("backup_target_path", mode="before")
    @classmethod
    def _require_target_path(cls, value):
        if isinstance(value, str) and not value.strip():
            raise ValueError("backup_target_path must not be empty.")
        return value

    @field_validator("backup_target_path")
    @classmethod
    def _expand_target_path(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("dump_command", "compress_command")
    @classmethod
    def _require_program(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("Command must name at least a program.")
        return value

    @field_validator("retention_days")
    @classmethod
    def _positive_retention(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("Retention must be positive.")
        return value


def load_config(path: Path) -> BackupConfig:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Failed to parse config file {path}: {exc}") from exc

    try:
        return BackupConfig.model_validate(raw)
    except Exception as exc:  # noqa: BLE001
        raise ConfigurationError(str(exc)) from exc
