from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from .config import TargetConfig
from .pipeline import DumpPipeline, PipelineError
from .storage import FilesystemStorage


@dataclass
class TargetResult:
    target: str
    status: str
    started_at: datetime
    completed_at: datetime
    artifact_path: Optional[Path] = None
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == "success"


class JobEngine:
    """Runs the dump pipeline for one target and records the outcome."""

    DEFAULT_STATUS = "success"

    def __init__(
        self,
        storage: FilesystemStorage,
        pipeline: DumpPipeline,
        logger: logging.Logger,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._storage = storage
        self._pipeline = pipeline
        self._log = logger
        self._clock = clock

    def run(self, target: TargetConfig) -> TargetResult:
        started_at = self._clock()
        destination = self._storage.artifact_path(target, started_at)
        errors: List[str] = []
        status = self.DEFAULT_STATUS
        artifact: Optional[Path] = None

        try:
            artifact = self._pipeline.run(target, destination)
        except PipelineError as exc:
            status = "failed"
            errors.append(str(exc))
        except Exception as exc:  # noqa: BLE001
            status = "failed"
            errors.append(str(exc))
            self._log.exception("Unexpected error while backing up database %s", target.db_name)

        return TargetResult(
            target=target.label,
            status=status,
            started_at=started_at,
            completed_at=self._clock(),
            artifact_path=artifact,
            errors=errors,
        )
