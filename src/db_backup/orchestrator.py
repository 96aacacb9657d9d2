from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .config import BackupConfig
from .job_engine import JobEngine, TargetResult
from .pipeline import DumpPipeline
from .storage import FilesystemStorage

DEFAULT_CONCURRENCY = 3


class BackupOrchestrator:
    """Backs up every configured target with at most ``max_concurrency`` pipelines at once."""

    def __init__(
        self,
        config: BackupConfig,
        logger: logging.Logger,
        max_concurrency: int = DEFAULT_CONCURRENCY,
        engine: Optional[JobEngine] = None,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be a positive integer")
        self._config = config
        self._log = logger
        self._max_concurrency = max_concurrency
        self._storage = FilesystemStorage(base_path=config.backup_target_path)
        self._engine = engine or JobEngine(
            storage=self._storage,
            pipeline=DumpPipeline(
                dump_command=config.dump_command,
                compress_command=config.compress_command,
                logger=logger,
                keep_partial_artifacts=config.keep_partial_artifacts,
            ),
            logger=logger,
        )

    def run(self) -> List[TargetResult]:
        """Run all targets and wait for every one of them to finish.

        Raises ``StorageError`` if the output directory cannot be created.
        Per-target failures are reported in the returned results.
        """
        self._storage.ensure()
        self._warn_duplicate_targets()

        targets = self._config.dblists
        if not targets:
            self._log.warning("No databases configured for backup")
            results: List[TargetResult] = []
        else:
            with ThreadPoolExecutor(
                max_workers=self._max_concurrency, thread_name_prefix="db-backup"
            ) as executor:
                results = list(executor.map(self._engine.run, targets))

        if self._config.retention_days:
            self._storage.enforce_retention(self._config.retention_days)
        return results

    def _warn_duplicate_targets(self) -> None:
        counts = Counter(target.label for target in self._config.dblists)
        for label, count in sorted(counts.items()):
            if count > 1:
                self._log.warning(
                    "Target %s is configured %d times; artifacts captured in the same second will overwrite each other",
                    label,
                    count,
                )
