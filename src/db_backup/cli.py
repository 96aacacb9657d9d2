from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .config import DEFAULT_CONFIG_PATH, BackupConfig, ConfigurationError, load_config
from .job_engine import TargetResult
from .logger import configure_logging
from .orchestrator import DEFAULT_CONCURRENCY, BackupOrchestrator
from .storage import FilesystemStorage, StorageError

ACTIONS = ("backup", "list")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid concurrency value: {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Concurrency must be a positive integer, got {number}")
    return number


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Back up configured databases or list existing backups.")
    parser.add_argument(
        "--action",
        required=True,
        choices=ACTIONS,
        help="'backup' to start backups or 'list' to list backed-up files.",
    )
    parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=str(DEFAULT_CONCURRENCY),
        help=f"Number of concurrent backups (default {DEFAULT_CONCURRENCY}).",
    )
    parser.add_argument(
        "--config",
        default=os.getenv("DB_BACKUP_CONFIG", DEFAULT_CONFIG_PATH),
        help="Path to the JSON configuration file.",
    )
    parser.add_argument(
        "--log-dir",
        default=os.getenv("DB_BACKUP_LOG_DIR", "."),
        help="Directory for dated log files when logging is enabled.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Log level (default INFO).",
    )
    return parser.parse_args(argv)


def load_configuration(path: Path) -> BackupConfig:
    try:
        return load_config(path)
    except ConfigurationError as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc


def build_logger(config: BackupConfig, log_dir: str, level: str) -> logging.Logger:
    try:
        return configure_logging(config.enable_logging, log_dir=log_dir, level=level)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Failed to open log file: {exc}") from exc


def list_backups(config: BackupConfig) -> None:
    storage = FilesystemStorage(base_path=config.backup_target_path)
    try:
        entries = storage.list_entries()
    except StorageError as exc:
        raise SystemExit(str(exc)) from exc

    if not entries:
        print("No backup files found")
        return

    print("Backed-up files:")
    for name in entries:
        print(name)


def run_backups(config: BackupConfig, logger: logging.Logger, max_concurrency: int) -> int:
    orchestrator = BackupOrchestrator(config=config, logger=logger, max_concurrency=max_concurrency)
    try:
        results = orchestrator.run()
    except StorageError as exc:
        raise SystemExit(str(exc)) from exc

    _log_summary(results, logger)
    print("All database backups completed.")
    return 0


def _log_summary(results: List[TargetResult], logger: logging.Logger) -> None:
    for result in results:
        if result.success:
            logger.info(
                "Target %s succeeded in %.2fs",
                result.target,
                (result.completed_at - result.started_at).total_seconds(),
            )
        else:
            logger.error("Target %s failed: %s", result.target, "; ".join(result.errors))

    failed = sum(1 for result in results if not result.success)
    if failed:
        logger.warning("%d of %d backups failed", failed, len(results))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = load_configuration(Path(args.config).expanduser())
    logger = build_logger(config, args.log_dir, args.log_level)

    if args.action == "list":
        list_backups(config)
        return 0
    return run_backups(config, logger, args.concurrency)


if __name__ == "__main__":
    sys.exit(main())
