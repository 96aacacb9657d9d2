from __future__ import annotations

import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import List, Sequence

from .config import TargetConfig


class PipelineError(Exception):
    """Raised when one stage of a dump pipeline fails."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage


def partial_path(destination: Path) -> Path:
    return destination.with_name(f"{destination.name}.{os.getpid()}-{threading.get_ident()}.partial")


class DumpPipeline:
    """Runs ``dump | compress > destination`` for a single target."""

    def __init__(
        self,
        dump_command: Sequence[str],
        compress_command: Sequence[str],
        logger: logging.Logger,
        keep_partial_artifacts: bool = False,
    ) -> None:
        self._dump_command = list(dump_command)
        self._compress_command = list(compress_command)
        self._log = logger
        self._keep_partial = keep_partial_artifacts

    def build_dump_command(self, target: TargetConfig) -> List[str]:
        cmd = list(self._dump_command)
        if target.db_host:
            cmd += ["-h", target.db_host]
        if target.db_user:
            cmd += ["-u", target.db_user]
        cmd.append(target.db_name)
        return cmd

    def run(self, target: TargetConfig, destination: Path) -> Path:
        """Write the compressed dump of ``target`` to ``destination``.

        Output goes to a unit-private ``.partial`` file that replaces
        ``destination`` only once both processes succeeded, so a failing
        unit never touches an artifact written by another one.
        """
        partial = partial_path(destination)
        try:
            outfile = partial.open("wb")
        except OSError as exc:
            self._log.error("Failed to create backup file %s: %s", destination, exc)
            raise PipelineError("file-create", str(exc)) from exc

        try:
            with outfile:
                self._stream(target, outfile)
        except PipelineError:
            self._discard(partial)
            raise

        try:
            os.replace(partial, destination)
        except OSError as exc:
            self._log.error("Failed to move backup file into place at %s: %s", destination, exc)
            self._discard(partial)
            raise PipelineError("file-rename", str(exc)) from exc

        self._log.info("Successfully backed up and compressed database %s to %s", target.db_name, destination)
        return destination

    def _stream(self, target: TargetConfig, outfile) -> None:
        env = os.environ.copy()
        if target.db_password:
            env["MYSQL_PWD"] = target.db_password

        try:
            dump = subprocess.Popen(
                self.build_dump_command(target),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
            )
        except OSError as exc:
            self._log.error("Failed to start dump for database %s: %s", target.db_name, exc)
            raise PipelineError("dump-start", str(exc)) from exc

        try:
            compress = subprocess.Popen(self._compress_command, stdin=dump.stdout, stdout=outfile)
        except OSError as exc:
            self._log.error("Failed to start compression for database %s: %s", target.db_name, exc)
            dump.kill()
            dump.communicate()
            raise PipelineError("compress-start", str(exc)) from exc

        # Compressor sees end-of-input once the dump exits and this copy is gone.
        dump.stdout.close()

        stderr = dump.stderr.read()
        dump.stderr.close()
        dump_code = dump.wait()
        if dump_code != 0:
            detail = stderr.decode("utf-8", "ignore").strip()
            message = f"exit status {dump_code}" + (f": {detail}" if detail else "")
            self._log.error("Failed to complete dump for database %s: %s", target.db_name, message)
            compress.wait()
            raise PipelineError("dump-wait", message)

        compress_code = compress.wait()
        if compress_code != 0:
            message = f"exit status {compress_code}"
            self._log.error("Failed to complete compression for database %s: %s", target.db_name, message)
            raise PipelineError("compress-wait", message)

    def _discard(self, partial: Path) -> None:
        if self._keep_partial:
            self._log.warning("Keeping partial backup file %s", partial)
            return
        try:
            partial.unlink(missing_ok=True)
        except OSError as exc:
            self._log.warning("Failed to remove partial backup file %s: %s", partial, exc)
        else:
            self._log.info("Removed partial backup file %s", partial)
