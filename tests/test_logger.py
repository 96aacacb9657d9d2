import logging
import sys
from datetime import datetime

import pytest

from db_backup.logger import configure_logging, log_filename


class TestConfigureLogging:
    def test_log_filename_is_dated(self):
        assert log_filename(datetime(2024, 3, 5, 23, 59)) == "20240305.log"

    def test_enabled_appends_to_dated_file(self, tmp_path):
        log_file = tmp_path / "20240305.log"
        log_file.write_text("earlier run\n", encoding="utf-8")

        logger = configure_logging(True, log_dir=tmp_path, now=datetime(2024, 3, 5))
        logger.info("backup started")
        for handler in logger.handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert content.startswith("earlier run\n")
        assert "backup started" in content

    def test_disabled_writes_to_stdout(self, tmp_path):
        logger = configure_logging(False, log_dir=tmp_path)
        assert len(logger.handlers) == 1
        handler = logger.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stdout
        assert list(tmp_path.iterdir()) == []

    def test_reconfiguring_replaces_handlers(self, tmp_path):
        configure_logging(True, log_dir=tmp_path)
        logger = configure_logging(False, log_dir=tmp_path)
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0], logging.FileHandler)

    def test_unwritable_log_dir_raises(self, tmp_path):
        with pytest.raises(OSError):
            configure_logging(True, log_dir=tmp_path / "missing")
