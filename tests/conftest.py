import gzip
import json
import logging
import sys

import pytest

from db_backup.config import BackupConfig
from db_backup.logger import LOGGER_NAME

PY = sys.executable

FAKE_DUMP = [PY, "-c", "import sys; sys.stdout.write('-- dump of ' + sys.argv[-1] + '\\n')"]
FAILING_DUMP = [PY, "-c", "import sys; sys.stderr.write('access denied'); sys.exit(2)"]
FAKE_GZIP = [
    PY,
    "-c",
    "import gzip, sys; sys.stdout.buffer.write(gzip.compress(sys.stdin.buffer.read()))",
]
FAILING_GZIP = [PY, "-c", "import sys; sys.stdin.buffer.read(); sys.exit(3)"]


def read_artifact(path) -> str:
    with gzip.open(path, "rt", encoding="utf-8") as fh:
        return fh.read()


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def logger():
    log = logging.getLogger("tests.db_backup")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def target_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture
def targets():
    return [
        {
            "db_number": "01",
            "db_name": "orders",
            "db_user": "backup",
            "db_password": "s3cret",
            "db_host": "127.0.0.1",
            "remark": "shop",
        },
        {
            "db_number": "02",
            "db_name": "billing",
            "db_user": "backup",
            "db_password": "s3cret",
            "db_host": "127.0.0.1",
            "remark": "",
        },
    ]


@pytest.fixture
def make_config(target_dir, targets):
    def _make(**overrides) -> BackupConfig:
        raw = {
            "backup_target_path": str(target_dir),
            "enable_logging": False,
            "dblists": targets,
            "dump_command": FAKE_DUMP,
            "compress_command": FAKE_GZIP,
        }
        raw.update(overrides)
        return BackupConfig.model_validate(raw)

    return _make


@pytest.fixture
def write_config(tmp_path, target_dir, targets):
    def _write(**overrides):
        raw = {
            "backup_target_path": str(target_dir),
            "enable_logging": False,
            "dblists": targets,
            "dump_command": FAKE_DUMP,
            "compress_command": FAKE_GZIP,
        }
        raw.update(overrides)
        path = tmp_path / "config.json"
        path.write_text(json.dumps(raw), encoding="utf-8")
        return path

    return _write
