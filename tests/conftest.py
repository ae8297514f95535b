import logging
from pathlib import Path

import pytest

from copy_images.coordinator import LOG

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def log_records():
    handler = _ListHandler()
    previous_level = LOG.level
    LOG.setLevel(logging.DEBUG)
    LOG.addHandler(handler)
    try:
        yield handler.records
    finally:
        LOG.removeHandler(handler)
        LOG.setLevel(previous_level)


def write_image(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(PNG_BYTES)
    return path


def messages(records, level):
    return [record.getMessage() for record in records if record.levelno == level]
