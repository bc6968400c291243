"""Tests for file logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from gateway_probe.l4_frameworks_and_drivers.logging_setup import setup_file_logging


@pytest.fixture
def _restore_gwp_logger():
    logger = logging.getLogger('gwp')
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers[len(handlers) :]:
        handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


@pytest.mark.usefixtures('_restore_gwp_logger')
class TestSetupFileLogging:
    def test_writes_debug_log(self, tmp_path: Path):
        log_dir = tmp_path / 'logs'
        path = setup_file_logging(log_dir, debug=True)

        logging.getLogger('gwp.test').debug('hello from test')
        for handler in logging.getLogger('gwp').handlers:
            handler.flush()

        assert path == log_dir / 'gwp_debug.log'
        assert 'hello from test' in path.read_text(encoding='utf-8')

    def test_info_level_without_debug(self, tmp_path: Path):
        setup_file_logging(tmp_path)
        assert logging.getLogger('gwp').level == logging.INFO
