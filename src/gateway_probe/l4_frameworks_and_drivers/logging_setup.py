"""File-based debug logging setup."""

from __future__ import annotations

import logging
from pathlib import Path


def setup_file_logging(log_dir: Path, *, debug: bool = False) -> Path:
    """Configure file-based logging for the ``gwp`` logger tree into *log_dir*."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / 'gwp_debug.log'
    handler = logging.FileHandler(log_path, encoding='utf-8')
    handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
    root = logging.getLogger('gwp')
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.addHandler(handler)
    logging.getLogger('gwp.cli').info('Logging started → %s', log_path)
    return log_path
