"""Shared path constants for configuration and logs."""

from __future__ import annotations

from platformdirs import user_config_path, user_log_path

CONFIG_DIR = user_config_path('gateway-probe')
LOG_DIR = user_log_path('gateway-probe')

DEFAULT_CONFIG_PATH = CONFIG_DIR / 'config.yaml'
