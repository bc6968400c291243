"""Gateway: YAML configuration store — implements ConfigStore port.

The saved record lives under a fixed storage key so the file can hold other
sections later without clashing::

    cf_ai_gateway_config:
      accountId: ...
      gatewayId: ...
      apiKey: ...
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from gateway_probe.l1_entities.gateway_config import GatewayConfig
from gateway_probe.l3_interface_adapters.gateways.paths import DEFAULT_CONFIG_PATH

log = logging.getLogger('gwp.config')

STORAGE_KEY = 'cf_ai_gateway_config'


class YamlConfigStore:
    """Loads and saves the GatewayConfig record in a YAML file."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        self._explicit = config_path is not None
        self._path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, overrides: dict | None = None) -> GatewayConfig:
        return GatewayConfig.model_validate(self.load_raw(overrides))

    def load_raw(self, overrides: dict | None = None) -> dict:
        """Return the saved record merged with *overrides*, before validation."""
        data = dict(self._read_document().get(STORAGE_KEY) or {})
        if overrides:
            deep_merge(data, overrides)
        return data

    def save(self, updates: dict) -> GatewayConfig:
        """Merge *updates* (camelCase keys) onto the saved record and write it back."""
        document = self._read_document(missing_ok=True)
        record = dict(document.get(STORAGE_KEY) or {})
        deep_merge(record, updates)
        config = GatewayConfig.model_validate(record)
        document[STORAGE_KEY] = config.model_dump(by_alias=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(yaml.safe_dump(document, sort_keys=False), encoding='utf-8')
        log.info('Saved configuration to %s', self._path)
        return config

    def _read_document(self, *, missing_ok: bool = False) -> dict:
        if not self._path.exists():
            if self._explicit and not missing_ok:
                raise FileNotFoundError(f'Config file not found: {self._path}')
            return {}
        data = yaml.safe_load(self._path.read_text(encoding='utf-8')) or {}
        if not isinstance(data, dict):
            raise ValueError(f'Config file must contain a mapping: {self._path}')
        return data


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base
