"""Port: persisted gateway configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from gateway_probe.l1_entities.gateway_config import GatewayConfig


class ConfigStore(Protocol):
    """Abstract store for the saved configuration record."""

    @property
    def path(self) -> Path: ...

    def load(self, overrides: dict | None = None) -> GatewayConfig:
        """Load and validate configuration, merging overrides."""
        ...

    def load_raw(self, overrides: dict | None = None) -> dict:
        """Saved record merged with overrides, before validation."""
        ...

    def save(self, updates: dict) -> GatewayConfig:
        """Merge *updates* onto the saved record and persist it."""
        ...
