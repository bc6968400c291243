"""Port: pre-flight gateway connectivity check."""

from __future__ import annotations

from typing import Protocol


class ConnectivityChecker(Protocol):
    def check_connectivity(self) -> tuple[bool, str]:
        """Returns (ok, error_message)."""
        ...

    def check_models(self, models: list[str]) -> list[str]:
        """Return model names from the list that the gateway does not serve."""
        ...
