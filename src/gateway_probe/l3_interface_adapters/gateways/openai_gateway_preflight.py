"""Gateway: pre-flight checks through the OpenAI SDK — implements ConnectivityChecker port.

Points the official client at the gateway's provider base URL, so a failure
here means the HTTP path is misconfigured before any chat is attempted.
"""

from __future__ import annotations

import openai

from gateway_probe.l1_entities.gateway_config import GATEWAY_AUTH_HEADER, GatewayConfig


class OpenAIGatewayPreflight:
    """Wraps openai.OpenAI to implement the ConnectivityChecker protocol."""

    def __init__(self, config: GatewayConfig) -> None:
        self._config = config

    def _client(self) -> openai.OpenAI:
        headers = {}
        if self._config.use_auth_gateway and self._config.auth_token:
            headers[GATEWAY_AUTH_HEADER] = f'Bearer {self._config.auth_token}'
        return openai.OpenAI(
            api_key=self._config.api_key or 'gateway-managed',  # BYOK: the gateway may hold the provider key
            base_url=self._config.derive_http_base_url(),
            default_headers=headers or None,
        )

    def check_connectivity(self) -> tuple[bool, str]:
        client = self._client()
        try:
            client.models.list()
            return True, ''
        except openai.AuthenticationError as e:
            return False, f'Authentication failed: {e}'
        except Exception as e:
            return False, f'Cannot connect to gateway: {e}'

    def check_models(self, models: list[str]) -> list[str]:
        """Return model names the gateway reports as missing.

        Falls back to an empty list if the models endpoint is unreachable or
        not proxied by the gateway.
        """
        client = self._client()
        try:
            missing = []
            for model in models:
                try:
                    client.models.retrieve(model)
                except openai.NotFoundError:
                    missing.append(model)
            return missing
        except Exception:
            return []
